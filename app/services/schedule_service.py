# app/services/schedule_service.py

from sqlmodel import select
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger
from datetime import datetime, time, timedelta, timezone
import uuid

from app.core.exceptions import NotFoundError
from app.core.timeutils import as_utc, utcnow
from app.models.schedule import Event, Timetable, EVENT_VISIBLE_MINUTES
from app.models.user import User
from app.schemas.schedule import EventCreate, EventRead, TimetableCreate, TimetableRead
from app.services.post_service import author_summaries


# ============================================================================
# EVENTS
# ============================================================================
async def _event_reads(session: AsyncSession, events: list[Event]) -> list[EventRead]:
    creators = await author_summaries(session, [e.created_by_id for e in events])
    return [
        EventRead.model_validate(e).model_copy(update={"created_by": creators.get(e.created_by_id)})
        for e in events
    ]


async def list_events(session: AsyncSession) -> list[EventRead]:
    """Events that have not expired yet, soonest first."""
    result = await session.execute(
        select(Event).where(Event.expires_at >= utcnow()).order_by(Event.starts_at)
    )
    return await _event_reads(session, result.scalars().all())


async def create_event(session: AsyncSession, creator: User, data: EventCreate) -> EventRead:
    starts_at = as_utc(data.starts_at)
    event = Event(
        title=data.title.strip(),
        details=data.details.strip(),
        location=data.location.strip(),
        image_url=data.image_url,
        starts_at=starts_at,
        expires_at=starts_at + timedelta(minutes=EVENT_VISIBLE_MINUTES),
        created_by_id=creator.id,
    )
    session.add(event)
    await session.commit()
    await session.refresh(event)

    logger.info(f"Event {event.id} created by {creator.email} | starts {starts_at.isoformat()}")
    return (await _event_reads(session, [event]))[0]


async def get_event(session: AsyncSession, event_id: uuid.UUID) -> EventRead:
    event = await session.get(Event, event_id)
    if not event:
        raise NotFoundError("Event not found")
    if as_utc(event.expires_at) < utcnow():
        raise NotFoundError("Event has expired")
    return (await _event_reads(session, [event]))[0]


# ============================================================================
# TIMETABLES
# ============================================================================
async def _timetable_reads(session: AsyncSession, timetables: list[Timetable]) -> list[TimetableRead]:
    creators = await author_summaries(session, [t.created_by_id for t in timetables])
    return [
        TimetableRead.model_validate(t).model_copy(update={"created_by": creators.get(t.created_by_id)})
        for t in timetables
    ]


def end_of_day(day) -> datetime:
    return datetime.combine(day, time.max, tzinfo=timezone.utc)


async def list_timetables(session: AsyncSession) -> list[TimetableRead]:
    """Timetables still in effect, most recent effective date first."""
    result = await session.execute(
        select(Timetable)
        .where(Timetable.expires_at >= utcnow())
        .order_by(Timetable.effective_date.desc())
    )
    return await _timetable_reads(session, result.scalars().all())


async def create_timetable(session: AsyncSession, creator: User, data: TimetableCreate) -> TimetableRead:
    timetable = Timetable(
        title=data.title.strip(),
        details=data.details.strip(),
        image_url=data.image_url,
        pdf_url=data.pdf_url,
        effective_date=data.effective_date,
        expires_at=end_of_day(data.effective_date),
        created_by_id=creator.id,
    )
    session.add(timetable)
    await session.commit()
    await session.refresh(timetable)

    logger.info(f"Timetable {timetable.id} created by {creator.email} | effective {data.effective_date}")
    return (await _timetable_reads(session, [timetable]))[0]


async def get_timetable(session: AsyncSession, timetable_id: uuid.UUID) -> TimetableRead:
    timetable = await session.get(Timetable, timetable_id)
    if not timetable:
        raise NotFoundError("Timetable not found")
    if as_utc(timetable.expires_at) < utcnow():
        raise NotFoundError("Timetable has expired")
    return (await _timetable_reads(session, [timetable]))[0]


# ============================================================================
# CLEANUP
# ============================================================================
async def cleanup_expired(session: AsyncSession) -> tuple[int, int]:
    """Deletes expired events and timetables; returns how many of each."""
    now = utcnow()
    events = await session.execute(delete(Event).where(Event.expires_at < now))
    timetables = await session.execute(delete(Timetable).where(Timetable.expires_at < now))
    await session.commit()

    logger.info(f"Cleaned up {events.rowcount} expired events and {timetables.rowcount} expired timetables")
    return events.rowcount, timetables.rowcount
