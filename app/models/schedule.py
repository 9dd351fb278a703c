# app/models/schedule.py

from sqlmodel import SQLModel, Field
from sqlalchemy import Column, Date, DateTime, Text
from datetime import date, datetime
from typing import Optional
import uuid

from app.core.timeutils import utcnow

# Events drop out of listings this long after they start
EVENT_VISIBLE_MINUTES = 30


class Event(SQLModel, table=True):
    __tablename__ = "events"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    title: str
    details: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    location: str = Field(default="")
    image_url: Optional[str] = None

    starts_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    expires_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False, index=True))

    created_by_id: uuid.UUID = Field(foreign_key="users.id")
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )


class Timetable(SQLModel, table=True):
    __tablename__ = "timetables"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    title: str
    details: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    image_url: Optional[str] = None
    pdf_url: Optional[str] = None

    # valid until the end of this day (UTC)
    effective_date: date = Field(sa_column=Column(Date, nullable=False))
    expires_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False, index=True))

    created_by_id: uuid.UUID = Field(foreign_key="users.id")
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
