from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from uuid import UUID
from datetime import date, datetime

from app.schemas.post import AuthorSummary


# ---------------------------------------------------------
# EVENTS
# ---------------------------------------------------------
class EventCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    details: str = Field(default="", max_length=2000)
    location: str = Field(default="", max_length=200)
    starts_at: datetime
    image_url: Optional[str] = None


class EventRead(BaseModel):
    id: UUID
    title: str
    details: str
    location: str
    image_url: Optional[str] = None
    starts_at: datetime
    expires_at: datetime
    created_at: datetime
    created_by: Optional[AuthorSummary] = None

    model_config = ConfigDict(from_attributes=True)


class EventListResponse(BaseModel):
    events: List[EventRead]


# ---------------------------------------------------------
# TIMETABLES
# ---------------------------------------------------------
class TimetableCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    details: str = Field(default="", max_length=2000)
    effective_date: date
    image_url: Optional[str] = None
    pdf_url: Optional[str] = None


class TimetableRead(BaseModel):
    id: UUID
    title: str
    details: str
    image_url: Optional[str] = None
    pdf_url: Optional[str] = None
    effective_date: date
    expires_at: datetime
    created_at: datetime
    created_by: Optional[AuthorSummary] = None

    model_config = ConfigDict(from_attributes=True)


class TimetableListResponse(BaseModel):
    timetables: List[TimetableRead]


class CleanupResult(BaseModel):
    events_removed: int
    timetables_removed: int
