"""Pydantic schemas for Wedding Event Planner.

This module defines the event draft, patch and record schemas shared by the
API, the validation gate, the store client and the reconciler.
IMPORTANT: event dates are normalized to timezone-aware UTC datetimes.
Naive input is interpreted in settings.TIMEZONE.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional
from zoneinfo import ZoneInfo

from pydantic import BaseModel, Field, ValidationInfo, field_validator, model_validator
from pydantic_core import PydanticCustomError

from config import settings

CEREMONY_TYPE_PATTERN = "^(civil|religious|both)$"
STATUS_PATTERN = "^(planned|confirmed|completed|cancelled)$"
TIME_OF_DAY_PATTERN = "^([01]\d|2[0-3]):[0-5]\d$"


class OffsetKind(str, Enum):
    """Named lead times before an event at which a reminder becomes due"""
    ONE_WEEK = "one_week"
    THREE_DAYS = "three_days"
    ONE_DAY = "one_day"


def to_utc(value: datetime, tz_name: Optional[str] = None) -> datetime:
    """Attach the configured zone to naive datetimes and convert to UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=ZoneInfo(tz_name or settings.TIMEZONE))
    return value.astimezone(timezone.utc)


def _merge_date_and_time(data: Any) -> Any:
    # The form sends a date-only value plus an optional "HH:MM" time.
    if not isinstance(data, dict) or "time" not in data:
        return data
    data = dict(data)
    time_part = data.pop("time")
    date_part = data.get("date")
    if isinstance(time_part, str) and time_part.strip() and isinstance(date_part, str):
        date_part = date_part.strip()
        if date_part and "T" not in date_part and " " not in date_part:
            data["date"] = f"{date_part}T{time_part.strip()}"
    return data


def _required_text(value: Any) -> Any:
    if value is None:
        raise PydanticCustomError("required", "Field is required")
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise PydanticCustomError("required", "Field is required")
    return value


def _optional_text(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    return value


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _reject_bool(value: Any) -> Any:
    # bool is an int subclass; True would pass as 1 guest
    if isinstance(value, bool):
        raise PydanticCustomError("int_type", "Input should be a valid integer")
    return value


def _sorted_timeline(entries: list) -> list:
    # HH:MM sorts lexically
    return sorted(entries, key=lambda entry: entry.time)


def _unique_services(services: List[str]) -> List[str]:
    cleaned = []
    for service in services:
        service = service.strip()
        if service and service not in cleaned:
            cleaned.append(service)
    return cleaned


class ReminderOffsets(BaseModel):
    """Which reminders are enabled for an event. All enabled by default."""

    one_week: bool = Field(default=True, description="Remind 7 days before the event")
    three_days: bool = Field(default=True, description="Remind 3 days before the event")
    one_day: bool = Field(default=True, description="Remind 1 day before the event")

    def enabled(self, kind: OffsetKind) -> bool:
        return bool(getattr(self, kind.value))


class ReminderOffsetsUpdate(BaseModel):
    """Partial reminder flag update - only provided flags change."""

    one_week: Optional[bool] = None
    three_days: Optional[bool] = None
    one_day: Optional[bool] = None


class TimelineEntry(BaseModel):
    """One step of the wedding day, e.g. 15:00 ceremony."""

    time: str = Field(..., pattern=TIME_OF_DAY_PATTERN, description="Time of day, HH:MM", examples=["15:00"])
    event: str = Field(..., min_length=1, max_length=200, description="What happens at that time")

    @field_validator("event", mode="before")
    @classmethod
    def _strip_event(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class EventCreate(BaseModel):
    """Schema for a new event draft.

    Validation context (optional):
    - now: datetime used for the past-date rule
    - allow_past_dates: bool, when False dates strictly before `now` are rejected
    """

    client_label: str = Field(
        ...,
        min_length=2,
        max_length=100,
        description="Display name of the client / couple",
        examples=["Claire & Louis"]
    )

    partners_name: Optional[str] = Field(
        default="",
        max_length=100,
        description="Optional partner names"
    )

    # Pydantic auto-parses ISO strings, including date-only "2025-06-14"
    date: datetime = Field(
        ...,
        description="When the event takes place (ISO 8601)",
        examples=["2025-06-14T15:00:00+02:00", "2025-06-14"]
    )

    venue: str = Field(
        ...,
        min_length=2,
        max_length=200,
        description="Venue name or address"
    )

    contact_phone: str = Field(
        ...,
        min_length=1,
        description="Contact phone number"
    )

    guest_count: int = Field(default=1, ge=1, le=1000, description="Number of guests")

    budget: float = Field(default=0, ge=0, allow_inf_nan=False, description="Budget, never negative")

    notes: Optional[str] = Field(default="", max_length=1000, description="Free-form notes")

    ceremony_type: str = Field(
        default="civil",
        pattern=CEREMONY_TYPE_PATTERN,
        description="Ceremony type: civil, religious, or both"
    )

    status: str = Field(
        default="planned",
        pattern=STATUS_PATTERN,
        description="Planning status"
    )

    reminder_offsets: ReminderOffsets = Field(
        default_factory=ReminderOffsets,
        description="Enabled reminder offsets"
    )

    timeline: List[TimelineEntry] = Field(default_factory=list, description="Schedule of the day, sorted by time")

    services: List[str] = Field(default_factory=list, description="Booked services, e.g. catering, photography")

    @model_validator(mode="before")
    @classmethod
    def _combine_time(cls, data: Any) -> Any:
        return _merge_date_and_time(data)

    @field_validator("client_label", "venue", "contact_phone", "date", mode="before")
    @classmethod
    def _require(cls, value: Any) -> Any:
        return _required_text(value)

    @field_validator("partners_name", "notes", mode="before")
    @classmethod
    def _strip_optional(cls, value: Any) -> Any:
        return _optional_text(value)

    @field_validator("guest_count", mode="before")
    @classmethod
    def _default_guest_count(cls, value: Any) -> Any:
        value = _blank_to_none(_reject_bool(value))
        return 1 if value is None else value

    @field_validator("budget", mode="before")
    @classmethod
    def _default_budget(cls, value: Any) -> Any:
        value = _blank_to_none(value)
        return 0 if value is None else value

    @field_validator("reminder_offsets", mode="before")
    @classmethod
    def _default_offsets(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("timeline", "services", mode="before")
    @classmethod
    def _default_list(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("timeline")
    @classmethod
    def _sort_timeline(cls, value: List[TimelineEntry]) -> List[TimelineEntry]:
        return _sorted_timeline(value)

    @field_validator("services")
    @classmethod
    def _clean_services(cls, value: List[str]) -> List[str]:
        return _unique_services(value)

    @field_validator("date")
    @classmethod
    def _normalize_date(cls, value: datetime, info: ValidationInfo) -> datetime:
        value = to_utc(value)
        context = info.context or {}
        now = context.get("now")
        if now is not None and not context.get("allow_past_dates", True):
            if value < to_utc(now):
                raise PydanticCustomError("date_in_past", "Event date must not be in the past")
        return value


class EventUpdate(BaseModel):
    """Schema for updating an existing event.

    All fields are optional - only provided fields will be updated.
    """

    client_label: Optional[str] = Field(None, min_length=2, max_length=100)
    partners_name: Optional[str] = Field(None, max_length=100)
    date: Optional[datetime] = Field(None, description="Updated date (ISO 8601)")
    venue: Optional[str] = Field(None, min_length=2, max_length=200)
    contact_phone: Optional[str] = Field(None, min_length=1)
    guest_count: Optional[int] = Field(None, ge=1, le=1000)
    budget: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    notes: Optional[str] = Field(None, max_length=1000)
    ceremony_type: Optional[str] = Field(None, pattern=CEREMONY_TYPE_PATTERN)
    status: Optional[str] = Field(None, pattern=STATUS_PATTERN)
    reminder_offsets: Optional[ReminderOffsetsUpdate] = None
    timeline: Optional[List[TimelineEntry]] = None
    services: Optional[List[str]] = None

    @model_validator(mode="before")
    @classmethod
    def _combine_time(cls, data: Any) -> Any:
        return _merge_date_and_time(data)

    @field_validator("client_label", "venue", "contact_phone", "date", mode="before")
    @classmethod
    def _require_when_given(cls, value: Any) -> Any:
        # null means "leave unchanged"; an empty string would clear a required field
        if value is None:
            return None
        return _required_text(value)

    @field_validator("partners_name", "notes", mode="before")
    @classmethod
    def _strip_optional(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("guest_count", mode="before")
    @classmethod
    def _integer_guest_count(cls, value: Any) -> Any:
        return _reject_bool(value)

    @field_validator("timeline")
    @classmethod
    def _sort_timeline(cls, value: Optional[List[TimelineEntry]]) -> Optional[List[TimelineEntry]]:
        return _sorted_timeline(value) if value is not None else None

    @field_validator("services")
    @classmethod
    def _clean_services(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        return _unique_services(value) if value is not None else None

    @field_validator("date")
    @classmethod
    def _normalize_date(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_utc(value) if value is not None else None


class EventResponse(BaseModel):
    """Schema for persisted events returned by the store.

    The `id` is the single canonical identifier, assigned by the store.
    """

    id: str = Field(..., description="Unique event ID")
    client_label: str
    partners_name: Optional[str] = ""
    date: datetime
    venue: str
    contact_phone: str
    guest_count: int = 1
    budget: float = 0
    notes: Optional[str] = ""
    ceremony_type: str = "civil"
    status: str = "planned"
    reminder_offsets: ReminderOffsets = Field(default_factory=ReminderOffsets)
    timeline: List[TimelineEntry] = Field(default_factory=list)
    services: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("ceremony_type", "status", mode="before")
    @classmethod
    def _enum_value(cls, value: Any) -> Any:
        return value.value if isinstance(value, Enum) else value

    @field_validator("timeline", "services", mode="before")
    @classmethod
    def _default_list(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("date", "created_at", "updated_at")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # SQLite drops tzinfo; stored values are always UTC
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    class Config:
        """Pydantic configuration"""
        from_attributes = True  # Enable ORM mode for SQLAlchemy models

        json_schema_extra = {
            "example": {
                "id": "abc-123-def-456",
                "client_label": "Claire & Louis",
                "partners_name": "Louis Martin",
                "date": "2025-06-14T13:00:00+00:00",
                "venue": "Domaine des Oliviers",
                "contact_phone": "+33612345678",
                "guest_count": 120,
                "budget": 18000,
                "notes": "Vegetarian menu for 12 guests",
                "ceremony_type": "both",
                "status": "confirmed",
                "reminder_offsets": {"one_week": True, "three_days": True, "one_day": False},
                "timeline": [{"time": "15:00", "event": "Ceremony"}, {"time": "19:30", "event": "Dinner"}],
                "services": ["catering", "photography"],
                "created_at": "2025-01-10T10:30:00+00:00",
                "updated_at": "2025-01-10T10:30:00+00:00"
            }
        }


class ReminderInstance(BaseModel):
    """One computed reminder: which event, which offset, and when."""

    event_id: str
    offset_kind: OffsetKind
    notify_at: datetime

    class Config:
        """Pydantic configuration"""
        frozen = True
