from pydantic import BaseModel, Field, ConfigDict, field_validator
from datetime import date as Date, datetime, timezone
from typing import Any, Dict, Optional


class EventCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    event: Optional[str] = Field(None, description="Event type label, 'visit' when omitted.")
    url: Optional[str] = None
    domain: Optional[str] = Field(None, description="Falls back to the instance default domain.")
    session: Optional[str] = None
    referrer: Optional[str] = None
    ip: Optional[str] = None
    note: Optional[str] = None
    user_agent: Optional[str] = Field(None, description="Raw User-Agent header, parsed on write.")
    date: Optional[datetime] = Field(None, description="Override of the recording time (mainly for tests).")
    extra: Dict[str, str] = Field(default_factory=dict, description="Open-ended string attributes.")


class EventRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    event: str
    url: Optional[str] = None
    domain: Optional[str] = None
    session: Optional[str] = None
    referrer: Optional[str] = None
    is_mobile: Optional[bool] = None
    is_desktop: Optional[bool] = None
    is_bot: Optional[bool] = None
    browser: Optional[str] = None
    version: Optional[str] = None
    os: Optional[str] = None
    platform: Optional[str] = None
    ip: Optional[str] = None
    note: Optional[str] = None
    date: datetime
    extra: Dict[str, str] = Field(default_factory=dict)

    @field_validator("date")
    @classmethod
    def date_in_utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class GroupCount(BaseModel):
    """One row of a grouped count. ``key`` is a ``datetime.date`` for date grouping."""
    key: Any
    count: int


def as_day(value: Any) -> Optional[Date]:
    """Normalize a day bucket returned by the database to ``datetime.date``."""
    if value is None or type(value) is Date:
        return value
    if isinstance(value, datetime):
        return value.date()
    return Date.fromisoformat(str(value)[:10])


def as_utc(value: datetime) -> datetime:
    """Aware datetimes are converted to UTC; naive ones are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
