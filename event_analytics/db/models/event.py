from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String
from sqlalchemy.orm import declarative_base

BaseORM = declarative_base()


class Event(BaseORM):
    __tablename__ = "events"

    id = Column(String, primary_key=True)
    event = Column(String, nullable=False, default="visit", index=True)
    url = Column(String)
    domain = Column(String)
    session = Column(String, index=True)
    referrer = Column(String)
    is_mobile = Column("isMobile", Boolean)
    is_desktop = Column("isDesktop", Boolean)
    is_bot = Column("isBot", Boolean)
    browser = Column(String)
    version = Column(String)
    os = Column(String)
    platform = Column(String)
    ip = Column(String)
    note = Column(String)
    date = Column(DateTime(timezone=True), nullable=False, index=True)


class EventExtra(BaseORM):
    __tablename__ = "events_extra"

    event_id = Column(String, ForeignKey("events.id"), primary_key=True)
    key = Column(String, primary_key=True)
    value = Column(String)


# Columns callers may reference in filters, by record field name
EVENT_COLUMNS = {
    "id": Event.id,
    "event": Event.event,
    "url": Event.url,
    "domain": Event.domain,
    "session": Event.session,
    "referrer": Event.referrer,
    "is_mobile": Event.is_mobile,
    "is_desktop": Event.is_desktop,
    "is_bot": Event.is_bot,
    "browser": Event.browser,
    "version": Event.version,
    "os": Event.os,
    "platform": Event.platform,
    "ip": Event.ip,
    "note": Event.note,
    "date": Event.date,
}

GROUPABLE_COLUMNS = frozenset(EVENT_COLUMNS) - {"id", "date"}
BOOLEAN_COLUMNS = frozenset({"is_mobile", "is_desktop", "is_bot"})
