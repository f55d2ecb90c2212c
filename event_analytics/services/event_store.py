from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional, Union

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from event_analytics.core.exceptions import StorageWriteError
from event_analytics.db.db_helper import DataBaseHelper, connection
from event_analytics.db.models.event import Event, EventExtra
from event_analytics.schemas.events import EventCreate, as_utc
from event_analytics.services.id_generator import generate_id
from event_analytics.services.user_agent import parse_user_agent

DEFAULT_EVENT = "visit"


def build_event_row(
    data: EventCreate,
    *,
    event_id: str,
    default_domain: Optional[str],
    user_agent_parser: Callable[[Optional[str]], Dict[str, Any]] = parse_user_agent,
) -> Dict[str, Any]:
    """Single place where event defaults are resolved."""
    row = {
        "id": event_id,
        "event": data.event or DEFAULT_EVENT,
        "url": data.url,
        "domain": data.domain or default_domain,
        "session": data.session,
        "referrer": data.referrer,
        "ip": data.ip,
        "note": data.note,
        "date": as_utc(data.date) if data.date else datetime.now(timezone.utc),
    }
    row.update(user_agent_parser(data.user_agent))
    return row


class EventStore:
    """Writes an event row and its attribute rows as one unit of work."""

    def __init__(
        self,
        db: DataBaseHelper,
        *,
        default_domain: Optional[str] = None,
        id_generator: Callable[[], str] = generate_id,
        user_agent_parser: Callable[[Optional[str]], Dict[str, Any]] = parse_user_agent,
    ):
        self.db = db
        self.default_domain = default_domain
        self.id_generator = id_generator
        self.user_agent_parser = user_agent_parser

    @connection
    async def log_event(self, data: Union[EventCreate, Mapping[str, Any]], *, session: AsyncSession) -> str:
        if not isinstance(data, EventCreate):
            data = EventCreate.model_validate(data)

        row = build_event_row(
            data,
            event_id=self.id_generator(),
            default_domain=self.default_domain,
            user_agent_parser=self.user_agent_parser,
        )

        try:
            session.add(Event(**row))
            await session.flush()
            session.add_all(
                EventExtra(event_id=row["id"], key=key, value=value)
                for key, value in data.extra.items()
            )
            await session.commit()
        except SQLAlchemyError as e:
            raise StorageWriteError(f"Failed to log event {row['id']}: {e}") from e

        logger.debug(f"Logged event {row['id']} ({row['event']}) with {len(data.extra)} extra attributes")
        return row["id"]
