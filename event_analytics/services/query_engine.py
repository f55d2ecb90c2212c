from collections import defaultdict
from typing import Any, Dict, List, Optional

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from event_analytics.core.exceptions import InvalidFilterError, StorageReadError
from event_analytics.db.db_helper import DataBaseHelper, connection
from event_analytics.db.models.event import Event, EventExtra
from event_analytics.schemas.events import EventRead
from event_analytics.schemas.filters import VISIT, conjoin
from event_analytics.services.filter_compiler import compile_filter


def _check_page(limit: Optional[int], offset: Optional[int]) -> None:
    for name, value in (("limit", limit), ("offset", offset)):
        if value is not None and value < 0:
            raise InvalidFilterError(f"{name} must be non-negative, got {value}")


class QueryEngine:

    def __init__(self, db: DataBaseHelper):
        self.db = db

    @connection
    async def list_events(
        self,
        filter: Any = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        *,
        session: AsyncSession,
    ) -> List[EventRead]:
        """
        Events matching ``filter`` in id order, each with its ``extra`` mapping.

        ``limit=None`` means no cap, so an offset on its own skips rows and
        returns everything after them.
        """
        _check_page(limit, offset)
        stmt = select(Event).where(compile_filter(filter)).order_by(Event.id)
        if limit is not None:
            stmt = stmt.limit(limit)
        if offset:
            stmt = stmt.offset(offset)

        try:
            events = (await session.execute(stmt)).scalars().all()
            extras = await self._load_extras(session, [e.id for e in events])
        except SQLAlchemyError as e:
            raise StorageReadError(f"Failed to list events: {e}") from e

        logger.debug(f"Listed {len(events)} events (limit={limit}, offset={offset})")
        return [
            EventRead.model_validate(e).model_copy(update={"extra": extras.get(e.id, {})})
            for e in events
        ]

    async def list_visits(
        self,
        filter: Any = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[EventRead]:
        return await self.list_events(filter=conjoin(VISIT, filter), limit=limit, offset=offset)

    @staticmethod
    async def _load_extras(session: AsyncSession, event_ids: List[str]) -> Dict[str, Dict[str, str]]:
        if not event_ids:
            return {}
        stmt = select(EventExtra).where(EventExtra.event_id.in_(event_ids))
        grouped: Dict[str, Dict[str, str]] = defaultdict(dict)
        for extra in (await session.execute(stmt)).scalars():
            grouped[extra.event_id][extra.key] = extra.value
        return grouped
