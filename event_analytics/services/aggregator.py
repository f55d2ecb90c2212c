from typing import Any, List, Optional, Union

from loguru import logger
from sqlalchemy import distinct, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from event_analytics.core.exceptions import InvalidFilterError, StorageReadError
from event_analytics.db.db_helper import DataBaseHelper, connection
from event_analytics.db.models.event import EVENT_COLUMNS, GROUPABLE_COLUMNS, Event
from event_analytics.schemas.events import GroupCount, as_day
from event_analytics.schemas.filters import VISIT, conjoin
from event_analytics.services.filter_compiler import compile_filter

DATE_GROUP = "date"


def _group_expression(group_by: str, dialect: str):
    if group_by == DATE_GROUP:
        # calendar-day bucket in UTC, independent of time of day
        if dialect == "postgresql":
            return func.date(func.timezone("UTC", Event.date))
        return func.date(Event.date)
    if group_by not in GROUPABLE_COLUMNS:
        raise InvalidFilterError(
            f"Cannot group by {group_by!r}; expected 'date' or one of {sorted(GROUPABLE_COLUMNS)}"
        )
    return EVENT_COLUMNS[group_by]


class Aggregator:

    def __init__(self, db: DataBaseHelper):
        self.db = db

    @connection
    async def count_events(
        self,
        unique: bool = False,
        group_by: Optional[str] = None,
        filter: Any = None,
        *,
        session: AsyncSession,
    ) -> Union[int, List[GroupCount]]:
        """
        Count matching events, or distinct sessions when ``unique`` is set.

        Unique counts only consider events that have a session. With
        ``group_by`` the result is one ``GroupCount`` per non-empty group,
        ordered by key; otherwise a plain integer.
        """
        if unique:
            count = func.count(distinct(Event.session))
            where = [compile_filter(filter), Event.session.is_not(None)]
        else:
            count = func.count(distinct(Event.id))
            where = [compile_filter(filter)]

        if group_by is None:
            stmt = select(count).where(*where)
        else:
            key = _group_expression(group_by, self.db.dialect)
            stmt = select(key, count).where(*where).group_by(key).order_by(key)

        try:
            result = await session.execute(stmt)
            if group_by is None:
                total = result.scalar_one()
                logger.debug(f"Counted {total} (unique={unique})")
                return total
            rows = result.all()
        except SQLAlchemyError as e:
            raise StorageReadError(f"Failed to count events: {e}") from e

        normalize = as_day if group_by == DATE_GROUP else (lambda v: v)
        logger.debug(f"Counted {len(rows)} groups by {group_by} (unique={unique})")
        return [GroupCount(key=normalize(k), count=c) for k, c in rows]

    async def count_visits(
        self,
        unique: bool = False,
        group_by: Optional[str] = None,
        filter: Any = None,
    ) -> Union[int, List[GroupCount]]:
        return await self.count_events(unique=unique, group_by=group_by, filter=conjoin(VISIT, filter))
