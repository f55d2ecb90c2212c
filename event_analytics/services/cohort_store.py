import asyncio
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from loguru import logger
from sqlalchemy import distinct, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from event_analytics.core.exceptions import StorageReadError, StorageWriteError
from event_analytics.db.db_helper import DataBaseHelper, connection
from event_analytics.db.models.cohort import Cohort
from event_analytics.schemas.cohorts import CohortRead, CohortStateCount, CohortUpdate

UPSERT_DIALECTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}

MERGE_FIELDS = ("cohort", "state")


class CohortStore:
    """
    Per (campaign, subject) assignment with merge-on-write: fields left out of
    an update keep their stored value.
    """

    def __init__(self, db: DataBaseHelper):
        self.db = db
        # only used on dialects without ON CONFLICT support; entry is [lock, users]
        self._key_locks: Dict[Tuple[str, Optional[str]], List[Any]] = {}

    @asynccontextmanager
    async def _key_lock(self, key: Tuple[str, Optional[str]]):
        entry = self._key_locks.setdefault(key, [asyncio.Lock(), 0])
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                del self._key_locks[key]

    @connection
    async def update_cohort(
        self,
        campaign: str,
        data: Union[CohortUpdate, Mapping[str, Any]],
        *,
        session: AsyncSession,
    ) -> None:
        if not isinstance(data, CohortUpdate):
            data = CohortUpdate.model_validate(data)

        supplied = {
            k: v for k, v in data.model_dump(exclude_unset=True).items() if k in MERGE_FIELDS
        }

        try:
            insert = UPSERT_DIALECTS.get(self.db.dialect)
            if insert is not None:
                await self._upsert(session, insert, campaign, data.subject, supplied)
            else:
                async with self._key_lock((campaign, data.subject)):
                    await self._merge_locked(session, campaign, data.subject, supplied)
        except SQLAlchemyError as e:
            raise StorageWriteError(
                f"Failed to update cohort for campaign={campaign!r} subject={data.subject!r}: {e}"
            ) from e

        logger.debug(f"Cohort updated: campaign={campaign} subject={data.subject} fields={sorted(supplied)}")

    @staticmethod
    async def _upsert(session: AsyncSession, insert, campaign: str, subject: Optional[str], supplied: Dict[str, Any]):
        stmt = insert(Cohort).values(campaign=campaign, subject=subject, **supplied)
        conflict_key = [Cohort.campaign, Cohort.subject]
        if supplied:
            stmt = stmt.on_conflict_do_update(
                index_elements=conflict_key,
                set_={k: stmt.excluded[k] for k in supplied},
            )
        else:
            stmt = stmt.on_conflict_do_nothing(index_elements=conflict_key)
        await session.execute(stmt)
        await session.commit()

    @staticmethod
    async def _merge_locked(session: AsyncSession, campaign: str, subject: Optional[str], supplied: Dict[str, Any]):
        record = (
            await session.execute(
                select(Cohort).where(Cohort.campaign == campaign, Cohort.subject == subject)
            )
        ).scalar_one_or_none()

        if record is None:
            session.add(Cohort(campaign=campaign, subject=subject, **supplied))
        else:
            for k, v in supplied.items():
                setattr(record, k, v)
        await session.commit()

    @connection
    async def get_cohort(self, campaign: str, subject: str, *, session: AsyncSession) -> Optional[CohortRead]:
        stmt = select(Cohort).where(Cohort.campaign == campaign, Cohort.subject == subject)
        try:
            record = (await session.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StorageReadError(f"Failed to read cohort: {e}") from e
        return CohortRead.model_validate(record) if record else None

    @connection
    async def count_cohort_states(self, campaign: str, *, session: AsyncSession) -> List[CohortStateCount]:
        stmt = (
            select(Cohort.cohort, Cohort.state, func.count(distinct(Cohort.subject)))
            .where(Cohort.campaign == campaign)
            .group_by(Cohort.cohort, Cohort.state)
            .order_by(Cohort.cohort, Cohort.state)
        )
        try:
            rows = (await session.execute(stmt)).all()
        except SQLAlchemyError as e:
            raise StorageReadError(f"Failed to count cohort states: {e}") from e

        return [CohortStateCount(cohort=c, state=s, count=n) for c, s, n in rows]
