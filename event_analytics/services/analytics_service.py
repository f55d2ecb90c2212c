from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from loguru import logger

from event_analytics.core.config import settings
from event_analytics.db.db_helper import DataBaseHelper
from event_analytics.schemas.cohorts import CohortRead, CohortStateCount, CohortUpdate
from event_analytics.schemas.events import EventCreate, EventRead, GroupCount
from event_analytics.services.aggregator import Aggregator
from event_analytics.services.cohort_store import CohortStore
from event_analytics.services.event_store import EventStore
from event_analytics.services.id_generator import generate_id
from event_analytics.services.query_engine import QueryEngine
from event_analytics.services.user_agent import parse_user_agent


class AnalyticsService:
    """
    Entry point for embedding applications: event logging, event listing and
    counting, and cohort tracking over one database.
    """

    def __init__(
        self,
        db: Optional[DataBaseHelper] = None,
        *,
        domain: Optional[str] = None,
        id_generator: Callable[[], str] = generate_id,
        user_agent_parser: Callable[[Optional[str]], Dict[str, Any]] = parse_user_agent,
    ):
        self.db = db or DataBaseHelper()
        self.domain = domain if domain is not None else settings.analytics.default_domain

        self.events = EventStore(
            self.db,
            default_domain=self.domain,
            id_generator=id_generator,
            user_agent_parser=user_agent_parser,
        )
        self.queries = QueryEngine(self.db)
        self.aggregator = Aggregator(self.db)
        self.cohorts = CohortStore(self.db)

    async def setup(self) -> None:
        await self.db.create_all()

    async def dispose(self) -> None:
        logger.info("dispose db engine")
        await self.db.dispose()

    # events ---------------------------------------

    async def log_event(self, data: Union[EventCreate, Mapping[str, Any]]) -> str:
        return await self.events.log_event(data)

    async def list_events(self, filter: Any = None, limit: Optional[int] = None,
                          offset: Optional[int] = None) -> List[EventRead]:
        return await self.queries.list_events(filter=filter, limit=limit, offset=offset)

    async def list_visits(self, filter: Any = None, limit: Optional[int] = None,
                          offset: Optional[int] = None) -> List[EventRead]:
        return await self.queries.list_visits(filter=filter, limit=limit, offset=offset)

    async def count_events(self, unique: bool = False, group_by: Optional[str] = None,
                           filter: Any = None) -> Union[int, List[GroupCount]]:
        return await self.aggregator.count_events(unique=unique, group_by=group_by, filter=filter)

    async def count_visits(self, unique: bool = False, group_by: Optional[str] = None,
                           filter: Any = None) -> Union[int, List[GroupCount]]:
        return await self.aggregator.count_visits(unique=unique, group_by=group_by, filter=filter)

    # cohorts ---------------------------------------

    async def update_cohort(self, campaign: str, data: Union[CohortUpdate, Mapping[str, Any]]) -> None:
        await self.cohorts.update_cohort(campaign, data)

    async def get_cohort(self, campaign: str, subject: str) -> Optional[CohortRead]:
        return await self.cohorts.get_cohort(campaign, subject)

    async def count_cohort_states(self, campaign: str) -> List[CohortStateCount]:
        return await self.cohorts.count_cohort_states(campaign)
