import asyncio

from loguru import logger

from event_analytics.core.loguru_logger import setup_logger
from event_analytics.schemas.filters import has_extra
from event_analytics.services.analytics_service import AnalyticsService


async def main():
    setup_logger()

    service = AnalyticsService()
    await service.setup()

    try:
        await service.log_event({
            "url": "/",
            "session": "demo-session",
            "user_agent": "Mozilla/5.0 (X11; Linux x86_64; rv:120.0) Gecko/20100101 Firefox/120.0",
        })
        await service.log_event({"event": "signup", "session": "demo-session", "extra": {"plan": "pro"}})
        await service.update_cohort("onboarding", {"subject": "demo-session", "cohort": "A", "state": "active"})

        logger.info(f"visits: {await service.count_visits()}")
        logger.info(f"unique sessions by day: {await service.count_events(unique=True, group_by='date')}")
        logger.info(f"pro signups: {await service.list_events(filter=has_extra('plan', 'pro'))}")
        logger.info(f"onboarding states: {await service.count_cohort_states('onboarding')}")
    finally:
        await service.dispose()


if __name__ == "__main__":
    asyncio.run(main())
