import pytest
import pytest_asyncio

from event_analytics.db.db_helper import DataBaseHelper
from event_analytics.services.analytics_service import AnalyticsService


@pytest.fixture
def db_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'analytics_test.db'}"


@pytest_asyncio.fixture
async def db(db_url):
    helper = DataBaseHelper(url=db_url, echo=False)
    await helper.create_all()
    yield helper
    await helper.dispose()


@pytest_asyncio.fixture
async def service(db):
    # dispose is handled by the db fixture
    return AnalyticsService(db, domain="example.com")
