import pytest
from datetime import date, datetime

from event_analytics.core.exceptions import InvalidFilterError
from event_analytics.schemas.events import GroupCount
from event_analytics.schemas.filters import eq, has_extra


@pytest.fixture
def events():
    return [
        {"session": "a", "date": datetime(2024, 5, 1, 0, 5)},
        {"session": "a", "date": datetime(2024, 5, 1, 23, 55)},
        {"session": "b", "date": datetime(2024, 5, 1, 12, 0), "event": "click"},
        {"session": None, "date": datetime(2024, 5, 2, 8, 0)},
        {"session": "c", "date": datetime(2024, 5, 4, 18, 0), "extra": {"ab": "x"}},
        {"session": None, "date": datetime(2024, 5, 4, 19, 0), "event": "click"},
    ]


@pytest.mark.asyncio
async def test_total_and_unique_counts(service, events):
    for e in events:
        await service.log_event(e)

    assert await service.count_events() == 6
    # null sessions never count towards unique
    assert await service.count_events(unique=True) == 3
    assert await service.count_events(unique=True, filter=eq("event", "click")) == 1


@pytest.mark.asyncio
async def test_group_by_date_buckets_calendar_days(service, events):
    for e in events:
        await service.log_event(e)

    groups = await service.count_events(group_by="date")

    assert groups == [
        GroupCount(key=date(2024, 5, 1), count=3),
        GroupCount(key=date(2024, 5, 2), count=1),
        GroupCount(key=date(2024, 5, 4), count=2),
    ]
    assert sum(g.count for g in groups) == await service.count_events()


@pytest.mark.asyncio
async def test_unique_group_by_date(service, events):
    for e in events:
        await service.log_event(e)

    groups = await service.count_events(unique=True, group_by="date")

    assert groups == [
        GroupCount(key=date(2024, 5, 1), count=2),
        GroupCount(key=date(2024, 5, 4), count=1),
    ]


@pytest.mark.asyncio
async def test_group_by_column(service, events):
    for e in events:
        await service.log_event(e)

    groups = await service.count_events(group_by="event")

    assert [(g.key, g.count) for g in groups] == [("click", 2), ("visit", 4)]


@pytest.mark.asyncio
async def test_count_visits(service, events):
    for e in events:
        await service.log_event(e)

    assert await service.count_visits() == 4
    assert await service.count_visits(unique=True) == 2
    assert await service.count_visits(filter=has_extra("ab", "x")) == 1
    assert [(g.key, g.count) for g in await service.count_visits(group_by="session")] == [
        (None, 1),
        ("a", 2),
        ("c", 1),
    ]


@pytest.mark.asyncio
async def test_empty_store(service):
    assert await service.count_events() == 0
    assert await service.count_events(unique=True) == 0
    assert await service.count_events(group_by="date") == []


@pytest.mark.asyncio
async def test_group_by_is_restricted(service):
    with pytest.raises(InvalidFilterError):
        await service.count_events(group_by="id")
    with pytest.raises(InvalidFilterError):
        await service.count_events(group_by="session; DROP TABLE events")
