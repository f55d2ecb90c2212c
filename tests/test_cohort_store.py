import asyncio
import pytest
from unittest.mock import PropertyMock

from event_analytics.core.exceptions import StorageWriteError
from event_analytics.db.db_helper import DataBaseHelper
from event_analytics.schemas.cohorts import CohortStateCount, CohortUpdate


@pytest.mark.asyncio
async def test_omitted_field_keeps_previous_value(service):
    await service.update_cohort("exp", {"subject": "u1", "cohort": "A", "state": "active"})
    await service.update_cohort("exp", {"subject": "u1", "state": "done"})

    record = await service.get_cohort("exp", "u1")

    assert record.cohort == "A"
    assert record.state == "done"


@pytest.mark.asyncio
async def test_unsupplied_fields_start_as_null(service):
    await service.update_cohort("exp", CohortUpdate(subject="u1", cohort="B"))

    record = await service.get_cohort("exp", "u1")

    assert record.cohort == "B"
    assert record.state is None


@pytest.mark.asyncio
async def test_explicit_none_clears_field(service):
    await service.update_cohort("exp", {"subject": "u1", "cohort": "A", "state": "active"})
    await service.update_cohort("exp", {"subject": "u1", "state": None})

    record = await service.get_cohort("exp", "u1")

    assert record.cohort == "A"
    assert record.state is None


@pytest.mark.asyncio
async def test_subject_only_update_creates_or_keeps_row(service):
    await service.update_cohort("exp", {"subject": "u1"})
    assert (await service.get_cohort("exp", "u1")).cohort is None

    await service.update_cohort("exp", {"subject": "u1", "cohort": "A"})
    await service.update_cohort("exp", {"subject": "u1"})
    assert (await service.get_cohort("exp", "u1")).cohort == "A"


@pytest.mark.asyncio
async def test_campaigns_are_independent(service):
    await service.update_cohort("exp-1", {"subject": "u1", "cohort": "A"})
    await service.update_cohort("exp-2", {"subject": "u1", "cohort": "B"})

    assert (await service.get_cohort("exp-1", "u1")).cohort == "A"
    assert (await service.get_cohort("exp-2", "u1")).cohort == "B"
    assert await service.get_cohort("exp-3", "u1") is None


@pytest.mark.asyncio
async def test_concurrent_disjoint_updates_are_both_kept(service):
    for i in range(10):
        subject = f"u{i}"
        await asyncio.gather(
            service.update_cohort("exp", {"subject": subject, "cohort": "A"}),
            service.update_cohort("exp", {"subject": subject, "state": "active"}),
        )

        record = await service.get_cohort("exp", subject)
        assert (record.cohort, record.state) == ("A", "active")


@pytest.mark.asyncio
async def test_locked_merge_for_dialects_without_upsert(service, mocker):
    mocker.patch.object(DataBaseHelper, "dialect", new_callable=PropertyMock, return_value="mssql")

    await asyncio.gather(
        service.update_cohort("exp", {"subject": "u1", "cohort": "A"}),
        service.update_cohort("exp", {"subject": "u1", "state": "active"}),
    )
    await service.update_cohort("exp", {"subject": "u1", "state": "done"})

    record = await service.get_cohort("exp", "u1")
    assert (record.cohort, record.state) == ("A", "done")
    assert service.cohorts._key_locks == {}


@pytest.mark.asyncio
async def test_fallback_locks_are_released_per_key(service, mocker):
    mocker.patch.object(DataBaseHelper, "dialect", new_callable=PropertyMock, return_value="mssql")

    await asyncio.gather(*(
        service.update_cohort("exp", {"subject": f"u{i % 5}", "state": f"step-{i}"})
        for i in range(10)
    ))
    with pytest.raises(StorageWriteError):
        await service.update_cohort("exp", {"cohort": "A"})

    assert service.cohorts._key_locks == {}
    assert sum(c.count for c in await service.count_cohort_states("exp")) == 5


@pytest.mark.asyncio
async def test_missing_subject_surfaces_as_storage_error(service):
    with pytest.raises(StorageWriteError):
        await service.update_cohort("exp", {"cohort": "A"})


@pytest.mark.asyncio
async def test_count_cohort_states_matches_tally(service):
    assignments = {
        "u1": ("A", "active"),
        "u2": ("A", "active"),
        "u3": ("A", "done"),
        "u4": ("B", "active"),
        "u5": ("B", "done"),
        "u6": ("B", "done"),
        "u7": ("B", "done"),
    }
    for subject, (cohort, state) in assignments.items():
        await service.update_cohort("exp", {"subject": subject, "cohort": cohort, "state": state})
    await service.update_cohort("other", {"subject": "u1", "cohort": "A", "state": "active"})

    counts = await service.count_cohort_states("exp")

    assert counts == [
        CohortStateCount(cohort="A", state="active", count=2),
        CohortStateCount(cohort="A", state="done", count=1),
        CohortStateCount(cohort="B", state="active", count=1),
        CohortStateCount(cohort="B", state="done", count=3),
    ]
    assert sum(c.count for c in counts) == len(assignments)
