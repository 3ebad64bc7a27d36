import pytest

from core.errors import ValidationError


class CountingBackend:
    """Wraps a backend and counts list reads."""

    def __init__(self, inner):
        self.inner = inner
        self.all_reads = 0
        self.date_reads = 0

    async def get_all_tasks(self):
        self.all_reads += 1
        return await self.inner.get_all_tasks()

    async def get_tasks_by_date(self, date):
        self.date_reads += 1
        return await self.inner.get_tasks_by_date(date)

    def __getattr__(self, name):
        return getattr(self.inner, name)


@pytest.fixture()
def counting(repository):
    repository.backend = CountingBackend(repository.backend)
    return repository


@pytest.mark.asyncio
async def test_get_all_tasks_reads_through_cache(counting):
    await counting.add_task({"title": "one"})

    first = await counting.get_all_tasks()
    second = await counting.get_all_tasks()

    assert first == second
    assert [r["title"] for r in first] == ["one"]
    assert counting.backend.all_reads == 1


@pytest.mark.asyncio
async def test_get_tasks_by_date_cached_per_date(counting):
    await counting.add_task({"title": "today", "due_date": "2026-10-18"})

    await counting.get_tasks_by_date("2026-10-18")
    await counting.get_tasks_by_date("2026-10-18")
    await counting.get_tasks_by_date("2026-10-19")

    assert counting.backend.date_reads == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("mutation", ["add", "update", "delete"])
async def test_every_mutation_invalidates_cached_queries(counting, mutation):
    record = await counting.add_task({"title": "seed", "due_date": "2026-10-18"})
    await counting.get_all_tasks()
    await counting.get_tasks_by_date("2026-10-18")
    assert await counting.cache.get_cached_tasks() is not None

    if mutation == "add":
        await counting.add_task({"title": "another"})
    elif mutation == "update":
        await counting.update_task(record["id"], {"title": "renamed"})
    else:
        await counting.delete_task(record["id"])

    assert await counting.cache.get_cached_tasks() is None
    assert await counting.cache.get_cached_tasks_by_date("2026-10-18") is None


@pytest.mark.asyncio
async def test_failed_mutation_keeps_cache(counting):
    await counting.add_task({"title": "seed"})
    await counting.get_all_tasks()

    with pytest.raises(ValidationError):
        await counting.add_task({"title": " "})

    assert await counting.cache.get_cached_tasks() is not None


@pytest.mark.asyncio
async def test_get_task_by_id_is_authoritative(counting):
    record = await counting.add_task({"title": "fresh"})
    await counting.get_all_tasks()

    assert (await counting.get_task_by_id(record["id"]))["title"] == "fresh"
    assert counting.backend.all_reads == 1
