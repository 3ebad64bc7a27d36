import math

import pytest

from core.errors import ConsistencyError, NotFoundError, ValidationError
from core.priorities import normalize_priority
from models.task import Task, coerce_record_id, coerce_task_id, is_completed, normalize_task
from services.cache_storage import CacheStorage, NullCacheSubstrate
from services.task_repository import TaskRepository
from services.task_state import TaskState


@pytest.mark.parametrize("value", [True, 1, 1.0, "1", "true", "TRUE", "True"])
def test_completed_truthy_values(value):
    assert is_completed(value) is True


@pytest.mark.parametrize("value", [False, 0, "0", "false", "yes", "", None, 2, [], "1 "])
def test_completed_falsy_values(value):
    assert is_completed(value) is False


@pytest.mark.parametrize(
    "raw, expected",
    [(3, 3), ("4", 4), (" 5 ", 5), (6.0, 6), (None, None), ("x", None), (math.inf, None),
     (math.nan, None), ("1.5", None), (True, None), (2**63 - 1, 2**63 - 1), (2**63, None),
     (-(2**63) - 1, None), ("99999999999999999999", None)],
)
def test_coerce_task_id(raw, expected):
    assert coerce_task_id(raw) == expected


@pytest.mark.parametrize(
    "raw, expected",
    [("1.5", 1.5), (2.5, 2.5), ("7", 7), (8.0, 8), (2**64, 2**64), ("abc", None),
     (math.inf, None), ("nan", None), (False, None)],
)
def test_coerce_record_id(raw, expected):
    assert coerce_record_id(raw) == expected


@pytest.mark.parametrize(
    "raw, expected",
    [("HIGH", "high"), (" low ", "low"), ("urgent", "medium"), (None, "medium")],
)
def test_normalize_priority(raw, expected):
    assert normalize_priority(raw) == expected


def test_normalize_task_keeps_fractional_ids():
    task = normalize_task({"id": "2.5", "title": "legacy"})

    assert task.id == 2.5


def test_normalize_task_coerces_and_defaults():
    task = normalize_task(
        {"id": "7", "title": "x", "completed": "true", "priority": "bogus", "description": None}
    )

    assert task == Task(id=7, title="x", completed=True, priority="medium", description="")


def test_normalize_task_drops_bad_ids():
    assert normalize_task({"id": "abc", "title": "x"}) is None
    assert normalize_task({"title": "no id"}) is None
    assert normalize_task(None) is None


@pytest.mark.asyncio
async def test_buy_milk_scenario(state, repository):
    task_id = await state.add_task({"title": "Buy milk"})

    assert task_id == 1
    task = state.get(1)
    assert task.completed is False
    assert task.priority == "medium"

    await state.toggle_task(1)
    assert (await repository.get_task_by_id(1))["completed"] == 1
    assert state.get(1).completed is True

    await state.delete_task(1)
    assert await repository.get_task_by_id(1) is None
    assert state.tasks == ()

    await state.delete_task(1)


@pytest.mark.asyncio
async def test_add_blank_title_leaves_state_unchanged(state):
    await state.add_task(title="Existing")
    before = state.tasks

    with pytest.raises(ValidationError):
        await state.add_task({"title": "  "})

    assert state.tasks == before


@pytest.mark.asyncio
async def test_add_keeps_list_sorted_and_unique(state):
    await state.add_task(title="older")
    await state.add_task(title="newer")

    assert [t.title for t in state.tasks] == ["newer", "older"]
    assert len({t.id for t in state.tasks}) == 2


@pytest.mark.asyncio
async def test_load_tasks_normalizes_and_sorts(state, repository):
    await repository.add_task({"title": "a"})
    await repository.add_task({"title": "b"})

    await state.load_tasks()

    assert [t.title for t in state.tasks] == ["b", "a"]
    assert all(isinstance(t.completed, bool) for t in state.tasks)
    assert state.is_loading is False


@pytest.mark.asyncio
async def test_load_tasks_drops_records_with_bad_ids(state, repository, monkeypatch):
    async def fake_all():
        return [
            {"id": "2", "title": "ok", "completed": "1", "created_at": "2026-10-18T09:00:01.000Z"},
            {"id": "nope", "title": "bad"},
            {"id": "1.5", "title": "legacy", "created_at": "2026-10-18T09:00:00.500Z"},
            {"id": 1, "title": "also ok", "completed": 0, "created_at": "2026-10-18T09:00:00.000Z"},
        ]

    monkeypatch.setattr(repository, "get_all_tasks", fake_all)

    await state.load_tasks()

    assert [(t.id, t.completed) for t in state.tasks] == [(2, True), (1.5, False), (1, False)]


@pytest.mark.asyncio
async def test_load_tasks_failure_degrades_to_empty(state, repository, monkeypatch):
    await state.add_task(title="stale")

    async def broken():
        raise RuntimeError("backend down")

    monkeypatch.setattr(repository, "get_all_tasks", broken)

    await state.load_tasks()

    assert state.tasks == ()
    assert state.is_loading is False


@pytest.mark.asyncio
async def test_update_requires_task_in_memory(state, repository):
    record = await repository.add_task({"title": "backend only"})

    with pytest.raises(NotFoundError):
        await state.update_task(record["id"], title="changed")
    with pytest.raises(NotFoundError):
        await state.toggle_task(record["id"])

    assert (await repository.get_task_by_id(record["id"]))["title"] == "backend only"


@pytest.mark.asyncio
async def test_update_merges_and_rereads(state):
    task_id = await state.add_task(title="Plan", description="draft", priority="low")

    updated = await state.update_task(task_id, {"title": " Plan v2 "}, due_date="2026-10-30")

    assert updated.title == "Plan v2"
    assert updated.description == "draft"
    assert updated.priority == "low"
    assert updated.due_date == "2026-10-30"
    assert updated.updated_at > updated.created_at
    assert state.get(task_id) == updated


@pytest.mark.asyncio
async def test_update_rejects_unknown_and_immutable_fields(state):
    task_id = await state.add_task(title="Plan")

    with pytest.raises(ValidationError):
        await state.update_task(task_id, colour="red")
    with pytest.raises(ValidationError):
        await state.update_task(task_id, created_at="1999-01-01T00:00:00.000Z")


@pytest.mark.asyncio
async def test_failed_update_leaves_state_unchanged(state):
    task_id = await state.add_task(title="Plan")
    before = state.tasks

    with pytest.raises(ValidationError):
        await state.update_task(task_id, title="   ")

    assert state.tasks == before


@pytest.mark.asyncio
async def test_update_masks_sqlite_noop(sql_backend, timer):
    repo = TaskRepository(sql_backend, CacheStorage(NullCacheSubstrate(), clock=timer))
    state = TaskState(repo)

    with pytest.raises(NotFoundError):
        await state.update_task(42, title="ghost")


@pytest.mark.asyncio
async def test_delete_of_out_of_range_id_on_sqlite(sql_backend, timer):
    repo = TaskRepository(sql_backend, CacheStorage(NullCacheSubstrate(), clock=timer))
    state = TaskState(repo)
    task_id = await state.add_task(title="Stay")

    await state.delete_task(2**64)

    assert [t.id for t in state.tasks] == [task_id]
    assert state.get(2**64) is None


@pytest.mark.asyncio
async def test_delete_is_optimistic(state, repository, monkeypatch):
    task_id = await state.add_task(title="gone soon")
    seen = []

    async def observing_delete(tid):
        seen.append(state.get(tid))

    monkeypatch.setattr(repository, "delete_task", observing_delete)

    await state.delete_task(task_id)

    assert seen == [None]


@pytest.mark.asyncio
async def test_failed_delete_restores_snapshot(state, repository, monkeypatch):
    for title in ("a", "b", "c"):
        await state.add_task(title=title)
    before = state.tasks

    async def failing_delete(tid):
        raise ConsistencyError("still there", task_id=tid)

    monkeypatch.setattr(repository, "delete_task", failing_delete)

    with pytest.raises(ConsistencyError):
        await state.delete_task(before[1].id)

    assert state.tasks == before


@pytest.mark.asyncio
async def test_listeners_see_every_change(state):
    snapshots = []
    state.subscribe(snapshots.append)

    def broken_listener(tasks):
        raise RuntimeError("render failed")

    state.subscribe(broken_listener)

    task_id = await state.add_task(title="watched")
    await state.toggle_task(task_id)
    await state.delete_task(task_id)
    state.unsubscribe(snapshots.append)
    await state.add_task(title="unwatched")

    assert [len(s) for s in snapshots] == [1, 1, 0]
    assert snapshots[1][0].completed is True
