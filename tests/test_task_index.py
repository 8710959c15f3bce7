"""Tests for the task index orchestrator (engine.py)."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone

import pytest
from loguru import logger

from taskflow_index.config import IndexConfig
from taskflow_index.engine import TaskIndex
from taskflow_index.model import SortKey, Task, TaskStatus
from taskflow_index.structures import CycleDetectedError

BASE = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _task(task_id: str, title: str = "", **kwargs) -> Task:
    kwargs.setdefault("due_date", BASE)
    return Task(id=task_id, title=title, **kwargs)


def _ids(tasks: list[Task]) -> list[str]:
    return [t.id for t in tasks]


@pytest.fixture
def index() -> TaskIndex:
    return TaskIndex()


@pytest.fixture
def captured_warnings():
    captured: list[str] = []
    handler_id = logger.add(lambda msg: captured.append(str(msg)), level="WARNING", format="{message}")
    yield captured
    logger.remove(handler_id)


# ---------------------------------------------------------------------------
# End-to-end scenario
# ---------------------------------------------------------------------------

class TestEndToEnd:
    def test_write_and_review_proposal(self, index: TaskIndex) -> None:
        t1 = _task("1", "Write proposal", priority=1)
        t2 = _task("2", "Review proposal", priority=3, dependencies=["1"])
        index.add_task(t1)
        index.add_task(t2)

        assert index.can_start_task("2") is False
        index.update_task_status("1", TaskStatus.COMPLETED)
        assert index.can_start_task("2") is True

        assert _ids(index.search_tasks("wri")) == ["1"]
        assert _ids(index.search_tasks("")) == ["1", "2"]
        assert index.sort_tasks([t1, t2], "priority") == [t2, t1]


# ---------------------------------------------------------------------------
# Mutation
# ---------------------------------------------------------------------------

class TestAddTask:
    def test_add_and_get(self, index: TaskIndex) -> None:
        index.add_task(_task("1", "Alpha", tags=["x"]))
        assert len(index) == 1
        assert "1" in index
        stored = index.get_task("1")
        assert stored is not None
        assert stored.title == "Alpha"
        assert index.get_task("nope") is None

    def test_store_keeps_its_own_copy(self, index: TaskIndex) -> None:
        t = _task("1", "Alpha", tags=["x"])
        index.add_task(t)
        t.title = "Mutated"
        t.tags.append("y")
        assert index.get_task("1").title == "Alpha"
        assert _ids(index.search_tasks("y")) == []
        index.remove_task("1")
        assert index.search_tasks("alp") == []

    def test_empty_fields_are_valid(self, index: TaskIndex) -> None:
        index.add_task(Task(id="1"))
        assert _ids(index.get_all_tasks()) == ["1"]
        assert index.can_start_task("1") is True
        assert _ids(index.get_tasks_in_dependency_order()) == ["1"]
        index.remove_task("1")
        assert index.get_all_tasks() == []

    def test_dependencies_become_edges(self, index: TaskIndex) -> None:
        index.add_task(_task("1"))
        index.add_task(_task("2", dependencies=["1"]))
        index.add_task(_task("3", dependencies=["1", "2"]))
        assert index.graph.get_dependents("1") == ["2", "3"]
        assert index.get_dependents("2") == ["3"]

    def test_dependency_on_unknown_task(self, index: TaskIndex) -> None:
        index.add_task(_task("2", dependencies=["ghost"]))
        assert "ghost" in index.graph
        assert "ghost" not in index
        assert index.get_dependents("ghost") == ["2"]
        assert index.can_start_task("2") is False


class TestOverwrite:
    def test_overwrite_reindexes_text(self, index: TaskIndex) -> None:
        index.add_task(_task("1", "Old title", description="legacy", tags=["stale"]))
        index.add_task(_task("1", "New title", description="fresh", tags=["current"]))
        assert len(index) == 1
        assert index.get_task("1").title == "New title"
        assert index.search_tasks("old") == []
        assert index.search_tasks("legacy") == []
        assert index.search_tasks("stale") == []
        assert _ids(index.search_tasks("new")) == ["1"]
        assert _ids(index.search_tasks("cur")) == ["1"]

    def test_overwrite_replaces_dependency_edges(self, index: TaskIndex) -> None:
        index.add_task(_task("a"))
        index.add_task(_task("b"))
        index.add_task(_task("c", dependencies=["a"]))
        index.add_task(_task("c", dependencies=["b"]))
        assert index.get_dependents("a") == []
        assert index.get_dependents("b") == ["c"]

    def test_overwrite_keeps_edges_to_dependents(self, index: TaskIndex) -> None:
        index.add_task(_task("a", "first"))
        index.add_task(_task("b", dependencies=["a"]))
        index.add_task(_task("a", "second"))
        assert index.get_dependents("a") == ["b"]

    def test_overwrite_then_remove_leaves_nothing(self, index: TaskIndex) -> None:
        index.add_task(_task("1", "Old"))
        index.add_task(_task("1", "New"))
        index.remove_task("1")
        assert index.search_tasks("old") == []
        assert index.search_tasks("new") == []

    def test_overwrite_without_reindex_keeps_stale_entries(self) -> None:
        index = TaskIndex(IndexConfig(reindex_on_overwrite=False))
        index.add_task(_task("1", "Old title"))
        index.add_task(_task("1", "New title"))
        # The stale title still resolves, to the new record.
        assert [t.title for t in index.search_tasks("old")] == ["New title"]
        assert _ids(index.search_tasks("new")) == ["1"]


class TestRemoveTask:
    def test_remove_unknown_is_noop(self, index: TaskIndex) -> None:
        index.add_task(_task("1", "Alpha"))
        index.remove_task("missing")
        assert _ids(index.get_all_tasks()) == ["1"]

    def test_remove_clears_indexes(self, index: TaskIndex) -> None:
        index.add_task(_task("1", "Deploy", description="Push to prod", tags=["ops"]))
        index.add_task(_task("2", "Design", dependencies=["1"]))
        index.remove_task("1")
        assert "1" not in index
        assert "1" not in index.graph
        assert index.search_tasks("dep") == []
        assert index.search_tasks("push") == []
        assert index.search_tasks("ops") == []
        assert _ids(index.search_tasks("de")) == ["2"]

    def test_removed_dependency_blocks_dependent(self, index: TaskIndex) -> None:
        index.add_task(_task("1", status=TaskStatus.COMPLETED))
        index.add_task(_task("2", dependencies=["1"]))
        assert index.can_start_task("2") is True
        index.remove_task("1")
        assert index.can_start_task("2") is False


class TestUpdateStatus:
    def test_updates_only_status(self, index: TaskIndex) -> None:
        index.add_task(_task("1", "Alpha"))
        index.update_task_status("1", "in-progress")
        task = index.get_task("1")
        assert task.status == TaskStatus.IN_PROGRESS
        assert task.title == "Alpha"
        assert _ids(index.search_tasks("alp")) == ["1"]

    def test_unknown_id_is_noop(self, index: TaskIndex) -> None:
        index.update_task_status("ghost", TaskStatus.COMPLETED)
        assert index.get_all_tasks() == []


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------

class TestSearch:
    @pytest.fixture
    def populated(self, index: TaskIndex) -> TaskIndex:
        index.add_task(_task("1", "Write docs", description="User guide", tags=["writing"]))
        index.add_task(_task("2", "Fix login", description="Write a regression test", tags=["bug"]))
        index.add_task(_task("3", "Budget review", description="Quarterly", tags=["finance", "Work"]))
        return index

    def test_matches_any_field(self, populated: TaskIndex) -> None:
        assert _ids(populated.search_tasks("wri")) == ["1", "2"]
        assert _ids(populated.search_tasks("bu")) == ["2", "3"]
        assert _ids(populated.search_tasks("qua")) == ["3"]

    def test_case_insensitive(self, populated: TaskIndex) -> None:
        assert _ids(populated.search_tasks("WORK")) == ["3"]

    def test_prefix_of_field_only(self, populated: TaskIndex) -> None:
        # "docs" is not a prefix of the title "Write docs".
        assert populated.search_tasks("docs") == []

    def test_no_match(self, populated: TaskIndex) -> None:
        assert populated.search_tasks("zzz") == []

    def test_empty_query_returns_all(self, populated: TaskIndex) -> None:
        assert _ids(populated.search_tasks("")) == ["1", "2", "3"]

    def test_no_duplicates(self, populated: TaskIndex) -> None:
        populated.add_task(_task("4", "Write", description="Write", tags=["write"]))
        result = populated.search_tasks("write")
        assert _ids(result) == ["1", "2", "4"]


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------

class TestSortTasks:
    def test_priority_descending(self, index: TaskIndex) -> None:
        tasks = [_task(str(p), priority=p) for p in [2, 5, 1, 4, 3]]
        assert _ids(index.sort_tasks(tasks, SortKey.PRIORITY)) == ["5", "4", "3", "2", "1"]

    def test_due_date_ascending(self, index: TaskIndex) -> None:
        tasks = [
            _task("late", due_date=BASE + timedelta(days=3)),
            _task("early", due_date=BASE - timedelta(days=1)),
            _task("mid", due_date=BASE),
        ]
        assert _ids(index.sort_tasks(tasks, "due_date")) == ["early", "mid", "late"]
        assert _ids(index.sort_tasks(tasks, "dueDate")) == ["early", "mid", "late"]

    def test_due_date_mixes_naive_and_aware(self, index: TaskIndex) -> None:
        tasks = [
            Task.from_dict({"id": "iso", "dueDate": "2024-05-01"}),
            Task.from_dict({"id": "default"}),
            Task(id="naive", due_date=datetime(2024, 1, 1)),
            Task.from_dict({"id": "epoch", "due_date": 0}),
            Task(id="offset", due_date=datetime(2024, 3, 1, tzinfo=timezone(timedelta(hours=5)))),
        ]
        expected = ["epoch", "naive", "offset", "iso", "default"]
        assert _ids(index.sort_tasks(tasks, "dueDate")) == expected
        assert _ids(index.sort_tasks(reversed(tasks), SortKey.DUE_DATE)) == expected

    def test_naive_due_date_set_after_construction(self, index: TaskIndex) -> None:
        early = Task(id="early")
        early.due_date = datetime(2020, 1, 1)
        late = _task("late")
        assert _ids(index.sort_tasks([late, early], "due_date")) == ["early", "late"]

    def test_sorts_only_the_given_subset(self, index: TaskIndex) -> None:
        index.add_task(_task("1", priority=9))
        subset = [_task("2", priority=1), _task("3", priority=2)]
        assert _ids(index.sort_tasks(subset, "priority")) == ["3", "2"]

    def test_empty_subset(self, index: TaskIndex) -> None:
        assert index.sort_tasks([], "priority") == []

    def test_unknown_key_raises(self, index: TaskIndex) -> None:
        with pytest.raises(ValueError):
            index.sort_tasks([_task("1")], "title")


class TestDependencyOrder:
    def test_prerequisites_first(self, index: TaskIndex) -> None:
        index.add_task(_task("c", dependencies=["b"]))
        index.add_task(_task("b", dependencies=["a"]))
        index.add_task(_task("a"))
        index.add_task(_task("z"))
        order = _ids(index.get_tasks_in_dependency_order())
        assert sorted(order) == ["a", "b", "c", "z"]
        assert order.index("a") < order.index("b") < order.index("c")

    def test_unknown_dependency_ids_are_dropped(self, index: TaskIndex) -> None:
        index.add_task(_task("1", dependencies=["ghost"]))
        assert _ids(index.get_tasks_in_dependency_order()) == ["1"]

    def test_cycle_falls_back_and_logs(self, index: TaskIndex, captured_warnings: list[str]) -> None:
        index.add_task(_task("a", dependencies=["c"]))
        index.add_task(_task("b", dependencies=["a"]))
        index.add_task(_task("c", dependencies=["b"]))
        assert _ids(index.get_tasks_in_dependency_order()) == ["a", "b", "c"]
        assert any("Circular dependency detected" in w for w in captured_warnings)

    def test_cycle_raises_in_strict_mode(self) -> None:
        index = TaskIndex(IndexConfig(strict_dependency_order=True))
        index.add_task(_task("a", dependencies=["b"]))
        index.add_task(_task("b", dependencies=["a"]))
        with pytest.raises(CycleDetectedError):
            index.get_tasks_in_dependency_order()

    def test_breaking_cycle_restores_order(self, index: TaskIndex) -> None:
        index.add_task(_task("a", dependencies=["b"]))
        index.add_task(_task("b", dependencies=["a"]))
        assert index.graph.has_cycle()
        index.add_task(_task("a"))
        assert not index.graph.has_cycle()
        assert _ids(index.get_tasks_in_dependency_order()) == ["a", "b"]


class TestCanStartTask:
    def test_unknown_task(self, index: TaskIndex) -> None:
        assert index.can_start_task("ghost") is False

    def test_no_dependencies(self, index: TaskIndex) -> None:
        index.add_task(_task("1"))
        assert index.can_start_task("1") is True

    @pytest.mark.parametrize(
        ("statuses", "expected"),
        [
            ((TaskStatus.COMPLETED, TaskStatus.COMPLETED), True),
            ((TaskStatus.COMPLETED, TaskStatus.IN_PROGRESS), False),
            ((TaskStatus.TODO, TaskStatus.COMPLETED), False),
        ],
    )
    def test_all_dependencies_must_be_completed(
        self, index: TaskIndex, statuses: tuple[TaskStatus, TaskStatus], expected: bool
    ) -> None:
        index.add_task(_task("d1", status=statuses[0]))
        index.add_task(_task("d2", status=statuses[1]))
        index.add_task(_task("t", dependencies=["d1", "d2"]))
        assert index.can_start_task("t") is expected


# ---------------------------------------------------------------------------
# List view
# ---------------------------------------------------------------------------

class TestQuery:
    @pytest.fixture
    def board(self, index: TaskIndex) -> TaskIndex:
        index.add_task(_task("1", "Plan sprint", priority=2, due_date=BASE + timedelta(days=2)))
        index.add_task(_task("2", "Plan release", priority=3, due_date=BASE + timedelta(days=5),
                             status=TaskStatus.COMPLETED))
        index.add_task(_task("3", "Pay invoices", priority=1, due_date=BASE))
        index.add_task(_task("4", "Refactor", priority=5))
        return index

    def test_search_filter_and_sort(self, board: TaskIndex) -> None:
        assert _ids(board.query("p")) == ["2", "1", "3"]
        assert _ids(board.query("p", status="todo")) == ["1", "3"]
        assert _ids(board.query("pla", sort_key=SortKey.DUE_DATE)) == ["1", "2"]

    def test_defaults_to_configured_sort_key(self) -> None:
        index = TaskIndex(IndexConfig(default_sort_key=SortKey.DUE_DATE))
        index.add_task(_task("late", priority=9, due_date=BASE + timedelta(days=1)))
        index.add_task(_task("soon", priority=0, due_date=BASE))
        assert _ids(index.query()) == ["soon", "late"]


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------

class TestConcurrentAccess:
    def test_parallel_adds_and_removes_stay_consistent(self, index: TaskIndex) -> None:
        def worker(offset: int) -> None:
            for i in range(100):
                tid = f"{offset}-{i}"
                index.add_task(_task(tid, f"job {tid}", tags=["batch"]))
                if i % 2:
                    index.remove_task(tid)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(index) == 200
        assert len(index.search_tasks("batch")) == 200
        assert len(index.search_tasks("job")) == 200
        assert len(index.graph) == 200
