"""
Import job runner: plan validation, sync and background execution.

Covers:
  Validation:
  - MANUAL entry -> InvalidPlanError, nothing written
  - index out of range / duplicate index / UPDATE without id reported

  Synchronous path (below the async threshold):
  - CREATE / UPDATE / SKIP applied in index order -> ImportResult
  - one rejected item -> COMPLETED with failed_items == 1, the rest imported
  - repository unreachable -> FAILED, error in processing notes
  - completion event published with the summary

  Background path (at or above the threshold):
  - commit() returns a PENDING job at once
  - job ends COMPLETED with created ids; terminal snapshot is final
  - repository unreachable mid-run -> FAILED with error set
  - get_job() / wait() on an unknown id -> KeyError
"""

from __future__ import annotations

import threading

import pytest

from ingest.contracts import (
    BeverageFacets,
    ExistingMenuItem,
    ImportAction,
    ImportJob,
    ImportResult,
    ItemType,
    JobStatus,
    ParsedMenuItem,
    PlanEntry,
    ResolutionPlan,
)
from ingest.errors import InvalidPlanError, RepositoryUnavailableError
from ingest.events import EventBus
from ingest.import_jobs import ImportJobRunner, plan_problems
from ingest.repository import InMemoryMenuRepository


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class RecordingRepository(InMemoryMenuRepository):
    """Counts every write call."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.writes = 0

    def create_item(self, menu_id, item, restaurant_id=None):
        self.writes += 1
        return super().create_item(menu_id, item, restaurant_id)

    def update_item(self, item_id, fields):
        self.writes += 1
        return super().update_item(item_id, fields)


class UnreachableRepository(InMemoryMenuRepository):
    """Accepts the menu, then loses the store after ``ok_writes`` creates."""

    def __init__(self, ok_writes=0):
        super().__init__()
        self.ok_writes = ok_writes

    def create_item(self, menu_id, item, restaurant_id=None):
        if self.ok_writes <= 0:
            raise RepositoryUnavailableError("menu database unavailable: disk I/O error")
        self.ok_writes -= 1
        return super().create_item(menu_id, item, restaurant_id)


def _item(name, price=9.0):
    return ParsedMenuItem(
        name=name,
        price=price,
        category="Cocktails",
        item_type=ItemType.BEVERAGE,
        confidence=80,
        beverage=BeverageFacets(),
    )


def _plan(*pairs):
    """pairs of (item_name, action[, existing_id])"""
    items, entries = [], []
    for i, pair in enumerate(pairs):
        name, action = pair[0], pair[1]
        existing = pair[2] if len(pair) > 2 else None
        items.append(_item(name))
        entries.append(PlanEntry(index=i, action=action, existing_item_id=existing))
    return ResolutionPlan(menu_name="Bar", items=tuple(items), entries=tuple(entries))


def _runner(repo=None, threshold=50, events=None):
    return ImportJobRunner(repo or InMemoryMenuRepository(), events=events, async_threshold=threshold)


# ===========================================================================
# SECTION 1: Validation
# ===========================================================================

class TestValidation:
    """Whole-plan checks run before any write."""

    def test_manual_rejected_without_writes(self):
        repo = RecordingRepository()
        plan = _plan(("Mojito", ImportAction.CREATE), ("Negroni", ImportAction.MANUAL))
        with pytest.raises(InvalidPlanError) as exc:
            _runner(repo).commit(plan, "m1")
        assert repo.writes == 0
        assert any("MANUAL" in p for p in exc.value.problems)

    def test_problems_listed(self):
        plan = ResolutionPlan(
            menu_name="Bar",
            items=(_item("Mojito"),),
            entries=(
                PlanEntry(index=0, action=ImportAction.UPDATE),
                PlanEntry(index=0, action=ImportAction.SKIP),
                PlanEntry(index=3, action=ImportAction.CREATE),
            ),
        )
        problems = plan_problems(plan)
        assert len(problems) == 3
        assert any("UPDATE requires existing_item_id" in p for p in problems)
        assert any("duplicate entry for index 0" in p for p in problems)
        assert any("out of range" in p for p in problems)

    def test_valid_plan(self):
        assert plan_problems(_plan(("Mojito", ImportAction.CREATE))) == []


# ===========================================================================
# SECTION 2: Synchronous imports
# ===========================================================================

class TestSyncImport:
    """Plans below the async threshold run inline."""

    def test_create_update_skip(self):
        repo = InMemoryMenuRepository(
            [ExistingMenuItem(id="1", name="Mojito", item_type=ItemType.BEVERAGE, price=8.0)],
            menu_id="m1",
        )
        plan = _plan(
            ("Mojito", ImportAction.UPDATE, "1"),
            ("Negroni", ImportAction.CREATE),
            ("Daiquiri", ImportAction.SKIP),
        )
        result = _runner(repo).commit(plan, "m1", restaurant_id="r1")
        assert isinstance(result, ImportResult)
        assert result.status is JobStatus.COMPLETED
        assert result.total_items == 3
        assert result.imported_items == 2
        assert result.skipped_items == 1
        assert result.failed_items == 0
        assert result.updated_item_ids == ("1",)
        assert result.created_item_ids == ("2",)
        assert repo.menus["m1"] == {"name": "Bar", "restaurant_id": "r1"}
        prices = {e.name: e.price for e in repo.list_items("m1")}
        assert prices == {"Mojito": 9.0, "Negroni": 9.0}

    def test_partial_failure_completes(self):
        plan = _plan(
            ("Mojito", ImportAction.CREATE),
            ("", ImportAction.CREATE),
            ("Negroni", ImportAction.CREATE),
        )
        result = _runner().commit(plan, "m1")
        assert result.status is JobStatus.COMPLETED
        assert result.imported_items == 2
        assert result.failed_items == 1
        assert result.failed_candidates[0].index == 1
        assert result.failed_candidates[0].reason == "name is required"

    def test_update_missing_item_is_item_failure(self):
        plan = _plan(("Mojito", ImportAction.UPDATE, "42"))
        result = _runner().commit(plan, "m1")
        assert result.status is JobStatus.COMPLETED
        assert result.failed_items == 1

    def test_unreachable_repository_fails(self):
        plan = _plan(("Mojito", ImportAction.CREATE), ("Negroni", ImportAction.CREATE))
        result = _runner(UnreachableRepository(ok_writes=1)).commit(plan, "m1")
        assert result.status is JobStatus.FAILED
        assert result.imported_items == 1
        assert any("disk I/O error" in n for n in result.processing_notes)

    def test_event_published(self):
        bus = EventBus()
        seen = []
        bus.subscribe(seen.append)
        _runner(events=bus).commit(_plan(("Mojito", ImportAction.CREATE)), "m1")
        [event] = seen
        assert event.job_id is None
        assert event.menu_id == "m1"
        assert event.status is JobStatus.COMPLETED
        assert event.summary["imported_items"] == 1

    def test_failing_handler_does_not_break_import(self):
        bus = EventBus()

        def boom(_event):
            raise RuntimeError("notifier down")
        bus.subscribe(boom)
        result = _runner(events=bus).commit(_plan(("Mojito", ImportAction.CREATE)), "m1")
        assert result.status is JobStatus.COMPLETED


# ===========================================================================
# SECTION 3: Background jobs
# ===========================================================================

class TestBackgroundJobs:
    """Plans at or above the threshold run on the worker thread."""

    def test_job_lifecycle(self):
        bus = EventBus()
        done = threading.Event()
        events = []

        def on_done(event):
            events.append(event)
            done.set()
        bus.subscribe(on_done)

        runner = _runner(threshold=2, events=bus)
        plan = _plan(("Mojito", ImportAction.CREATE), ("Negroni", ImportAction.CREATE))
        job = runner.commit(plan, "m1")
        assert isinstance(job, ImportJob)
        assert job.status is JobStatus.PENDING
        assert job.total_items == 2

        final = runner.wait(job.job_id, timeout=5)
        assert final.status is JobStatus.COMPLETED
        assert len(final.created_item_ids) == 2
        assert final.started_at is not None
        assert final.finished_at is not None
        assert final.to_result().imported_items == 2

        assert done.wait(5)
        assert events[0].job_id == job.job_id
        assert events[0].status is JobStatus.COMPLETED

    def test_terminal_snapshot_is_final(self):
        runner = _runner(threshold=1)
        job = runner.commit(_plan(("Mojito", ImportAction.CREATE)), "m1")
        final = runner.wait(job.job_id, timeout=5)
        with pytest.raises(RuntimeError):
            final.advance(JobStatus.RUNNING)
        assert runner.get_job(job.job_id) is final

    def test_small_plan_stays_sync(self):
        runner = _runner(threshold=2)
        outcome = runner.commit(_plan(("Mojito", ImportAction.CREATE), ("Negroni", ImportAction.SKIP)), "m1")
        assert isinstance(outcome, ImportResult)

    def test_unreachable_repository_fails_job(self):
        runner = _runner(UnreachableRepository(), threshold=1)
        job = runner.commit(_plan(("Mojito", ImportAction.CREATE)), "m1")
        final = runner.wait(job.job_id, timeout=5)
        assert final.status is JobStatus.FAILED
        assert "unavailable" in final.error
        assert final.created_item_ids == ()

    def test_jobs_run_in_order(self):
        repo = InMemoryMenuRepository()
        runner = _runner(repo, threshold=1)
        first = runner.commit(_plan(("Mojito", ImportAction.CREATE)), "m1")
        second = runner.commit(_plan(("Negroni", ImportAction.CREATE)), "m1")
        runner.wait(first.job_id, timeout=5)
        runner.wait(second.job_id, timeout=5)
        assert [e.name for e in repo.list_items("m1")] == ["Mojito", "Negroni"]

    def test_unknown_job(self):
        runner = _runner()
        with pytest.raises(KeyError):
            runner.get_job("nope")
        with pytest.raises(KeyError):
            runner.wait("nope", timeout=0.1)
