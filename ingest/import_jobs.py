# ingest/import_jobs.py
"""
Import Job Runner

    runner.commit(plan, menu_id, restaurant_id=None) -> ImportResult | ImportJob

The plan is validated as a whole before anything is written. Small plans
(fewer CREATE+UPDATE entries than ASYNC_IMPORT_THRESHOLD) run inline and
return an ImportResult. Larger plans are registered as a PENDING ImportJob
and handed to the runner's single worker thread; callers poll get_job().

Job snapshots are immutable; the worker replaces them under the runner lock
as it goes (PENDING -> RUNNING -> COMPLETED | FAILED).
"""

from __future__ import annotations

import logging
import queue
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Set, Union

from ingest import config
from ingest.contracts import (
    FailedCandidate,
    ImportAction,
    ImportJob,
    ImportResult,
    JobStatus,
    ResolutionPlan,
)
from ingest.errors import InvalidPlanError, ItemValidationError, RepositoryUnavailableError
from ingest.events import EventBus, ImportCompletedEvent
from ingest.repository import MenuRepository, item_fields

log = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def plan_problems(plan: ResolutionPlan) -> List[str]:
    """Everything wrong with a plan; empty means it can be applied."""
    problems: List[str] = []
    seen: Set[int] = set()
    n = len(plan.items)
    for entry in plan.entries:
        if entry.index < 0 or entry.index >= n:
            problems.append(f"entry index {entry.index} out of range (plan has {n} items)")
        if entry.index in seen:
            problems.append(f"duplicate entry for index {entry.index}")
        seen.add(entry.index)
        if entry.action is ImportAction.MANUAL:
            problems.append(f"index {entry.index}: MANUAL must be resolved before commit")
        if entry.action is ImportAction.UPDATE and not entry.existing_item_id:
            problems.append(f"index {entry.index}: UPDATE requires existing_item_id")
    return problems


def validate_plan(plan: ResolutionPlan) -> None:
    problems = plan_problems(plan)
    if problems:
        raise InvalidPlanError(problems)


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------

@dataclass
class _Progress:
    created: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    skipped: int = 0
    failed: List[FailedCandidate] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)
    error: Optional[str] = None


def apply_plan(
    repository: MenuRepository,
    plan: ResolutionPlan,
    menu_id: str,
    restaurant_id: Optional[str] = None,
    on_item: Optional[Callable[[_Progress], None]] = None,
) -> _Progress:
    """
    Apply a validated plan in index order. Per-item rejections are recorded
    and skipped past; an unavailable repository stops the run with
    ``error`` set. Items already written stay written.
    """
    progress = _Progress()
    try:
        repository.ensure_menu(menu_id, plan.menu_name, restaurant_id)
    except RepositoryUnavailableError as e:
        progress.error = str(e)
        log.error("import into menu %s aborted: %s", menu_id, e)
        return progress

    for entry in sorted(plan.entries, key=lambda e: e.index):
        item = plan.items[entry.index]
        try:
            if entry.action is ImportAction.SKIP:
                progress.skipped += 1
            elif entry.action is ImportAction.CREATE:
                progress.created.append(repository.create_item(menu_id, item, restaurant_id))
            elif entry.action is ImportAction.UPDATE:
                repository.update_item(entry.existing_item_id, item_fields(item))
                progress.updated.append(str(entry.existing_item_id))
        except ItemValidationError as e:
            progress.failed.append(FailedCandidate(index=entry.index, reason=e.reason))
            progress.notes.append(f"item {entry.index} ({item.name!r}): {e.reason}")
            log.warning("import item %d (%r) rejected: %s", entry.index, item.name, e.reason)
        except RepositoryUnavailableError as e:
            progress.error = str(e)
            progress.notes.append(f"import stopped at item {entry.index}: {e}")
            log.error("import into menu %s stopped at item %d: %s", menu_id, entry.index, e)
            break
        if on_item is not None:
            on_item(progress)
    return progress


def _summary(job: ImportJob) -> Dict[str, int]:
    return {
        "total_items": job.total_items,
        "imported_items": len(job.created_item_ids) + len(job.updated_item_ids),
        "failed_items": len(job.failed_candidates),
        "skipped_items": job.skipped_items,
    }


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class _WorkItem:
    job_id: str
    plan: ResolutionPlan
    menu_id: str
    restaurant_id: Optional[str]


class ImportJobRunner:
    def __init__(
        self,
        repository: MenuRepository,
        events: Optional[EventBus] = None,
        async_threshold: Optional[int] = None,
    ) -> None:
        self.repository = repository
        self.events = events or EventBus()
        self.async_threshold = config.ASYNC_IMPORT_THRESHOLD if async_threshold is None else async_threshold
        self._jobs: Dict[str, ImportJob] = {}
        self._cond = threading.Condition()
        self._queue: "queue.Queue[_WorkItem]" = queue.Queue()
        self._worker: Optional[threading.Thread] = None

    # ---- public API ----

    def commit(
        self,
        plan: ResolutionPlan,
        menu_id: str,
        restaurant_id: Optional[str] = None,
    ) -> Union[ImportResult, ImportJob]:
        validate_plan(plan)
        menu_id = str(menu_id)
        if plan.write_count < self.async_threshold:
            return self._run_sync(plan, menu_id, restaurant_id)

        job = ImportJob(
            job_id=uuid.uuid4().hex,
            menu_id=menu_id,
            menu_name=plan.menu_name,
            status=JobStatus.PENDING,
            total_items=len(plan.entries),
            created_at=_now(),
        )
        self._publish(job)
        self._ensure_worker()
        self._queue.put(_WorkItem(job.job_id, plan, menu_id, restaurant_id))
        log.info("queued import job %s: %d writes into menu %s", job.job_id, plan.write_count, menu_id)
        return job

    def get_job(self, job_id: str) -> ImportJob:
        """Current snapshot; KeyError if the id is unknown."""
        with self._cond:
            return self._jobs[job_id]

    def wait(self, job_id: str, timeout: Optional[float] = None) -> ImportJob:
        """Block until the job is terminal (or ``timeout`` passes); returns the latest snapshot."""
        with self._cond:
            if job_id not in self._jobs:
                raise KeyError(job_id)
            self._cond.wait_for(lambda: self._jobs[job_id].status.is_terminal, timeout)
            return self._jobs[job_id]

    # ---- internals ----

    def _publish(self, job: ImportJob) -> None:
        with self._cond:
            self._jobs[job.job_id] = job
            self._cond.notify_all()

    def _ensure_worker(self) -> None:
        with self._cond:
            if self._worker is not None and self._worker.is_alive():
                return
            self._worker = threading.Thread(target=self._run_worker, name="import-worker", daemon=True)
            self._worker.start()

    def _run_worker(self) -> None:
        while True:
            work = self._queue.get()
            try:
                self._process(work)
            except Exception as e:
                log.exception("import job %s crashed", work.job_id)
                job = self.get_job(work.job_id)
                if not job.status.is_terminal:
                    self._finish(job, JobStatus.FAILED, error=f"internal error: {e}")
            finally:
                self._queue.task_done()

    def _process(self, work: _WorkItem) -> None:
        job = self.get_job(work.job_id).advance(JobStatus.RUNNING, started_at=_now())
        self._publish(job)
        log.info("import job %s running", job.job_id)

        def _on_item(progress: _Progress) -> None:
            self._publish(self._with_progress(self.get_job(work.job_id), progress))

        progress = apply_plan(self.repository, work.plan, work.menu_id, work.restaurant_id, _on_item)
        job = self._with_progress(self.get_job(work.job_id), progress)
        status = JobStatus.FAILED if progress.error else JobStatus.COMPLETED
        self._finish(job, status, error=progress.error)

    @staticmethod
    def _with_progress(job: ImportJob, progress: _Progress) -> ImportJob:
        return job.advance(
            job.status,
            created_item_ids=tuple(progress.created),
            updated_item_ids=tuple(progress.updated),
            skipped_items=progress.skipped,
            failed_candidates=tuple(progress.failed),
            processing_notes=tuple(progress.notes),
        )

    def _finish(self, job: ImportJob, status: JobStatus, error: Optional[str] = None) -> None:
        done = job.advance(status, error=error, finished_at=_now())
        self._publish(done)
        log.info("import job %s %s: %s", done.job_id, status.value, _summary(done))
        self.events.publish(ImportCompletedEvent(done.job_id, done.menu_id, status, _summary(done)))

    def _run_sync(self, plan: ResolutionPlan, menu_id: str, restaurant_id: Optional[str]) -> ImportResult:
        progress = apply_plan(self.repository, plan, menu_id, restaurant_id)
        status = JobStatus.FAILED if progress.error else JobStatus.COMPLETED
        result = ImportResult(
            menu_id=menu_id,
            menu_name=plan.menu_name,
            status=status,
            total_items=len(plan.entries),
            imported_items=len(progress.created) + len(progress.updated),
            failed_items=len(progress.failed),
            skipped_items=progress.skipped,
            created_item_ids=tuple(progress.created),
            updated_item_ids=tuple(progress.updated),
            failed_candidates=tuple(progress.failed),
            processing_notes=tuple(progress.notes) + ((progress.error,) if progress.error else ()),
        )
        summary = {
            "total_items": result.total_items,
            "imported_items": result.imported_items,
            "failed_items": result.failed_items,
            "skipped_items": result.skipped_items,
        }
        log.info("import into menu %s %s: %s", menu_id, status.value, summary)
        self.events.publish(ImportCompletedEvent(None, menu_id, status, summary))
        return result
