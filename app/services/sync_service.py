from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from functools import reduce
from typing import Callable, Iterable, List
from sqlalchemy.orm import Session, sessionmaker
from ..db.models.calendar import SOURCE_ASSIGNMENT_DEADLINE, SOURCE_MILESTONE
from ..core.config import SYNC_MAX_WORKERS
from ..core.exceptions import PlannerError, StorageConnectionError
from ..utils.logger import get_logger
from .calendar_service import (
    EventReconciler,
    ReconcileResult,
    OUTCOME_FAILED,
    OUTCOME_INSERTED,
    OUTCOME_UPDATED,
)
from .source_repository import SourceRepository

logger = get_logger(__name__)


@dataclass
class SyncSummary:
    assignment_events: int = 0
    milestone_events: int = 0
    inserted: int = 0
    updated: int = 0
    removed: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "assignment_events": self.assignment_events,
            "milestone_events": self.milestone_events,
            "inserted": self.inserted,
            "updated": self.updated,
            "removed": self.removed,
            "failed": self.failed,
            "errors": list(self.errors),
        }


def fold_result(summary: SyncSummary, result: ReconcileResult) -> SyncSummary:
    if result.failed:
        summary.failed += 1
        summary.errors.append(f"{result.source_type}:{result.source_id}: {result.error}")
        return summary

    if result.event is not None:
        if result.source_type == SOURCE_ASSIGNMENT_DEADLINE:
            summary.assignment_events += 1
        elif result.source_type == SOURCE_MILESTONE:
            summary.milestone_events += 1

    if result.outcome == OUTCOME_INSERTED:
        summary.inserted += 1
    elif result.outcome == OUTCOME_UPDATED:
        summary.updated += 1
    return summary


def summarize(results: Iterable[ReconcileResult]) -> SyncSummary:
    return reduce(fold_result, results, SyncSummary())


class SyncOrchestrator:
    """
    Reconciles every assignment deadline and milestone of a user.

    Work is split per assignment over a bounded thread pool; each task gets its
    own session bound to the caller's engine. A failure on one entity is
    recorded and the pass carries on. Only a broken database connection stops
    the whole pass.
    """

    def __init__(self, db: Session, max_workers: int = SYNC_MAX_WORKERS, session_factory: Callable[[], Session] = None):
        self.db = db
        self.max_workers = max(1, max_workers)
        self.session_factory = session_factory or sessionmaker(
            bind=db.get_bind(), autocommit=False, autoflush=False
        )

    def sync_user_events(self, user_id: int) -> SyncSummary:
        repository = SourceRepository(self.db)
        # Fatal: without the assignment list there is nothing to reconcile
        assignment_ids = repository.list_assignment_ids_by_user(user_id)
        logger.info(f"Syncing calendar for user {user_id}: {len(assignment_ids)} assignments")

        results: List[ReconcileResult] = []
        if assignment_ids:
            workers = min(self.max_workers, len(assignment_ids))
            executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="calendar-sync")
            try:
                futures = {
                    executor.submit(self._reconcile_assignment_sources, user_id, assignment_id): assignment_id
                    for assignment_id in assignment_ids
                }
                for future in as_completed(futures):
                    results.extend(future.result())
            except StorageConnectionError as e:
                logger.error(f"Calendar sync for user {user_id} aborted: {e}")
                executor.shutdown(wait=True, cancel_futures=True)
                raise
            finally:
                executor.shutdown(wait=True)

        summary = summarize(sorted(results, key=lambda r: (r.source_type, r.source_id)))

        if summary.failed == 0:
            summary.removed = self._prune(user_id, results)
        else:
            logger.warning(
                f"Calendar sync for user {user_id} finished with {summary.failed} failures; "
                f"skipping stale event pruning"
            )

        logger.info(
            f"Calendar sync for user {user_id} done: {summary.assignment_events} assignment events, "
            f"{summary.milestone_events} milestone events, {summary.inserted} inserted, "
            f"{summary.updated} updated, {summary.removed} removed"
        )
        return summary

    def _reconcile_assignment_sources(self, user_id: int, assignment_id: int) -> List[ReconcileResult]:
        db = self.session_factory()
        try:
            reconciler = EventReconciler(db)
            repository = reconciler.repository

            def deadline():
                assignment = repository.get_assignment(assignment_id)
                if assignment is None:
                    # Deleted while the pass was running
                    return ReconcileResult(SOURCE_ASSIGNMENT_DEADLINE, assignment_id)
                return reconciler.reconcile_assignment(assignment)

            def milestone_step(milestone_id: int):
                milestone = repository.get_milestone(milestone_id)
                if milestone is None:
                    return ReconcileResult(SOURCE_MILESTONE, milestone_id)
                return reconciler.reconcile_milestone(user_id, milestone)

            results = [self._attempt(db, SOURCE_ASSIGNMENT_DEADLINE, assignment_id, deadline)]
            try:
                milestone_ids = repository.list_milestone_ids_by_assignment(assignment_id)
            except StorageConnectionError:
                raise
            except PlannerError as e:
                db.rollback()
                logger.error(f"Could not list milestones for assignment {assignment_id}: {e}")
                results.append(ReconcileResult(
                    SOURCE_ASSIGNMENT_DEADLINE, assignment_id,
                    outcome=OUTCOME_FAILED, error=f"Could not list milestones: {e}"
                ))
                return results

            for milestone_id in milestone_ids:
                results.append(self._attempt(db, SOURCE_MILESTONE, milestone_id,
                                             lambda m=milestone_id: milestone_step(m)))
            return results
        finally:
            db.close()

    def _attempt(self, db: Session, source_type: str, source_id: int, step: Callable[[], ReconcileResult]) -> ReconcileResult:
        try:
            return step()
        except StorageConnectionError:
            raise
        except PlannerError as e:
            db.rollback()
            logger.error(f"Failed to reconcile {source_type}:{source_id}: {e}")
            return ReconcileResult(source_type, source_id, outcome=OUTCOME_FAILED, error=str(e))

    def _prune(self, user_id: int, results: List[ReconcileResult]) -> int:
        keep = {SOURCE_ASSIGNMENT_DEADLINE: [], SOURCE_MILESTONE: []}
        for result in results:
            if result.event is not None:
                keep[result.source_type].append(result.source_id)

        reconciler = EventReconciler(self.db)
        return sum(
            reconciler.remove_stale_events(user_id, source_type, source_ids)
            for source_type, source_ids in keep.items()
        )
