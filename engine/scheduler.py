"""
Scheduler for paused workflows.

DELAY nodes call ``schedule`` to persist a continuation. A single
APScheduler interval job calls ``tick``, which claims due executions one by
one and hands them to the resume handler. A failure while resuming one
execution marks that row as failed and the tick moves on to the next row.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

import pytz
from apscheduler.schedulers.background import BackgroundScheduler

from core.logger import get_logger
from db.executions import ExecutionStore
from models import AutomationExecution

from .delay import DEFAULT_DELAY, calculate_resume_at
from .executor import RunOutcome, RunResult

logger = get_logger("scheduler")

RESUME_JOB_ID = "automation.resume_due_executions"

ResumeHandler = Callable[[AutomationExecution], RunResult]


@dataclass
class TickSummary:
    due: int = 0
    claimed: int = 0
    skipped: int = 0
    completed: int = 0
    paused: int = 0
    failed: int = 0


class WorkflowScheduler:
    def __init__(
        self,
        store: ExecutionStore,
        batch_size: int = 100,
        interval_seconds: int = 60,
        default_delay: timedelta = DEFAULT_DELAY,
        timezone: str = "UTC",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._batch_size = batch_size
        self._interval_seconds = interval_seconds
        self._default_delay = default_delay
        self._timezone = pytz.timezone(timezone)
        self._clock = clock
        self._resume_handler: ResumeHandler | None = None
        self._scheduler: BackgroundScheduler | None = None

    def set_resume_handler(self, handler: ResumeHandler) -> None:
        self._resume_handler = handler

    def now(self) -> datetime:
        if self._clock is not None:
            return self._clock()
        return datetime.now(self._timezone)

    # ------------------------------------------------------------------
    # Pausing
    # ------------------------------------------------------------------
    def schedule(
        self,
        automation_id: str,
        subscriber_id: str,
        next_node_id: str,
        delay_params: Mapping[str, Any] | None,
    ) -> AutomationExecution:
        """Persist a paused continuation for the pair, replacing any existing one."""
        resume_at = calculate_resume_at(self.now(), delay_params, self._default_delay)
        execution = self._store.upsert(automation_id, subscriber_id, next_node_id, resume_at)
        logger.info(
            "Paused automation %s for subscriber %s until %s (next node %s)",
            automation_id,
            subscriber_id,
            resume_at.isoformat(),
            next_node_id,
        )
        return execution

    # ------------------------------------------------------------------
    # Resuming
    # ------------------------------------------------------------------
    def tick(self, now: datetime | None = None) -> TickSummary:
        if self._resume_handler is None:
            raise RuntimeError("No resume handler registered with the scheduler")

        now = now or self.now()
        summary = TickSummary()
        pending = self._store.find_due(now, self._batch_size)
        summary.due = len(pending)
        if pending:
            logger.info("Resuming %d paused workflow(s)", len(pending))

        for execution in pending:
            if not self._store.claim(execution.id):
                logger.debug("Execution %s already claimed, skipping", execution.id)
                summary.skipped += 1
                continue
            summary.claimed += 1

            try:
                result = self._resume_handler(execution)
            except Exception as exc:
                logger.error("Failed to resume automation execution %s: %s", execution.id, exc, exc_info=True)
                self._store.mark_failed(execution.id, str(exc))
                summary.failed += 1
                continue

            if result.outcome in (RunOutcome.FAILED, RunOutcome.ABORTED):
                self._store.mark_failed(execution.id, result.error or f"Run {result.outcome.value}")
                summary.failed += 1
            elif result.outcome is RunOutcome.COMPLETED:
                self._store.mark_completed(execution.id)
                summary.completed += 1
            else:
                # The run hit another DELAY; the row is paused again.
                summary.paused += 1

        return summary

    def _safe_tick(self) -> None:
        try:
            self.tick()
        except Exception as exc:
            logger.error("Scheduler tick failed: %s", exc, exc_info=True)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> None:
        if self._scheduler is not None:
            return
        self._scheduler = BackgroundScheduler(timezone=self._timezone)
        self._scheduler.add_job(
            self._safe_tick,
            trigger="interval",
            seconds=self._interval_seconds,
            id=RESUME_JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info("Workflow scheduler started (every %ss)", self._interval_seconds)

    def shutdown(self, wait: bool = True) -> None:
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=wait)
        self._scheduler = None
        logger.info("Workflow scheduler stopped")

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running
