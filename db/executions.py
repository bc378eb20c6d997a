"""
Durable continuation records for paused workflows.

Every status transition is conditioned on the row's current status so that
the event path (writing a new pause) and scheduler ticks (claiming and
finishing rows) cannot lose each other's updates or resume a row twice.
"""

import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from models import AutomationExecution, ExecutionStatus

from .converters import as_utc, db_to_pydantic_execution
from .models import AutomationExecutionModel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ExecutionStore(ABC):
    @abstractmethod
    def upsert(
        self,
        automation_id: str,
        subscriber_id: str,
        node_id: str,
        resume_at: datetime,
        context: Dict[str, Any] | None = None,
    ) -> AutomationExecution:
        """Create or overwrite the paused row for the pair; never adds a second row."""
        raise NotImplementedError

    @abstractmethod
    def find_due(self, now: datetime, limit: int) -> List[AutomationExecution]:
        """Paused rows with ``resume_at <= now``, oldest first, at most ``limit``."""
        raise NotImplementedError

    @abstractmethod
    def claim(self, execution_id: str) -> bool:
        """Move a row from paused to active. False if it is no longer paused."""
        raise NotImplementedError

    @abstractmethod
    def mark_failed(self, execution_id: str, error: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def mark_completed(self, execution_id: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def get(self, automation_id: str, subscriber_id: str) -> AutomationExecution | None:
        raise NotImplementedError


class InMemoryExecutionStore(ExecutionStore):
    """
    Lock-guarded dict keyed by (automation_id, subscriber_id). Used by tests
    and single-process setups.
    """

    def __init__(self) -> None:
        self._rows: Dict[Tuple[str, str], AutomationExecution] = {}
        self._lock = threading.Lock()

    def upsert(
        self,
        automation_id: str,
        subscriber_id: str,
        node_id: str,
        resume_at: datetime,
        context: Dict[str, Any] | None = None,
    ) -> AutomationExecution:
        key = (automation_id, subscriber_id)
        now = _utcnow()
        with self._lock:
            existing = self._rows.get(key)
            row = AutomationExecution(
                id=existing.id if existing else str(uuid.uuid4()),
                automation_id=automation_id,
                subscriber_id=subscriber_id,
                current_node_id=node_id,
                status=ExecutionStatus.PAUSED,
                resume_at=resume_at,
                context=dict(context or {}),
                error=None,
                created_at=existing.created_at if existing else now,
                updated_at=now,
            )
            self._rows[key] = row
            return row.model_copy()

    def find_due(self, now: datetime, limit: int) -> List[AutomationExecution]:
        with self._lock:
            due = [
                row
                for row in self._rows.values()
                if row.status == ExecutionStatus.PAUSED and row.resume_at is not None and row.resume_at <= now
            ]
        due.sort(key=lambda row: row.resume_at)
        return [row.model_copy() for row in due[:limit]]

    def _transition(self, execution_id: str, expected: ExecutionStatus, **changes: Any) -> bool:
        with self._lock:
            for key, row in self._rows.items():
                if row.id != execution_id:
                    continue
                if row.status != expected:
                    return False
                self._rows[key] = row.model_copy(update={**changes, "updated_at": _utcnow()})
                return True
        return False

    def claim(self, execution_id: str) -> bool:
        return self._transition(execution_id, ExecutionStatus.PAUSED, status=ExecutionStatus.ACTIVE)

    def mark_failed(self, execution_id: str, error: str) -> bool:
        return self._transition(
            execution_id, ExecutionStatus.ACTIVE, status=ExecutionStatus.FAILED, resume_at=None, error=error
        )

    def mark_completed(self, execution_id: str) -> bool:
        return self._transition(execution_id, ExecutionStatus.ACTIVE, status=ExecutionStatus.COMPLETED, resume_at=None)

    def get(self, automation_id: str, subscriber_id: str) -> AutomationExecution | None:
        with self._lock:
            row = self._rows.get((automation_id, subscriber_id))
            return row.model_copy() if row else None

    def __len__(self) -> int:
        return len(self._rows)


class SqlAlchemyExecutionStore(ExecutionStore):
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def upsert(
        self,
        automation_id: str,
        subscriber_id: str,
        node_id: str,
        resume_at: datetime,
        context: Dict[str, Any] | None = None,
    ) -> AutomationExecution:
        values = {
            "current_node_id": node_id,
            "status": ExecutionStatus.PAUSED.value,
            "resume_at": as_utc(resume_at),
            "context": dict(context or {}),
            "error": None,
        }
        with self._session_factory() as session:
            row = self._find_pair(session, automation_id, subscriber_id)
            if row is None:
                row = AutomationExecutionModel(automation_id=automation_id, subscriber_id=subscriber_id, **values)
                session.add(row)
                try:
                    session.commit()
                except IntegrityError:
                    # A concurrent writer inserted the pair first; overwrite it.
                    session.rollback()
                    row = self._find_pair(session, automation_id, subscriber_id)
                    for field, value in values.items():
                        setattr(row, field, value)
                    session.commit()
            else:
                for field, value in values.items():
                    setattr(row, field, value)
                session.commit()
            return db_to_pydantic_execution(row)

    @staticmethod
    def _find_pair(session: Session, automation_id: str, subscriber_id: str) -> AutomationExecutionModel | None:
        return session.scalars(
            select(AutomationExecutionModel).where(
                AutomationExecutionModel.automation_id == automation_id,
                AutomationExecutionModel.subscriber_id == subscriber_id,
            )
        ).first()

    def find_due(self, now: datetime, limit: int) -> List[AutomationExecution]:
        with self._session_factory() as session:
            rows = session.scalars(
                select(AutomationExecutionModel)
                .where(
                    AutomationExecutionModel.status == ExecutionStatus.PAUSED.value,
                    AutomationExecutionModel.resume_at <= as_utc(now),
                )
                .order_by(AutomationExecutionModel.resume_at)
                .limit(limit)
            )
            return [db_to_pydantic_execution(row) for row in rows]

    def _transition(self, execution_id: str, expected: ExecutionStatus, **changes: Any) -> bool:
        with self._session_factory() as session:
            result = session.execute(
                update(AutomationExecutionModel)
                .where(
                    AutomationExecutionModel.id == execution_id,
                    AutomationExecutionModel.status == expected.value,
                )
                .values(**changes, updated_at=_utcnow())
            )
            session.commit()
            return result.rowcount == 1

    def claim(self, execution_id: str) -> bool:
        return self._transition(execution_id, ExecutionStatus.PAUSED, status=ExecutionStatus.ACTIVE.value)

    def mark_failed(self, execution_id: str, error: str) -> bool:
        return self._transition(
            execution_id, ExecutionStatus.ACTIVE, status=ExecutionStatus.FAILED.value, resume_at=None, error=error
        )

    def mark_completed(self, execution_id: str) -> bool:
        return self._transition(
            execution_id, ExecutionStatus.ACTIVE, status=ExecutionStatus.COMPLETED.value, resume_at=None
        )

    def get(self, automation_id: str, subscriber_id: str) -> AutomationExecution | None:
        with self._session_factory() as session:
            row = self._find_pair(session, automation_id, subscriber_id)
            return db_to_pydantic_execution(row) if row is not None else None
