import threading
from abc import ABC, abstractmethod
from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from models import ActionLogEntry

from .converters import db_to_pydantic_log, pydantic_to_db_log
from .models import ActionLogModel


class ActionLogStore(ABC):
    """Append-only audit of node execution attempts."""

    @abstractmethod
    def log_action(self, entry: ActionLogEntry) -> ActionLogEntry:
        raise NotImplementedError

    @abstractmethod
    def list_for_automation(self, automation_id: str, limit: int = 100) -> List[ActionLogEntry]:
        """Newest first."""
        raise NotImplementedError

    @abstractmethod
    def list_for_subscriber(self, subscriber_id: str, limit: int = 100) -> List[ActionLogEntry]:
        """Newest first."""
        raise NotImplementedError


class InMemoryActionLogStore(ActionLogStore):
    def __init__(self) -> None:
        self._entries: List[ActionLogEntry] = []
        self._lock = threading.Lock()

    def log_action(self, entry: ActionLogEntry) -> ActionLogEntry:
        with self._lock:
            self._entries.append(entry)
        return entry

    def _newest_first(self, predicate, limit: int) -> List[ActionLogEntry]:
        with self._lock:
            matches = [entry for entry in self._entries if predicate(entry)]
        matches.sort(key=lambda entry: entry.executed_at, reverse=True)
        return matches[:limit]

    def list_for_automation(self, automation_id: str, limit: int = 100) -> List[ActionLogEntry]:
        return self._newest_first(lambda entry: entry.automation_id == automation_id, limit)

    def list_for_subscriber(self, subscriber_id: str, limit: int = 100) -> List[ActionLogEntry]:
        return self._newest_first(lambda entry: entry.subscriber_id == subscriber_id, limit)

    @property
    def entries(self) -> List[ActionLogEntry]:
        return list(self._entries)


class SqlAlchemyActionLogStore(ActionLogStore):
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def log_action(self, entry: ActionLogEntry) -> ActionLogEntry:
        with self._session_factory() as session:
            session.add(pydantic_to_db_log(entry))
            session.commit()
        return entry

    def list_for_automation(self, automation_id: str, limit: int = 100) -> List[ActionLogEntry]:
        with self._session_factory() as session:
            rows = session.scalars(
                select(ActionLogModel)
                .where(ActionLogModel.automation_id == automation_id)
                .order_by(ActionLogModel.executed_at.desc(), ActionLogModel.id.desc())
                .limit(limit)
            )
            return [db_to_pydantic_log(row) for row in rows]

    def list_for_subscriber(self, subscriber_id: str, limit: int = 100) -> List[ActionLogEntry]:
        with self._session_factory() as session:
            rows = session.scalars(
                select(ActionLogModel)
                .where(ActionLogModel.subscriber_id == subscriber_id)
                .order_by(ActionLogModel.executed_at.desc(), ActionLogModel.id.desc())
                .limit(limit)
            )
            return [db_to_pydantic_log(row) for row in rows]
