import uuid
from abc import ABC, abstractmethod
from typing import Dict, List

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from models import Automation

from .converters import db_to_pydantic_automation, pydantic_to_db_automation
from .models import AutomationModel


class AutomationRepository(ABC):
    """
    Abstract persistence boundary for automations. Implementations are
    responsible for durability, conflicts, and connectivity. The engine only
    reads through this interface.
    """

    @abstractmethod
    def save(self, automation: Automation) -> str:
        """Insert or replace the automation and return its identifier."""
        raise NotImplementedError

    @abstractmethod
    def get(self, record_id: str) -> Automation | None:
        """Fetch an automation by id, or None if missing."""
        raise NotImplementedError

    @abstractmethod
    def list_for_user(self, user_id: str) -> List[Automation]:
        raise NotImplementedError

    @abstractmethod
    def find_by_trigger(self, event_type: str) -> List[Automation]:
        """All automations whose trigger listens for ``event_type``."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, record_id: str) -> None:
        raise NotImplementedError


class InMemoryAutomationRepository(AutomationRepository):
    """
    Minimal in-memory implementation for local testing. Not intended for prod.
    """

    def __init__(self) -> None:
        self._storage: Dict[str, Automation] = {}

    def save(self, automation: Automation) -> str:
        record_id = automation.id or str(uuid.uuid4())
        self._storage[record_id] = automation.model_copy(update={"id": record_id})
        return record_id

    def get(self, record_id: str) -> Automation | None:
        return self._storage.get(record_id)

    def list_for_user(self, user_id: str) -> List[Automation]:
        return [a for a in self._storage.values() if a.user_id == user_id]

    def find_by_trigger(self, event_type: str) -> List[Automation]:
        return [a for a in self._storage.values() if a.trigger.type == event_type]

    def delete(self, record_id: str) -> None:
        self._storage.pop(record_id, None)


class SqlAlchemyAutomationRepository(AutomationRepository):
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def save(self, automation: Automation) -> str:
        record_id = automation.id or str(uuid.uuid4())
        with self._session_factory() as session:
            session.merge(pydantic_to_db_automation(automation, automation_id=record_id))
            session.commit()
        return record_id

    def get(self, record_id: str) -> Automation | None:
        with self._session_factory() as session:
            row = session.get(AutomationModel, record_id)
            return db_to_pydantic_automation(row) if row is not None else None

    def list_for_user(self, user_id: str) -> List[Automation]:
        with self._session_factory() as session:
            rows = session.scalars(
                select(AutomationModel)
                .where(AutomationModel.user_id == user_id)
                .order_by(AutomationModel.created_at.desc())
            )
            return [db_to_pydantic_automation(row) for row in rows]

    def find_by_trigger(self, event_type: str) -> List[Automation]:
        with self._session_factory() as session:
            rows = session.scalars(select(AutomationModel).where(AutomationModel.trigger_type == event_type))
            return [db_to_pydantic_automation(row) for row in rows]

    def delete(self, record_id: str) -> None:
        with self._session_factory() as session:
            row = session.get(AutomationModel, record_id)
            if row is not None:
                session.delete(row)
                session.commit()
