from .action_logs import ActionLogStore, InMemoryActionLogStore, SqlAlchemyActionLogStore
from .converters import db_to_pydantic_automation, pydantic_to_db_automation
from .executions import ExecutionStore, InMemoryExecutionStore, SqlAlchemyExecutionStore
from .models import ActionLogModel, AutomationExecutionModel, AutomationModel, Base
from .repository import AutomationRepository, InMemoryAutomationRepository, SqlAlchemyAutomationRepository
from .session import create_db_engine, create_session_factory, init_db

__all__ = [
    "ActionLogModel",
    "ActionLogStore",
    "AutomationExecutionModel",
    "AutomationModel",
    "AutomationRepository",
    "Base",
    "ExecutionStore",
    "InMemoryActionLogStore",
    "InMemoryAutomationRepository",
    "InMemoryExecutionStore",
    "SqlAlchemyActionLogStore",
    "SqlAlchemyAutomationRepository",
    "SqlAlchemyExecutionStore",
    "create_db_engine",
    "create_session_factory",
    "db_to_pydantic_automation",
    "init_db",
    "pydantic_to_db_automation",
]
