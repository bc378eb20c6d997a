"""
Conversion utilities between Pydantic models and SQLAlchemy DB models.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from models import ActionLogEntry, Automation, AutomationExecution, ExecutionStatus

from .models import ActionLogModel, AutomationExecutionModel, AutomationModel


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite drops tzinfo; treat naive values as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def pydantic_to_db_automation(automation: Automation, automation_id: str | None = None) -> AutomationModel:
    """
    Convert a Pydantic Automation model to a SQLAlchemy AutomationModel.
    The node arena is stored as a JSON list of node objects.
    """
    trigger_dict: Dict[str, Any] = automation.trigger.model_dump(by_alias=True)
    nodes_list = [node.model_dump(by_alias=True, exclude_none=True) for node in automation.nodes.values()]

    return AutomationModel(
        id=automation_id or automation.id,
        user_id=automation.user_id,
        name=automation.name,
        is_enabled=automation.is_enabled,
        status=automation.status.value,
        trigger_type=automation.trigger.type,
        trigger=trigger_dict,
        nodes=nodes_list,
        editor_data=automation.editor_data,
    )


def db_to_pydantic_automation(db_automation: AutomationModel) -> Automation:
    return Automation.model_validate(
        {
            "id": db_automation.id,
            "userId": db_automation.user_id,
            "name": db_automation.name,
            "isEnabled": db_automation.is_enabled,
            "status": db_automation.status,
            "trigger": db_automation.trigger,
            "nodes": db_automation.nodes or [],
            "editorData": db_automation.editor_data or {},
        }
    )


def db_to_pydantic_execution(row: AutomationExecutionModel) -> AutomationExecution:
    return AutomationExecution(
        id=row.id,
        automation_id=row.automation_id,
        subscriber_id=row.subscriber_id,
        current_node_id=row.current_node_id,
        status=ExecutionStatus(row.status),
        resume_at=as_utc(row.resume_at),
        context=row.context or {},
        error=row.error,
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
    )


def pydantic_to_db_log(entry: ActionLogEntry) -> ActionLogModel:
    return ActionLogModel(
        automation_id=entry.automation_id,
        node_id=entry.node_id,
        subscriber_id=entry.subscriber_id,
        status=entry.status,
        input=entry.input,
        output=entry.output,
        executed_at=as_utc(entry.executed_at),
    )


def db_to_pydantic_log(row: ActionLogModel) -> ActionLogEntry:
    return ActionLogEntry(
        automation_id=row.automation_id,
        node_id=row.node_id,
        subscriber_id=row.subscriber_id,
        status=row.status,
        input=row.input or {},
        output=row.output or {},
        executed_at=as_utc(row.executed_at),
    )
