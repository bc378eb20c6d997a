"""
SQLAlchemy ORM models for the persistence layer.

Automations keep their trigger, node arena and editor data as JSON since
nodes are only ever addressed by id inside a single automation. Executions
and action logs reference automations and subscribers by id only.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AutomationModel(Base):
    __tablename__ = "automations"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    is_enabled = Column(Boolean, nullable=False, default=True)
    status = Column(String, nullable=False, default="active")

    # Denormalised from trigger["type"] so event lookups can use an index
    trigger_type = Column(String, nullable=False, index=True)
    # {"id": "...", "type": "...", "params": {...}}
    trigger = Column(JSON, nullable=False)
    # [{"id": "...", "type": "...", "params": {...}, "next": "...", "branches": {...}}, ...]
    nodes = Column(JSON, nullable=False, default=list)
    editor_data = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<AutomationModel(id={self.id}, name={self.name})>"


class AutomationExecutionModel(Base):
    """One row per paused (automation, subscriber) pair."""

    __tablename__ = "automation_executions"
    __table_args__ = (
        UniqueConstraint("automation_id", "subscriber_id", name="uq_execution_automation_subscriber"),
        Index("ix_execution_status_resume_at", "status", "resume_at"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    automation_id = Column(String, nullable=False)
    subscriber_id = Column(String, nullable=False)
    current_node_id = Column(String, nullable=False)
    status = Column(String, nullable=False)
    resume_at = Column(DateTime(timezone=True), nullable=True)
    context = Column(JSON, nullable=False, default=dict)
    error = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<AutomationExecutionModel(automation_id={self.automation_id}, "
            f"subscriber_id={self.subscriber_id}, status={self.status})>"
        )


class ActionLogModel(Base):
    __tablename__ = "automation_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    automation_id = Column(String, nullable=False, index=True)
    node_id = Column(String, nullable=False)
    subscriber_id = Column(String, nullable=False, index=True)
    status = Column(String, nullable=False)
    input = Column(JSON, nullable=False, default=dict)
    output = Column(JSON, nullable=False, default=dict)
    executed_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False, index=True)
