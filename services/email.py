"""
Email delivery collaborator.

The engine does not render templates or talk to SMTP itself; it goes through
an ``EmailDeliveryService``. Send records are keyed by
(automation_id, node_id, subscriber_id) and carry the engagement counters
that CONDITION nodes read.
"""

import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, List

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SenderProvider(BaseModel):
    id: str
    name: str = ""
    default_sender: str | None = None


class SendRecord(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    automation_id: str
    node_id: str
    subscriber_id: str
    subject: str
    content: str
    provider_id: str
    total_opens: int = 0
    total_clicks: int = 0
    created_at: datetime = Field(default_factory=_utcnow)


class OutgoingEmail(BaseModel):
    provider_id: str
    to: str
    subject: str
    html: str
    sender: str | None = None


class EmailDeliveryService(ABC):
    @abstractmethod
    def render_template(self, template_id: str) -> str | None:
        """Rendered HTML for a stored template, or None if it does not exist."""
        raise NotImplementedError

    @abstractmethod
    def get_provider(self, user_id: str) -> SenderProvider | None:
        raise NotImplementedError

    @abstractmethod
    def create_send_record(
        self,
        automation_id: str,
        node_id: str,
        subscriber_id: str,
        subject: str,
        content: str,
        provider_id: str,
    ) -> SendRecord:
        raise NotImplementedError

    @abstractmethod
    def latest_send(self, automation_id: str, node_id: str, subscriber_id: str) -> SendRecord | None:
        """Most recent send record for the key, or None."""
        raise NotImplementedError

    @abstractmethod
    def deliver(self, email: OutgoingEmail) -> None:
        """Hand the message to the provider. Raises on failure."""
        raise NotImplementedError


class InMemoryEmailDeliveryService(EmailDeliveryService):
    """
    Keeps templates, providers and send records in memory and records
    delivered messages instead of sending them. Not intended for prod.
    """

    def __init__(self) -> None:
        self.templates: Dict[str, str] = {}
        self.providers: Dict[str, SenderProvider] = {}
        self.outbox: List[OutgoingEmail] = []
        self._records: List[SendRecord] = []
        self._lock = threading.Lock()

    def render_template(self, template_id: str) -> str | None:
        return self.templates.get(template_id)

    def get_provider(self, user_id: str) -> SenderProvider | None:
        return self.providers.get(user_id)

    def create_send_record(
        self,
        automation_id: str,
        node_id: str,
        subscriber_id: str,
        subject: str,
        content: str,
        provider_id: str,
    ) -> SendRecord:
        record = SendRecord(
            automation_id=automation_id,
            node_id=node_id,
            subscriber_id=subscriber_id,
            subject=subject,
            content=content,
            provider_id=provider_id,
        )
        with self._lock:
            self._records.append(record)
        return record

    def latest_send(self, automation_id: str, node_id: str, subscriber_id: str) -> SendRecord | None:
        with self._lock:
            matches = [
                r
                for r in self._records
                if (r.automation_id, r.node_id, r.subscriber_id) == (automation_id, node_id, subscriber_id)
            ]
        # Records are appended in send order
        return matches[-1] if matches else None

    def record_open(self, send_id: str) -> None:
        with self._lock:
            for record in self._records:
                if record.id == send_id:
                    record.total_opens += 1

    def record_click(self, send_id: str) -> None:
        with self._lock:
            for record in self._records:
                if record.id == send_id:
                    record.total_clicks += 1

    def deliver(self, email: OutgoingEmail) -> None:
        self.outbox.append(email)
