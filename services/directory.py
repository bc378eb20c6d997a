from abc import ABC, abstractmethod
from typing import Any, Dict

from pydantic import BaseModel, Field


class Subscriber(BaseModel):
    id: str
    email: str
    data: Dict[str, Any] = Field(default_factory=dict, description="Profile and custom fields")


class UserProfile(BaseModel):
    """Owner details needed for the unsubscribe footer."""

    id: str
    address: str | None = None
    company_name: str = ""
    company_url: str = ""


class SubscriberDirectory(ABC):
    """Read-only lookup of subscribers and automation owners."""

    @abstractmethod
    def get_subscriber(self, subscriber_id: str) -> Subscriber | None:
        raise NotImplementedError

    @abstractmethod
    def get_user_profile(self, user_id: str) -> UserProfile | None:
        raise NotImplementedError


class InMemorySubscriberDirectory(SubscriberDirectory):
    def __init__(self) -> None:
        self._subscribers: Dict[str, Subscriber] = {}
        self._users: Dict[str, UserProfile] = {}

    def add_subscriber(self, subscriber: Subscriber) -> None:
        self._subscribers[subscriber.id] = subscriber

    def add_user(self, profile: UserProfile) -> None:
        self._users[profile.id] = profile

    def get_subscriber(self, subscriber_id: str) -> Subscriber | None:
        return self._subscribers.get(subscriber_id)

    def get_user_profile(self, user_id: str) -> UserProfile | None:
        return self._users.get(user_id)
