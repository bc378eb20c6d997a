from .directory import InMemorySubscriberDirectory, Subscriber, SubscriberDirectory, UserProfile
from .email import EmailDeliveryService, InMemoryEmailDeliveryService, OutgoingEmail, SendRecord, SenderProvider

__all__ = [
    "EmailDeliveryService",
    "InMemoryEmailDeliveryService",
    "InMemorySubscriberDirectory",
    "OutgoingEmail",
    "SendRecord",
    "SenderProvider",
    "Subscriber",
    "SubscriberDirectory",
    "UserProfile",
]
