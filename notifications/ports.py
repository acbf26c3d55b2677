"""Store and push-provider contracts the notification core depends on.

Trigger handlers receive implementations of these by injection, so tests can
swap Firestore and FCM for in-memory fakes.
"""

from datetime import datetime
from typing import Any, Protocol

from config.constants import NotificationType
from notifications.types import NotificationJob, SendOutcome


class UserStore(Protocol):
    async def find_by_geohash_prefix(self, prefix: str) -> list[dict[str, Any]]:
        ...

    async def find_with_push_token(self) -> list[dict[str, Any]]:
        ...

    async def get(self, user_id: str) -> dict[str, Any] | None:
        ...

    async def record_notification_sent(
        self, user_id: str, notif_type: NotificationType, sent_at: datetime
    ) -> None:
        ...

    async def remove_push_token(self, token: str) -> int:
        ...


class EventStore(Protocol):
    async def get_event(self, event_id: str) -> dict[str, Any] | None:
        ...


class SignalStore(Protocol):
    async def get_for_event(self, event_id: str) -> list[dict[str, Any]]:
        ...


class PushClient(Protocol):
    async def send_multicast(self, job: NotificationJob, tokens: list[str]) -> list[SendOutcome]:
        """Send one multicast; return one outcome per token, in order."""
        ...
