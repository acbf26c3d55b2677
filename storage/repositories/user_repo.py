"""User document repository."""

import asyncio
from datetime import datetime
from typing import Any

from google.cloud.firestore import DELETE_FIELD, Client
from google.cloud.firestore_v1.base_query import FieldFilter

from config.constants import (
    FIELD_COOLDOWNS,
    FIELD_GEOHASH,
    FIELD_LAST_NOTIFICATION,
    FIELD_PUSH_TOKEN,
    USERS_COLLECTION,
    NotificationType,
)
from utils.geo import geohash_prefix_range
from utils.retry import retry_transient


def _to_dict(snapshot: Any) -> dict[str, Any]:
    data = snapshot.to_dict() or {}
    data["id"] = snapshot.id
    return data


class UserRepository:
    def __init__(self, client: Client) -> None:
        self._client = client

    @property
    def _users(self):
        return self._client.collection(USERS_COLLECTION)

    @retry_transient()
    async def find_by_geohash_prefix(self, prefix: str) -> list[dict[str, Any]]:
        start, end = geohash_prefix_range(prefix)
        query = (
            self._users
            .where(filter=FieldFilter(FIELD_GEOHASH, ">=", start))
            .where(filter=FieldFilter(FIELD_GEOHASH, "<=", end))
        )
        snapshots = await asyncio.to_thread(query.get)
        return [_to_dict(s) for s in snapshots]

    @retry_transient()
    async def find_with_push_token(self) -> list[dict[str, Any]]:
        query = self._users.where(filter=FieldFilter(FIELD_PUSH_TOKEN, "!=", None))
        snapshots = await asyncio.to_thread(query.get)
        # Empty strings pass the != None filter
        return [d for d in (_to_dict(s) for s in snapshots) if d.get(FIELD_PUSH_TOKEN)]

    @retry_transient()
    async def get(self, user_id: str) -> dict[str, Any] | None:
        snapshot = await asyncio.to_thread(self._users.document(user_id).get)
        return _to_dict(snapshot) if snapshot.exists else None

    async def record_notification_sent(
        self, user_id: str, notif_type: NotificationType, sent_at: datetime
    ) -> None:
        await asyncio.to_thread(
            self._users.document(user_id).update,
            {
                f"{FIELD_COOLDOWNS}.{notif_type.value}": sent_at,
                FIELD_LAST_NOTIFICATION: sent_at,
            },
        )

    async def remove_push_token(self, token: str) -> int:
        """Delete the push token from every user holding it. Returns users updated."""
        query = self._users.where(filter=FieldFilter(FIELD_PUSH_TOKEN, "==", token))
        snapshots = await asyncio.to_thread(query.get)
        for snapshot in snapshots:
            await asyncio.to_thread(snapshot.reference.update, {FIELD_PUSH_TOKEN: DELETE_FIELD})
        return len(snapshots)
