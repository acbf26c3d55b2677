"""Event document repository."""

import asyncio
from typing import Any

from google.cloud.firestore import Client

from config.constants import EVENTS_COLLECTION, USER_EVENTS_COLLECTION
from utils.retry import retry_transient


class EventRepository:
    """Reads events from the curated collection, then from user-created events."""

    COLLECTIONS = (EVENTS_COLLECTION, USER_EVENTS_COLLECTION)

    def __init__(self, client: Client) -> None:
        self._client = client

    @retry_transient()
    async def get_event(self, event_id: str) -> dict[str, Any] | None:
        for name in self.COLLECTIONS:
            ref = self._client.collection(name).document(event_id)
            snapshot = await asyncio.to_thread(ref.get)
            if snapshot.exists:
                return snapshot.to_dict() or {}
        return None
