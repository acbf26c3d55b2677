"""Attendance signal repository."""

import asyncio
from typing import Any

from google.cloud.firestore import Client
from google.cloud.firestore_v1.base_query import FieldFilter

from config.constants import SIGNALS_COLLECTION
from utils.retry import retry_transient


class SignalRepository:
    def __init__(self, client: Client) -> None:
        self._client = client

    @retry_transient()
    async def get_for_event(self, event_id: str) -> list[dict[str, Any]]:
        query = self._client.collection(SIGNALS_COLLECTION).where(
            filter=FieldFilter("eventId", "==", event_id)
        )
        snapshots = await asyncio.to_thread(query.get)
        return [{**(s.to_dict() or {}), "id": s.id} for s in snapshots]
