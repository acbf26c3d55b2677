"""Firestore collection watchers that forward created documents to trigger handlers."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from google.cloud.firestore import Client

log = structlog.get_logger(__name__)

DocumentHandler = Callable[[str, dict[str, Any]], Awaitable[Any]]


class CollectionListener:
    """Watch one collection and call `handler(doc_id, data)` for each new document.

    The first snapshot lists every pre-existing document as ADDED; it is
    skipped so a restart does not replay old events.
    """

    def __init__(
        self,
        client: Client,
        collection: str,
        handler: DocumentHandler,
        loop: asyncio.AbstractEventLoop,
    ) -> None:
        self._client = client
        self.collection = collection
        self._handler = handler
        self._loop = loop
        self._watch = None
        self._primed = False

    def start(self) -> None:
        if self._watch is not None:
            return
        self._watch = self._client.collection(self.collection).on_snapshot(self._on_snapshot)
        log.info("listener_started", collection=self.collection)

    def stop(self) -> None:
        if self._watch is not None:
            self._watch.unsubscribe()
            self._watch = None
            log.info("listener_stopped", collection=self.collection)

    def _on_snapshot(self, _snapshot: list[Any], changes: list[Any], _read_time: Any) -> None:
        # Runs on the SDK's watch thread
        if not self._primed:
            self._primed = True
            log.debug("listener_primed", collection=self.collection, existing=len(changes))
            return

        for change in changes:
            if change.type.name != "ADDED":
                continue
            doc = change.document
            future = asyncio.run_coroutine_threadsafe(
                self._handler(doc.id, doc.to_dict() or {}), self._loop
            )
            future.add_done_callback(self._log_failure(doc.id))

    def _log_failure(self, doc_id: str) -> Callable[[Any], None]:
        def callback(future: Any) -> None:
            if future.cancelled():
                return
            exc = future.exception()
            if exc is not None:
                log.error("listener_handler_failed", collection=self.collection, doc_id=doc_id, error=str(exc))

        return callback
