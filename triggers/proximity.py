"""Notify nearby, interested users when a new event is created."""

from collections.abc import Callable
from datetime import datetime
from typing import Any

import structlog

from notifications.dispatcher import NotificationDispatcher
from notifications.filters import (
    EligibilityContext,
    NotificationFilter,
    NotificationPolicy,
    build_targets,
    summarize_rejections,
)
from notifications.formatter import format_proximity
from notifications.types import DispatchResult, EventRecord
from utils.time_utils import utc_now

log = structlog.get_logger(__name__)


class ProximityTrigger:
    def __init__(
        self,
        notification_filter: NotificationFilter,
        dispatcher: NotificationDispatcher,
        policy: NotificationPolicy,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._filter = notification_filter
        self._dispatcher = dispatcher
        self._policy = policy
        self._clock = clock

    async def on_event_created(self, event_id: str, data: dict[str, Any]) -> DispatchResult | None:
        """Handle one created event document. Logs and returns None on any failure."""
        try:
            event = EventRecord.from_document(event_id, data)
        except (ValueError, TypeError) as e:
            log.warning("proximity_event_malformed", event_id=event_id, error=str(e))
            return None

        log.info(
            "proximity_event_created",
            event_id=event.id,
            title=event.title,
            category=event.category,
            location=event.location_name,
        )
        if not event.has_location:
            log.info("proximity_skipped", event_id=event.id, reason="missing_location")
            return None

        try:
            candidates = await self._filter.get_candidates(event)
            context = EligibilityContext(
                policy=self._policy,
                event=event,
                source_user_id=event.host_id,
            )
            targets, rejections = build_targets(candidates, context, self._clock())
            log.info(
                "proximity_candidates_evaluated",
                event_id=event.id,
                candidates=len(candidates),
                targets=len(targets),
                rejected=summarize_rejections(rejections),
            )
            if not targets:
                log.info("proximity_no_targets", event_id=event.id)
                return None
            return await self._dispatcher.dispatch(format_proximity(event, targets, self._policy))
        except Exception as e:
            log.error("proximity_trigger_error", event_id=event.id, error=str(e))
            return None
