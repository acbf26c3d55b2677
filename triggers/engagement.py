"""Popular-event notification fired once when attendance hits the threshold."""

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
from notifications.formatter import format_engagement
from notifications.ports import EventStore, SignalStore
from notifications.types import DispatchResult, EventRecord
from utils.time_utils import utc_now

log = structlog.get_logger(__name__)


def crossed_threshold(count: int, threshold: int) -> bool:
    """True only on the signal that brings the count exactly to the threshold.

    Later signals (6, 7, ...) do not re-fire, and a deleted-then-re-added
    signal that lands on the threshold again fires again.
    """
    return count == threshold


class EngagementTrigger:
    def __init__(
        self,
        notification_filter: NotificationFilter,
        dispatcher: NotificationDispatcher,
        event_store: EventStore,
        signal_store: SignalStore,
        policy: NotificationPolicy,
        threshold: int,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._filter = notification_filter
        self._dispatcher = dispatcher
        self._events = event_store
        self._signals = signal_store
        self._policy = policy
        self._threshold = threshold
        self._clock = clock

    async def on_signal_created(self, signal_id: str, data: dict[str, Any]) -> DispatchResult | None:
        """Handle one created signal document. Logs and returns None on any failure."""
        event_id = data.get("eventId")
        if not isinstance(event_id, str) or not event_id:
            log.warning("engagement_signal_malformed", signal_id=signal_id)
            return None

        try:
            return await self._handle(event_id)
        except Exception as e:
            log.error("engagement_trigger_error", event_id=event_id, error=str(e))
            return None

    async def _handle(self, event_id: str) -> DispatchResult | None:
        signals = await self._signals.get_for_event(event_id)
        count = len(signals)
        log.info("engagement_signal_counted", event_id=event_id, attendees=count)
        if not crossed_threshold(count, self._threshold):
            return None

        doc = await self._events.get_event(event_id)
        if doc is None:
            log.warning("engagement_event_not_found", event_id=event_id)
            return None
        event = EventRecord.from_document(event_id, doc)
        if not event.has_location:
            log.info("engagement_skipped", event_id=event_id, reason="missing_location")
            return None

        attendees = frozenset(
            s["userId"] for s in signals if isinstance(s.get("userId"), str) and s["userId"]
        )
        candidates = await self._filter.get_candidates(event)
        context = EligibilityContext(
            policy=self._policy,
            event=event,
            source_user_id=event.host_id,
            attendee_ids=attendees,
        )
        targets, rejections = build_targets(candidates, context, self._clock())
        log.info(
            "engagement_candidates_evaluated",
            event_id=event_id,
            candidates=len(candidates),
            targets=len(targets),
            rejected=summarize_rejections(rejections),
        )
        if not targets:
            log.info("engagement_no_targets", event_id=event_id)
            return None
        return await self._dispatcher.dispatch(format_engagement(event, targets, self._policy, count))
