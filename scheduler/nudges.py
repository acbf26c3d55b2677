"""Scheduled study and social broadcast nudges."""

from collections.abc import Awaitable, Callable
from datetime import datetime

import structlog

from config.constants import NotificationType
from notifications.dispatcher import NotificationDispatcher
from notifications.filters import (
    EligibilityContext,
    NotificationFilter,
    NotificationPolicy,
    build_targets,
    summarize_rejections,
)
from notifications.formatter import format_social_nudge, format_study_nudge
from notifications.types import DispatchResult, DispatchTarget, NotificationJob
from scheduler.jobs import SOCIAL_NUDGE_JOB, STUDY_NUDGE_JOB
from utils.time_utils import utc_now

log = structlog.get_logger(__name__)


class NudgeRunner:
    """Broadcasts a fixed promotional push to every user with a push token."""

    def __init__(
        self,
        notification_filter: NotificationFilter,
        dispatcher: NotificationDispatcher,
        policies: dict[NotificationType, NotificationPolicy],
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._filter = notification_filter
        self._dispatcher = dispatcher
        self._policies = policies
        self._clock = clock

    async def run_study_nudge(self) -> DispatchResult | None:
        return await self._run(NotificationType.SCHEDULED_STUDY, format_study_nudge)

    async def run_social_nudge(self) -> DispatchResult | None:
        return await self._run(NotificationType.SCHEDULED_SOCIAL, format_social_nudge)

    async def _run(
        self,
        notif_type: NotificationType,
        build_job: Callable[[list[DispatchTarget]], NotificationJob],
    ) -> DispatchResult | None:
        log.info("nudge_started", type=notif_type.value)
        try:
            candidates = await self._filter.get_broadcast_candidates()
            context = EligibilityContext(policy=self._policies[notif_type])
            targets, rejections = build_targets(candidates, context, self._clock())
            if rejections:
                log.info("nudge_rejections", type=notif_type.value, reasons=summarize_rejections(rejections))
            if not targets:
                log.info("nudge_no_targets", type=notif_type.value)
                return None
            return await self._dispatcher.dispatch(build_job(targets))
        except Exception as e:
            log.error("nudge_error", type=notif_type.value, error=str(e))
            return None


def nudge_handler(runner: NudgeRunner, job_id: str) -> Callable[[], Awaitable[DispatchResult | None]]:
    """Resolve a job id to the runner coroutine that serves it."""
    handlers = {
        STUDY_NUDGE_JOB: runner.run_study_nudge,
        SOCIAL_NUDGE_JOB: runner.run_social_nudge,
    }
    return handlers[job_id]
