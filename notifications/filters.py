"""Candidate selection and the per-user eligibility pipeline."""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

import structlog

from config.constants import NotificationType, RejectReason
from config.settings import Settings
from notifications.ports import UserStore
from notifications.types import DispatchTarget, EventRecord, Rejection, UserRecord
from utils.formatting import format_distance, normalize_label
from utils.geo import haversine_m

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class NotificationPolicy:
    """Eligibility parameters for one notification type."""

    type: NotificationType
    radius_m: float | None = None
    cooldown_window: timedelta | None = None

    @property
    def location_based(self) -> bool:
        return self.type.is_location_based


@dataclass(frozen=True)
class EligibilityContext:
    """Everything the pipeline needs besides the candidate itself."""

    policy: NotificationPolicy
    event: EventRecord | None = None
    source_user_id: str | None = None
    attendee_ids: frozenset[str] = frozenset()


def build_policies(settings: Settings) -> dict[NotificationType, NotificationPolicy]:
    """Derive one policy per notification type from settings."""
    return {
        NotificationType.PROXIMITY: NotificationPolicy(
            type=NotificationType.PROXIMITY,
            radius_m=settings.proximity_radius_m,
            cooldown_window=timedelta(hours=settings.proximity_cooldown_hours),
        ),
        NotificationType.ENGAGEMENT: NotificationPolicy(
            type=NotificationType.ENGAGEMENT,
            radius_m=settings.engagement_radius_m,
            cooldown_window=timedelta(hours=settings.engagement_cooldown_hours),
        ),
        # The schedule itself throttles broadcast nudges
        NotificationType.SCHEDULED_STUDY: NotificationPolicy(type=NotificationType.SCHEDULED_STUDY),
        NotificationType.SCHEDULED_SOCIAL: NotificationPolicy(type=NotificationType.SCHEDULED_SOCIAL),
    }


def match_interest(interests: Iterable[str], category: str, tags: Iterable[str]) -> str | None:
    """Return the category or tag that matches the user's interests, or None.

    The category must equal an interest (case-insensitive). A tag also
    matches when it contains, or is contained in, an interest.
    """
    wanted = {normalize_label(i) for i in interests if i and i.strip()}
    if not wanted:
        return None

    if category and normalize_label(category) in wanted:
        return category

    for tag in tags:
        norm_tag = normalize_label(tag)
        if not norm_tag:
            continue
        for interest in wanted:
            if interest in norm_tag or norm_tag in interest:
                return tag
    return None


def is_in_cooldown(user: UserRecord, policy: NotificationPolicy, now: datetime) -> bool:
    """True if the user got this notification type less than one window ago."""
    if policy.cooldown_window is None:
        return False
    last_sent = user.cooldowns.get(policy.type)
    if last_sent is None:
        return False
    return now - last_sent < policy.cooldown_window


def evaluate_candidate(
    user: UserRecord,
    context: EligibilityContext,
    now: datetime,
) -> DispatchTarget | Rejection:
    """Run one candidate through the ordered, short-circuiting checks."""
    policy = context.policy

    if not user.push_token:
        return Rejection(user.id, RejectReason.NO_TOKEN)

    if context.source_user_id and user.id == context.source_user_id:
        return Rejection(user.id, RejectReason.IS_SELF)
    if user.id in context.attendee_ids:
        return Rejection(user.id, RejectReason.ALREADY_ATTENDING)

    distance: float | None = None
    matched: str | None = None
    if policy.location_based:
        event = context.event
        if event is None or event.location is None:
            raise ValueError(f"{policy.type.value} policy needs an event with coordinates")

        if user.location is None:
            return Rejection(user.id, RejectReason.NO_LOCATION)

        distance = haversine_m(
            event.location.latitude,
            event.location.longitude,
            user.location.latitude,
            user.location.longitude,
        )
        if policy.radius_m is not None and distance > policy.radius_m:
            return Rejection(
                user.id,
                RejectReason.TOO_FAR,
                f"{format_distance(distance)} > {format_distance(policy.radius_m)}",
            )

        matched = match_interest(user.interests, event.category, event.tags)
        if matched is None:
            return Rejection(user.id, RejectReason.NO_INTEREST_MATCH, event.category)

    if is_in_cooldown(user, policy, now):
        remaining = policy.cooldown_window - (now - user.cooldowns[policy.type])  # type: ignore[operator]
        return Rejection(
            user.id,
            RejectReason.IN_COOLDOWN,
            f"{int(remaining.total_seconds() // 60) + 1} min remaining",
        )

    return DispatchTarget(
        user_id=user.id,
        push_token=user.push_token,
        distance_m=distance,
        matched_label=matched,
        display_name=user.display_name,
    )


def build_targets(
    candidates: Iterable[dict[str, Any]],
    context: EligibilityContext,
    now: datetime,
) -> tuple[list[DispatchTarget], list[Rejection]]:
    """Evaluate every candidate document; malformed ones are rejected, not raised."""
    targets: list[DispatchTarget] = []
    rejections: list[Rejection] = []
    seen: set[str] = set()

    for doc in candidates:
        try:
            user = UserRecord.from_document(doc)
        except (ValueError, TypeError) as e:
            user_id = str(doc.get("id", "?")) if isinstance(doc, dict) else "?"
            log.warning("candidate_malformed", user_id=user_id, error=str(e))
            rejections.append(Rejection(user_id, RejectReason.MALFORMED, str(e)))
            continue

        if user.id in seen:
            continue
        seen.add(user.id)

        result = evaluate_candidate(user, context, now)
        if isinstance(result, Rejection):
            log.debug(
                "candidate_rejected",
                type=context.policy.type.value,
                user=user.label,
                reason=result.reason.value,
                detail=result.detail,
            )
            rejections.append(result)
        else:
            log.debug(
                "candidate_qualified",
                type=context.policy.type.value,
                user=user.label,
                distance=format_distance(result.distance_m),
                matched=result.matched_label,
            )
            targets.append(result)

    return targets, rejections


def summarize_rejections(rejections: Iterable[Rejection]) -> dict[str, int]:
    """Count rejections per reason, for one log line per trigger."""
    counts: dict[str, int] = {}
    for r in rejections:
        counts[r.reason.value] = counts.get(r.reason.value, 0) + 1
    return counts


class NotificationFilter:
    """Fetch candidate users from the store for each kind of job."""

    def __init__(self, user_store: UserStore, prefix_length: int) -> None:
        self._users = user_store
        self._prefix_length = prefix_length

    async def get_candidates(self, event: EventRecord) -> list[dict[str, Any]]:
        """Users sharing the event's geohash prefix.

        Coarse and lossy: a user across a cell boundary is missed even when
        within the radius. Events without coordinates yield nothing.
        """
        if not event.has_location:
            log.info("candidate_select_skipped", event_id=event.id, reason="no_location")
            return []
        prefix = event.geohash[: self._prefix_length]  # type: ignore[index]
        users = await self._users.find_by_geohash_prefix(prefix)
        log.info("candidates_selected", event_id=event.id, prefix=prefix, users=len(users))
        return users

    async def get_broadcast_candidates(self) -> list[dict[str, Any]]:
        """Every user the store reports as holding a push token."""
        users = await self._users.find_with_push_token()
        log.info("broadcast_candidates_selected", users=len(users))
        return users
