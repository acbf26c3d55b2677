"""Push content builders for each notification type."""

from config.constants import (
    APNS_EVENT_CATEGORY,
    CHANNEL_EVENTS,
    CHANNEL_PROMOTIONAL,
    DEFAULT_EMOJI,
    INTEREST_EMOJI,
    NotificationType,
)
from notifications.filters import NotificationPolicy
from notifications.types import DispatchTarget, EventRecord, NotificationJob
from utils.formatting import truncate

# APNs rejects payloads over 4 KB; keep visible text well under that
MAX_TITLE = 120
MAX_BODY = 240

STUDY_NUDGE_TITLE = "Turn your study session into a vibe 📚"
STUDY_NUDGE_BODY = "Start a crowd. Someone's always down to link."
SOCIAL_NUDGE_TITLE = "Start a crowd 👩‍❤️‍💋‍👨💋"
SOCIAL_NUDGE_BODY = "Someone's always down to link."
ENGAGEMENT_TITLE = "This Crowd is poppin off! Drop everything and pull up 🔥"


def interest_emoji(category: str) -> str:
    """Pick the emoji for the first interest key contained in the category."""
    lowered = category.lower()
    for key, emoji in INTEREST_EMOJI.items():
        if key in lowered:
            return emoji
    return DEFAULT_EMOJI


def _event_job(
    notif_type: NotificationType,
    event: EventRecord,
    title: str,
    body: str,
    targets: list[DispatchTarget],
    policy: NotificationPolicy,
    extra_data: dict[str, str] | None = None,
) -> NotificationJob:
    data = {
        "eventId": event.id,
        "type": notif_type.value,
        "category": event.category,
        "locationName": event.location_name,
    }
    data.update(extra_data or {})
    return NotificationJob(
        type=notif_type,
        title=truncate(title, MAX_TITLE),
        body=truncate(body, MAX_BODY),
        data=data,
        targets=targets,
        cooldown_window=policy.cooldown_window,
        priority="high",
        channel_id=CHANNEL_EVENTS,
        thread_id=f"event-{event.id}",
        apns_category=APNS_EVENT_CATEGORY,
        badge=1,
        content_available=True,
        mutable_content=True,
        apns_custom={
            "eventId": event.id,
            "eventCategory": event.category,
            "eventLocationName": event.location_name,
        },
    )


def format_proximity(
    event: EventRecord,
    targets: list[DispatchTarget],
    policy: NotificationPolicy,
) -> NotificationJob:
    """"<emoji> <category> Crowd has spawned nearby" for a newly created event."""
    title = f"{interest_emoji(event.category)} {event.category} Crowd has spawned nearby 📍🎉"
    body = f"{event.title} at {event.location_name}"
    distances = [t.distance_m for t in targets if t.distance_m is not None]
    extra = {"distance": str(round(min(distances)))} if distances else {}
    return _event_job(NotificationType.PROXIMITY, event, title, body, targets, policy, extra)


def format_engagement(
    event: EventRecord,
    targets: list[DispatchTarget],
    policy: NotificationPolicy,
    attendee_count: int,
) -> NotificationJob:
    """Popular-event nudge sent when attendance crosses the threshold."""
    body = f"{event.title} > {attendee_count} ppl"
    return _event_job(
        NotificationType.ENGAGEMENT,
        event,
        ENGAGEMENT_TITLE,
        body,
        targets,
        policy,
        {"attendeeCount": str(attendee_count)},
    )


def _nudge_job(
    notif_type: NotificationType,
    title: str,
    body: str,
    category: str,
    targets: list[DispatchTarget],
) -> NotificationJob:
    return NotificationJob(
        type=notif_type,
        title=title,
        body=body,
        data={"type": "promotional", "category": category},
        targets=targets,
        cooldown_window=None,
        priority="normal",
        channel_id=CHANNEL_PROMOTIONAL,
    )


def format_study_nudge(targets: list[DispatchTarget]) -> NotificationJob:
    return _nudge_job(NotificationType.SCHEDULED_STUDY, STUDY_NUDGE_TITLE, STUDY_NUDGE_BODY, "study", targets)


def format_social_nudge(targets: list[DispatchTarget]) -> NotificationJob:
    return _nudge_job(NotificationType.SCHEDULED_SOCIAL, SOCIAL_NUDGE_TITLE, SOCIAL_NUDGE_BODY, "social", targets)


def format_test_notification(target: DispatchTarget, message: str | None = None) -> NotificationJob:
    """Single-recipient operator test; never writes cooldowns."""
    return NotificationJob(
        type=NotificationType.DIAGNOSTIC,
        title="🧪 Test Notification",
        body=truncate(message or "This is a test notification from Crowd!", MAX_BODY),
        data={"type": NotificationType.DIAGNOSTIC.value},
        targets=[target],
        cooldown_window=None,
        priority="high",
        badge=1,
    )
