"""Notification domain types: user/event records, targets, jobs and results."""

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from config.constants import (
    DEFAULT_EVENT_CATEGORY,
    DEFAULT_EVENT_TITLE,
    DEFAULT_LOCATION_NAME,
    FIELD_COOLDOWNS,
    FIELD_GEOHASH,
    FIELD_LAST_NOTIFICATION,
    FIELD_PUSH_TOKEN,
    NotificationType,
    RejectReason,
)
from utils.time_utils import to_utc_datetime


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float

    @classmethod
    def parse(cls, latitude: Any, longitude: Any) -> "Coordinate | None":
        """Build a coordinate from raw values, or None if either is unusable."""
        if not _is_number(latitude) or not _is_number(longitude):
            return None
        lat, lon = float(latitude), float(longitude)
        if not (math.isfinite(lat) and math.isfinite(lon)):
            return None
        if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
            return None
        return cls(lat, lon)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _string_list(value: Any, field_name: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple, set, frozenset)):
        raise ValueError(f"{field_name} must be a list, got {type(value).__name__}")
    return [v.strip() for v in value if isinstance(v, str) and v.strip()]


def _optional_str(value: Any, field_name: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"{field_name} must be a string, got {type(value).__name__}")
    return value.strip() or None


@dataclass
class UserRecord:
    """The subset of a user document the notification core reads."""

    id: str
    display_name: str | None = None
    location: Coordinate | None = None
    geohash: str | None = None
    interests: frozenset[str] = frozenset()
    push_token: str | None = None
    cooldowns: dict[NotificationType, datetime] = field(default_factory=dict)
    last_notification_sent: datetime | None = None

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "UserRecord":
        """Parse a Firestore user document (with its id under "id").

        Raises ValueError when a field has the wrong shape. A missing or
        incomplete location is not an error; it yields `location=None`.
        """
        user_id = doc.get("id")
        if not isinstance(user_id, str) or not user_id:
            raise ValueError("user document has no id")

        raw_location = doc.get("location")
        if raw_location is not None and not isinstance(raw_location, dict):
            raise ValueError("location must be a map")
        location = None
        if raw_location:
            location = Coordinate.parse(raw_location.get("latitude"), raw_location.get("longitude"))

        raw_cooldowns = doc.get(FIELD_COOLDOWNS) or {}
        if not isinstance(raw_cooldowns, dict):
            raise ValueError(f"{FIELD_COOLDOWNS} must be a map")
        cooldowns: dict[NotificationType, datetime] = {}
        for notif_type in NotificationType:
            stamp = to_utc_datetime(raw_cooldowns.get(notif_type.value))
            if stamp is not None:
                cooldowns[notif_type] = stamp

        display_name = doc.get("displayName")
        return cls(
            id=user_id,
            display_name=display_name if isinstance(display_name, str) else None,
            location=location,
            geohash=_optional_str(doc.get(FIELD_GEOHASH), FIELD_GEOHASH),
            interests=frozenset(_string_list(doc.get("interests"), "interests")),
            push_token=_optional_str(doc.get(FIELD_PUSH_TOKEN), FIELD_PUSH_TOKEN),
            cooldowns=cooldowns,
            last_notification_sent=to_utc_datetime(doc.get(FIELD_LAST_NOTIFICATION)),
        )

    @property
    def label(self) -> str:
        return self.display_name or self.id


@dataclass
class EventRecord:
    """The subset of an event document the notification core reads."""

    id: str
    title: str = DEFAULT_EVENT_TITLE
    category: str = DEFAULT_EVENT_CATEGORY
    tags: list[str] = field(default_factory=list)
    location: Coordinate | None = None
    geohash: str | None = None
    host_id: str | None = None
    attendee_count: int = 0
    location_name: str = DEFAULT_LOCATION_NAME

    @classmethod
    def from_document(cls, event_id: str, doc: dict[str, Any]) -> "EventRecord":
        """Parse an event document. Raises ValueError on wrongly-typed fields."""
        attendee_count = doc.get("attendeeCount") or 0
        if not _is_number(attendee_count):
            raise ValueError("attendeeCount must be a number")
        host_id = doc.get("hostId")
        return cls(
            id=event_id,
            title=_optional_str(doc.get("title"), "title") or DEFAULT_EVENT_TITLE,
            category=_optional_str(doc.get("category"), "category") or DEFAULT_EVENT_CATEGORY,
            tags=_string_list(doc.get("tags"), "tags"),
            location=Coordinate.parse(doc.get("latitude"), doc.get("longitude")),
            geohash=_optional_str(doc.get(FIELD_GEOHASH), FIELD_GEOHASH),
            host_id=str(host_id) if host_id else None,
            attendee_count=int(attendee_count),
            location_name=_optional_str(doc.get("locationName"), "locationName") or DEFAULT_LOCATION_NAME,
        )

    @property
    def has_location(self) -> bool:
        return bool(self.geohash) and self.location is not None


@dataclass(frozen=True)
class DispatchTarget:
    """One user slated to receive one notification in one job run."""

    user_id: str
    push_token: str
    distance_m: float | None = None
    matched_label: str | None = None
    display_name: str | None = None


@dataclass(frozen=True)
class Rejection:
    """Why a candidate did not become a target."""

    user_id: str
    reason: RejectReason
    detail: str = ""


@dataclass
class NotificationJob:
    """One dispatch operation: content, delivery hints and the final target list."""

    type: NotificationType
    title: str
    body: str
    data: dict[str, str] = field(default_factory=dict)
    targets: list[DispatchTarget] = field(default_factory=list)
    cooldown_window: timedelta | None = None
    priority: str = "high"            # "high" | "normal"
    channel_id: str | None = None
    thread_id: str | None = None
    apns_category: str | None = None
    badge: int | None = None
    content_available: bool = False
    mutable_content: bool = False
    apns_custom: dict[str, str] = field(default_factory=dict)

    @property
    def tokens(self) -> list[str]:
        return [t.push_token for t in self.targets]


@dataclass(frozen=True)
class SendOutcome:
    """Per-token result reported by the push provider."""

    success: bool
    error_code: str | None = None
    token_invalid: bool = False


@dataclass
class DispatchResult:
    """Summary of one dispatch call."""

    job_type: NotificationType
    attempted: int = 0
    delivered: list[str] = field(default_factory=list)     # user ids
    invalid_tokens: list[str] = field(default_factory=list)
    failed: int = 0
    send_failed: bool = False
    cooldowns_updated: int = 0
    tokens_removed: int = 0

    @property
    def delivered_count(self) -> int:
        return len(self.delivered)
