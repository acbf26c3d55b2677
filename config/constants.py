"""Constants used across the application."""

from enum import Enum


# Notification types. Values double as the Firestore cooldown-map keys and the
# `type` field of the push data payload read by the iOS client.
class NotificationType(str, Enum):
    PROXIMITY = "nearby_event"
    ENGAGEMENT = "popular_event"
    SCHEDULED_STUDY = "study_reminder"
    SCHEDULED_SOCIAL = "social_reminder"
    DIAGNOSTIC = "test"

    @property
    def is_location_based(self) -> bool:
        return self in (NotificationType.PROXIMITY, NotificationType.ENGAGEMENT)


# Eligibility rejection reasons
class RejectReason(str, Enum):
    NO_TOKEN = "no-token"
    IS_SELF = "is-self"
    ALREADY_ATTENDING = "already-attending"
    NO_LOCATION = "no-location"
    TOO_FAR = "too-far"
    NO_INTEREST_MATCH = "no-interest-match"
    IN_COOLDOWN = "in-cooldown"
    MALFORMED = "malformed"


# Firestore collections
USERS_COLLECTION = "users"
EVENTS_COLLECTION = "events"
USER_EVENTS_COLLECTION = "userEvents"
SIGNALS_COLLECTION = "signals"

# Firestore user document fields
FIELD_PUSH_TOKEN = "fcmToken"
FIELD_GEOHASH = "geohash"
FIELD_COOLDOWNS = "notificationCooldowns"
FIELD_LAST_NOTIFICATION = "lastNotificationSent"

# Upper bound used for geohash prefix range queries
GEOHASH_RANGE_SENTINEL = "\uf8ff"
GEOHASH_BASE32 = "0123456789bcdefghjkmnpqrstuvwxyz"
GEOHASH_DEFAULT_PRECISION = 6

EARTH_RADIUS_M = 6_371_000.0

# Product defaults (overridable via settings)
DEFAULT_PROXIMITY_RADIUS_M = 400.0
DEFAULT_ENGAGEMENT_RADIUS_M = 1_000.0
DEFAULT_COOLDOWN_HOURS = 3
DEFAULT_GEOHASH_PREFIX_LENGTH = 5   # ~2.4 km x 4.9 km cell
DEFAULT_ENGAGEMENT_THRESHOLD = 5

# FCM accepts at most 500 tokens per multicast request
FCM_MULTICAST_LIMIT = 500

DEFAULT_EVENT_TITLE = "New Event"
DEFAULT_EVENT_CATEGORY = "hangout"
DEFAULT_LOCATION_NAME = "a nearby location"

# Category -> emoji, matched by substring in declaration order
INTEREST_EMOJI = {
    "music": "🎵",
    "party": "🎉",
    "food": "🍕",
    "coffee": "☕",
    "sports": "⚽",
    "study": "📚",
    "academic": "📚",
    "art": "🎨",
    "culture": "🎭",
    "social": "🤝",
    "networking": "🤝",
    "wellness": "🧘",
    "health": "🏥",
    "outdoor": "🏔️",
    "gaming": "🎮",
    "lifestyle": "👗",
    "politics": "🏛️",
    "hangout": "🫂",
}
DEFAULT_EMOJI = "🎉"

# Android notification channels registered by the client
CHANNEL_EVENTS = "event_notifications"
CHANNEL_PROMOTIONAL = "promotional_notifications"
APNS_EVENT_CATEGORY = "EVENT_INVITE"
