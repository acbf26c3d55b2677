"""Shared test fixtures for the Crowd Notify test suite."""

from datetime import UTC, datetime

import pytest

from config.constants import FIELD_COOLDOWNS, FIELD_LAST_NOTIFICATION, FIELD_PUSH_TOKEN
from config.settings import Settings
from notifications.dispatcher import NotificationDispatcher
from notifications.filters import NotificationFilter, build_policies
from notifications.types import SendOutcome
from utils.geo import encode_geohash

NOW = datetime(2025, 3, 1, 18, 0, tzinfo=UTC)

# Campus coordinates used across scenarios
EVENT_LAT, EVENT_LON = 33.2100, -97.1500
NEAR_LAT, NEAR_LON = 33.2103, -97.1503      # ~43 m from the event
FAR_LAT, FAR_LON = 33.2200, -97.1600        # ~1.45 km, same geohash cell


def make_user(
    user_id: str,
    lat: float | None = NEAR_LAT,
    lon: float | None = NEAR_LON,
    interests: list[str] | None = None,
    token: str | None = "",
    cooldowns: dict | None = None,
    **extra,
) -> dict:
    """Build a user document as the repository returns it (id included)."""
    doc: dict = {"id": user_id, "displayName": user_id.title()}
    if lat is not None and lon is not None:
        doc["location"] = {"latitude": lat, "longitude": lon}
        doc["geohash"] = encode_geohash(lat, lon)
    doc["interests"] = interests if interests is not None else ["party"]
    doc[FIELD_PUSH_TOKEN] = f"token-{user_id}" if token == "" else token
    if cooldowns:
        doc[FIELD_COOLDOWNS] = cooldowns
    doc.update(extra)
    return doc


def make_event(
    title: str = "Rooftop Party",
    category: str = "party",
    lat: float | None = EVENT_LAT,
    lon: float | None = EVENT_LON,
    host_id: str | None = "host",
    **extra,
) -> dict:
    doc: dict = {
        "title": title,
        "category": category,
        "tags": [],
        "locationName": "Union Plaza",
        "attendeeCount": 0,
    }
    if lat is not None and lon is not None:
        doc["latitude"] = lat
        doc["longitude"] = lon
        doc["geohash"] = encode_geohash(lat, lon)
    if host_id:
        doc["hostId"] = host_id
    doc.update(extra)
    return doc


# ── In-memory stores ──


class FakeUserStore:
    """Mimics UserRepository over a dict of user documents."""

    def __init__(self, users: list[dict] | None = None):
        self.docs: dict[str, dict] = {u["id"]: dict(u) for u in users or []}
        self.prefix_queries: list[str] = []
        self.fail_writes = False
        self.fail_cleanup = False

    def add(self, *users: dict) -> None:
        for u in users:
            self.docs[u["id"]] = dict(u)

    async def find_by_geohash_prefix(self, prefix: str) -> list[dict]:
        self.prefix_queries.append(prefix)
        return [dict(d) for d in self.docs.values() if str(d.get("geohash", "")).startswith(prefix)]

    async def find_with_push_token(self) -> list[dict]:
        return [dict(d) for d in self.docs.values() if d.get(FIELD_PUSH_TOKEN)]

    async def get(self, user_id: str) -> dict | None:
        doc = self.docs.get(user_id)
        return dict(doc) if doc else None

    async def record_notification_sent(self, user_id, notif_type, sent_at) -> None:
        if self.fail_writes:
            raise RuntimeError("write failed")
        doc = self.docs[user_id]
        doc.setdefault(FIELD_COOLDOWNS, {})[notif_type.value] = sent_at
        doc[FIELD_LAST_NOTIFICATION] = sent_at

    async def remove_push_token(self, token: str) -> int:
        if self.fail_cleanup:
            raise RuntimeError("cleanup failed")
        removed = 0
        for doc in self.docs.values():
            if doc.get(FIELD_PUSH_TOKEN) == token:
                del doc[FIELD_PUSH_TOKEN]
                removed += 1
        return removed


class FakeEventStore:
    def __init__(self, events: dict[str, dict] | None = None):
        self.events = events or {}

    async def get_event(self, event_id: str) -> dict | None:
        return self.events.get(event_id)


class FakeSignalStore:
    def __init__(self):
        self.signals: list[dict] = []

    def add(self, event_id: str, user_id: str) -> dict:
        signal = {"id": f"sig-{len(self.signals)}", "eventId": event_id, "userId": user_id}
        self.signals.append(signal)
        return signal

    async def get_for_event(self, event_id: str) -> list[dict]:
        return [s for s in self.signals if s["eventId"] == event_id]


class FakePushClient:
    """Records multicast calls; per-token outcomes default to success.

    ``fail_on_calls`` holds 1-based call numbers that raise instead of sending.
    """

    def __init__(
        self,
        outcomes: dict[str, SendOutcome] | None = None,
        error: Exception | None = None,
        fail_on_calls: set[int] | None = None,
    ):
        self.outcomes = outcomes or {}
        self.error = error
        self.fail_on_calls = fail_on_calls or set()
        self.calls: list[tuple] = []

    async def send_multicast(self, job, tokens):
        self.calls.append((job, list(tokens)))
        if self.error is not None:
            raise self.error
        if len(self.calls) in self.fail_on_calls:
            raise RuntimeError("fcm unavailable")
        return [self.outcomes.get(t, SendOutcome(success=True)) for t in tokens]

    @property
    def sent_tokens(self) -> list[str]:
        return [t for _, tokens in self.calls for t in tokens]


# ── Fixtures ──


@pytest.fixture
def now():
    """Fixed UTC clock value."""
    return NOW


@pytest.fixture
def clock(now):
    return lambda: now


@pytest.fixture
def test_settings():
    return Settings(_env_file=None)


@pytest.fixture
def policies(test_settings):
    return build_policies(test_settings)


@pytest.fixture
def user_store():
    return FakeUserStore()


@pytest.fixture
def event_store():
    return FakeEventStore()


@pytest.fixture
def signal_store():
    return FakeSignalStore()


@pytest.fixture
def push_client():
    return FakePushClient()


@pytest.fixture
def notification_filter(user_store):
    return NotificationFilter(user_store, prefix_length=5)


@pytest.fixture
def dispatcher(push_client, user_store, clock):
    return NotificationDispatcher(push_client, user_store, clock=clock)
