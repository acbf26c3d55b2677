"""Tests for notifications/filters.py — eligibility pipeline and candidate selection."""

from dataclasses import replace
from datetime import timedelta

import pytest

from config.constants import NotificationType, RejectReason
from notifications.filters import (
    EligibilityContext,
    NotificationFilter,
    build_targets,
    evaluate_candidate,
    is_in_cooldown,
    match_interest,
    summarize_rejections,
)
from notifications.types import DispatchTarget, EventRecord, Rejection, UserRecord
from utils.geo import encode_geohash, haversine_m
from tests.conftest import FAR_LAT, FAR_LON, FakeUserStore, make_event, make_user


def _event(**kwargs) -> EventRecord:
    return EventRecord.from_document("evt-1", make_event(**kwargs))


def _user(user_id="alice", **kwargs) -> UserRecord:
    return UserRecord.from_document(make_user(user_id, **kwargs))


@pytest.fixture
def proximity_ctx(policies):
    return EligibilityContext(
        policy=policies[NotificationType.PROXIMITY],
        event=_event(),
        source_user_id="host",
    )


class TestMatchInterest:
    def test_category_case_insensitive(self):
        assert match_interest(["Party"], "party", []) == "party"

    def test_tag_match(self):
        assert match_interest(["music"], "hangout", ["Live Music"]) == "Live Music"

    def test_tag_substring_either_way(self):
        assert match_interest(["study group"], "academic", ["study"]) == "study"

    def test_tag_match_without_category(self):
        assert match_interest(["music"], "sports", ["music", "outdoor"]) == "music"

    def test_category_is_exact(self):
        assert match_interest(["art"], "party", []) is None

    def test_empty_interests(self):
        assert match_interest([], "party", ["party"]) is None

    def test_blank_tags_ignored(self):
        assert match_interest(["food"], "hangout", ["", "  "]) is None


class TestCooldown:
    def test_absent_entry(self, policies, now):
        user = _user()
        assert not is_in_cooldown(user, policies[NotificationType.PROXIMITY], now)

    def test_within_window(self, policies, now):
        user = _user(cooldowns={"nearby_event": now - timedelta(hours=1)})
        assert is_in_cooldown(user, policies[NotificationType.PROXIMITY], now)

    def test_exactly_window_is_eligible(self, policies, now):
        user = _user(cooldowns={"nearby_event": now - timedelta(hours=3)})
        assert not is_in_cooldown(user, policies[NotificationType.PROXIMITY], now)

    def test_other_type_does_not_block(self, policies, now):
        user = _user(cooldowns={"popular_event": now - timedelta(minutes=5)})
        assert not is_in_cooldown(user, policies[NotificationType.PROXIMITY], now)

    def test_scheduled_types_have_no_cooldown(self, policies, now):
        user = _user(cooldowns={"study_reminder": now})
        assert not is_in_cooldown(user, policies[NotificationType.SCHEDULED_STUDY], now)


class TestEvaluateCandidate:
    def test_qualifies(self, proximity_ctx, now):
        result = evaluate_candidate(_user(), proximity_ctx, now)
        assert isinstance(result, DispatchTarget)
        assert result.push_token == "token-alice"
        assert result.matched_label == "party"
        assert result.distance_m == pytest.approx(43.5, abs=1.0)

    def test_no_token(self, proximity_ctx, now):
        result = evaluate_candidate(_user(token=None), proximity_ctx, now)
        assert result == Rejection("alice", RejectReason.NO_TOKEN)

    def test_host_is_excluded(self, proximity_ctx, now):
        result = evaluate_candidate(_user("host"), proximity_ctx, now)
        assert result.reason == RejectReason.IS_SELF

    def test_attendee_is_excluded(self, policies, now):
        ctx = EligibilityContext(
            policy=policies[NotificationType.ENGAGEMENT],
            event=_event(),
            source_user_id="host",
            attendee_ids=frozenset({"alice"}),
        )
        assert evaluate_candidate(_user(), ctx, now).reason == RejectReason.ALREADY_ATTENDING

    def test_no_location(self, proximity_ctx, now):
        result = evaluate_candidate(_user(lat=None, lon=None), proximity_ctx, now)
        assert result.reason == RejectReason.NO_LOCATION

    def test_too_far(self, proximity_ctx, now):
        result = evaluate_candidate(_user(lat=FAR_LAT, lon=FAR_LON), proximity_ctx, now)
        assert result.reason == RejectReason.TOO_FAR

    def test_radius_is_inclusive(self, policies, now):
        user = _user()
        event = _event()
        distance = haversine_m(
            event.location.latitude, event.location.longitude,
            user.location.latitude, user.location.longitude,
        )
        ctx = EligibilityContext(
            policy=replace(policies[NotificationType.PROXIMITY], radius_m=distance),
            event=event,
        )
        assert isinstance(evaluate_candidate(user, ctx, now), DispatchTarget)

    def test_no_interest_match(self, proximity_ctx, now):
        result = evaluate_candidate(_user(interests=["chess"]), proximity_ctx, now)
        assert result.reason == RejectReason.NO_INTEREST_MATCH

    def test_in_cooldown(self, proximity_ctx, now):
        user = _user(cooldowns={"nearby_event": now - timedelta(minutes=30)})
        result = evaluate_candidate(user, proximity_ctx, now)
        assert result.reason == RejectReason.IN_COOLDOWN
        assert "min remaining" in result.detail

    def test_checks_short_circuit_in_order(self, proximity_ctx, now):
        # No token wins over every later failure
        user = _user(token=None, lat=None, lon=None, interests=["chess"])
        assert evaluate_candidate(user, proximity_ctx, now).reason == RejectReason.NO_TOKEN

    def test_zero_coordinates_are_valid(self, policies, now):
        event = _event(lat=0.0, lon=0.0)
        ctx = EligibilityContext(policy=policies[NotificationType.PROXIMITY], event=event)
        result = evaluate_candidate(_user(lat=0.0, lon=0.0), ctx, now)
        assert isinstance(result, DispatchTarget)
        assert result.distance_m == 0.0

    def test_location_policy_requires_event(self, policies, now):
        ctx = EligibilityContext(policy=policies[NotificationType.PROXIMITY])
        with pytest.raises(ValueError):
            evaluate_candidate(_user(), ctx, now)

    def test_scheduled_skips_geography_and_interests(self, policies, now):
        ctx = EligibilityContext(policy=policies[NotificationType.SCHEDULED_SOCIAL])
        user = _user(lat=None, lon=None, interests=[])
        result = evaluate_candidate(user, ctx, now)
        assert isinstance(result, DispatchTarget)
        assert result.distance_m is None


class TestBuildTargets:
    def test_interest_union(self, proximity_ctx, now):
        docs = [
            make_user("a", interests=["party"]),
            make_user("b", interests=["music", "party"]),
            make_user("c", interests=["chess"]),
        ]
        targets, rejections = build_targets(docs, proximity_ctx, now)
        assert {t.user_id for t in targets} == {"a", "b"}
        assert [r.user_id for r in rejections] == ["c"]

    def test_malformed_document_is_skipped(self, proximity_ctx, now):
        docs = [
            make_user("good"),
            make_user("bad", interests="party"),
            make_user("worse", location="somewhere"),
            {"displayName": "no id"},
        ]
        targets, rejections = build_targets(docs, proximity_ctx, now)
        assert [t.user_id for t in targets] == ["good"]
        assert summarize_rejections(rejections) == {"malformed": 3}

    @pytest.mark.parametrize("stamp", [10**20, float("inf"), float("nan")])
    def test_unrepresentable_cooldown_does_not_abort_batch(self, proximity_ctx, now, stamp):
        docs = [make_user("good"), make_user("odd", cooldowns={"nearby_event": stamp})]
        targets, rejections = build_targets(docs, proximity_ctx, now)
        # The unreadable stamp counts as no cooldown on record
        assert [t.user_id for t in targets] == ["good", "odd"]
        assert rejections == []

    def test_duplicates_evaluated_once(self, proximity_ctx, now):
        docs = [make_user("a"), make_user("a")]
        targets, _ = build_targets(docs, proximity_ctx, now)
        assert len(targets) == 1

    def test_summarize_rejections(self, proximity_ctx, now):
        docs = [make_user("host"), make_user("x", token=None), make_user("y", token=None)]
        _, rejections = build_targets(docs, proximity_ctx, now)
        assert summarize_rejections(rejections) == {"is-self": 1, "no-token": 2}


class TestNotificationFilter:
    async def test_queries_by_prefix(self, notification_filter, user_store):
        user_store.add(make_user("a"), make_user("far", lat=40.0, lon=-74.0))
        event = _event()
        users = await notification_filter.get_candidates(event)
        assert [u["id"] for u in users] == ["a"]
        assert user_store.prefix_queries == [event.geohash[:5]]

    async def test_event_without_location_fails_closed(self, notification_filter, user_store):
        user_store.add(make_user("a"))
        users = await notification_filter.get_candidates(_event(lat=None, lon=None))
        assert users == []
        assert user_store.prefix_queries == []

    async def test_cell_boundary_misses_close_user(self, policies):
        # Known limitation: 33.2225 and 33.2228 straddle a 5-char cell edge
        event_lat, user_lat, lon = 33.2225, 33.2228, -97.15
        assert haversine_m(event_lat, lon, user_lat, lon) < 400
        assert encode_geohash(event_lat, lon)[:5] != encode_geohash(user_lat, lon)[:5]

        store = FakeUserStore([make_user("neighbor", lat=user_lat, lon=lon)])
        users = await NotificationFilter(store, 5).get_candidates(_event(lat=event_lat, lon=lon))
        assert users == []

    async def test_broadcast_candidates(self, notification_filter, user_store):
        user_store.add(make_user("a"), make_user("b", token=None))
        users = await notification_filter.get_broadcast_candidates()
        assert [u["id"] for u in users] == ["a"]
