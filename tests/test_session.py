from unittest.mock import Mock

import pytest

from safetymap.common.errors import NetworkError, NotFoundError, RouteFailure, ValidationError
from safetymap.common.models import ReviewDraft
from safetymap.dashboard import state as machine
from safetymap.dashboard.aggregates import ReviewFilters
from safetymap.dashboard.session import DashboardSession
from safetymap.dashboard.state import DashboardMode


@pytest.fixture
def gateway():
    return Mock()


@pytest.fixture
def provider():
    return Mock()


@pytest.fixture
def session(gateway, provider):
    return DashboardSession(gateway, provider)


def test_load_populates_overall(session, gateway, make_review, now):
    gateway.list_reviews.return_value = [make_review(), make_review()]

    outcome = session.load(machine.initial_state(now=now), now=now)

    assert outcome.notification is None
    assert outcome.state.aggregates.count == 2


def test_load_failure_notifies_and_keeps_running(session, gateway, now):
    gateway.list_reviews.side_effect = NetworkError("down")

    outcome = session.load(machine.initial_state(now=now), now=now)

    assert outcome.notification.level == "error"
    assert outcome.notification.message == "Failed to load reviews from server."
    assert outcome.state.reviews == ()
    assert outcome.state.mode is DashboardMode.OVERALL


def test_search_route_enters_route_mode(session, provider, make_review, east_route, now):
    state = machine.initial_state([make_review(lat=0.0005, lng=0.005)], now=now)
    provider.route.return_value = east_route

    outcome = session.search_route(state, "A", "B", now=now)

    provider.route.assert_called_once_with("A", "B")
    assert outcome.state.mode is DashboardMode.ROUTE_ONLY
    assert outcome.notification.message == "Route reviews: 1"


@pytest.mark.parametrize(
    "error, level",
    [
        (RouteFailure("ZERO_RESULTS"), "error"),
        (NetworkError("Could not compute route."), "error"),
        (ValidationError("Please enter both origin and destination."), "warning"),
    ],
)
def test_search_route_failures_keep_state(session, provider, make_review, now, error, level):
    state = machine.initial_state([make_review()], now=now)
    provider.route.side_effect = error

    outcome = session.search_route(state, "A", "B", now=now)

    assert outcome.state is state
    assert outcome.notification.level == level
    assert outcome.notification.message == error.message


def test_search_without_provider(gateway, now):
    state = machine.initial_state(now=now)

    outcome = DashboardSession(gateway).search_route(state, "A", "B", now=now)

    assert outcome.state is state
    assert outcome.notification.level == "error"


def test_failed_search_keeps_previous_route(session, provider, make_review, east_route, now):
    state = machine.route_found(machine.initial_state([make_review(lat=0.0005, lng=0.005)], now=now), east_route, now=now)
    provider.route.side_effect = RouteFailure("NOT_FOUND")

    outcome = session.search_route(state, "A", "B", now=now)

    assert outcome.state.route == east_route
    assert outcome.state.mode is DashboardMode.ROUTE_ONLY


def test_submit_review_in_route_mode(session, gateway, make_review, east_route, now):
    state = machine.route_found(machine.initial_state([make_review(lat=0.05, lng=0.0)], now=now), east_route, now=now)
    saved = make_review(lat=0.0001, lng=0.003, review_id="99")
    gateway.create_review.return_value = saved
    draft = ReviewDraft(lat=0.0001, lng=0.003, safety_rating=3, infrastructure_rating=3, description="x")

    outcome = session.submit_review(state, draft, now=now)

    gateway.create_review.assert_called_once_with(draft)
    assert outcome.notification.message == "Review saved successfully!"
    assert outcome.state.mode is DashboardMode.ROUTE_ONLY
    assert [r.id for r in outcome.state.on_route] == ["99"]


def test_submit_review_failure(session, gateway, now):
    state = machine.initial_state(now=now)
    gateway.create_review.side_effect = ValidationError("Invalid payload")
    draft = ReviewDraft(lat=0.0, lng=0.0, safety_rating=3, infrastructure_rating=3, description="x")

    outcome = session.submit_review(state, draft, now=now)

    assert outcome.state is state
    assert outcome.notification.level == "error"
    assert "Invalid payload" in outcome.notification.message


def test_submit_review_unreadable_response(session, gateway, now):
    state = machine.initial_state(now=now)
    gateway.create_review.side_effect = NetworkError("Failed to save review (unreadable response).")
    draft = ReviewDraft(lat=0.0, lng=0.0, safety_rating=3, infrastructure_rating=3, description="x")

    outcome = session.submit_review(state, draft, now=now)

    assert outcome.state is state
    assert outcome.notification.level == "error"


def test_delete_review(session, gateway, make_review, now):
    doomed, kept = make_review(safety=1), make_review(safety=5)
    state = machine.initial_state([doomed, kept], now=now)

    outcome = session.delete_review(state, doomed.id, now=now)

    gateway.delete_review.assert_called_once_with(doomed.id)
    assert [r.id for r in outcome.state.reviews] == [kept.id]
    assert outcome.state.aggregates.average_safety == 5.0
    assert outcome.notification.message == "Review deleted successfully"


def test_delete_unknown_review(session, gateway, make_review, now):
    state = machine.initial_state([make_review()], now=now)
    gateway.delete_review.side_effect = NotFoundError("nope")

    outcome = session.delete_review(state, "nope", now=now)

    assert outcome.state is state
    assert outcome.notification.level == "error"


def test_apply_and_reset_filters(session, make_review, now):
    state = machine.initial_state([make_review(safety=5), make_review(safety=1)], now=now)

    applied = session.apply_filters(state, ReviewFilters(min_safety=3), now=now)
    reset = session.reset_filters(applied.state, now=now)

    assert applied.notification.message == "Applied filters. Showing 1 reviews."
    assert applied.state.aggregates == state.aggregates
    assert reset.state.filters == ReviewFilters()
    assert reset.notification.message == "Filters reset. Showing all reviews."


def test_clear_route(session, make_review, east_route, now):
    state = machine.route_found(machine.initial_state([make_review()], now=now), east_route, now=now)

    outcome = session.clear_route(state, now=now)

    assert outcome.state.mode is DashboardMode.OVERALL
    assert outcome.notification is None
