"""Event handlers between the UI, the collaborators and the state machine.

Each handler takes the current state and returns an ``Outcome``. Collaborator
failures are caught here and turned into notifications; the state passed in
is returned untouched in that case.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from safetymap.common.errors import SafetyMapError, ValidationError
from safetymap.common.models import ReviewDraft
from safetymap.dashboard import state as machine
from safetymap.dashboard.aggregates import ReviewFilters
from safetymap.dashboard.state import DashboardState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    message: str
    level: str = "info"  # info | success | warning | error


@dataclass(frozen=True)
class Outcome:
    state: DashboardState
    notification: Optional[Notification] = None


class DashboardSession:
    def __init__(self, gateway, provider=None) -> None:
        self.gateway = gateway
        self.provider = provider

    def load(self, state: DashboardState, now: Optional[datetime] = None) -> Outcome:
        try:
            reviews = self.gateway.list_reviews()
        except SafetyMapError as exc:
            logger.error("Error loading reviews from server: %s", exc.message)
            return Outcome(
                machine.reviews_loaded(state, (), now),
                Notification("Failed to load reviews from server.", "error"),
            )
        return Outcome(machine.reviews_loaded(state, reviews, now))

    def search_route(
        self,
        state: DashboardState,
        origin: str,
        destination: str,
        now: Optional[datetime] = None,
    ) -> Outcome:
        if self.provider is None:
            return Outcome(state, Notification("Route search is not configured.", "error"))
        try:
            polyline = self.provider.route(origin, destination)
        except SafetyMapError as exc:
            logger.warning("Route search %r -> %r failed: %s", origin, destination, exc.message)
            level = "warning" if isinstance(exc, ValidationError) else "error"
            return Outcome(state, Notification(exc.message, level))
        new_state = machine.route_found(state, polyline, now)
        return Outcome(new_state, Notification(f"Route reviews: {len(new_state.on_route)}", "info"))

    def clear_route(self, state: DashboardState, now: Optional[datetime] = None) -> Outcome:
        return Outcome(machine.route_cleared(state, now))

    def submit_review(
        self, state: DashboardState, draft: ReviewDraft, now: Optional[datetime] = None
    ) -> Outcome:
        try:
            saved = self.gateway.create_review(draft)
        except SafetyMapError as exc:
            logger.error("Error saving review: %s", exc.message)
            return Outcome(state, Notification(f"Failed to save review. {exc.message}", "error"))
        return Outcome(
            machine.review_created(state, saved, now),
            Notification("Review saved successfully!", "success"),
        )

    def delete_review(
        self, state: DashboardState, review_id: str, now: Optional[datetime] = None
    ) -> Outcome:
        try:
            self.gateway.delete_review(review_id)
        except SafetyMapError as exc:
            logger.error("Error deleting review %s: %s", review_id, exc.message)
            return Outcome(state, Notification(f"Failed to delete review. {exc.message}", "error"))
        return Outcome(
            machine.review_deleted(state, review_id, now),
            Notification("Review deleted successfully", "info"),
        )

    def apply_filters(
        self, state: DashboardState, filters: ReviewFilters, now: Optional[datetime] = None
    ) -> Outcome:
        new_state = machine.filters_applied(state, filters, now)
        shown = len(machine.displayed_reviews(new_state, now))
        return Outcome(new_state, Notification(f"Applied filters. Showing {shown} reviews.", "info"))

    def reset_filters(self, state: DashboardState, now: Optional[datetime] = None) -> Outcome:
        return Outcome(
            machine.filters_reset(state, now),
            Notification("Filters reset. Showing all reviews.", "info"),
        )
