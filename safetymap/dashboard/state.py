"""Dashboard mode state machine.

The dashboard is always in exactly one of three modes:

* ``OVERALL``    no route is set; the tiles describe every review.
* ``ROUTE_ONLY`` a route is set and at least one review lies within the buffer;
                 the tiles describe only those reviews.
* ``EMPTY``      a route is set but no review lies within the buffer; the tiles
                 are blank.

Every transition takes a ``DashboardState`` and returns a new one, so the
machine can be driven without any rendering surface.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional, Tuple

from safetymap.common.models import Review, RoutePolyline
from safetymap.dashboard import aggregates
from safetymap.dashboard.aggregates import BLANK, RECENT_DAYS, Aggregates, ReviewFilters
from safetymap.routing import proximity
from safetymap.routing.proximity import DEFAULT_BUFFER_METERS, ProximityResult


class DashboardMode(str, Enum):
    OVERALL = "overall"
    ROUTE_ONLY = "route_only"
    EMPTY = "empty"


@dataclass(frozen=True)
class DashboardState:
    reviews: Tuple[Review, ...] = ()
    route: Optional[RoutePolyline] = None
    proximity: Optional[ProximityResult] = None
    mode: DashboardMode = DashboardMode.OVERALL
    aggregates: Aggregates = BLANK
    filters: ReviewFilters = ReviewFilters()
    buffer_m: float = DEFAULT_BUFFER_METERS
    recent_days: int = RECENT_DAYS

    @property
    def route_active(self) -> bool:
        return self.route is not None

    @property
    def on_route(self) -> Tuple[Review, ...]:
        return self.proximity.on_route if self.proximity else ()


def _mode_for(route: Optional[RoutePolyline], on_route: Tuple[Review, ...]) -> DashboardMode:
    if route is None:
        return DashboardMode.OVERALL
    return DashboardMode.ROUTE_ONLY if on_route else DashboardMode.EMPTY


def _newest_first(reviews: Iterable[Review]) -> Tuple[Review, ...]:
    return tuple(sorted(reviews, key=lambda r: r.timestamp, reverse=True))


def _refresh(state: DashboardState, now: Optional[datetime] = None) -> DashboardState:
    """Re-derive proximity, mode and tiles from (reviews, route)."""

    if state.route is None:
        result = None
        subset = state.reviews
    else:
        result = proximity.evaluate_route(state.reviews, state.route, state.buffer_m)
        subset = result.on_route

    mode = _mode_for(state.route, subset)
    if mode is DashboardMode.EMPTY:
        stats = BLANK
    else:
        stats = aggregates.compute_aggregates(subset, now=now, recent_days=state.recent_days)
    return replace(state, proximity=result, mode=mode, aggregates=stats)


def initial_state(
    reviews: Iterable[Review] = (),
    buffer_m: float = DEFAULT_BUFFER_METERS,
    recent_days: int = RECENT_DAYS,
    now: Optional[datetime] = None,
) -> DashboardState:
    state = DashboardState(
        reviews=_newest_first(reviews),
        buffer_m=float(buffer_m),
        recent_days=recent_days,
    )
    return _refresh(state, now)


def reviews_loaded(
    state: DashboardState, reviews: Iterable[Review], now: Optional[datetime] = None
) -> DashboardState:
    return _refresh(replace(state, reviews=_newest_first(reviews)), now)


def route_found(
    state: DashboardState, polyline: RoutePolyline, now: Optional[datetime] = None
) -> DashboardState:
    """A new search result replaces any previous route."""

    return _refresh(replace(state, route=polyline), now)


def route_cleared(state: DashboardState, now: Optional[datetime] = None) -> DashboardState:
    return _refresh(replace(state, route=None, proximity=None), now)


def review_created(
    state: DashboardState, review: Review, now: Optional[datetime] = None
) -> DashboardState:
    remaining = tuple(r for r in state.reviews if r.id != review.id)
    return _refresh(replace(state, reviews=_newest_first((review,) + remaining)), now)


def review_deleted(
    state: DashboardState, review_id: str, now: Optional[datetime] = None
) -> DashboardState:
    remaining = tuple(r for r in state.reviews if r.id != str(review_id))
    return _refresh(replace(state, reviews=remaining), now)


def filters_applied(
    state: DashboardState, filters: ReviewFilters, now: Optional[datetime] = None
) -> DashboardState:
    # filters only change the drawn markers; the tiles keep the full mode subset
    return _refresh(replace(state, filters=filters), now)


def filters_reset(state: DashboardState, now: Optional[datetime] = None) -> DashboardState:
    return filters_applied(state, ReviewFilters(), now)


def displayed_reviews(state: DashboardState, now: Optional[datetime] = None) -> Tuple[Review, ...]:
    """Reviews whose markers are drawn, after the side-panel filters."""

    return aggregates.apply_filters(state.reviews, state.filters, now)
