"""Classify reviews as on-route / off-route against a route polyline."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Tuple

from safetymap.common.geo import point_to_segment_distance
from safetymap.common.models import GeoPoint, Review, RoutePolyline

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_METERS = 1000.0
MIN_HIGHLIGHT_RADIUS_METERS = 30.0


def min_distance_to_polyline(
    point: GeoPoint,
    polyline: RoutePolyline,
    stop_at: Optional[float] = None,
) -> float:
    """Minimum meters from ``point`` to any segment of ``polyline``.

    With ``stop_at`` set, returns as soon as the running minimum is within it;
    the value is then an upper bound of the true minimum, still <= stop_at.
    Polylines with fewer than two points are infinitely far away.
    """

    best = math.inf
    for v, w in polyline.segments():
        distance = point_to_segment_distance(point, v, w)
        if distance < best:
            best = distance
        if stop_at is not None and best <= stop_at:
            return best
    return best


@dataclass(frozen=True)
class Proximity:
    on_route: bool
    distance_m: float


@dataclass(frozen=True)
class Highlight:
    """Halo drawn around an on-route review."""

    review_id: str
    lat: float
    lng: float
    radius_m: float


@dataclass(frozen=True)
class ProximityResult:
    buffer_m: float
    by_review: Dict[str, Proximity] = field(default_factory=dict)
    on_route: Tuple[Review, ...] = ()

    def is_on_route(self, review_id: str) -> bool:
        entry = self.by_review.get(review_id)
        return bool(entry and entry.on_route)

    def highlights(self) -> Tuple[Highlight, ...]:
        radius = max(MIN_HIGHLIGHT_RADIUS_METERS, self.buffer_m / 6)
        return tuple(Highlight(r.id, r.lat, r.lng, radius) for r in self.on_route)


def evaluate_route(
    reviews: Iterable[Review],
    polyline: Optional[RoutePolyline],
    buffer_m: float = DEFAULT_BUFFER_METERS,
    early_exit: bool = True,
) -> ProximityResult:
    """Measure every review against the route and keep the ones within ``buffer_m``."""

    if polyline is None or polyline.is_degenerate:
        return ProximityResult(buffer_m=buffer_m)

    by_review: Dict[str, Proximity] = {}
    on_route = []
    stop_at = buffer_m if early_exit else None
    for review in reviews:
        distance = min_distance_to_polyline(review.position, polyline, stop_at=stop_at)
        hit = distance <= buffer_m
        by_review[review.id] = Proximity(on_route=hit, distance_m=distance)
        if hit:
            on_route.append(review)

    logger.debug(
        "Route with %d points: %d/%d reviews within %.0f m",
        len(polyline),
        len(on_route),
        len(by_review),
        buffer_m,
    )
    return ProximityResult(buffer_m=buffer_m, by_review=by_review, on_route=tuple(on_route))


def filter_on_route(
    reviews: Iterable[Review],
    polyline: Optional[RoutePolyline],
    buffer_m: float = DEFAULT_BUFFER_METERS,
) -> Tuple[Review, ...]:
    return evaluate_route(reviews, polyline, buffer_m).on_route
