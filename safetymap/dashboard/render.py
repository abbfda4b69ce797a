"""Turn a DashboardState into an immutable snapshot of what the map shows."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, FrozenSet, Optional, Sequence, Tuple

import pandas as pd
import pydeck as pdk

from safetymap.common.models import Review, as_utc, utcnow
from safetymap.dashboard.state import DashboardMode, DashboardState, displayed_reviews
from safetymap.routing.proximity import Highlight

RATING_COLORS = (
    (4.0, (76, 175, 80)),  # green
    (3.0, (255, 152, 0)),  # orange
    (2.0, (255, 193, 7)),  # amber
)
LOW_RATING_COLOR = (244, 67, 54)
ROUTE_COLOR = (26, 115, 232)


def marker_color(review: Review) -> Tuple[int, int, int]:
    avg = review.average_rating
    for threshold, color in RATING_COLORS:
        if avg >= threshold:
            return color
    return LOW_RATING_COLOR


def rating_class(rating: int) -> str:
    if rating <= 2:
        return "danger"
    if rating <= 3:
        return "warning"
    return "success"


def time_ago(timestamp: datetime, now: Optional[datetime] = None) -> str:
    seconds = int(((as_utc(now) if now else utcnow()) - as_utc(timestamp)).total_seconds())
    if seconds < 60:
        return "Just now"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    return f"{seconds // 86400}d ago"


@dataclass(frozen=True)
class Marker:
    review_id: str
    lat: float
    lng: float
    color: Tuple[int, int, int]
    title: str


@dataclass(frozen=True)
class HeatPoint:
    lat: float
    lng: float
    weight: float


@dataclass(frozen=True)
class DisplaySnapshot:
    mode: DashboardMode
    markers: Tuple[Marker, ...] = ()
    heat_points: Tuple[HeatPoint, ...] = ()
    highlights: Tuple[Highlight, ...] = ()
    route_path: Tuple[Tuple[float, float], ...] = ()
    badge: str = "Route reviews: 0"
    stats: Dict[str, str] = field(default_factory=dict)

    @property
    def marker_ids(self) -> FrozenSet[str]:
        return frozenset(m.review_id for m in self.markers)


def build_snapshot(state: DashboardState, now: Optional[datetime] = None) -> DisplaySnapshot:
    markers = tuple(
        Marker(r.id, r.lat, r.lng, marker_color(r), r.address or "Safety Review")
        for r in displayed_reviews(state, now)
    )
    heat_points = tuple(
        HeatPoint(r.lat, r.lng, (r.safety_rating + r.infrastructure_rating) / 10)
        for r in state.reviews
    )
    highlights = state.proximity.highlights() if state.proximity else ()
    route_path = tuple((p.lat, p.lng) for p in state.route.points) if state.route else ()
    return DisplaySnapshot(
        mode=state.mode,
        markers=markers,
        heat_points=heat_points,
        highlights=highlights,
        route_path=route_path,
        badge=f"Route reviews: {len(state.on_route)}",
        stats=state.aggregates.as_display(),
    )


@dataclass(frozen=True)
class MarkerDiff:
    added: FrozenSet[str]
    removed: FrozenSet[str]

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed)


def diff_markers(previous: Optional[DisplaySnapshot], current: DisplaySnapshot) -> MarkerDiff:
    before = previous.marker_ids if previous else frozenset()
    after = current.marker_ids
    return MarkerDiff(added=after - before, removed=before - after)


def _markers_frame(markers: Sequence[Marker]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {"id": m.review_id, "lat": m.lat, "lng": m.lng, "color": list(m.color), "title": m.title}
            for m in markers
        ],
        columns=["id", "lat", "lng", "color", "title"],
    )


def build_layers(
    snapshot: DisplaySnapshot,
    show_heatmap: bool = False,
    heatmap_radius: int = 50,
) -> list:
    layers = []
    if show_heatmap and snapshot.heat_points:
        heat = pd.DataFrame([vars(p) for p in snapshot.heat_points])
        layers.append(
            pdk.Layer(
                "HeatmapLayer",
                data=heat,
                get_position="[lng, lat]",
                get_weight="weight",
                radius_pixels=heatmap_radius,
                opacity=0.6,
            )
        )
    if snapshot.route_path:
        layers.append(
            pdk.Layer(
                "PathLayer",
                data=[{"path": [[lng, lat] for lat, lng in snapshot.route_path]}],
                get_path="path",
                get_color=list(ROUTE_COLOR),
                width_min_pixels=4,
            )
        )
    if snapshot.highlights:
        halos = pd.DataFrame([vars(h) for h in snapshot.highlights])
        layers.append(
            pdk.Layer(
                "ScatterplotLayer",
                data=halos,
                get_position="[lng, lat]",
                get_radius="radius_m",
                get_fill_color=list(ROUTE_COLOR) + [30],
                get_line_color=list(ROUTE_COLOR) + [230],
                stroked=True,
                line_width_min_pixels=1,
                pickable=False,
            )
        )
    if snapshot.markers:
        layers.append(
            pdk.Layer(
                "ScatterplotLayer",
                data=_markers_frame(snapshot.markers),
                get_position="[lng, lat]",
                get_fill_color="color",
                get_line_color=[255, 255, 255],
                get_radius=8,
                radius_units="pixels",
                stroked=True,
                line_width_min_pixels=2,
                pickable=True,
                auto_highlight=True,
            )
        )
    return layers


def build_deck(
    snapshot: DisplaySnapshot,
    center: Tuple[float, float],
    zoom: int = 12,
    show_heatmap: bool = False,
    heatmap_radius: int = 50,
) -> pdk.Deck:
    if snapshot.route_path:
        lats = [lat for lat, _ in snapshot.route_path]
        lngs = [lng for _, lng in snapshot.route_path]
        center = (sum(lats) / len(lats), sum(lngs) / len(lngs))
    return pdk.Deck(
        map_style=None,
        initial_view_state=pdk.ViewState(latitude=center[0], longitude=center[1], zoom=zoom),
        layers=build_layers(snapshot, show_heatmap=show_heatmap, heatmap_radius=heatmap_radius),
        tooltip={"text": "{title}"},
    )
