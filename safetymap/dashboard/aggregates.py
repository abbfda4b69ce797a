"""Dashboard statistics, display filters and nearby-review summaries."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, Optional, Sequence, Tuple

import pandas as pd

from safetymap.common.geo import haversine_km
from safetymap.common.models import GeoPoint, Review, as_utc, utcnow

RECENT_DAYS = 7
NEARBY_RADIUS_KM = 0.1
PERIODS = ("all", "week", "month", "year")

FRAME_COLUMNS = [
    "id",
    "lat",
    "lng",
    "safety_rating",
    "infrastructure_rating",
    "description",
    "address",
    "timestamp",
]


def reviews_frame(reviews: Iterable[Review]) -> pd.DataFrame:
    """Flatten reviews into a DataFrame with a UTC timestamp column."""

    rows = [
        {
            "id": r.id,
            "lat": r.lat,
            "lng": r.lng,
            "safety_rating": r.safety_rating,
            "infrastructure_rating": r.infrastructure_rating,
            "description": r.description,
            "address": r.address,
            "timestamp": r.timestamp,
        }
        for r in reviews
    ]
    frame = pd.DataFrame(rows, columns=FRAME_COLUMNS)
    frame["timestamp"] = pd.to_datetime(frame["timestamp"], utc=True)
    return frame


def round_half_up(value: float) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class Aggregates:
    """The four dashboard tiles. ``None`` means blank, not zero."""

    count: Optional[int] = None
    average_safety: Optional[float] = None
    average_infrastructure: Optional[float] = None
    recent_count: Optional[int] = None

    @property
    def is_blank(self) -> bool:
        return self.count is None

    def as_display(self) -> Dict[str, str]:
        def text(value) -> str:
            if value is None:
                return ""
            if isinstance(value, float):
                return f"{value:.1f}"
            return str(value)

        return {
            "totalReviews": text(self.count),
            "avgSafety": text(self.average_safety),
            "avgInfra": text(self.average_infrastructure),
            "recentReviews": text(self.recent_count),
        }


BLANK = Aggregates()


def compute_aggregates(
    reviews: Sequence[Review],
    now: Optional[datetime] = None,
    recent_days: int = RECENT_DAYS,
) -> Aggregates:
    if not reviews:
        return BLANK
    now = as_utc(now) if now else utcnow()
    frame = reviews_frame(reviews)
    cutoff = pd.Timestamp(now - timedelta(days=recent_days))
    return Aggregates(
        count=int(len(frame)),
        average_safety=round_half_up(frame["safety_rating"].mean()),
        average_infrastructure=round_half_up(frame["infrastructure_rating"].mean()),
        recent_count=int((frame["timestamp"] > cutoff).sum()),
    )


@dataclass(frozen=True)
class ReviewFilters:
    """Marker filters from the side panel. They never touch the dashboard tiles."""

    min_safety: int = 1
    min_infrastructure: int = 1
    period: str = "all"

    def __post_init__(self) -> None:
        if self.period not in PERIODS:
            raise ValueError(f"period must be one of {PERIODS}, got {self.period!r}")

    @property
    def is_default(self) -> bool:
        return self == ReviewFilters()


def _period_cutoff(period: str, now: datetime) -> Optional[pd.Timestamp]:
    stamp = pd.Timestamp(now)
    if period == "week":
        return stamp - pd.Timedelta(days=7)
    if period == "month":
        return stamp - pd.DateOffset(months=1)
    if period == "year":
        return stamp - pd.DateOffset(years=1)
    return None


def apply_filters(
    reviews: Sequence[Review],
    filters: ReviewFilters,
    now: Optional[datetime] = None,
) -> Tuple[Review, ...]:
    if not reviews or filters.is_default:
        return tuple(reviews)
    frame = reviews_frame(reviews)
    mask = (frame["safety_rating"] >= filters.min_safety) & (
        frame["infrastructure_rating"] >= filters.min_infrastructure
    )
    cutoff = _period_cutoff(filters.period, as_utc(now) if now else utcnow())
    if cutoff is not None:
        mask &= frame["timestamp"] > cutoff
    keep = set(frame.loc[mask, "id"])
    return tuple(r for r in reviews if r.id in keep)


def recent_reviews(reviews: Iterable[Review], limit: int = 5) -> Tuple[Review, ...]:
    return tuple(sorted(reviews, key=lambda r: r.timestamp, reverse=True)[:limit])


@dataclass(frozen=True)
class NearbySummary:
    count: int
    average_safety: float
    average_infrastructure: float
    latest: Review

    @property
    def level(self) -> str:
        if self.average_safety < 2.5:
            return "warning"
        if self.average_safety > 3.5:
            return "success"
        return "info"

    @property
    def message(self) -> str:
        return (
            f"Found {self.count} review(s) nearby:\n"
            f"Average Safety: {self.average_safety:.1f}/5\n"
            f"Average Infrastructure: {self.average_infrastructure:.1f}/5\n"
            f'Latest: "{self.latest.description[:50]}..."'
        )


def nearby_summary(
    reviews: Iterable[Review],
    lat: float,
    lng: float,
    radius_km: float = NEARBY_RADIUS_KM,
) -> Optional[NearbySummary]:
    """Summarise reviews around a clicked point, or None when there are none."""

    origin = GeoPoint(lat, lng)
    nearby = [r for r in reviews if haversine_km(origin, r.position) <= radius_km]
    if not nearby:
        return None
    return NearbySummary(
        count=len(nearby),
        average_safety=sum(r.safety_rating for r in nearby) / len(nearby),
        average_infrastructure=sum(r.infrastructure_rating for r in nearby) / len(nearby),
        latest=max(nearby, key=lambda r: r.timestamp),
    )
