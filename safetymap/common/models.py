"""Dataclasses shared between the store, routing and dashboard layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional, Tuple

from .errors import ValidationError

RATING_RANGE = (1, 5)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_timestamp(value: Any) -> datetime:
    """Accept ISO-8601 strings (``Z`` suffix included) or datetimes; always tz-aware."""

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as exc:
            raise ValidationError(f"Invalid timestamp: {value!r}") from exc
    else:
        raise ValidationError(f"Invalid timestamp: {value!r}")
    return as_utc(parsed)


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lng: float


@dataclass(frozen=True)
class Review:
    """A stored review. Immutable; deleted as a whole record."""

    id: str
    lat: float
    lng: float
    safety_rating: int
    infrastructure_rating: int
    description: str
    timestamp: datetime
    address: Optional[str] = None

    @property
    def position(self) -> GeoPoint:
        return GeoPoint(self.lat, self.lng)

    @property
    def average_rating(self) -> float:
        return (self.safety_rating + self.infrastructure_rating) / 2

    def to_wire(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "lat": self.lat,
            "lng": self.lng,
            "safetyRating": self.safety_rating,
            "infrastructureRating": self.infrastructure_rating,
            "description": self.description,
            "address": self.address,
            "timestamp": format_timestamp(self.timestamp),
        }

    @classmethod
    def from_wire(cls, payload: Dict[str, Any]) -> "Review":
        """Normalise a store record (camelCase JSON) into a Review."""

        try:
            return cls(
                id=str(payload["id"]),
                lat=float(payload["lat"]),
                lng=float(payload["lng"]),
                safety_rating=int(payload["safetyRating"]),
                infrastructure_rating=int(payload["infrastructureRating"]),
                description=str(payload.get("description") or ""),
                address=payload.get("address") or None,
                timestamp=parse_timestamp(payload.get("timestamp")),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ValidationError(f"Malformed review record: {exc}") from exc


@dataclass(frozen=True)
class ReviewDraft:
    """A review the user is about to submit; the store assigns the id."""

    lat: float
    lng: float
    safety_rating: int
    infrastructure_rating: int
    description: str
    address: Optional[str] = None
    timestamp: Optional[datetime] = None

    def validate(self) -> "ReviewDraft":
        problems = []
        if not _is_number(self.lat) or not -90 <= self.lat <= 90:
            problems.append("lat must be a number in [-90, 90]")
        if not _is_number(self.lng) or not -180 <= self.lng <= 180:
            problems.append("lng must be a number in [-180, 180]")
        low, high = RATING_RANGE
        for name in ("safety_rating", "infrastructure_rating"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or not low <= value <= high:
                problems.append(f"{name} must be an integer between {low} and {high}")
        if not isinstance(self.description, str) or not self.description.strip():
            problems.append("description is required")
        if problems:
            raise ValidationError("Invalid review: " + "; ".join(problems))
        return self

    def to_wire(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "lat": self.lat,
            "lng": self.lng,
            "safetyRating": self.safety_rating,
            "infrastructureRating": self.infrastructure_rating,
            "description": self.description,
        }
        if self.address:
            payload["address"] = self.address
        if self.timestamp is not None:
            payload["timestamp"] = format_timestamp(self.timestamp)
        return payload


@dataclass(frozen=True)
class RoutePolyline:
    """Ordered route geometry from the directions provider."""

    points: Tuple[GeoPoint, ...] = field(default_factory=tuple)

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[float, float]]) -> "RoutePolyline":
        return cls(tuple(GeoPoint(float(lat), float(lng)) for lat, lng in pairs))

    @property
    def is_degenerate(self) -> bool:
        return len(self.points) < 2

    def segments(self) -> Iterable[Tuple[GeoPoint, GeoPoint]]:
        return zip(self.points, self.points[1:])

    def __len__(self) -> int:
        return len(self.points)
