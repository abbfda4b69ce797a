"""Route geometry from the Google Directions API."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

import googlemaps
from googlemaps import convert
from googlemaps import exceptions as gmaps_errors

from safetymap.common.errors import NetworkError, RouteFailure, ValidationError
from safetymap.common.models import RoutePolyline

logger = logging.getLogger(__name__)


class DirectionsProvider:
    """Resolves origin/destination text into a RoutePolyline."""

    def __init__(self, client: Any, travel_mode: str = "driving") -> None:
        self.client = client
        self.travel_mode = travel_mode

    @classmethod
    def from_api_key(cls, api_key: str, travel_mode: str = "driving", timeout: float = 10.0) -> "DirectionsProvider":
        return cls(googlemaps.Client(key=api_key, timeout=timeout), travel_mode=travel_mode)

    def route(self, origin: str, destination: str) -> RoutePolyline:
        origin = (origin or "").strip()
        destination = (destination or "").strip()
        if not origin or not destination:
            raise ValidationError("Please enter both origin and destination.")

        try:
            routes: List[Dict[str, Any]] = self.client.directions(
                origin, destination, mode=self.travel_mode
            )
        except gmaps_errors.ApiError as exc:
            logger.warning("Directions API returned %s for %r -> %r", exc.status, origin, destination)
            raise RouteFailure(str(exc.status)) from exc
        except (gmaps_errors.TransportError, gmaps_errors.Timeout) as exc:
            logger.error("Directions API unreachable: %s", exc)
            raise NetworkError("Could not compute route.") from exc

        if not routes:
            raise RouteFailure("ZERO_RESULTS")
        return self._decode(routes[0])

    @staticmethod
    def _decode(route: Dict[str, Any]) -> RoutePolyline:
        encoded = (route.get("overview_polyline") or {}).get("points")
        if encoded:
            points = convert.decode_polyline(encoded)
        else:
            # fall back to stitching the step polylines together
            points = []
            for leg in route.get("legs", []):
                for step in leg.get("steps", []):
                    points.extend(convert.decode_polyline(step["polyline"]["points"]))
        return RoutePolyline.from_pairs((p["lat"], p["lng"]) for p in points)
