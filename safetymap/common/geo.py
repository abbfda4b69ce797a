"""Geospatial helpers for route-proximity math."""

from __future__ import annotations

import math
from typing import Tuple

from .models import GeoPoint

EARTH_RADIUS_KM = 6371.0


def meters_per_degree(latitude: float) -> Tuple[float, float]:
    """Return (meters per degree latitude, meters per degree longitude) at ``latitude``.

    Truncated series that accounts for the ellipsoid, only good for small
    neighbourhoods around the reference latitude.
    """

    phi = math.radians(latitude)
    m_per_deg_lat = 111132.92 - 559.82 * math.cos(2 * phi) + 1.175 * math.cos(4 * phi)
    m_per_deg_lng = 111412.84 * math.cos(phi) - 93.5 * math.cos(3 * phi)
    return m_per_deg_lat, m_per_deg_lng


def point_to_segment_distance(p: GeoPoint, v: GeoPoint, w: GeoPoint) -> float:
    """Meters from ``p`` to the segment v-w, in a plane anchored at ``v``."""

    m_lat, m_lng = meters_per_degree((v.lat + w.lat) / 2)
    vx = (w.lng - v.lng) * m_lng
    vy = (w.lat - v.lat) * m_lat
    px = (p.lng - v.lng) * m_lng
    py = (p.lat - v.lat) * m_lat

    seg_len2 = vx * vx + vy * vy
    if seg_len2 == 0:
        return math.hypot(px, py)

    t = (px * vx + py * vy) / seg_len2
    t = max(0.0, min(1.0, t))
    return math.hypot(px - vx * t, py - vy * t)


def haversine_km(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance in km, used for click-nearby lookups."""

    d_lat = math.radians(b.lat - a.lat)
    d_lng = math.radians(b.lng - a.lng)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a.lat)) * math.cos(math.radians(b.lat)) * math.sin(d_lng / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(h), math.sqrt(1 - h))
