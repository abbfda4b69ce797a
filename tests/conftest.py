import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Ensure the repository root (which contains the `safetymap` package) is importable in tests.
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from safetymap.common.models import Review, RoutePolyline

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_review():
    counter = {"n": 0}

    def _make(lat=0.0, lng=0.0, safety=3, infra=3, days_ago=1, review_id=None, description="Broken streetlight", address=None):
        counter["n"] += 1
        return Review(
            id=review_id or f"r{counter['n']}",
            lat=lat,
            lng=lng,
            safety_rating=safety,
            infrastructure_rating=infra,
            description=description,
            address=address,
            timestamp=NOW - timedelta(days=days_ago),
        )

    return _make


@pytest.fixture
def east_route():
    """~1.11 km segment along the equator."""

    return RoutePolyline.from_pairs([(0.0, 0.0), (0.0, 0.01)])
