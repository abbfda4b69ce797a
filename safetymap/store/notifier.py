"""One-way ping to the alerts sidecar after a review is stored."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from safetymap.common.models import Review

logger = logging.getLogger(__name__)


def alert_payload(review: Review) -> Dict[str, Any]:
    # the sidecar buckets by lat/lng; location is informational
    return {
        "lat": review.lat,
        "lng": review.lng,
        "location": review.address,
        "description": review.description or "",
    }


class AlertNotifier:
    """Fire-and-forget POST. Failures are logged, never raised."""

    def __init__(
        self,
        url: Optional[str],
        session: Optional[requests.Session] = None,
        timeout: float = 5.0,
    ) -> None:
        self.url = url
        self.session = session or requests.Session()
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    def notify(self, payload: Dict[str, Any]) -> bool:
        if not self.enabled:
            return False
        try:
            response = self.session.post(self.url, json=payload, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.error("Alert service post failed: %s", exc)
            return False
        logger.debug("Alert service accepted review at (%s, %s)", payload.get("lat"), payload.get("lng"))
        return True
