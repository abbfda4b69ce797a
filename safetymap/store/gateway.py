"""HTTP client for the review store service."""

from __future__ import annotations

import logging
from typing import List, Optional

import requests

from safetymap.common.errors import NetworkError, NotFoundError, ValidationError
from safetymap.common.models import Review, ReviewDraft

logger = logging.getLogger(__name__)


class ReviewStoreGateway:
    """Normalises review records to and from the CRUD store."""

    def __init__(
        self,
        base_url: str,
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def list_reviews(self) -> List[Review]:
        """All reviews, newest first."""

        response = self._request("GET", "/reviews", headers={"Accept": "application/json"})
        self._raise_for_server_error(response)
        try:
            payload = response.json() if response.status_code == 200 else None
        except ValueError:
            payload = None
        if not isinstance(payload, list):
            raise NetworkError("Failed to load reviews from server.")
        reviews = [Review.from_wire(item) for item in payload]
        reviews.sort(key=lambda r: r.timestamp, reverse=True)
        return reviews

    def create_review(self, draft: ReviewDraft) -> Review:
        draft.validate()
        response = self._request(
            "POST",
            "/reviews",
            json=draft.to_wire(),
            headers={"Accept": "application/json"},
        )
        if response.status_code == 400:
            raise ValidationError(_error_text(response, "Invalid payload"))
        self._raise_for_server_error(response)
        if response.status_code != 201:
            raise NetworkError(f"Failed to save review (HTTP {response.status_code}).")
        try:
            body = response.json()
        except ValueError as exc:
            logger.error("Review store answered 201 with a non-JSON body")
            raise NetworkError("Failed to save review (unreadable response).") from exc
        return Review.from_wire(body)

    def delete_review(self, review_id: str) -> None:
        response = self._request("DELETE", f"/reviews/{review_id}")
        if response.status_code == 404:
            raise NotFoundError(str(review_id))
        self._raise_for_server_error(response)
        if response.status_code != 204:
            raise NetworkError(f"Failed to delete review (HTTP {response.status_code}).")

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            return self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            logger.error("%s %s failed: %s", method, url, exc)
            raise NetworkError(f"Review store unreachable at {self.base_url}.") from exc

    @staticmethod
    def _raise_for_server_error(response: requests.Response) -> None:
        if response.status_code >= 500:
            logger.error("Review store returned HTTP %s", response.status_code)
            raise NetworkError(f"Review store error (HTTP {response.status_code}).")


def _error_text(response: requests.Response, default: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return default
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return default
