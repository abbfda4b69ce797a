"""Error taxonomy shared by the store gateway, routing and dashboard layers."""

from __future__ import annotations


class SafetyMapError(Exception):
    """Base class; ``message`` is safe to show to the user."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(SafetyMapError):
    """Malformed review payload or incomplete route request. Not retried."""


class NotFoundError(SafetyMapError):
    """Deletion of an unknown review id."""

    def __init__(self, review_id: str) -> None:
        super().__init__(f"Review {review_id} was not found.")
        self.review_id = review_id


class NetworkError(SafetyMapError):
    """Store or routing provider unreachable. The user has to re-trigger."""


class RouteFailure(SafetyMapError):
    """Routing provider answered with a non-success status."""

    def __init__(self, status: str) -> None:
        super().__init__(f"Route failed: {status}")
        self.status = status
