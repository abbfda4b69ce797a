"""Review store HTTP service (FastAPI)."""

from __future__ import annotations

import argparse
import itertools
import logging
import threading
from datetime import datetime
from typing import Dict, List, Optional, Union

from fastapi import BackgroundTasks, FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, ConfigDict, StrictFloat, StrictInt, StrictStr

from safetymap.common.config import load_config, resolve_config_path
from safetymap.common.logging_setup import configure_logging
from safetymap.common.models import Review, parse_timestamp, utcnow
from safetymap.store.notifier import AlertNotifier, alert_payload

logger = logging.getLogger(__name__)

Number = Union[StrictInt, StrictFloat]


class ReviewIn(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    lat: Number
    lng: Number
    safetyRating: StrictInt
    infrastructureRating: StrictInt
    description: StrictStr
    address: Optional[str] = None
    timestamp: Optional[datetime] = None


class ReviewRepository:
    """In-process review table. Handlers run in a worker pool, hence the lock."""

    def __init__(self) -> None:
        self._rows: Dict[str, Review] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def list(self) -> List[Review]:
        with self._lock:
            rows = list(self._rows.values())
        return sorted(rows, key=lambda r: r.timestamp, reverse=True)

    def insert(self, payload: ReviewIn) -> Review:
        timestamp = parse_timestamp(payload.timestamp) if payload.timestamp else utcnow()
        with self._lock:
            review = Review(
                id=str(next(self._ids)),
                lat=float(payload.lat),
                lng=float(payload.lng),
                safety_rating=payload.safetyRating,
                infrastructure_rating=payload.infrastructureRating,
                description=payload.description,
                address=payload.address or None,
                timestamp=timestamp,
            )
            self._rows[review.id] = review
        return review

    def delete(self, review_id: str) -> bool:
        with self._lock:
            return self._rows.pop(review_id, None) is not None


def create_app(
    repository: Optional[ReviewRepository] = None,
    notifier: Optional[AlertNotifier] = None,
) -> FastAPI:
    repository = repository or ReviewRepository()
    notifier = notifier or AlertNotifier(None)

    app = FastAPI(title="SafetyMap review store")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.repository = repository
    app.state.notifier = notifier

    @app.exception_handler(RequestValidationError)
    async def invalid_payload(_request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.info("Rejected review payload: %s", exc.errors())
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": "Invalid payload"})

    @app.get("/", response_class=PlainTextResponse)
    def health() -> str:
        return "API is working"

    @app.get("/reviews")
    def list_reviews() -> List[dict]:
        return [review.to_wire() for review in repository.list()]

    @app.post("/reviews", status_code=status.HTTP_201_CREATED)
    def create_review(payload: ReviewIn, background: BackgroundTasks) -> dict:
        saved = repository.insert(payload)
        logger.info("Stored review %s at (%.5f, %.5f)", saved.id, saved.lat, saved.lng)
        if notifier.enabled:
            background.add_task(notifier.notify, alert_payload(saved))
        return saved.to_wire()

    @app.delete("/reviews/{review_id}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_review(review_id: str) -> Response:
        if not repository.delete(review_id):
            return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": "Not found"})
        logger.info("Deleted review %s", review_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return app


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the SafetyMap review store service.")
    parser.add_argument("--config", default=None, help="Path to YAML config.")
    args = parser.parse_args()

    config = load_config(resolve_config_path(args.config))
    configure_logging(config.logging.level)

    import uvicorn

    notifier = AlertNotifier(config.server.alerts_url, timeout=config.server.alerts_timeout_seconds)
    app = create_app(notifier=notifier)
    logger.info("Review store listening on %s:%s", config.server.host, config.server.port)
    uvicorn.run(app, host=config.server.host, port=config.server.port)


if __name__ == "__main__":
    main()
