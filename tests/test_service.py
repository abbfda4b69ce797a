from unittest.mock import Mock

import pytest
import requests
from fastapi.testclient import TestClient

from safetymap.store.notifier import AlertNotifier
from safetymap.store.service import ReviewRepository, create_app

VALID = {
    "lat": 17.385,
    "lng": 78.4867,
    "safetyRating": 4,
    "infrastructureRating": 2,
    "description": "No streetlights after 9pm",
    "address": "Abids Road",
}


@pytest.fixture
def notifier():
    notifier = Mock(spec=AlertNotifier)
    notifier.enabled = True
    return notifier


@pytest.fixture
def client(notifier):
    return TestClient(create_app(ReviewRepository(), notifier))


def test_health(client):
    response = client.get("/")

    assert response.status_code == 200
    assert "API is working" in response.text


def test_create_assigns_id_and_timestamp(client, notifier):
    response = client.post("/reviews", json=VALID)

    assert response.status_code == 201
    body = response.json()
    assert body["id"] == "1"
    assert body["safetyRating"] == 4
    assert body["address"] == "Abids Road"
    assert body["timestamp"].endswith("Z")
    notifier.notify.assert_called_once_with(
        {"lat": 17.385, "lng": 78.4867, "location": "Abids Road", "description": "No streetlights after 9pm"}
    )


def test_create_keeps_given_timestamp(client):
    body = client.post("/reviews", json={**VALID, "timestamp": "2024-01-02T03:04:05Z"}).json()

    assert body["timestamp"] == "2024-01-02T03:04:05Z"


@pytest.mark.parametrize(
    "override",
    [
        {"lat": "17.3"},
        {"lng": None},
        {"safetyRating": True},
        {"infrastructureRating": "2"},
        {"description": 42},
        {"safetyRating": 4.9},
        {"infrastructureRating": 2.0},
    ],
)
def test_invalid_payload_is_400(client, notifier, override):
    response = client.post("/reviews", json={**VALID, **override})

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid payload"}
    notifier.notify.assert_not_called()


def test_missing_field_is_400(client):
    payload = dict(VALID)
    del payload["description"]

    assert client.post("/reviews", json=payload).status_code == 400


@pytest.mark.parametrize("literal", ["NaN", "Infinity", "-Infinity"])
def test_non_finite_coordinates_are_400(client, notifier, literal):
    body = (
        '{"lat": ' + literal + ', "lng": 78.4, "safetyRating": 4, '
        '"infrastructureRating": 2, "description": "Broken streetlight"}'
    )

    response = client.post("/reviews", content=body, headers={"Content-Type": "application/json"})

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid payload"}
    assert client.get("/reviews").json() == []
    notifier.notify.assert_not_called()


def test_list_is_newest_first(client):
    client.post("/reviews", json={**VALID, "timestamp": "2024-01-01T00:00:00Z"})
    client.post("/reviews", json={**VALID, "timestamp": "2024-03-01T00:00:00Z"})
    client.post("/reviews", json={**VALID, "timestamp": "2024-02-01T00:00:00Z"})

    ids = [r["id"] for r in client.get("/reviews").json()]

    assert ids == ["2", "3", "1"]


def test_delete_then_not_found(client):
    review_id = client.post("/reviews", json=VALID).json()["id"]

    assert client.delete(f"/reviews/{review_id}").status_code == 204
    assert client.get("/reviews").json() == []
    missing = client.delete(f"/reviews/{review_id}")
    assert missing.status_code == 404
    assert missing.json() == {"error": "Not found"}


def test_alert_failure_does_not_affect_response():
    session = Mock()
    session.post.side_effect = requests.ConnectionError("sidecar down")
    notifier = AlertNotifier("http://alerts.test/review", session=session)
    client = TestClient(create_app(ReviewRepository(), notifier))

    response = client.post("/reviews", json=VALID)

    assert response.status_code == 201
    session.post.assert_called_once()
