from unittest.mock import Mock

import requests

from safetymap.store.notifier import AlertNotifier, alert_payload


def test_payload_shape(make_review):
    review = make_review(lat=1.5, lng=2.5, address="Gate 4", description="Open manhole")

    assert alert_payload(review) == {"lat": 1.5, "lng": 2.5, "location": "Gate 4", "description": "Open manhole"}


def test_notify_posts_json():
    session = Mock()
    notifier = AlertNotifier("http://alerts.test/review", session=session, timeout=2)

    assert notifier.notify({"lat": 1.0}) is True
    session.post.assert_called_once_with("http://alerts.test/review", json={"lat": 1.0}, timeout=2)


def test_notify_swallows_failures(caplog):
    session = Mock()
    session.post.return_value.raise_for_status.side_effect = requests.HTTPError("502")
    notifier = AlertNotifier("http://alerts.test/review", session=session)

    assert notifier.notify({"lat": 1.0}) is False
    assert "Alert service post failed" in caplog.text


def test_disabled_notifier_does_nothing():
    session = Mock()
    notifier = AlertNotifier(None, session=session)

    assert not notifier.enabled
    assert notifier.notify({"lat": 1.0}) is False
    session.post.assert_not_called()
