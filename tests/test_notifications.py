"""Tests for notification system."""

import json
from unittest.mock import MagicMock, patch

import pytest
import requests

from hostpulse.config import NotificationsConfig
from hostpulse.notifications import Notifier, post_webhook


def test_notifier_logs_without_url():
    """No webhook configured: the message is logged, never posted."""
    notifier = Notifier(NotificationsConfig(slack_url=""))

    with patch("hostpulse.notifications.post_webhook") as mock_post:
        assert notifier.notify("web-1", "[ALERT]: hot") is True
        mock_post.assert_not_called()


def test_notifier_posts_with_host_prefix():
    config = NotificationsConfig(slack_url="https://hooks.example.com/T/B/X", timeout=3.0)
    notifier = Notifier(config)

    with patch("hostpulse.notifications.post_webhook") as mock_post:
        assert notifier.notify("web-1", "[ALERT]: hot") is True

        mock_post.assert_called_once()
        url, text, timeout = mock_post.call_args.args
        assert url == config.slack_url
        assert text == "report from host web-1\n[ALERT]: hot"
        assert timeout == 3.0


def test_notifier_swallows_transport_errors():
    notifier = Notifier(NotificationsConfig(slack_url="https://hooks.example.com/x"))

    with patch(
        "hostpulse.notifications.post_webhook",
        side_effect=requests.ConnectionError("refused"),
    ):
        assert notifier.notify("web-1", "msg") is False


def test_notifier_swallows_timeouts():
    notifier = Notifier(NotificationsConfig(slack_url="https://hooks.example.com/x"))

    with patch("hostpulse.notifications.post_webhook", side_effect=requests.Timeout()):
        assert notifier.notify("web-1", "msg") is False


def test_post_webhook_sends_payload_form():
    resp = MagicMock()
    with patch("hostpulse.notifications.requests.post", return_value=resp) as mock_post:
        post_webhook("https://hooks.example.com/x", "hello", timeout=10.0)

    args, kwargs = mock_post.call_args
    assert args == ("https://hooks.example.com/x",)
    assert json.loads(kwargs["data"]["payload"]) == {"text": "hello"}
    assert kwargs["timeout"] == 10.0
    resp.raise_for_status.assert_called_once()
    resp.close.assert_called_once()


def test_post_webhook_raises_on_http_error():
    resp = MagicMock()
    resp.raise_for_status.side_effect = requests.HTTPError("500")
    with patch("hostpulse.notifications.requests.post", return_value=resp):
        with pytest.raises(requests.HTTPError):
            post_webhook("https://hooks.example.com/x", "hello", timeout=1.0)
    resp.close.assert_called_once()
