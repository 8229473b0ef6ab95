"""Outbound text notifications for host-pulse."""

import json

import requests
import structlog

from hostpulse import logging as console
from hostpulse.config import NotificationsConfig

log = structlog.get_logger()


def post_webhook(url: str, text: str, timeout: float) -> None:
    """POST a Slack-style incoming-webhook message.

    The message is sent as the `payload` form field holding `{"text": ...}`.

    Raises:
        requests.RequestException: On transport errors or non-2xx responses.
    """
    body = json.dumps({"text": text})
    resp = requests.post(url, data={"payload": body}, timeout=timeout)
    try:
        resp.raise_for_status()
    finally:
        resp.close()


class Notifier:
    """Sends host reports to a webhook, or to the log when none is set."""

    def __init__(self, config: NotificationsConfig):
        self.config = config

    def notify(self, hostname: str, text: str) -> bool:
        """Deliver a notification.

        Args:
            hostname: Host the report is about
            text: Message body

        Returns:
            True if the message was delivered (or logged in place of delivery)
        """
        if not self.config.slack_url:
            log.info("notification_logged", hostname=hostname, text=text)
            console.notification_fallback(text)
            return True

        message = f"report from host {hostname}\n{text}"
        try:
            post_webhook(self.config.slack_url, message, self.config.timeout)
        except (requests.RequestException, TypeError, ValueError) as e:
            log.warning("notification_failed", error=str(e), text=text)
            console.notification_failed(str(e))
            return False

        log.info("notification_sent", hostname=hostname)
        return True
