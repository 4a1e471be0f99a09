"""
Slack incoming-webhook delivery.

to_slack_payload() serializes an OutboundMessage into the legacy attachment format;
SlackWebhook.send() posts it once and raises DispatchError on any failure so the
caller's invocation fails visibly. Retries belong to whatever invoked us.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from config import WEBHOOK_TIMEOUT_SECONDS
from models import OutboundMessage
from notifier.errors import ConfigurationError, DispatchError

logger = logging.getLogger(__name__)


def to_slack_payload(message: OutboundMessage) -> Dict[str, Any]:
    attachment: Dict[str, Any] = {
        "fallback": message.fallback or message.title,
        "color": message.color,
        "title": message.title,
        "fields": [
            {"title": f.name, "value": f.value, "short": f.inline}
            for f in message.fields
        ],
    }
    if message.pretext:
        attachment["pretext"] = message.pretext
    if message.link:
        attachment["title_link"] = message.link
    if message.footer:
        attachment["footer"] = message.footer
    if message.footer_icon:
        attachment["footer_icon"] = message.footer_icon
    if message.timestamp is not None:
        attachment["ts"] = int(message.timestamp.timestamp())
    return {"attachments": [attachment], "link_names": True}


class SlackWebhook:
    """
    Posts rendered messages to a Slack incoming webhook.

    A pre-built httpx.Client may be passed in (tests use one with a MockTransport);
    otherwise a short-lived client is created per send.
    """

    def __init__(self, url: str, timeout: float = WEBHOOK_TIMEOUT_SECONDS,
                 client: Optional[httpx.Client] = None):
        if not url:
            raise ConfigurationError("Slack webhook URL is empty")
        self.url = url
        self.timeout = timeout
        self._client = client

    def _post(self, client: httpx.Client, payload: Dict[str, Any]) -> httpx.Response:
        return client.post(self.url, json=payload, timeout=self.timeout)

    def send(self, message: OutboundMessage) -> None:
        payload = to_slack_payload(message)
        try:
            if self._client is not None:
                resp = self._post(self._client, payload)
            else:
                with httpx.Client() as c:
                    resp = self._post(c, payload)
        except httpx.HTTPError as e:
            raise DispatchError(f"Slack webhook request failed: {e}") from e

        if resp.is_error:
            body = resp.text[:200]
            raise DispatchError(
                f"Slack webhook returned HTTP {resp.status_code}: {body}",
                status_code=resp.status_code,
            )
        logger.info("Message sent to Slack: %s", message.fallback or message.title)
