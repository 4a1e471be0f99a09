"""
AWS Lambda entrypoint: SNS (or EventBridge) event in, Slack notifications out.

Environment:
- WEBHOOK_URL: Slack incoming webhook (required)
- LOG_LEVEL: logging level, default INFO
- SEVERITY_THRESHOLDS: optional "low,medium,high,critical" lower bounds
"""

import logging
import os
from typing import Any, Dict

from config import WEBHOOK_URL_ENV, severity_bands_from_env
from notifier.errors import ConfigurationError
from notifier.pipeline import build_messages
from notifier.slack import SlackWebhook
from utils import configure_logging

logger = logging.getLogger(__name__)


def handler(event: Dict[str, Any], context: Any = None, webhook: SlackWebhook = None) -> Dict[str, Any]:
    """
    Render every finding in `event` and post each to Slack.

    Every finding is rendered before anything is sent, so a malformed record fails the
    invocation with no partial notifications. Dispatch failures propagate as well.
    """
    configure_logging()

    try:
        bands = severity_bands_from_env()
    except ValueError as e:
        raise ConfigurationError(str(e)) from e

    if webhook is None:
        url = os.environ.get(WEBHOOK_URL_ENV, "")
        if not url:
            raise ConfigurationError(f"{WEBHOOK_URL_ENV} environment variable not set")
        webhook = SlackWebhook(url)

    messages = build_messages(event, bands)
    logger.info("Rendered %d finding notification(s)", len(messages))

    for message in messages:
        logger.debug("Sending %s", message.fallback)
        webhook.send(message)

    return {"message": "OK", "sent": len(messages)}
