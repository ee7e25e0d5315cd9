"""Alert delivery: webhook transport, throttle and notifier."""

from .discord import (
    DISCORD_MAX_CONTENT_LEN,
    WebhookConfig,
    clip_webhook_content,
    post_webhook_message,
    redact_webhook_url,
)
from .notifier import DispatchOutcome, DispatchStatus, Notifier
from .throttle import ONE_DAY_MS, NotificationThrottle

__all__ = [
    # Webhook
    "DISCORD_MAX_CONTENT_LEN",
    "WebhookConfig",
    "clip_webhook_content",
    "post_webhook_message",
    "redact_webhook_url",
    # Throttle
    "ONE_DAY_MS",
    "NotificationThrottle",
    # Notifier
    "DispatchOutcome",
    "DispatchStatus",
    "Notifier",
]
