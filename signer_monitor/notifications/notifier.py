"""Throttled alert delivery."""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import httpx
import structlog

from ..errors import DispatchError
from .discord import WebhookConfig, post_webhook_message
from .throttle import NotificationThrottle


logger = structlog.get_logger(__name__)


def _wall_clock_ms() -> int:
    return int(time.time() * 1000)


class DispatchStatus(str, Enum):
    SENT = "sent"
    SUPPRESSED = "suppressed"
    FAILED = "failed"


@dataclass(frozen=True)
class DispatchOutcome:
    status: DispatchStatus
    reason: Optional[str] = None

    @property
    def sent(self) -> bool:
        return self.status is DispatchStatus.SENT


class Notifier:
    """Sends alerts to the webhook, at most once per key per throttle window."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        webhook: WebhookConfig,
        throttle: NotificationThrottle,
        clock: Optional[Callable[[], int]] = None,
    ):
        """Initialize the notifier.

        Args:
            http_client: Shared client used for the webhook POST
            webhook: Destination webhook
            throttle: Suppression state, owned by the caller
            clock: Returns wall-clock milliseconds (defaults to ``time.time``)
        """
        self.http_client = http_client
        self.webhook = webhook
        self.throttle = throttle
        self.clock = clock or _wall_clock_ms

    async def alert(self, key: str, message: str) -> DispatchOutcome:
        """Deliver ``message`` under throttle bucket ``key``.

        Returns:
            SUPPRESSED without any network call when the key is inside its
            window, SENT after a successful POST, FAILED otherwise. Failed
            deliveries are not recorded, so the next check may retry.
        """
        now = self.clock()
        if not self.throttle.allow(key, now):
            logger.info(
                "Suppressing notification, window not elapsed",
                alert_key=key,
                last_sent_ms=self.throttle.last_sent(key),
            )
            return DispatchOutcome(DispatchStatus.SUPPRESSED)

        logger.info("Sending notification", alert_key=key)
        try:
            status_code = await post_webhook_message(self.http_client, self.webhook, message)
        except DispatchError as e:
            logger.error("Failed to send notification", alert_key=key, error=str(e))
            return DispatchOutcome(DispatchStatus.FAILED, reason=str(e))

        self.throttle.record(key, now)
        logger.info("Notification sent", alert_key=key, status_code=status_code)
        return DispatchOutcome(DispatchStatus.SENT)
