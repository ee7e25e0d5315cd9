from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlsplit, urlunsplit

import httpx

from ..errors import DispatchError


DISCORD_MAX_CONTENT_LEN = 2000


@dataclass(frozen=True)
class WebhookConfig:
    url: str
    timeout_seconds: float = 15.0


def redact_webhook_url(url: str) -> str:
    """
    Webhook URLs embed their secret token in the path: keep only scheme and host.
    """
    s = (url or "").strip()
    if not s:
        return s
    try:
        parts = urlsplit(s)
    except ValueError:
        return "<redacted>"
    if not parts.netloc:
        return "<redacted>"
    return urlunsplit((parts.scheme, parts.netloc, "/<redacted>", "", ""))


def clip_webhook_content(text: str, *, max_len: int = DISCORD_MAX_CONTENT_LEN) -> str:
    s = (text or "").strip()
    max_len = max(1, int(max_len))
    if len(s) <= max_len:
        return s
    return s[: max_len - 1].rstrip() + "…"


async def post_webhook_message(client: httpx.AsyncClient, config: WebhookConfig, text: str) -> int:
    """POST one message to the webhook and return the HTTP status code."""
    payload = {"content": clip_webhook_content(text)}
    try:
        resp = await client.post(config.url, json=payload, timeout=config.timeout_seconds)
        resp.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise DispatchError(f"webhook returned HTTP {e.response.status_code}") from e
    except httpx.HTTPError as e:
        msg = f"{type(e).__name__}: {e}"
        if config.url:
            msg = msg.replace(config.url, redact_webhook_url(config.url))
        raise DispatchError(msg) from e
    return resp.status_code
