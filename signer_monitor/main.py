from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
import sys
from urllib.parse import urlsplit

import httpx
import structlog
from dotenv import load_dotenv

from signer_monitor import __version__
from signer_monitor.config import MonitorConfig, load_config
from signer_monitor.errors import ConfigError
from signer_monitor.monitor import SignerMonitor
from signer_monitor.notifications.discord import WebhookConfig, redact_webhook_url
from signer_monitor.notifications.notifier import Notifier
from signer_monitor.notifications.throttle import NotificationThrottle
from signer_monitor.scheduler import MonitorScheduler


logger = structlog.get_logger("signer_monitor")
http_logger = structlog.get_logger("signer_monitor.http")

USER_AGENT = f"Stacks Signer Monitor/{__version__}"


def configure_logging(level: str) -> None:
    level_no = getattr(logging, str(level).upper(), logging.INFO)
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level_no),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
    # httpx logs full URLs at INFO, which would leak the webhook token.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _loggable_url(url: httpx.URL) -> str:
    if "/webhooks/" in url.path:
        return redact_webhook_url(str(url))
    parts = urlsplit(str(url))
    return f"{parts.scheme}://{parts.netloc}{parts.path}"


async def _log_request(request: httpx.Request) -> None:
    http_logger.debug("Starting request", method=request.method, url=_loggable_url(request.url))


async def _log_response(response: httpx.Response) -> None:
    http_logger.debug(
        "Response",
        method=response.request.method,
        url=_loggable_url(response.request.url),
        status_code=response.status_code,
    )


def build_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        headers={"User-Agent": USER_AGENT},
        follow_redirects=True,
        event_hooks={"request": [_log_request], "response": [_log_response]},
    )


def _log_startup(config: MonitorConfig, throttle: NotificationThrottle) -> None:
    logger.info("Starting Stacks Signer Monitor", version=__version__)
    logger.info("Signer public keys", signers=config.signer_public_keys)
    logger.info("Using API URL", api_url=config.api_url)
    if config.health_check_enabled:
        logger.info("Using RPC URL, health check enabled", rpc_url=config.rpc_url)
    else:
        logger.info("RPC URL not set, health check disabled")
    logger.info("Discord webhook", url=redact_webhook_url(config.discord_webhook_url))
    logger.info("Notification history", last_sent=throttle.snapshot())


async def _wait_for_shutdown() -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except (NotImplementedError, RuntimeError):
            # Not available on this platform; rely on KeyboardInterrupt.
            pass
    await stop.wait()


async def run_monitor(config: MonitorConfig, *, once: bool = False) -> int:
    throttle = NotificationThrottle()
    _log_startup(config, throttle)

    async with build_http_client() as http_client:
        notifier = Notifier(
            http_client=http_client,
            webhook=WebhookConfig(url=config.discord_webhook_url),
            throttle=throttle,
        )
        monitor = SignerMonitor(config, http_client, notifier)

        if once or not config.repeat_checks:
            logger.info("Repeat checks disabled, running once then will exit")
            await monitor.run_tick()
            return 0

        logger.info("Repeat checks enabled", interval_seconds=config.check_interval)
        scheduler = MonitorScheduler(monitor, config.check_interval)
        scheduler.start()
        try:
            await _wait_for_shutdown()
        finally:
            status = scheduler.get_status()
            scheduler.stop()
            logger.info(
                "Scheduler stopped",
                ticks_completed=status["ticks_completed"],
                ticks_failed=status["ticks_failed"],
            )
        logger.info("Shutting down")
        return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Stacks signer stake and chain health monitor")
    parser.add_argument(
        "--config",
        default=None,
        help="Optional YAML config file (environment variables take precedence)",
    )
    parser.add_argument("--once", action="store_true", help="Run one check cycle and exit")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (DEBUG, INFO, WARNING, ...); DEBUG also logs HTTP requests",
    )
    args = parser.parse_args(argv)

    load_dotenv(".env")
    configure_logging(args.log_level or os.getenv("LOG_LEVEL", "INFO"))

    try:
        config = load_config(args.config)
    except ConfigError as e:
        logger.error("Configuration error", error=str(e))
        return 1

    if args.log_level is None and config.log_level:
        configure_logging(config.log_level)

    try:
        return asyncio.run(run_monitor(config, once=bool(args.once)))
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    sys.exit(main())
