"""Tick orchestration: one pass over the health check and every configured signer."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, List, Optional, TypeVar

import httpx
import structlog

from .chain_api import Cycle, fetch_current_cycle
from .checks.health import HealthCheckResult, check_health
from .checks.signer import SignerCheckResult, check_signer
from .config import MonitorConfig
from .notifications.notifier import Notifier
from .stake import format_ustx


logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass
class TickReport:
    started_at: datetime
    cycle: Optional[Cycle] = None
    health: Optional[HealthCheckResult] = None
    signer_results: List[SignerCheckResult] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    duration_ms: float = 0.0

    @property
    def alerts_sent(self) -> int:
        outcomes = [r.alert for r in self.signer_results if r.alert is not None]
        if self.health is not None:
            outcomes.extend(self.health.alerts)
        return sum(1 for o in outcomes if o.sent)

    def summary(self) -> dict[str, Any]:
        return {
            "cycle_id": self.cycle.id if self.cycle else None,
            "signers_checked": len(self.signer_results),
            "signers_failing": sum(1 for r in self.signer_results if not r.ok),
            "health_ok": self.health.ok if self.health is not None else None,
            "alerts_sent": self.alerts_sent,
            "errors": len(self.errors),
            "duration_ms": round(self.duration_ms, 1),
        }


class SignerMonitor:
    """Runs every check for one tick and collects the results."""

    def __init__(self, config: MonitorConfig, http_client: httpx.AsyncClient, notifier: Notifier):
        self.config = config
        self.http_client = http_client
        self.notifier = notifier

    async def run_tick(self) -> TickReport:
        """Execute one tick.

        The health check (when an RPC URL is configured) runs alongside the
        cycle fetch and the signer fan-out. A failed cycle fetch skips the
        signer checks for this tick only.
        """
        report = TickReport(started_at=datetime.now(timezone.utc))
        loop = asyncio.get_running_loop()
        started = loop.time()

        jobs: list[Awaitable[Any]] = [self._run_signer_checks(report)]
        if self.config.health_check_enabled:
            jobs.append(self._run_health_check(report))
        else:
            logger.debug("RPC URL not configured, skipping health check")
        await asyncio.gather(*jobs)

        report.duration_ms = (loop.time() - started) * 1000.0
        logger.info("Tick complete", **report.summary())
        return report

    async def _guarded(self, label: str, aw: Awaitable[T], report: TickReport) -> Optional[T]:
        try:
            return await aw
        except Exception as e:
            logger.exception("Check raised unexpectedly", check=label)
            report.errors.append(f"{label}: {type(e).__name__}: {e}")
            return None

    async def _run_health_check(self, report: TickReport) -> None:
        report.health = await self._guarded(
            "health",
            check_health(
                http_client=self.http_client,
                notifier=self.notifier,
                rpc_url=self.config.rpc_url,
                api_url=self.config.api_url,
            ),
            report,
        )

    async def _run_signer_checks(self, report: TickReport) -> None:
        logger.info("Checking current PoX cycle")
        cycle = await self._guarded("cycle", fetch_current_cycle(self.http_client, self.config.api_url), report)
        if cycle is None:
            logger.warning("No current cycle available, skipping signer checks for this tick")
            report.errors.append("cycle: unavailable")
            return
        report.cycle = cycle
        logger.info(
            "Current PoX cycle",
            cycle_id=cycle.id,
            min_threshold=format_ustx(cycle.min_threshold_ustx),
        )

        semaphore = asyncio.Semaphore(self.config.check_concurrency)

        async def _check(key: str) -> Optional[SignerCheckResult]:
            async with semaphore:
                logger.debug("Checking signer", signer=key)
                return await self._guarded(
                    f"signer:{key}",
                    check_signer(
                        http_client=self.http_client,
                        notifier=self.notifier,
                        api_url=self.config.api_url,
                        signer_public_key=key,
                        cycle_id=cycle.id,
                        min_threshold_ustx=cycle.min_threshold_ustx,
                    ),
                    report,
                )

        results = await asyncio.gather(*(_check(key) for key in self.config.signer_public_keys))
        report.signer_results = [r for r in results if r is not None]
