"""Interval scheduling of monitor ticks."""

from typing import Any, Dict, Optional

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .monitor import SignerMonitor


logger = structlog.get_logger(__name__)


class MonitorScheduler:
    """Runs ``SignerMonitor.run_tick`` every ``interval_seconds`` using APScheduler.

    Ticks never overlap: the job allows a single running instance, so a tick
    that comes due while the previous one is still in flight is skipped.
    """

    JOB_ID = "signer_checks"

    def __init__(
        self,
        monitor: SignerMonitor,
        interval_seconds: int,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        self.monitor = monitor
        self.interval_seconds = int(interval_seconds)
        self.scheduler = scheduler or AsyncIOScheduler()
        self.running = False
        self.ticks_completed = 0
        self.ticks_failed = 0

    def start(self) -> None:
        """Register the tick job and start the scheduler (requires a running event loop)."""
        if self.running:
            logger.warning("Scheduler already running")
            return

        self.scheduler.add_job(
            func=self.run_tick_job,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=self.JOB_ID,
            name="Signer stake and chain health checks",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self.scheduler.start()
        self.running = True
        logger.info("Job scheduler started", job_id=self.JOB_ID, interval_seconds=self.interval_seconds)

    def stop(self) -> None:
        if not self.running:
            return
        self.scheduler.shutdown(wait=False)
        self.running = False
        logger.info("Job scheduler stopped")

    async def run_tick_job(self) -> None:
        """Scheduler entry point; a failing tick never cancels later ticks."""
        try:
            await self.monitor.run_tick()
            self.ticks_completed += 1
        except Exception as e:
            self.ticks_failed += 1
            logger.exception("Tick failed", error=str(e))

    def get_status(self) -> Dict[str, Any]:
        job = self.scheduler.get_job(self.JOB_ID)
        next_run = getattr(job, "next_run_time", None) if job is not None else None
        return {
            "running": self.running,
            "interval_seconds": self.interval_seconds,
            "next_run": next_run.isoformat() if next_run else None,
            "ticks_completed": self.ticks_completed,
            "ticks_failed": self.ticks_failed,
        }
