"""
Sync scheduler for otg-sports-api.

Runs one reconciliation cycle per sport on a fixed interval, plus one
immediate cycle per sport as soon as the scheduler starts.

- Sports are independent jobs and may run concurrently.
- A sport never runs two cycles at once: a tick that arrives while the
  previous cycle is still going is skipped, not queued.
- ``stop()`` gives in-flight cycles a bounded grace period, then cancels them.

Scheduler: APScheduler (lightweight, FastAPI-compatible)
"""
import asyncio
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.core import metrics
from app.core.logging import get_logger
from app.core.sports import Sport, SPORT_CONFIG
from app.services.goalserve.exceptions import FetchError
from app.services.sync.orchestrator import SyncOrchestrator, SyncOutcome

logger = get_logger(__name__)


class SyncScheduler:
    """
    Scheduler driving the sync orchestrator for each configured sport.

    Usage:
        scheduler = SyncScheduler(orchestrator, ["soccer", "basketball"])
        await scheduler.start()
        ...
        await scheduler.stop()
    """

    def __init__(
        self,
        orchestrator: SyncOrchestrator,
        sports: Iterable[str],
        interval_seconds: int = 60,
        shutdown_grace_seconds: float = 10.0,
    ):
        self.orchestrator = orchestrator
        self.sports = [Sport(s) for s in sports]
        self.interval_seconds = interval_seconds
        self.shutdown_grace_seconds = shutdown_grace_seconds
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.running = False
        self._in_flight: Dict[Sport, asyncio.Task] = {}

    async def start(self):
        """Start the scheduler."""
        if self.running:
            logger.warning("Scheduler already running")
            return

        logger.info("Starting sync scheduler...")

        self.scheduler = AsyncIOScheduler(
            timezone='UTC',
            job_defaults={
                'coalesce': True,  # Combine missed runs into one
                'max_instances': 1,  # Only one instance of each job
                'misfire_grace_time': self.interval_seconds,
            }
        )

        for sport in self.sports:
            self._schedule_sport_sync(sport)

        self.scheduler.start()
        self.running = True
        metrics.update_scheduler_metrics(self)

        logger.info("✅ Scheduler started with %d jobs", len(self.scheduler.get_jobs()))
        self._log_scheduled_jobs()

    async def stop(self):
        """
        Stop the scheduler.

        No new cycle starts once this is called. Cycles still running get
        ``shutdown_grace_seconds`` to finish and are cancelled after that.
        """
        if not self.running:
            return

        logger.info("Stopping scheduler...")
        self.running = False
        if self.scheduler is not None:
            self.scheduler.pause()

        pending = [task for task in self._in_flight.values() if not task.done()]
        if pending:
            logger.info(f"Waiting up to {self.shutdown_grace_seconds}s for {len(pending)} sync cycle(s)")
            _, not_done = await asyncio.wait(pending, timeout=self.shutdown_grace_seconds)
            for task in not_done:
                task.cancel()
            if not_done:
                await asyncio.gather(*not_done, return_exceptions=True)
                logger.info(f"Cancelled {len(not_done)} sync cycle(s) after grace period")

        if self.scheduler is not None:
            self.scheduler.shutdown(wait=False)
        metrics.update_scheduler_metrics(None)
        logger.info("✅ Scheduler stopped")

    def is_cycle_running(self, sport: Sport) -> bool:
        task = self._in_flight.get(Sport(sport))
        return task is not None and not task.done()

    async def run_cycle(self, sport: Sport) -> Optional[SyncOutcome]:
        """
        Run one cycle for a sport unless one is already in flight.

        Failures are logged here; the next tick is the retry.

        Returns:
            The cycle outcome, or None if skipped or failed
        """
        sport = Sport(sport)
        if self.is_cycle_running(sport):
            logger.warning(f"Skipping {sport.value} sync: previous cycle still running")
            metrics.sync_cycles_total.labels(sport=sport.value, result="skipped").inc()
            return None

        self._in_flight[sport] = asyncio.current_task()
        try:
            outcome = await self.orchestrator.sync_sport(sport)
            logger.info(
                f"✅ {sport.value} sync: {outcome.inserted} inserted, {outcome.updated} updated, "
                f"{len(outcome.failures)} failed ({outcome.duration_ms}ms)"
            )
            return outcome
        except asyncio.CancelledError:
            logger.warning(f"⚠️ {sport.value} sync cancelled before completion")
            raise
        except FetchError as e:
            logger.error(f"❌ {sport.value} sync failed: {e}")
            return None
        except Exception as e:
            logger.exception(f"❌ {sport.value} sync crashed: {e}")
            return None
        finally:
            self._in_flight.pop(sport, None)

    def _schedule_sport_sync(self, sport: Sport):
        """
        Schedule: Reconcile one sport's feed.

        Frequency: Every ``interval_seconds``, first run immediately
        """
        if self.scheduler is None:
            return

        name = SPORT_CONFIG[sport]['name']

        @self.scheduler.scheduled_job(
            trigger=IntervalTrigger(seconds=self.interval_seconds, timezone='UTC'),
            id=f'{sport.value}_sync',
            name=f'{name} Sync',
            next_run_time=datetime.now(timezone.utc),
        )
        async def sync_job():
            try:
                await self.run_cycle(sport)
            except asyncio.CancelledError:
                # Cancelled by stop(); run_cycle already logged it
                return

        logger.info(f"Scheduled: {name} sync (every {self.interval_seconds}s, first run now)")

    def _log_scheduled_jobs(self):
        """Log all scheduled jobs for visibility."""
        for job in self.scheduler.get_jobs():
            next_run = job.next_run_time
            next_run_str = next_run.strftime('%Y-%m-%d %H:%M:%S UTC') if next_run else 'Pending'
            logger.info(f"  • {job.name} (id={job.id}, next run: {next_run_str})")
