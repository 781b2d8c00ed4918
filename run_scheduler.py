#!/usr/bin/env python3
"""
Background runner for the otg-sports-api sync scheduler.

Runs the Goalserve reconciliation loop as a standalone service, separate
from the API process. It can be run via systemd, supervisor, or directly.

Usage:
    python run_scheduler.py                      # Run in foreground
    python run_scheduler.py --sport soccer       # Sync only one sport
    python run_scheduler.py --once               # Run one cycle per sport and exit
    python run_scheduler.py --list-jobs          # Show the jobs that would be scheduled
"""
import asyncio
import argparse
import signal
import sys
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

from app.core.config import settings
from app.core.database import Database
from app.core.logging import configure_logging, get_logger
from app.core.scheduler import SyncScheduler
from app.core.sports import Sport, SPORT_CONFIG
from app.services.goalserve.client import GoalserveClient
from app.services.sync.orchestrator import SyncOrchestrator, run_once

configure_logging(level=settings.LOG_LEVEL, json_output=settings.LOG_JSON)
logger = get_logger(__name__)


class SchedulerRunner:
    """Runner for the sync scheduler."""

    def __init__(self, sports: List[str]):
        self.sports = sports
        self.scheduler: Optional[SyncScheduler] = None
        self.shutdown = asyncio.Event()

    async def start(self):
        """Start the scheduler and run until shutdown."""
        logger.info("🚀 Starting scheduler runner...")

        database = Database(settings.DATABASE_URL, echo=settings.SQL_ECHO).init()
        await asyncio.to_thread(database.ping)
        client = GoalserveClient.from_settings()

        self.scheduler = SyncScheduler(
            SyncOrchestrator(database, client, future_days=settings.SYNC_FUTURE_DAYS),
            self.sports,
            interval_seconds=settings.SYNC_INTERVAL_SECONDS,
            shutdown_grace_seconds=settings.SYNC_SHUTDOWN_GRACE_SECONDS,
        )
        await self.scheduler.start()

        logger.info("✅ Scheduler is now running")
        logger.info("Press Ctrl+C to stop")

        # Setup signal handlers for graceful shutdown
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._set_shutdown)

        try:
            await self.shutdown.wait()
        finally:
            await self.scheduler.stop()
            await client.close()
            database.dispose()
        logger.info("✅ Scheduler runner stopped")

    def _set_shutdown(self):
        """Set shutdown flag."""
        logger.info("⏹️  Shutdown signal received")
        self.shutdown.set()


async def run_single_pass(sports: List[str]) -> bool:
    """Run one sync cycle per sport and print the outcomes."""
    database = Database(settings.DATABASE_URL, echo=settings.SQL_ECHO).init()
    client = GoalserveClient.from_settings()
    try:
        outcomes = await run_once(database, client, sports, future_days=settings.SYNC_FUTURE_DAYS)
    finally:
        await client.close()
        database.dispose()

    ok = True
    for sport, outcome in outcomes.items():
        if outcome is None:
            print(f"❌ {sport}: sync failed (see logs)")
            ok = False
            continue
        print(
            f"✅ {sport}: {outcome.inserted} inserted, {outcome.updated} updated, "
            f"{len(outcome.failures)} failed, {len(outcome.rejected)} rejected "
            f"({outcome.windows_fetched} windows, {outcome.duration_ms}ms)"
        )
    return ok


def list_jobs(sports: List[str]):
    """Print the jobs the scheduler would register."""
    print("=" * 60)
    print("SCHEDULED SYNC JOBS")
    print("=" * 60)
    print()
    print(f"Total jobs: {len(sports)}")
    print()

    for sport in sports:
        name = SPORT_CONFIG[Sport(sport)]['name']
        print(f"📋 {name} Sync")
        print(f"   ID: {sport}_sync")
        print(f"   Schedule: every {settings.SYNC_INTERVAL_SECONDS}s (first run at start-up)")
        print(f"   Window: today + {settings.SYNC_FUTURE_DAYS} future day(s)")
        print()

    print("=" * 60)


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='Run the otg-sports-api Goalserve sync scheduler'
    )

    parser.add_argument(
        '--sport',
        action='append',
        choices=[s.value for s in Sport],
        help='Sport to sync (repeatable). Defaults to SYNC_SPORTS.'
    )

    parser.add_argument(
        '--once',
        action='store_true',
        help='Run one sync cycle per sport and exit'
    )

    parser.add_argument(
        '--list-jobs',
        action='store_true',
        help='List the sync jobs and exit'
    )

    args = parser.parse_args()
    sports = args.sport or settings.SYNC_SPORT_LIST

    if args.list_jobs:
        list_jobs(sports)
        return 0

    if args.once:
        return 0 if asyncio.run(run_single_pass(sports)) else 1

    runner = SchedulerRunner(sports)

    try:
        asyncio.run(runner.start())
    except KeyboardInterrupt:
        logger.info("🛑 Received interrupt, shutting down...")
        return 0
    except Exception as e:
        logger.error(f"❌ Scheduler error: {e}")
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
