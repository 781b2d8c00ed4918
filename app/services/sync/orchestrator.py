"""Sync orchestrator: one fetch-and-reconcile cycle per sport.

A cycle:
1. Fetches today's feed. If that fails the whole cycle fails.
2. Reconciles every match of today's feed.
3. Fetches the next ``future_days`` days one by one (a failed day is
   skipped) and reconciles each day's matches.

Records that cannot be normalized or stored are logged and counted; they
never stop the cycle.
"""
import asyncio
import threading
import time
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, List, Optional

from app.core import metrics
from app.core.database import Database
from app.core.logging import get_logger, set_correlation_id, clear_correlation_id
from app.core.sports import Sport
from app.services.goalserve.client import FeedWindow, GoalserveClient
from app.services.goalserve.exceptions import FetchError
from app.services.goalserve.normalizer import normalize
from app.services.goalserve.records import NormalizedFeed, RejectedRecord
from app.services.sync.reconciler import MatchReconciler, PersistenceError, ReconcileResult

logger = get_logger(__name__)


@dataclass(frozen=True)
class RecordFailure:
    """A record whose persistence failed during a cycle."""
    match_id: int
    window: str
    error: str


@dataclass
class SyncOutcome:
    """Aggregate result of one sync cycle."""
    sport: str
    inserted: int = 0
    updated: int = 0
    failures: List[RecordFailure] = field(default_factory=list)
    rejected: List[RejectedRecord] = field(default_factory=list)
    windows_fetched: int = 0
    duration_ms: int = 0

    @property
    def processed(self) -> int:
        return self.inserted + self.updated

    def to_dict(self) -> Dict:
        return {
            'success': True,
            'sport': self.sport,
            'processed': self.processed,
            'inserted': self.inserted,
            'updated': self.updated,
            'failed': len(self.failures),
            'rejected': len(self.rejected),
            'windows_fetched': self.windows_fetched,
            'duration_ms': self.duration_ms,
        }


class SyncOrchestrator:
    """
    Coordinates feed fetching, normalization and reconciliation.

    The orchestrator owns no connection of its own: it receives the storage
    handle and the feed client, both of which may be shared by every sport.
    """

    def __init__(
        self,
        database: Database,
        client: GoalserveClient,
        future_days: int = 7,
        today: Callable[[], date] = date.today,
    ):
        """
        Initialize the sync orchestrator.

        Args:
            database: Initialized storage handle
            client: Goalserve client (its request pacing is shared)
            future_days: How many days ahead to sync after today, 0..7
            today: Reference-date provider for year inference in dates
        """
        if not 0 <= future_days <= 7:
            raise ValueError(f"future_days must be between 0 and 7, got {future_days}")
        self.database = database
        self.client = client
        self.future_days = future_days
        self._today = today

    async def sync_sport(self, sport: Sport) -> SyncOutcome:
        """
        Run one full cycle for a sport.

        Returns:
            SyncOutcome with insert/update counts and per-record failures

        Raises:
            FetchError: Today's feed could not be fetched
        """
        sport = Sport(sport)
        token = set_correlation_id(f"sync-{sport.value}-{uuid.uuid4().hex[:8]}")
        started = time.monotonic()
        outcome = SyncOutcome(sport=sport.value)
        logger.info(f"Starting {sport.value} sync")

        try:
            try:
                today_scores = await self.client.fetch(sport, FeedWindow.today())
            except FetchError as e:
                metrics.sync_cycles_total.labels(sport=sport.value, result="failed").inc()
                logger.error(f"{sport.value} sync failed, today's feed unavailable: {e}")
                raise

            outcome.windows_fetched += 1
            await self._apply(sport, FeedWindow.today(), today_scores, outcome)

            if self.future_days:
                for window, scores in await self.client.fetch_days(sport, "future", self.future_days):
                    outcome.windows_fetched += 1
                    await self._apply(sport, window, scores, outcome)

            outcome.duration_ms = int((time.monotonic() - started) * 1000)
            metrics.sync_cycles_total.labels(sport=sport.value, result="success").inc()
            metrics.sync_cycle_duration_seconds.labels(sport=sport.value).observe(outcome.duration_ms / 1000)
            metrics.record_sync_outcome(
                sport.value,
                inserted=outcome.inserted,
                updated=outcome.updated,
                failed=len(outcome.failures),
                rejected=len(outcome.rejected),
            )

            logger.info(
                f"{sport.value} sync completed: {outcome.inserted} inserted, {outcome.updated} updated, "
                f"{len(outcome.failures)} failed, {len(outcome.rejected)} rejected "
                f"({outcome.windows_fetched} windows, {outcome.duration_ms}ms)"
            )
            return outcome
        finally:
            clear_correlation_id(token)

    async def _apply(self, sport: Sport, window: FeedWindow, scores: Dict, outcome: SyncOutcome) -> None:
        feed = normalize(sport, scores, today=self._today())
        outcome.rejected.extend(feed.rejected)

        # Storage calls are blocking; keep them off the event loop
        stop = threading.Event()
        worker = asyncio.ensure_future(asyncio.to_thread(self._reconcile_feed, sport, window, feed, outcome, stop))
        try:
            await asyncio.shield(worker)
        except asyncio.CancelledError:
            # The thread cannot be interrupted; let it finish its current record
            stop.set()
            await worker
            raise

    def _reconcile_feed(
        self,
        sport: Sport,
        window: FeedWindow,
        feed: NormalizedFeed,
        outcome: SyncOutcome,
        stop: Optional[threading.Event] = None,
    ) -> None:
        db = self.database.session()
        try:
            reconciler = MatchReconciler(sport, db)
            for category, record in feed.matches:
                if stop is not None and stop.is_set():
                    logger.warning(f"{sport.value} sync abandoned mid-window ({window})")
                    return

                try:
                    result = reconciler.reconcile(category, record)
                except PersistenceError as e:
                    logger.error(f"Failed to store {sport.value} match {e.match_id} ({window}): {e}")
                    outcome.failures.append(RecordFailure(match_id=e.match_id, window=str(window), error=str(e)))
                    continue
                except Exception as e:
                    db.rollback()
                    logger.exception(f"Unexpected error storing {sport.value} match {record.match_id} ({window}): {e}")
                    outcome.failures.append(
                        RecordFailure(match_id=record.match_id, window=str(window), error=f"{e.__class__.__name__}: {e}")
                    )
                    continue

                if result is ReconcileResult.INSERTED:
                    outcome.inserted += 1
                else:
                    outcome.updated += 1
        finally:
            db.close()


async def run_once(
    database: Database,
    client: GoalserveClient,
    sports: List[str],
    future_days: int = 7,
) -> Dict[str, Optional[SyncOutcome]]:
    """
    Run one cycle for each sport in turn.

    Returns:
        Mapping of sport to its outcome, or None when today's fetch failed
    """
    orchestrator = SyncOrchestrator(database, client, future_days=future_days)
    results: Dict[str, Optional[SyncOutcome]] = {}
    for sport in sports:
        try:
            results[sport] = await orchestrator.sync_sport(Sport(sport))
        except FetchError:
            results[sport] = None
    return results
