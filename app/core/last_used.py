"""
Background recording of API key last-used timestamps.

The gateway hands each accepted request to ``LastUsedRecorder.submit``,
which never blocks and never raises. A single worker task writes the
timestamps. Pending updates are coalesced per key and capped at
``max_pending`` keys; beyond that, updates are dropped and counted.
"""
import asyncio
from datetime import datetime
from functools import partial
from typing import Callable, Dict, Optional

from app.core import metrics
from app.core.database import Database
from app.core.logging import get_logger
from app.repositories.api_key_repository import ApiKeyRepository

logger = get_logger(__name__)

TouchFunc = Callable[[int, datetime], None]


def touch_last_used(database: Database, api_key_id: int, used_at: datetime) -> None:
    """Write one last-used timestamp in its own transaction."""
    with database.session_scope() as db:
        ApiKeyRepository(db).touch_last_used(api_key_id, used_at)


def database_touch(database: Database) -> TouchFunc:
    return partial(touch_last_used, database)


class LastUsedRecorder:
    """
    Single-worker, bounded, best-effort last-used writer.

    Usage:
        recorder = LastUsedRecorder(database_touch(database))
        await recorder.start()
        recorder.submit(api_key.id)
        await recorder.stop()
    """

    def __init__(self, touch: TouchFunc, max_pending: int = 1000):
        self._touch = touch
        self.max_pending = max_pending
        self._pending: Dict[int, datetime] = {}
        self._wakeup: Optional[asyncio.Event] = None
        self._worker: Optional[asyncio.Task] = None
        self._writing = False
        self.dropped = 0

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def start(self) -> None:
        if self.running:
            return
        self._wakeup = asyncio.Event()
        self._worker = asyncio.create_task(self._run(), name="api-key-last-used")

    def submit(self, api_key_id: int, used_at: Optional[datetime] = None) -> bool:
        """
        Queue a last-used update for a key.

        Returns:
            False if the update was dropped (worker not running or queue full)
        """
        if not self.running:
            return False

        if api_key_id not in self._pending and len(self._pending) >= self.max_pending:
            self.dropped += 1
            metrics.last_used_updates_dropped_total.inc()
            logger.debug(f"Dropping last-used update for API key {api_key_id}: queue full")
            return False

        self._pending[api_key_id] = used_at or datetime.utcnow()
        self._wakeup.set()
        return True

    async def _run(self) -> None:
        while True:
            await self._wakeup.wait()
            self._wakeup.clear()
            while self._pending:
                api_key_id, used_at = self._pending.popitem()
                await self._write(api_key_id, used_at)

    async def _write(self, api_key_id: int, used_at: datetime) -> None:
        self._writing = True
        try:
            await asyncio.to_thread(self._touch, api_key_id, used_at)
        except Exception as e:
            logger.warning(f"Failed to update last_used_at for API key {api_key_id}: {e}")
        finally:
            self._writing = False

    async def flush(self, timeout: float = 2.0) -> None:
        """Wait until every pending update has been written, up to ``timeout``."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while (self._pending or self._writing) and self.running and loop.time() < deadline:
            await asyncio.sleep(0.01)

    async def stop(self, timeout: float = 2.0) -> None:
        """Write what is pending (bounded by ``timeout``), then stop the worker."""
        if self._worker is None:
            return
        await self.flush(timeout)
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        if self._pending:
            logger.warning(f"Discarding {len(self._pending)} last-used update(s) on shutdown")
            self._pending.clear()
