"""
Goalserve feed client.

Fetches per-sport score documents for a day window:

    GET {GOALSERVE_URL}/getfeed/{api_key}/{feed_path}/{home|d-N|dN}?json=1

All requests made through one client instance are spaced at least
``min_interval`` seconds apart, whichever sport or window they are for.
"""
import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx

from app.core import metrics
from app.core.config import settings
from app.core.logging import get_logger
from app.core.sports import Sport, feed_path
from app.services.goalserve.exceptions import FetchError, MalformedResponse

logger = get_logger(__name__)

MAX_WINDOW_DAYS = 7


@dataclass(frozen=True)
class FeedWindow:
    """Day selector for a feed request: today, N days back or N days ahead."""

    offset: int = 0

    def __post_init__(self):
        if not -MAX_WINDOW_DAYS <= self.offset <= MAX_WINDOW_DAYS:
            raise ValueError(f"Feed window must be within {MAX_WINDOW_DAYS} days, got {self.offset}")

    @classmethod
    def today(cls) -> "FeedWindow":
        return cls(0)

    @classmethod
    def past(cls, days: int) -> "FeedWindow":
        if days < 1:
            raise ValueError("past window needs days >= 1")
        return cls(-days)

    @classmethod
    def future(cls, days: int) -> "FeedWindow":
        if days < 1:
            raise ValueError("future window needs days >= 1")
        return cls(days)

    @property
    def path_segment(self) -> str:
        if self.offset == 0:
            return "home"
        if self.offset < 0:
            return f"d-{-self.offset}"
        return f"d{self.offset}"

    def __str__(self) -> str:
        return self.path_segment


class RequestPacer:
    """
    Serializes callers so consecutive requests start at least ``interval``
    seconds apart.
    """

    def __init__(
        self,
        interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Any] = asyncio.sleep,
    ):
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._last_start: Optional[float] = None

    async def wait(self) -> None:
        async with self._lock:
            if self._last_start is not None:
                remaining = self._last_start + self.interval - self._clock()
                if remaining > 0:
                    await self._sleep(remaining)
            self._last_start = self._clock()


class GoalserveClient:
    """
    Async client for the Goalserve JSON feeds.

    Usage:
        client = GoalserveClient.from_settings()
        scores = await client.fetch(Sport.SOCCER, FeedWindow.today())
        await client.close()
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 30.0,
        min_interval: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        pacer: Optional[RequestPacer] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport
        self._pacer = pacer or RequestPacer(min_interval)
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(cls) -> "GoalserveClient":
        return cls(
            base_url=settings.GOALSERVE_URL,
            api_key=settings.GOALSERVE_API_KEY,
            timeout=settings.GOALSERVE_TIMEOUT,
            min_interval=settings.GOALSERVE_REQUEST_INTERVAL,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            timeout = httpx.Timeout(self.timeout)
            limits = httpx.Limits(max_keepalive_connections=5, max_connections=10)
            self._client = httpx.AsyncClient(
                timeout=timeout,
                limits=limits,
                transport=self._transport,
                headers={"Accept": "application/json", "User-Agent": "otg-sports-api"},
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def feed_url(self, sport: Sport, window: FeedWindow) -> str:
        return f"{self.base_url}/getfeed/{self.api_key}/{feed_path(sport)}/{window.path_segment}"

    def _display_url(self, sport: Sport, window: FeedWindow) -> str:
        return f"{self.base_url}/getfeed/***/{feed_path(sport)}/{window.path_segment}"

    async def fetch(self, sport: Sport, window: FeedWindow) -> Dict[str, Any]:
        """
        Fetch one feed window and unwrap its ``scores`` envelope.

        Returns:
            The ``scores`` object (categories keyed under ``category``)

        Raises:
            FetchError: Network error, timeout or non-200 status
            MalformedResponse: Body is not JSON or has no ``scores`` object
        """
        sport = Sport(sport)
        await self._pacer.wait()

        client = await self._get_client()
        logger.info(f"Fetching {sport.value} feed: {self._display_url(sport, window)}")

        try:
            response = await client.get(self.feed_url(sport, window), params={"json": 1})
        except httpx.HTTPError as e:
            metrics.record_goalserve_request(sport.value, success=False)
            raise FetchError(f"{sport.value} {window}: request failed: {e.__class__.__name__}") from e

        try:
            scores = self._unwrap(sport, window, response)
        except FetchError:
            metrics.record_goalserve_request(sport.value, success=False)
            raise

        metrics.record_goalserve_request(sport.value, success=True)
        return scores

    @staticmethod
    def _unwrap(sport: Sport, window: FeedWindow, response: httpx.Response) -> Dict[str, Any]:
        if response.status_code != 200:
            raise FetchError(
                f"{sport.value} {window}: feed returned status {response.status_code}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise MalformedResponse(f"{sport.value} {window}: response is not valid JSON") from e

        if not isinstance(body, dict) or "scores" not in body:
            raise MalformedResponse(f"{sport.value} {window}: no scores field found in response")

        scores = body["scores"]
        if not isinstance(scores, dict):
            raise MalformedResponse(f"{sport.value} {window}: scores is not an object")
        return scores

    async def fetch_days(
        self,
        sport: Sport,
        direction: str = "future",
        days: int = MAX_WINDOW_DAYS,
    ) -> List[Tuple[FeedWindow, Dict[str, Any]]]:
        """
        Fetch consecutive day windows one after another.

        A day that fails is logged and skipped; the remaining days are still
        fetched.

        Args:
            sport: Sport to fetch
            direction: "past" (d-1..d-N) or "future" (d1..dN)
            days: Number of days, 1..7

        Returns:
            List of (window, scores) for the days that were fetched
        """
        if direction not in ("past", "future"):
            raise ValueError(f"direction must be 'past' or 'future', got {direction!r}")
        if not 1 <= days <= MAX_WINDOW_DAYS:
            raise ValueError(f"days must be between 1 and {MAX_WINDOW_DAYS}, got {days}")

        make_window = FeedWindow.past if direction == "past" else FeedWindow.future
        documents = []

        for day in range(1, days + 1):
            window = make_window(day)
            try:
                documents.append((window, await self.fetch(sport, window)))
            except FetchError as e:
                logger.warning(f"Skipping {sport.value} {direction} day {day}: {e}")

        logger.info(f"Fetched {len(documents)}/{days} {direction} {sport.value} days")
        return documents
