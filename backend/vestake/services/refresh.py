"""Periodic pull -> aggregate -> install loop with retry and backoff.

    IDLE --tick/boot--> PULLING --ok--> IDLE
                           |
                         error
                           v
                    FAILED_BACKOFF --retry--> PULLING

A failed cycle never touches the installed snapshot. The first
`immediate_retries` consecutive failures are retried at once; every
further retry waits `backoff_secs`.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable

import structlog

from config import get_settings
from vestake.enums import RefreshState
from vestake.services._types import RefreshStatusDict
from vestake.services.schemas.results import RefreshResult, Snapshot
from vestake.services.snapshot_cache import SnapshotCache

logger = structlog.get_logger(__name__)

PullFn = Callable[[], Awaitable[Snapshot]]
SleepFn = Callable[[float], Awaitable[None]]
ClockFn = Callable[[], float]


class RefreshScheduler:
    """Drives the background refresh of one SnapshotCache."""

    def __init__(
        self,
        pull: PullFn,
        cache: SnapshotCache,
        interval_secs: float | None = None,
        immediate_retries: int | None = None,
        backoff_secs: float | None = None,
        sleep: SleepFn = asyncio.sleep,
        clock: ClockFn = time.monotonic,
    ) -> None:
        settings = get_settings().refresh
        self.pull: PullFn = pull
        self.cache: SnapshotCache = cache
        self.interval_secs: float = interval_secs if interval_secs is not None else settings.interval_secs
        self.immediate_retries: int = (
            immediate_retries if immediate_retries is not None else settings.immediate_retries
        )
        self.backoff_secs: float = backoff_secs if backoff_secs is not None else settings.backoff_secs
        self._sleep: SleepFn = sleep
        self._clock: ClockFn = clock

        self.state: RefreshState = RefreshState.IDLE
        self.consecutive_failures: int = 0
        self.cycles: int = 0
        self.last_success_ts: int | None = None
        self.last_error: str | None = None

    async def refresh_once(self) -> RefreshResult:
        """One pull -> install cycle. Failures are logged and reported, not raised."""
        self.state = RefreshState.PULLING
        started: float = self._clock()
        logger.info("Pulling latest data", attempt=self.consecutive_failures + 1)
        try:
            snapshot: Snapshot = await self.pull()
            self.cache.install(snapshot)
        except Exception as e:
            self.consecutive_failures += 1
            self.last_error = f"{type(e).__name__}: {e}"
            self.state = RefreshState.FAILED_BACKOFF
            logger.exception(
                "Refresh failed, keeping previous snapshot",
                consecutive_failures=self.consecutive_failures,
            )
            return RefreshResult(
                success=False,
                timestamp=None,
                position_count=0,
                duration_secs=self._clock() - started,
                error=self.last_error,
            )

        self.consecutive_failures = 0
        self.last_error = None
        self.last_success_ts = snapshot.timestamp
        self.state = RefreshState.IDLE
        count: int = sum(len(data.positions) for data in snapshot.groupings.values())
        return RefreshResult(
            success=True,
            timestamp=snapshot.timestamp,
            position_count=count,
            duration_secs=self._clock() - started,
        )

    async def run_until_success(self) -> RefreshResult:
        failures: int = 0
        while True:
            result: RefreshResult = await self.refresh_once()
            if result.success:
                return result
            failures += 1
            if failures >= self.immediate_retries:
                logger.warning("Backing off before retry", seconds=self.backoff_secs, failures=failures)
                await self._sleep(self.backoff_secs)

    async def run(self, max_cycles: int | None = None) -> None:
        """Pull at once, then every interval. Runs forever unless *max_cycles* is set."""
        while max_cycles is None or self.cycles < max_cycles:
            result: RefreshResult = await self.run_until_success()
            self.cycles += 1
            logger.info(
                "Refresh complete",
                timestamp=result.timestamp,
                positions=result.position_count,
                duration_secs=round(result.duration_secs, 3),
            )
            if max_cycles is not None and self.cycles >= max_cycles:
                break
            await self._sleep(self.interval_secs)

    def status(self) -> RefreshStatusDict:
        return RefreshStatusDict(
            state=self.state.value,
            cycles=self.cycles,
            consecutive_failures=self.consecutive_failures,
            last_success_ts=self.last_success_ts,
            last_error=self.last_error,
        )
