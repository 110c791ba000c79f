"""
Cache Liveness

Process-wide view of whether the cache client is usable.

Lifecycle:
    DISCONNECTED --ready--> READY --closed--> CLOSED
         |                    |
         +------error------>ERRORED --ready--> READY

The service starts DISCONNECTED and never waits for the first connection.
Only the connection-lifecycle callbacks below write the state; every cache
operation reads it as a plain snapshot without locking. A snapshot that is
already stale is tolerated because the cache call itself is the final
arbiter of success.
"""

import asyncio
from enum import Enum
from typing import Optional

import structlog
from redis.asyncio import Redis

from ...monitoring.metrics import CACHE_LIVE, CACHE_LIVENESS_TRANSITIONS

logger = structlog.get_logger()


class LivenessState(str, Enum):
    DISCONNECTED = "disconnected"
    READY = "ready"
    CLOSED = "closed"
    ERRORED = "errored"


class CacheLiveness:
    """Latest known connectivity state of the cache client."""

    def __init__(self) -> None:
        self._state = LivenessState.DISCONNECTED
        self._last_error: Optional[str] = None
        CACHE_LIVE.set(0)

    @property
    def state(self) -> LivenessState:
        return self._state

    @property
    def is_live(self) -> bool:
        return self._state is LivenessState.READY

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    def on_ready(self) -> None:
        self._transition(LivenessState.READY, "ready")
        self._last_error = None

    def on_closed(self) -> None:
        self._transition(LivenessState.CLOSED, "closed")

    def on_error(self, error: Optional[BaseException] = None) -> None:
        if error is not None:
            self._last_error = f"{type(error).__name__}: {error}"
        self._transition(LivenessState.ERRORED, "error")

    def _transition(self, new_state: LivenessState, event: str) -> None:
        previous = self._state
        self._state = new_state
        CACHE_LIVE.set(1 if new_state is LivenessState.READY else 0)

        if previous is new_state:
            return
        CACHE_LIVENESS_TRANSITIONS.labels(event=event).inc()
        if new_state is LivenessState.READY:
            logger.info("Cache connection ready", previous_state=previous.value)
        else:
            logger.warning(
                "Cache connection lost",
                previous_state=previous.value,
                state=new_state.value,
                error=self._last_error,
            )

    def snapshot(self) -> dict:
        return {
            "state": self._state.value,
            "live": self.is_live,
            "last_error": self._last_error,
        }


class CacheConnectionMonitor:
    """
    Drives CacheLiveness from the actual connection.

    Probes the client with PING in the background. The first probe runs
    immediately after start() so the service can accept traffic while the
    cache is still connecting.
    """

    def __init__(
        self,
        client: Redis,
        liveness: CacheLiveness,
        interval_seconds: float = 5.0,
        probe_timeout_seconds: float = 2.0,
    ):
        self.client = client
        self.liveness = liveness
        self.interval_seconds = interval_seconds
        self.probe_timeout_seconds = probe_timeout_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="cache-liveness-monitor")
        logger.info(
            "Cache liveness monitor started",
            interval_seconds=self.interval_seconds,
            state=self.liveness.state.value,
        )

    async def probe(self) -> bool:
        """Run one PING and report the outcome to the liveness object."""
        try:
            await asyncio.wait_for(self.client.ping(), self.probe_timeout_seconds)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.liveness.on_error(e)
            return False

        self.liveness.on_ready()
        return True

    async def _run(self) -> None:
        while True:
            await self.probe()
            await asyncio.sleep(self.interval_seconds)

    async def stop(self) -> None:
        """Stop probing and mark the connection closed."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        self.liveness.on_closed()
        logger.info("Cache liveness monitor stopped")
