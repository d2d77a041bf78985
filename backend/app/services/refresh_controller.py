from __future__ import annotations
import asyncio
import enum
import logging
import time
from typing import Callable, Optional

from app.schemas.dashboard import DashboardSnapshot
from app.services.aggregator import Aggregator

logger = logging.getLogger(__name__)


class RefreshState(str, enum.Enum):
    idle = "idle"
    refreshing = "refreshing"


class RefreshController:
    """Owns the current snapshot and decides when the aggregator runs.

    Idle → Refreshing on a timer tick or manual trigger; back to Idle when the
    aggregator returns. Triggers that arrive while a fetch is in flight, or
    within ``debounce_seconds`` of the previous accepted trigger, are dropped
    rather than queued. The snapshot reference is swapped in one assignment,
    so readers see either the old snapshot or the new one.
    """

    def __init__(
        self,
        aggregator: Aggregator,
        debounce_seconds: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.aggregator = aggregator
        self.debounce_seconds = debounce_seconds
        self._clock = clock
        self._state = RefreshState.idle
        self._last_trigger: Optional[float] = None
        self._snapshot = DashboardSnapshot(data_source=aggregator.source.name)
        self._version = 0
        self._updated = asyncio.Event()

    @property
    def state(self) -> RefreshState:
        return self._state

    @property
    def is_loading(self) -> bool:
        return self._state == RefreshState.refreshing

    @property
    def version(self) -> int:
        """Number of snapshots published so far."""
        return self._version

    @property
    def current_snapshot(self) -> DashboardSnapshot:
        return self._snapshot.model_copy(update={"loading": self.is_loading})

    async def trigger_refresh(self, reason: str = "manual") -> bool:
        """Run the aggregator unless a fetch is running or one started too recently.

        Returns True when a new snapshot was published.
        """
        if self._state == RefreshState.refreshing:
            logger.debug(f"Refresh ({reason}) coalesced: fetch already in flight")
            return False

        now = self._clock()
        if self._last_trigger is not None and now - self._last_trigger < self.debounce_seconds:
            logger.debug(f"Refresh ({reason}) debounced: {now - self._last_trigger:.1f}s since last fetch")
            return False

        self._last_trigger = now
        self._state = RefreshState.refreshing
        started = time.monotonic()
        try:
            snapshot = await self.aggregator.build_snapshot()
        except Exception as e:
            logger.error(f"Refresh ({reason}) failed, keeping previous snapshot: {e}")
            return False
        finally:
            self._state = RefreshState.idle

        self._snapshot = snapshot
        self._version += 1
        self._updated.set()
        self._updated = asyncio.Event()
        logger.info(f"Refresh ({reason}) done in {time.monotonic() - started:.2f}s (version {self._version})")
        return True

    async def wait_for_update(self, version: int) -> int:
        """Block until a snapshot newer than ``version`` is published."""
        while self._version <= version:
            await self._updated.wait()
        return self._version
