from __future__ import annotations
import asyncio
import logging

from app.services.refresh_controller import RefreshController

logger = logging.getLogger(__name__)


def _log_tick_failure(task: asyncio.Task):
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error(f"Refresh tick failed: {error!r}")


async def run_refresh_worker(controller: RefreshController, interval: float = 30):
    """Background worker that ticks the refresh controller every ``interval`` seconds.

    Each tick starts the refresh in its own task so the cadence does not
    stretch with fetch duration; ticks that land on a running fetch are
    dropped by the controller.
    """
    logger.info(f"Refresh worker started (every {interval}s)")
    in_flight: set[asyncio.Task] = set()

    try:
        while True:
            task = asyncio.create_task(controller.trigger_refresh(reason="timer"))
            in_flight.add(task)
            task.add_done_callback(in_flight.discard)
            task.add_done_callback(_log_tick_failure)
            await asyncio.sleep(interval)
    except asyncio.CancelledError:
        logger.info("Refresh worker cancelled")
        for task in in_flight:
            task.cancel()
        await asyncio.gather(*in_flight, return_exceptions=True)
