"""
Periodic garbage collection.

The cache never sweeps on its own. Applications that want continuous
reclamation run this loop as a background task next to the cache:

    stop = asyncio.Event()
    task = asyncio.create_task(run_periodic_gc(cache, 300, stop))
    ...
    stop.set()
    await task
"""

from __future__ import annotations

import asyncio

from fscache.cache.base import CacheProtocol
from fscache.config import get_settings
from fscache.exceptions import GarbageCollectionError
from fscache.logging import get_logger

logger = get_logger(__name__)


async def run_periodic_gc(
    cache: CacheProtocol,
    interval_seconds: float | None = None,
    stop_event: asyncio.Event | None = None,
) -> int:
    """Sweep the cache every interval_seconds until stop_event is set.

    A sweep that ends in GarbageCollectionError is logged and the loop
    continues; the failed entries are retried on the next pass. Any other
    error (e.g. the directory cannot be listed) ends the loop.

    Args:
        cache: Cache to sweep.
        interval_seconds: Delay between the end of one sweep and the next.
            Defaults to FSCACHE_GC_INTERVAL_SECONDS.
        stop_event: Set to stop the loop. Runs until cancelled if None.

    Returns:
        Number of sweeps performed.
    """
    if interval_seconds is None:
        interval_seconds = get_settings().GC_INTERVAL_SECONDS
    if interval_seconds <= 0:
        raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")

    stop_event = stop_event or asyncio.Event()
    sweeps = 0

    while not stop_event.is_set():
        try:
            await cache.collect_garbage()
        except GarbageCollectionError as e:
            logger.warning(
                "Periodic sweep finished with failures",
                removed=e.report.removed,
                failed=len(e.report.failures),
            )
        sweeps += 1

        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
        except asyncio.TimeoutError:
            continue

    logger.debug("Periodic sweeps stopped", sweeps=sweeps)
    return sweeps
