from __future__ import annotations

import asyncio
import logging

from jobrelay.errors import StorageFailure
from jobrelay.services.job_service import JobService

logger = logging.getLogger("jobrelay.tasks")


async def run_purge_sweep(service: JobService, *, retention_days: int) -> int | None:
    """One purge pass. Storage errors are logged; the next pass tries again."""

    try:
        return await service.purge(retention_days)
    except StorageFailure:
        logger.exception("purge_sweep_failed retention_days=%s", retention_days)
        return None


async def run_purge_loop(service: JobService, *, interval_seconds: int, retention_days: int) -> None:
    """Purge aged jobs every ``interval_seconds`` until cancelled."""

    logger.info("purge_loop_started interval_seconds=%s retention_days=%s", interval_seconds, retention_days)
    while True:
        await run_purge_sweep(service, retention_days=retention_days)
        await asyncio.sleep(interval_seconds)
