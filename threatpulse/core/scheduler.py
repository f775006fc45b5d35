"""Background pipeline scheduler.

Runs as an asyncio task in the app lifespan when
``PIPELINE_SCHEDULE_ENABLED`` is set. Every ``PIPELINE_INTERVAL_MINUTES``
it performs one ingestion-and-correlation run. Failed runs are logged and
left to the next cycle; the scheduler never retries on its own.
"""

from __future__ import annotations

import asyncio

from threatpulse.core.config import get_settings
from threatpulse.core.logging import get_logger

logger = get_logger(__name__)


async def scheduler_loop() -> None:
    """Infinite loop: run the pipeline, then sleep for the configured interval."""
    interval_seconds = get_settings().pipeline_interval_minutes * 60
    logger.info("Pipeline scheduler started", interval_seconds=interval_seconds)
    while True:
        try:
            await _run_scheduled()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Pipeline scheduler error — will retry next cycle")
        await asyncio.sleep(interval_seconds)


async def _run_scheduled() -> None:
    from threatpulse.pipeline.orchestrator import run_once

    summary = await run_once()
    if summary.success:
        logger.info(
            "Scheduled run finished",
            inserted=summary.inserted,
            alerts_created=summary.alerts_created,
        )
    else:
        logger.warning("Scheduled run failed", stage=summary.stage.value, error=summary.error)
