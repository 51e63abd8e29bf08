"""Background tasks: queue worker loop and periodic retention cleanup."""

import asyncio
import logging

from ordefy.config import settings
from ordefy.workers.cleanup import cleanup_webhook_queue
from ordefy.workers.processor import QueueWorker

logger = logging.getLogger(__name__)


async def run_cleanup_scheduler(session_factory, interval_seconds: int | None = None) -> None:
    """Periodically delete old completed jobs."""
    interval = interval_seconds or settings.cleanup_interval_seconds
    logger.info("Cleanup scheduler started (interval=%ds)", interval)

    while True:
        try:
            await asyncio.sleep(interval)
            async with session_factory() as session:
                await cleanup_webhook_queue(session)
        except asyncio.CancelledError:
            logger.info("Cleanup scheduler stopped")
            raise
        except Exception as exc:
            logger.exception("Cleanup scheduler error: %s", exc)
            # Continue running despite errors


def start_background_tasks(app) -> list[asyncio.Task]:
    """Start the queue worker and cleanup scheduler against the app's session factory."""
    session_factory = app.state.db_session_factory
    worker = QueueWorker(session_factory)
    app.state.queue_worker = worker
    return [
        asyncio.create_task(worker.run(), name="webhook-queue-worker"),
        asyncio.create_task(run_cleanup_scheduler(session_factory), name="webhook-queue-cleanup"),
    ]


async def stop_background_tasks(app, tasks: list[asyncio.Task]) -> None:
    worker = getattr(app.state, "queue_worker", None)
    if worker:
        worker.stop()
    for task in tasks:
        task.cancel()
    for task in tasks:
        try:
            await task
        except asyncio.CancelledError:
            pass
