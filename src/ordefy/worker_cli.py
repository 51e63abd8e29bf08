"""CLI entry point for a standalone queue worker process.

Several workers may run against the same database; claims are exclusive.
"""

import argparse
import asyncio
import logging
import os
import signal


async def _run(args: argparse.Namespace) -> None:
    from ordefy.config import settings
    from ordefy.db.engine import create_db_engine, create_session_factory
    from ordefy.workers.cleanup import cleanup_webhook_queue
    from ordefy.workers.processor import QueueWorker
    from ordefy.workers.scheduler import run_cleanup_scheduler

    logger = logging.getLogger("ordefy.worker")
    engine = create_db_engine()
    session_factory = create_session_factory(engine)

    if "sqlite" in settings.effective_database_url:
        from ordefy.db.base import Base
        import ordefy.db.models  # noqa: F401 register all ORM models

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    try:
        if args.cleanup:
            async with session_factory() as session:
                await cleanup_webhook_queue(session)
            return

        worker = QueueWorker(session_factory)
        if args.once:
            report = await worker.run_once()
            logger.info(
                "Processed %d jobs (completed=%d, retried=%d, failed=%d)",
                report.claimed, report.completed, report.retried, report.failed,
            )
            return

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, worker.stop)

        cleanup_task = asyncio.create_task(run_cleanup_scheduler(session_factory))
        try:
            await worker.run()
        finally:
            cleanup_task.cancel()
            try:
                await cleanup_task
            except asyncio.CancelledError:
                pass
    finally:
        await engine.dispose()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="ordefy-worker",
        description="Process queued Shopify webhooks",
    )
    parser.add_argument("--local", action="store_true", help="Use the local SQLite database")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--once", action="store_true", help="Run a single poll cycle and exit")
    group.add_argument("--cleanup", action="store_true", help="Run the retention cleanup and exit")
    args = parser.parse_args(argv)

    if args.local:
        os.environ["ORDEFY_LOCAL_MODE"] = "1"

    from ordefy.config import settings
    from ordefy.logging_config import configure_logging

    configure_logging(log_level=settings.log_level, json_output=not settings.local_mode)
    asyncio.run(_run(args))


if __name__ == "__main__":
    main()
