"""Queue worker: claims pending webhook jobs and runs their handlers.

Each poll cycle claims a bounded batch in one short transaction, then runs
every claimed job in its own session. A handler's writes and the job's final
status commit together; on failure the handler's writes are rolled back before
the retry bookkeeping is written.
"""

import asyncio
import logging
import random
import time
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ordefy.config import Settings, settings
from ordefy.db.base import utcnow
from ordefy.errors.exceptions import PermanentJobError
from ordefy.logging_config import bind_request_context, clear_request_context
from ordefy.metrics import WEBHOOK_JOB_DURATION, WEBHOOK_JOBS
from ordefy.repositories.webhook_job_repo import WebhookJobRepository
from ordefy.services.backoff import next_attempt_at
from ordefy.workers.registry import get_handler

logger = logging.getLogger(__name__)

NO_HANDLER_ERROR = "no handler"


@dataclass
class CycleReport:
    claimed: int = 0
    completed: int = 0
    retried: int = 0
    failed: int = 0
    job_ids: list[str] = field(default_factory=list)


class QueueWorker:
    """Drains eligible jobs from ``webhook_queue``."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        config: Settings = settings,
        rng: random.Random | None = None,
    ):
        self.session_factory = session_factory
        self.config = config
        self.rng = rng
        self._stopping = asyncio.Event()

    async def claim(self) -> list[str]:
        async with self.session_factory() as session:
            claimed = await WebhookJobRepository(session).claim_batch(self.config.batch_size)
            await session.commit()
        return claimed

    async def run_once(self) -> CycleReport:
        """One poll cycle: claim a batch and process each job."""
        report = CycleReport()
        job_ids = await self.claim()
        report.claimed = len(job_ids)
        report.job_ids = job_ids
        if job_ids:
            logger.info("Claimed %d webhook jobs", len(job_ids))

        for job_id in job_ids:
            try:
                outcome = await self.process_job(job_id)
            except Exception:
                # The job stays in processing; staleness monitoring picks it up
                logger.exception("Unexpected error recording outcome for job %s", job_id)
                continue
            if outcome == "completed":
                report.completed += 1
            elif outcome == "retry":
                report.retried += 1
            elif outcome == "failed":
                report.failed += 1
        return report

    async def process_job(self, job_id: str) -> str | None:
        """Run one claimed job. Returns 'completed', 'retry', 'failed' or None if lost."""
        bind_request_context(trace_id=f"job_{job_id}", job_id=job_id)
        try:
            async with self.session_factory() as session:
                return await self._process(job_id, session)
        finally:
            clear_request_context()

    async def _process(self, job_id: str, session: AsyncSession) -> str | None:
        repo = WebhookJobRepository(session)
        job = await repo.get(job_id)
        if job is None or job.status != "processing":
            logger.warning("Job %s no longer claimed by this worker, skipping", job_id)
            return None

        topic = job.topic
        handler = get_handler(topic)
        if handler is None:
            logger.warning("No handler registered for topic %s (job=%s)", topic, job_id)
            await repo.mark_failed(job_id, attempts=job.attempts, error=NO_HANDLER_ERROR)
            await session.commit()
            WEBHOOK_JOBS.labels(topic=topic, outcome="no_handler").inc()
            return "failed"

        attempts = job.attempts + 1
        started = time.monotonic()
        try:
            if self.config.handler_timeout_seconds:
                await asyncio.wait_for(handler.handle(job, session), timeout=self.config.handler_timeout_seconds)
            else:
                await handler.handle(job, session)
            recorded = await repo.mark_completed(job_id, attempts=attempts)
            await session.commit()
        except PermanentJobError as exc:
            await session.rollback()
            await repo.mark_failed(job_id, attempts=attempts, error=str(exc) or exc.__class__.__name__)
            await session.commit()
            logger.error("Job %s failed permanently (topic=%s): %s", job_id, topic, exc)
            WEBHOOK_JOBS.labels(topic=topic, outcome="failed").inc()
            return "failed"
        except Exception as exc:
            await session.rollback()
            if isinstance(exc, TimeoutError):
                error = f"handler timed out after {self.config.handler_timeout_seconds}s"
            else:
                error = f"{exc.__class__.__name__}: {exc}"
            return await self._record_failure(repo, session, job_id, topic, attempts, error)
        finally:
            WEBHOOK_JOB_DURATION.labels(topic=topic).observe(time.monotonic() - started)

        if not recorded:
            logger.warning("Job %s left processing before completion was recorded", job_id)
            return None
        logger.info("Job %s completed (topic=%s, attempts=%d)", job_id, topic, attempts)
        WEBHOOK_JOBS.labels(topic=topic, outcome="completed").inc()
        return "completed"

    async def _record_failure(
        self,
        repo: WebhookJobRepository,
        session: AsyncSession,
        job_id: str,
        topic: str,
        attempts: int,
        error: str,
    ) -> str:
        if attempts >= self.config.max_attempts:
            await repo.mark_failed(job_id, attempts=attempts, error=error)
            await session.commit()
            logger.error(
                "Job %s failed permanently after %d attempts (topic=%s): %s",
                job_id, attempts, topic, error,
            )
            WEBHOOK_JOBS.labels(topic=topic, outcome="exhausted").inc()
            return "failed"

        retry_at = next_attempt_at(attempts, utcnow(), config=self.config, rng=self.rng)
        await repo.schedule_retry(job_id, attempts=attempts, next_attempt_at=retry_at, error=error)
        await session.commit()
        logger.warning(
            "Job %s attempt %d/%d failed (topic=%s), retrying at %s: %s",
            job_id, attempts, self.config.max_attempts, topic, retry_at.isoformat(), error,
        )
        WEBHOOK_JOBS.labels(topic=topic, outcome="retry").inc()
        return "retry"

    def stop(self) -> None:
        self._stopping.set()

    async def run(self) -> None:
        """Poll until stopped. A full batch is followed immediately by another poll."""
        logger.info(
            "Webhook queue worker started (batch_size=%d, poll_interval=%ss)",
            self.config.batch_size, self.config.poll_interval_seconds,
        )
        while not self._stopping.is_set():
            try:
                report = await self.run_once()
                if report.claimed >= self.config.batch_size:
                    continue
            except Exception:
                logger.exception("Webhook queue poll failed")

            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.config.poll_interval_seconds)
            except TimeoutError:
                pass
        logger.info("Webhook queue worker stopped")
