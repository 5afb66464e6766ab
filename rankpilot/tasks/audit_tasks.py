"""
Audit Tasks

Background execution of queued audit jobs.
"""

import asyncio
import logging
from typing import Any

from celery import shared_task

from rankpilot.config import settings
from rankpilot.database import get_task_session_maker
from rankpilot.schemas.audit import AuditJobPayload
from rankpilot.services.job_pipeline import AUDIT_TOPIC, AuditJobPipeline, AuditQueue

logger = logging.getLogger(__name__)

__all__ = ["run_audit", "CeleryAuditQueue"]


def run_async(coro):
    """Helper to run async code in sync context."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@shared_task(bind=True, max_retries=settings.AUDIT_TASK_MAX_RETRIES)
def run_audit(self, payload: dict[str, Any]):
    """Run one audit job."""
    return run_async(_run_audit(self, payload))


async def _run_audit(task, payload: dict[str, Any]):
    """Async implementation of audit run."""
    job = AuditJobPayload.model_validate(payload)
    task_engine, session_maker = get_task_session_maker()

    try:
        async with session_maker() as session:
            pipeline = AuditJobPipeline(session)
            try:
                return await pipeline.execute(job)
            except Exception as e:
                logger.error(
                    f"Audit job {job.audit_id} failed "
                    f"(attempt {task.request.retries + 1}): {type(e).__name__}: {e}"
                )
                raise task.retry(exc=e, countdown=settings.AUDIT_TASK_RETRY_COUNTDOWN)
    finally:
        await task_engine.dispose()


class CeleryAuditQueue(AuditQueue):
    """Audit queue transport backed by Celery."""

    TASKS = {
        AUDIT_TOPIC: run_audit,
    }

    def enqueue(self, topic: str, payload: dict[str, Any]) -> None:
        task = self.TASKS.get(topic)
        if task is None:
            raise ValueError(f"Unknown queue topic: {topic}")
        task.delay(payload)
