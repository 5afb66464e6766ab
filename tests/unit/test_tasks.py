"""
Unit tests for the Celery task bridge.
"""
import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from rankpilot.core.exceptions import FetchTimeout
from rankpilot.services.job_pipeline import AUDIT_TOPIC
from rankpilot.tasks.audit_tasks import CeleryAuditQueue, _run_audit

PAYLOAD = {
    "audit_id": str(uuid.uuid4()),
    "user_id": str(uuid.uuid4()),
    "project_id": str(uuid.uuid4()),
    "url": "https://example.com/",
    "competitors": [],
}


def _session_maker():
    task_engine = MagicMock()
    task_engine.dispose = AsyncMock()
    session_maker = MagicMock()
    session_maker.return_value.__aenter__.return_value = AsyncMock()
    return task_engine, session_maker


class TestCeleryAuditQueue:
    """Test the Celery queue transport."""

    def test_enqueue_dispatches_task(self):
        task = MagicMock()

        with patch.dict(CeleryAuditQueue.TASKS, {AUDIT_TOPIC: task}):
            CeleryAuditQueue().enqueue(AUDIT_TOPIC, PAYLOAD)

        task.delay.assert_called_once_with(PAYLOAD)

    def test_unknown_topic(self):
        with pytest.raises(ValueError):
            CeleryAuditQueue().enqueue("reports", PAYLOAD)


class TestRunAudit:
    """Test job execution inside the task."""

    @pytest.mark.asyncio
    async def test_success_returns_summary(self):
        task_engine, session_maker = _session_maker()
        pipeline = MagicMock()
        pipeline.execute = AsyncMock(return_value={"status": "completed"})

        with patch("rankpilot.tasks.audit_tasks.get_task_session_maker", return_value=(task_engine, session_maker)), \
             patch("rankpilot.tasks.audit_tasks.AuditJobPipeline", return_value=pipeline):
            result = await _run_audit(MagicMock(), PAYLOAD)

        assert result == {"status": "completed"}
        job = pipeline.execute.await_args.args[0]
        assert str(job.audit_id) == PAYLOAD["audit_id"]
        task_engine.dispose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failure_schedules_retry(self):
        task_engine, session_maker = _session_maker()
        error = FetchTimeout(PAYLOAD["url"], 30)
        pipeline = MagicMock()
        pipeline.execute = AsyncMock(side_effect=error)
        task = MagicMock()
        task.request.retries = 0
        task.retry.return_value = RuntimeError("retry scheduled")

        with patch("rankpilot.tasks.audit_tasks.get_task_session_maker", return_value=(task_engine, session_maker)), \
             patch("rankpilot.tasks.audit_tasks.AuditJobPipeline", return_value=pipeline):
            with pytest.raises(RuntimeError, match="retry scheduled"):
                await _run_audit(task, PAYLOAD)

        task.retry.assert_called_once_with(exc=error, countdown=120)
        task_engine.dispose.assert_awaited_once()
