"""
Usage Tasks

Periodic usage alert sweep.
"""

import logging

from celery import shared_task

from rankpilot.database import get_task_session_maker
from rankpilot.services.quota import QuotaLedger
from rankpilot.tasks.audit_tasks import run_async

logger = logging.getLogger(__name__)

__all__ = ["check_usage_alerts"]


@shared_task(bind=True)
def check_usage_alerts(self):
    """Alert users approaching their tier limits."""
    return run_async(_check_usage_alerts())


async def _check_usage_alerts():
    task_engine, session_maker = get_task_session_maker()

    try:
        async with session_maker() as session:
            ledger = QuotaLedger(session)
            sent = await ledger.sweep_usage_alerts()
            await session.commit()
    finally:
        await task_engine.dispose()

    return {"alerts_sent": sent}
