"""
Celery Worker Configuration

Configures Celery for background task processing:
- Audit jobs
- Usage alert sweep
"""

import logging

from celery import Celery
from celery.schedules import crontab
from celery.signals import worker_init

from rankpilot.config import settings


logging.getLogger("rankpilot").setLevel(settings.LOG_LEVEL)

# Create Celery app
celery_app = Celery(
    "rankpilot",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=[
        "rankpilot.tasks.audit_tasks",
        "rankpilot.tasks.usage_tasks",
    ],
)

# Celery configuration
celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    
    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=900,  # 15 min max per task
    task_soft_time_limit=840,
    
    # Worker settings
    worker_prefetch_multiplier=1,
    worker_concurrency=4,
    worker_max_tasks_per_child=100,
    
    # Result backend settings
    result_expires=86400,  # 24 hours
    
    # Retry settings
    task_default_retry_delay=settings.AUDIT_TASK_RETRY_COUNTDOWN,
    task_max_retries=settings.AUDIT_TASK_MAX_RETRIES,
    
    # Queue routing
    task_routes={
        "rankpilot.tasks.audit_tasks.*": {"queue": "audit"},
        "rankpilot.tasks.usage_tasks.*": {"queue": "default"},
    },
    
    # Default queue
    task_default_queue="default",
)

# Beat schedule for periodic tasks
celery_app.conf.beat_schedule = {
    # Sweep usage alerts every hour
    "check-usage-alerts": {
        "task": "rankpilot.tasks.usage_tasks.check_usage_alerts",
        "schedule": crontab(minute=0),
    },
}


@worker_init.connect
def prepare_database(**kwargs):
    """Create tables and seed tiers before the worker takes jobs."""
    from rankpilot.database import init_db
    from rankpilot.tasks.audit_tasks import run_async

    run_async(init_db())
