"""
Background Tasks Package

Contains Celery tasks for async processing:
- audit_tasks: audit job execution
- usage_tasks: periodic usage alert sweep
"""

from rankpilot.tasks.audit_tasks import *
from rankpilot.tasks.usage_tasks import *
