"""
SQLAlchemy models for RankPilot.
"""
from rankpilot.models.base import Base, BaseModel
from rankpilot.models.tier import Tier
from rankpilot.models.user import User
from rankpilot.models.usage import UsageLog
from rankpilot.models.audit import Audit, AuditSnapshot, AuditStatus

__all__ = [
    "Base",
    "BaseModel",
    "Tier",
    "User",
    "UsageLog",
    "Audit",
    "AuditSnapshot",
    "AuditStatus",
]
