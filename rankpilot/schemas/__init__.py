"""
Pydantic schemas for RankPilot.
"""
from rankpilot.schemas.common import BaseSchema, IDSchema
from rankpilot.schemas.usage import AdmissionUsage, TierInfo, UsageSummary
from rankpilot.schemas.audit import AuditJobPayload, AuditResultResponse, SubmitAuditResult

__all__ = [
    "BaseSchema",
    "IDSchema",
    "AdmissionUsage",
    "TierInfo",
    "UsageSummary",
    "AuditJobPayload",
    "AuditResultResponse",
    "SubmitAuditResult",
]
