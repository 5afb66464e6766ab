"""
Audit schemas.
"""
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import Field

from rankpilot.models.audit import AuditStatus
from rankpilot.schemas.common import BaseSchema, IDSchema
from rankpilot.schemas.usage import AdmissionUsage


class AuditJobPayload(BaseSchema):
    """Queue payload for one audit job."""

    audit_id: UUID
    user_id: UUID
    project_id: UUID
    url: str
    competitors: list[str] = Field(default_factory=list)


class SubmitAuditResult(BaseSchema):
    """Outcome of an audit submission."""

    admitted: bool
    reason: Optional[str] = None
    error: Optional[dict[str, Any]] = None
    audit_id: Optional[UUID] = None
    usage: Optional[AdmissionUsage] = None


class AuditResultResponse(IDSchema):
    """Audit as exposed to status polling. Failed audits never carry a score."""

    project_id: UUID
    user_id: UUID
    url: str
    competitors: Optional[list[str]] = None
    status: AuditStatus
    score: Optional[int] = None
    metrics: Optional[dict[str, Any]] = None
    issues: Optional[list[dict[str, Any]]] = None
    recommendations: Optional[list[dict[str, Any]]] = None
    competitor_gaps: Optional[list[dict[str, Any]]] = None
    tokens_used: Optional[int] = None
    error_message: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None
