"""
Usage and quota schemas.
"""
from datetime import datetime
from typing import Optional

from pydantic import Field

from rankpilot.schemas.common import BaseSchema


class TierInfo(BaseSchema):
    """Tier limits as shown to the account owner."""

    name: str
    audit_limit: int
    token_limit: int
    price: float


class UsageSummary(BaseSchema):
    """Current billing period consumption against the tier."""

    tier: TierInfo
    period_start: datetime
    period_end: datetime
    audits_used: int
    tokens_used: int
    remaining_audits: int = Field(..., ge=0)
    remaining_tokens: int = Field(..., ge=0)
    audit_usage_percentage: int
    token_usage_percentage: int


class AdmissionUsage(BaseSchema):
    """Usage snapshot returned with an admitted audit, counting that audit."""

    audits_used: int
    audit_limit: int
    audit_usage_percentage: int
    tokens_used: int
    token_limit: int
    token_usage_percentage: int
    warning: Optional[str] = None
