"""
Usage ledger repository.
"""
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from rankpilot.models.usage import UsageLog


@dataclass
class UsageTotals:
    """Consumption aggregated over one billing period."""
    audits_used: int = 0
    tokens_used: int = 0


class UsageLedgerRepository:
    """Append-only usage log access over an AsyncSession."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_entry(
        self,
        user_id: UUID,
        audit_id: UUID | None = None,
        tokens_used: int = 0,
    ) -> UsageLog:
        """Append a usage entry. Submission entries start at zero tokens."""
        entry = UsageLog(
            user_id=user_id,
            audit_id=audit_id,
            tokens_used=tokens_used,
        )
        self.db.add(entry)
        await self.db.flush()
        return entry

    async def get_by_audit(self, audit_id: UUID) -> UsageLog | None:
        result = await self.db.execute(
            select(UsageLog).where(UsageLog.audit_id == audit_id)
        )
        return result.scalar_one_or_none()

    async def update_tokens_for_audit(self, audit_id: UUID, tokens_used: int) -> int:
        """Reconcile the submission entry of an audit with its real cost.

        Returns the number of entries updated (0 or 1).
        """
        result = await self.db.execute(
            select(UsageLog).where(UsageLog.audit_id == audit_id)
        )
        entries = result.scalars().all()
        for entry in entries:
            entry.tokens_used = tokens_used
        await self.db.flush()
        return len(entries)

    async def get_period_usage(
        self,
        user_id: UUID,
        period_start: datetime,
        period_end: datetime,
    ) -> UsageTotals:
        """Count audit entries and sum tokens for ``user_id`` within [start, end]."""
        in_period = and_(
            UsageLog.user_id == user_id,
            UsageLog.created_at >= period_start,
            UsageLog.created_at <= period_end,
        )

        audits_result = await self.db.execute(
            select(func.count(UsageLog.id)).where(
                in_period,
                UsageLog.audit_id.is_not(None),
            )
        )
        tokens_result = await self.db.execute(
            select(func.coalesce(func.sum(UsageLog.tokens_used), 0)).where(in_period)
        )

        return UsageTotals(
            audits_used=audits_result.scalar() or 0,
            tokens_used=int(tokens_result.scalar() or 0),
        )
