"""
Audit service for SEO analysis.
"""
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rankpilot.models.audit import Audit, AuditSnapshot, AuditStatus
from rankpilot.models.base import utcnow


class AuditService:
    """Service for audit operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, audit_id: UUID) -> Audit | None:
        """Get audit by ID."""
        result = await self.db.execute(select(Audit).where(Audit.id == audit_id))
        return result.scalar_one_or_none()

    async def create(
        self,
        user_id: UUID,
        project_id: UUID,
        url: str,
        competitors: list[str] | None = None,
    ) -> Audit:
        """Create a new audit in the processing state."""
        audit = Audit(
            user_id=user_id,
            project_id=project_id,
            url=url,
            competitors=list(competitors or []),
            status=AuditStatus.PROCESSING,
        )
        self.db.add(audit)
        await self.db.flush()
        await self.db.refresh(audit)
        return audit

    async def mark_processing(self, audit: Audit) -> Audit:
        """Re-mark an audit as processing. No-op when it already is."""
        if audit.status != AuditStatus.PROCESSING:
            audit.status = AuditStatus.PROCESSING
            audit.error_message = None
            audit.failed_at = None
            await self.db.flush()
        return audit

    async def mark_completed(
        self,
        audit: Audit,
        score: int,
        metrics: dict,
        issues: list[dict],
        recommendations: list[dict],
        competitor_gaps: list[dict] | None,
        tokens_used: int,
    ) -> Audit:
        """Store the analysis result and move the audit to completed."""
        audit.status = AuditStatus.COMPLETED
        audit.score = score
        audit.metrics = metrics
        audit.issues = issues
        audit.recommendations = recommendations
        audit.competitor_gaps = competitor_gaps
        audit.tokens_used = tokens_used
        audit.error_message = None
        audit.completed_at = utcnow()
        await self.db.flush()
        return audit

    async def mark_failed(self, audit: Audit, error_message: str) -> Audit:
        """Move the audit to failed. A completed audit is left untouched."""
        if audit.status == AuditStatus.COMPLETED:
            return audit

        audit.status = AuditStatus.FAILED
        audit.score = None
        audit.error_message = error_message
        audit.failed_at = utcnow()
        await self.db.flush()
        return audit

    async def get_snapshot(self, audit_id: UUID) -> AuditSnapshot | None:
        result = await self.db.execute(
            select(AuditSnapshot).where(AuditSnapshot.audit_id == audit_id)
        )
        return result.scalar_one_or_none()

    async def add_snapshot(self, audit_id: UUID, score: int) -> AuditSnapshot:
        """Append the audit's snapshot unless one already exists."""
        existing = await self.get_snapshot(audit_id)
        if existing:
            return existing

        snapshot = AuditSnapshot(audit_id=audit_id, score=score)
        self.db.add(snapshot)
        await self.db.flush()
        return snapshot

    async def list_snapshots(self, user_id: UUID, limit: int = 50) -> list[AuditSnapshot]:
        """Score history across a user's audits, newest first."""
        result = await self.db.execute(
            select(AuditSnapshot)
            .join(Audit, Audit.id == AuditSnapshot.audit_id)
            .where(Audit.user_id == user_id)
            .order_by(AuditSnapshot.timestamp.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
