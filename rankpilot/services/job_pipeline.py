"""
Audit job pipeline.

Runs one queued audit end to end: primary analysis, bounded competitor
fan-out, token cost, result persistence, snapshot and usage reconciliation.
Jobs may be delivered more than once; every step tolerates a rerun.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from rankpilot.config import settings
from rankpilot.core.exceptions import CompetitorAnalysisFailure
from rankpilot.models.audit import Audit, AuditStatus
from rankpilot.schemas.audit import AuditJobPayload
from rankpilot.services.audit_engine import AuditEngine, SEOAnalysisResult
from rankpilot.services.audit_service import AuditService
from rankpilot.services.quota import calculate_token_cost
from rankpilot.services.usage_service import UsageLedgerRepository

logger = logging.getLogger(__name__)

AUDIT_TOPIC = "audit"


class AuditQueue(ABC):
    """Queue transport for audit jobs."""

    @abstractmethod
    def enqueue(self, topic: str, payload: dict[str, Any]) -> None:
        pass


class AuditJobPipeline:
    """Enqueues audit jobs and executes them against one session."""

    def __init__(
        self,
        db: AsyncSession,
        engine: AuditEngine = None,
        queue: Optional[AuditQueue] = None,
    ):
        self.db = db
        self.engine = engine or AuditEngine()
        self.queue = queue
        self.audits = AuditService(db)
        self.usage = UsageLedgerRepository(db)

    def enqueue(
        self,
        audit_id: UUID,
        user_id: UUID,
        project_id: UUID,
        url: str,
        competitors: list[str] = None,
    ) -> AuditJobPayload:
        """Hand an admitted audit to the queue."""
        if self.queue is None:
            raise RuntimeError("AuditJobPipeline has no queue configured")

        job = AuditJobPayload(
            audit_id=audit_id,
            user_id=user_id,
            project_id=project_id,
            url=url,
            competitors=competitors or [],
        )
        self.queue.enqueue(AUDIT_TOPIC, job.model_dump(mode="json"))
        logger.info(f"Enqueued audit {audit_id} for {url} ({len(job.competitors)} competitors)")
        return job

    async def execute(self, job: AuditJobPayload) -> dict[str, Any]:
        """
        Run the audit described by ``job``.

        Any error other than a competitor failure marks the audit failed and
        is re-raised so the queue can retry.
        """
        audit = await self.audits.get_by_id(job.audit_id)
        if not audit:
            logger.error(f"Audit {job.audit_id} not found, dropping job")
            return {"error": "Audit not found", "audit_id": str(job.audit_id)}

        if audit.status == AuditStatus.COMPLETED:
            logger.info(f"Audit {audit.id} already completed, skipping redelivered job")
            return self._summary(audit)

        logger.info(f"Processing audit {audit.id} for {job.url}")
        await self.audits.mark_processing(audit)
        await self.db.commit()

        try:
            primary = await self.engine.analyze_page(job.url)
            competitor_gaps = await self._analyze_competitors(job.competitors, primary)

            tokens_used = calculate_token_cost(len(competitor_gaps), len(primary.issues))

            await self.audits.mark_completed(
                audit,
                score=primary.score,
                metrics=primary.metrics.to_dict(),
                issues=[i.to_dict() for i in primary.issues],
                recommendations=[r.to_dict() for r in primary.recommendations],
                competitor_gaps=competitor_gaps or None,
                tokens_used=tokens_used,
            )
            await self.audits.add_snapshot(audit.id, primary.score)
            await self.usage.update_tokens_for_audit(audit.id, tokens_used)
            await self.db.commit()

        except Exception as e:
            await self.db.rollback()
            logger.error(f"Audit {job.audit_id} failed: {type(e).__name__}: {e}")
            await self._mark_failed(job.audit_id, str(e))
            raise

        logger.info(f"Audit {audit.id} completed. Score: {primary.score}/100, tokens: {tokens_used}")
        return self._summary(audit)

    async def _analyze_competitors(self, competitors: list[str], primary: SEOAnalysisResult) -> list[dict]:
        """Analyze competitors one at a time; each failure becomes an inline entry."""
        gaps = []
        for url in competitors[: settings.MAX_COMPETITORS]:
            try:
                gap = await self.engine.analyze_competitor(url, primary)
                gaps.append(gap.to_dict())
            except CompetitorAnalysisFailure as e:
                logger.warning(f"Competitor {url} could not be analyzed: {e}")
                gaps.append(e.to_gap())
        return gaps

    async def _mark_failed(self, audit_id: UUID, error_message: str) -> None:
        audit = await self.audits.get_by_id(audit_id)
        if audit:
            await self.audits.mark_failed(audit, error_message)
            await self.db.commit()

    def _summary(self, audit: Audit) -> dict[str, Any]:
        return {
            "audit_id": str(audit.id),
            "status": audit.status.value,
            "score": audit.score,
            "tokens_used": audit.tokens_used,
            "competitors_analyzed": len(audit.competitor_gaps or []),
        }
