"""
Audit submission: admission, audit creation and enqueueing.
"""
import logging
from contextlib import AsyncExitStack
from uuid import UUID, uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from rankpilot.config import settings
from rankpilot.core.exceptions import NotFoundError
from rankpilot.models.tier import Tier
from rankpilot.models.user import User
from rankpilot.schemas.audit import AuditResultResponse, SubmitAuditResult
from rankpilot.services.audit_service import AuditService
from rankpilot.services.job_pipeline import AuditJobPipeline, AuditQueue
from rankpilot.services.quota import AdmissionLock, QuotaLedger, get_admission_lock
from rankpilot.services.usage_service import UsageLedgerRepository

logger = logging.getLogger(__name__)


class AuditSubmissionService:
    """Entry point for callers submitting audits and polling their results."""

    def __init__(
        self,
        db: AsyncSession,
        queue: AuditQueue,
        ledger: QuotaLedger = None,
        admission_lock: AdmissionLock = None,
    ):
        self.db = db
        self.ledger = ledger or QuotaLedger(db)
        self.audits = AuditService(db)
        self.usage = UsageLedgerRepository(db)
        self.pipeline = AuditJobPipeline(db, queue=queue)
        self.admission_lock = admission_lock

    def _lock(self) -> AdmissionLock | None:
        if self.admission_lock is not None:
            return self.admission_lock
        if settings.QUOTA_STRICT_ADMISSION:
            return get_admission_lock()
        return None

    async def submit_audit(
        self,
        user: User,
        tier: Tier,
        url: str,
        competitors: list[str] = None,
        project_id: UUID = None,
    ) -> SubmitAuditResult:
        """
        Admit and enqueue an audit of ``url``.

        A quota rejection is returned, not raised: ``admitted`` is False and
        ``reason``/``error`` describe the exceeded limit.
        """
        competitors = competitors or []
        project_id = project_id or uuid4()

        async with AsyncExitStack() as stack:
            lock = self._lock()
            if lock is not None:
                await stack.enter_async_context(lock.hold(user.id))

            decision = await self.ledger.check_admission(user, tier)
            if not decision.allowed:
                return SubmitAuditResult(
                    admitted=False,
                    reason=str(decision.error),
                    error=decision.error.to_dict(),
                )

            await self.ledger.record_usage_alert(user, decision)

            audit = await self.audits.create(
                user_id=user.id,
                project_id=project_id,
                url=url,
                competitors=competitors,
            )
            await self.usage.create_entry(user_id=user.id, audit_id=audit.id, tokens_used=0)
            await self.db.commit()

        try:
            self.pipeline.enqueue(
                audit_id=audit.id,
                user_id=user.id,
                project_id=project_id,
                url=url,
                competitors=competitors,
            )
        except Exception as e:
            logger.error(f"Failed to enqueue audit {audit.id}: {type(e).__name__}: {e}")
            await self.audits.mark_failed(audit, f"Failed to enqueue audit job: {e}")
            await self.db.commit()
            raise

        return SubmitAuditResult(
            admitted=True,
            audit_id=audit.id,
            usage=decision.admitted_usage(),
        )

    async def get_audit_result(self, audit_id: UUID) -> AuditResultResponse:
        """Current state of an audit. Raises NotFoundError for unknown ids."""
        audit = await self.audits.get_by_id(audit_id)
        if not audit:
            raise NotFoundError("Audit")
        return AuditResultResponse.model_validate(audit)
