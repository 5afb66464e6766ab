"""
Quota Ledger

Period-scoped usage accounting and admission control for audits.
Implements:
- Admission decisions against the user's tier (audit count and token sum)
- Soft usage warnings with a per-user cooldown
- Usage summaries and the periodic usage alert sweep
- Post-hoc token cost of a finished audit
- Optional per-user Redis lock serializing admission
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator, Optional
from uuid import UUID

import redis.asyncio as redis
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rankpilot.config import settings
from rankpilot.core.rounding import round_half_up
from rankpilot.core.exceptions import (
    AuditLimitExceeded,
    QuotaExceededError,
    TokenLimitExceeded,
)
from rankpilot.models.tier import Tier
from rankpilot.models.user import User
from rankpilot.schemas.usage import AdmissionUsage, TierInfo, UsageSummary
from rankpilot.services.usage_service import UsageLedgerRepository, UsageTotals

logger = logging.getLogger(__name__)

USAGE_WARNING_MESSAGE = "You are approaching your usage limits. Consider upgrading your plan."


@dataclass
class TierDefinition:
    """Seed values for a tier."""
    name: str
    audit_limit: int
    token_limit: int
    price: float


DEFAULT_TIERS = [
    TierDefinition(name="Free", audit_limit=5, token_limit=10_000, price=0),
    TierDefinition(name="Starter", audit_limit=50, token_limit=100_000, price=20),
    TierDefinition(name="Pro", audit_limit=200, token_limit=500_000, price=45),
    TierDefinition(name="Enterprise", audit_limit=1_000, token_limit=5_000_000, price=100),
]


async def seed_tiers(db: AsyncSession, tiers: list[TierDefinition] = None) -> list[Tier]:
    """Insert any missing default tiers. Existing tiers are left as they are."""
    tiers = tiers or DEFAULT_TIERS
    result = await db.execute(select(Tier))
    existing = {tier.name: tier for tier in result.scalars().all()}

    seeded = []
    for definition in tiers:
        tier = existing.get(definition.name)
        if tier is None:
            tier = Tier(
                name=definition.name,
                audit_limit=definition.audit_limit,
                token_limit=definition.token_limit,
                price=definition.price,
            )
            db.add(tier)
            logger.info(f"Seeding tier {definition.name}")
        seeded.append(tier)

    await db.flush()
    return seeded


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops the offset)."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def billing_period(user: User, now: datetime = None) -> tuple[datetime, datetime]:
    """The user's active billing window.

    Falls back to the current UTC calendar month when the user has no stored
    period.
    """
    if user.current_period_start and user.current_period_end:
        return _as_utc(user.current_period_start), _as_utc(user.current_period_end)

    now = _as_utc(now) or datetime.now(timezone.utc)
    start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if start.month == 12:
        next_month = start.replace(year=start.year + 1, month=1)
    else:
        next_month = start.replace(month=start.month + 1)
    return start, next_month - timedelta(microseconds=1)


def usage_percentage(used: int, limit: int) -> float:
    if limit <= 0:
        return 0.0
    return used / limit * 100


def calculate_token_cost(competitors_analyzed: int, issue_count: int) -> int:
    """Metered cost of a finished audit."""
    return (
        settings.TOKEN_COST_BASE
        + settings.TOKEN_COST_PER_COMPETITOR * competitors_analyzed
        + settings.TOKEN_COST_PER_ISSUE * issue_count
    )


def cooldown_elapsed(last_alert_at: Optional[datetime], now: datetime) -> bool:
    if last_alert_at is None:
        return True
    cooldown = timedelta(hours=settings.USAGE_ALERT_COOLDOWN_HOURS)
    return _as_utc(now) - _as_utc(last_alert_at) > cooldown


@dataclass
class AdmissionDecision:
    """Result of an admission check."""
    allowed: bool
    audits_used: int
    audit_limit: int
    tokens_used: int
    token_limit: int
    error: Optional[QuotaExceededError] = None

    @property
    def audit_usage_percentage(self) -> float:
        return usage_percentage(self.audits_used, self.audit_limit)

    @property
    def token_usage_percentage(self) -> float:
        return usage_percentage(self.tokens_used, self.token_limit)

    @property
    def should_warn(self) -> bool:
        threshold = settings.USAGE_ALERT_THRESHOLD_PERCENT
        return (
            self.audit_usage_percentage >= threshold
            or self.token_usage_percentage >= threshold
        )

    @property
    def warning(self) -> Optional[str]:
        return USAGE_WARNING_MESSAGE if self.should_warn else None

    def admitted_usage(self) -> AdmissionUsage:
        """Usage as it stands once the admitted audit is counted."""
        audits_after = self.audits_used + 1
        return AdmissionUsage(
            audits_used=audits_after,
            audit_limit=self.audit_limit,
            audit_usage_percentage=round_half_up(usage_percentage(audits_after, self.audit_limit)),
            tokens_used=self.tokens_used,
            token_limit=self.token_limit,
            token_usage_percentage=round_half_up(self.token_usage_percentage),
            warning=self.warning,
        )


class UsageAlertNotifier:
    """Delivers usage alerts. Logs them; mail delivery lives outside the core."""

    async def notify(self, user: User, limit_type: str, used: int, limit: int) -> None:
        percent = round_half_up(usage_percentage(used, limit))
        logger.warning(
            f"Usage alert: User {user.email} has used {percent}% of their {limit_type} quota "
            f"({used} of {limit})"
        )


class QuotaLedger:
    """
    Database-backed quota accounting.

    Admission is read-then-decide against the usage log; two concurrent
    submissions for the same user may both pass. Wrap submission in
    AdmissionLock when exact enforcement is required.
    """

    def __init__(
        self,
        db: AsyncSession,
        usage_repository: UsageLedgerRepository = None,
        notifier: UsageAlertNotifier = None,
    ):
        self.db = db
        self.usage = usage_repository or UsageLedgerRepository(db)
        self.notifier = notifier or UsageAlertNotifier()

    async def get_period_usage(self, user: User, now: datetime = None) -> UsageTotals:
        period_start, period_end = billing_period(user, now)
        return await self.usage.get_period_usage(user.id, period_start, period_end)

    async def check_admission(self, user: User, tier: Tier, now: datetime = None) -> AdmissionDecision:
        """
        Decide whether ``user`` may start another audit.

        Args:
            user: Submitting user
            tier: The user's tier
            now: Clock override for the calendar-month fallback

        Returns:
            AdmissionDecision; when rejected, ``error`` holds AuditLimitExceeded
            or TokenLimitExceeded (audit limit is checked first)
        """
        totals = await self.get_period_usage(user, now)

        decision = AdmissionDecision(
            allowed=True,
            audits_used=totals.audits_used,
            audit_limit=tier.audit_limit,
            tokens_used=totals.tokens_used,
            token_limit=tier.token_limit,
        )

        if totals.audits_used >= tier.audit_limit:
            decision.allowed = False
            decision.error = AuditLimitExceeded(totals.audits_used, tier.audit_limit)
        elif totals.tokens_used >= tier.token_limit:
            decision.allowed = False
            decision.error = TokenLimitExceeded(totals.tokens_used, tier.token_limit)

        if decision.allowed:
            logger.info(
                f"Admitted audit for user {user.id}: "
                f"{totals.audits_used}/{tier.audit_limit} audits, "
                f"{totals.tokens_used}/{tier.token_limit} tokens"
            )
        else:
            logger.info(f"Rejected audit for user {user.id}: {decision.error}")

        return decision

    async def record_usage_alert(
        self,
        user: User,
        decision: AdmissionDecision,
        now: datetime = None,
    ) -> bool:
        """
        Stamp ``last_usage_alert_at`` when the decision crossed the warning
        threshold and the cooldown has elapsed.

        Returns True when an alert was emitted.
        """
        now = now or datetime.now(timezone.utc)
        if not decision.should_warn or not cooldown_elapsed(user.last_usage_alert_at, now):
            return False

        user.last_usage_alert_at = now
        await self.db.flush()

        percent = round_half_up(max(decision.audit_usage_percentage, decision.token_usage_percentage))
        logger.warning(f"Usage alert: User {user.email} is at {percent}% of their limits")
        return True

    async def get_usage_summary(self, user: User, tier: Tier, now: datetime = None) -> UsageSummary:
        """Get usage summary for the user's current billing period."""
        period_start, period_end = billing_period(user, now)
        totals = await self.usage.get_period_usage(user.id, period_start, period_end)

        return UsageSummary(
            tier=TierInfo.model_validate(tier),
            period_start=period_start,
            period_end=period_end,
            audits_used=totals.audits_used,
            tokens_used=totals.tokens_used,
            remaining_audits=max(0, tier.audit_limit - totals.audits_used),
            remaining_tokens=max(0, tier.token_limit - totals.tokens_used),
            audit_usage_percentage=round_half_up(usage_percentage(totals.audits_used, tier.audit_limit)),
            token_usage_percentage=round_half_up(usage_percentage(totals.tokens_used, tier.token_limit)),
        )

    async def sweep_usage_alerts(self, now: datetime = None) -> int:
        """
        Alert every user above the sweep threshold, at most once per cooldown.

        Audit usage is checked before token usage; a user gets one alert per
        sweep. Returns the number of alerts sent.
        """
        now = now or datetime.now(timezone.utc)
        threshold = settings.USAGE_ALERT_SWEEP_THRESHOLD_PERCENT / 100

        result = await self.db.execute(select(User))
        users = result.scalars().all()

        sent = 0
        for user in users:
            tier = await self.db.get(Tier, user.tier_id)
            if tier is None:
                continue
            if not cooldown_elapsed(user.last_usage_alert_at, now):
                continue

            totals = await self.get_period_usage(user, now)

            if totals.audits_used > threshold * tier.audit_limit:
                await self.notifier.notify(user, "audits", totals.audits_used, tier.audit_limit)
            elif totals.tokens_used > threshold * tier.token_limit:
                await self.notifier.notify(user, "tokens", totals.tokens_used, tier.token_limit)
            else:
                continue

            user.last_usage_alert_at = now
            sent += 1

        await self.db.flush()
        logger.info(f"Usage alert sweep finished: {sent} alerts sent to {len(users)} users")
        return sent


class AdmissionLock:
    """
    Per-user Redis lock serializing admission.

    Held across the quota check and the creation of the audit and its usage
    entry so two submissions for one user cannot both read the same usage.
    """

    def __init__(self, redis_url: str = None, timeout_seconds: int = None):
        self.redis_url = redis_url or settings.REDIS_URL
        self.timeout_seconds = timeout_seconds or settings.ADMISSION_LOCK_TIMEOUT_SECONDS
        self._redis: Optional[redis.Redis] = None

    async def get_redis(self) -> redis.Redis:
        """Get or create Redis connection."""
        if self._redis is None:
            self._redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
        return self._redis

    async def close(self):
        """Close Redis connection."""
        if self._redis:
            await self._redis.close()
            self._redis = None

    def _lock_key(self, user_id: UUID) -> str:
        return f"admission:{user_id}"

    @asynccontextmanager
    async def hold(self, user_id: UUID) -> AsyncIterator[None]:
        """Hold the user's admission lock. Raises redis LockError if not acquired in time."""
        r = await self.get_redis()
        lock = r.lock(
            self._lock_key(user_id),
            timeout=self.timeout_seconds,
            blocking_timeout=self.timeout_seconds,
        )
        async with lock:
            yield


# Global admission lock instance
_admission_lock: Optional[AdmissionLock] = None


def get_admission_lock() -> AdmissionLock:
    """Get the global admission lock instance."""
    global _admission_lock
    if _admission_lock is None:
        _admission_lock = AdmissionLock()
    return _admission_lock


async def close_admission_lock():
    """Close the global admission lock."""
    global _admission_lock
    if _admission_lock:
        await _admission_lock.close()
        _admission_lock = None
