"""
Exceptions raised by the RankPilot audit and quota core.

Each error carries a ``status_code`` hint so an HTTP layer can map it without
knowing the taxonomy.
"""

from rankpilot.core.rounding import round_half_up


class RankPilotError(Exception):
    """Base class for RankPilot errors."""

    status_code = 500

    def __init__(self, message: str = "Internal error"):
        super().__init__(message)
        self.message = message


class NotFoundError(RankPilotError):
    """Resource not found."""

    status_code = 404

    def __init__(self, resource: str = "Resource"):
        super().__init__(f"{resource} not found")
        self.resource = resource


# ============================================================================
# Fetcher
# ============================================================================

class FetchError(RankPilotError):
    """Page could not be retrieved."""

    status_code = 502

    def __init__(self, url: str, message: str):
        super().__init__(message)
        self.url = url


class FetchTimeout(FetchError):
    """The fetch deadline elapsed."""

    status_code = 504

    def __init__(self, url: str, timeout_seconds: float):
        super().__init__(url, f"Request timeout: {url} took longer than {timeout_seconds:g}s to load")
        self.timeout_seconds = timeout_seconds


class NetworkError(FetchError):
    """DNS resolution or connection failure."""

    def __init__(self, url: str, reason: str):
        super().__init__(url, f"Failed to fetch page {url}: {reason}")
        self.reason = reason


class UpstreamHTTPError(FetchError):
    """The page answered with a non-2xx status."""

    def __init__(self, url: str, upstream_status: int, reason: str = ""):
        detail = f"HTTP {upstream_status}"
        if reason:
            detail = f"{detail}: {reason}"
        super().__init__(url, detail)
        self.upstream_status = upstream_status


class ParseError(RankPilotError):
    """HTML could not be parsed. Never escapes the parser; see ParsedDocument."""


# ============================================================================
# Quota
# ============================================================================

class QuotaExceededError(RankPilotError):
    """Admission rejected; not retryable without a plan upgrade."""

    status_code = 429
    limit_type = "quota"

    def __init__(self, used: int, limit: int, message: str):
        super().__init__(message)
        self.used = used
        self.limit = limit

    @property
    def usage_percentage(self) -> int:
        if self.limit <= 0:
            return 0
        return round_half_up(self.used / self.limit * 100)

    def to_dict(self) -> dict:
        return {
            "error": str(self),
            "limit_type": self.limit_type,
            "used": self.used,
            "limit": self.limit,
            "usage_percentage": self.usage_percentage,
            "message": self.upgrade_message(),
        }

    def upgrade_message(self) -> str:
        return "Please upgrade your plan to continue."


class AuditLimitExceeded(QuotaExceededError):
    limit_type = "audits"

    def __init__(self, audits_used: int, audit_limit: int):
        super().__init__(audits_used, audit_limit, "Audit limit exceeded")

    @property
    def audits_used(self) -> int:
        return self.used

    @property
    def audit_limit(self) -> int:
        return self.limit

    def upgrade_message(self) -> str:
        return (
            f"You have reached your monthly audit limit ({self.limit}). "
            "Please upgrade your plan to continue."
        )


class TokenLimitExceeded(QuotaExceededError):
    limit_type = "tokens"

    def __init__(self, tokens_used: int, token_limit: int):
        super().__init__(tokens_used, token_limit, "Token limit exceeded")

    @property
    def tokens_used(self) -> int:
        return self.used

    @property
    def token_limit(self) -> int:
        return self.limit

    def upgrade_message(self) -> str:
        return (
            f"You have reached your monthly token limit ({self.limit:,}). "
            "Please upgrade your plan to continue."
        )


# ============================================================================
# Analysis
# ============================================================================

class AnalysisFailure(RankPilotError):
    """The primary URL could not be analyzed; the audit is marked failed."""

    def __init__(self, url: str, message: str):
        super().__init__(message)
        self.url = url


class CompetitorAnalysisFailure(AnalysisFailure):
    """A competitor URL could not be analyzed; recorded inline, never fatal."""

    def to_gap(self) -> dict:
        return {"url": self.url, "error": f"Analysis failed: {self.message}"}
