"""
Usage ledger model.
"""
from sqlalchemy import Column, DateTime, ForeignKey, Integer, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from rankpilot.models.base import Base, UUIDMixin, utcnow


class UsageLog(Base, UUIDMixin):
    """Append-only usage fact, one per submitted audit."""

    __tablename__ = "usage_logs"

    user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Set once at submission, never reassigned
    audit_id = Column(
        UUID(as_uuid=True),
        ForeignKey("audits.id", ondelete="SET NULL"),
        nullable=True,
        unique=True,
    )
    tokens_used = Column(Integer, nullable=False, default=0)
    created_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    # Relationships
    user = relationship("User", back_populates="usage_logs")

    def __repr__(self) -> str:
        return f"<UsageLog user={self.user_id} audit={self.audit_id} tokens={self.tokens_used}>"
