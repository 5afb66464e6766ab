"""
Audit models for SEO analysis results.
"""
from enum import Enum as PyEnum

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import relationship

from rankpilot.models.base import Base, BaseModel, UUIDMixin, utcnow


class AuditStatus(str, PyEnum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class Audit(Base, BaseModel):
    """Audit of one URL, owned by the job pipeline after creation."""
    
    __tablename__ = "audits"
    
    project_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    url = Column(String(2048), nullable=False)
    competitors = Column(JSONB, default=list)
    status = Column(
        Enum(AuditStatus),
        default=AuditStatus.PROCESSING,
        nullable=False,
    )
    score = Column(Integer, nullable=True)
    metrics = Column(JSONB, nullable=True)
    issues = Column(JSONB, nullable=True)
    recommendations = Column(JSONB, nullable=True)
    competitor_gaps = Column(JSONB, nullable=True)
    tokens_used = Column(Integer, nullable=True)
    error_message = Column(Text, nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    failed_at = Column(DateTime(timezone=True), nullable=True)
    
    # Relationships
    snapshots = relationship("AuditSnapshot", back_populates="audit", cascade="all, delete-orphan")
    
    def __repr__(self) -> str:
        return f"<Audit {self.id} ({self.status.value})>"


class AuditSnapshot(Base, UUIDMixin):
    """Immutable historical score point, one per completed audit."""
    
    __tablename__ = "audit_snapshots"
    
    audit_id = Column(
        UUID(as_uuid=True),
        ForeignKey("audits.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    score = Column(Integer, nullable=False)
    timestamp = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    
    # Relationships
    audit = relationship("Audit", back_populates="snapshots")
    
    def __repr__(self) -> str:
        return f"<AuditSnapshot audit={self.audit_id} score={self.score}>"
