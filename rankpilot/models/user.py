"""
User model with billing period and usage alert state.
"""
from sqlalchemy import Column, DateTime, ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from rankpilot.models.base import Base, BaseModel


class User(Base, BaseModel):
    """Account whose consumption is metered against a tier."""
    
    __tablename__ = "users"
    
    email = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=True)
    tier_id = Column(
        UUID(as_uuid=True),
        ForeignKey("tiers.id"),
        nullable=False,
        index=True,
    )
    current_period_start = Column(DateTime(timezone=True), nullable=True)
    current_period_end = Column(DateTime(timezone=True), nullable=True)
    last_usage_alert_at = Column(DateTime(timezone=True), nullable=True)
    
    # Relationships
    tier = relationship("Tier", back_populates="users")
    usage_logs = relationship("UsageLog", back_populates="user")
    
    def __repr__(self) -> str:
        return f"<User {self.email}>"
