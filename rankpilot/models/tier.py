"""
Subscription tier model.
"""
from sqlalchemy import Column, Float, Integer, String
from sqlalchemy.orm import relationship

from rankpilot.models.base import Base, BaseModel


class Tier(Base, BaseModel):
    """Named plan bounding audits and tokens per billing period."""

    __tablename__ = "tiers"

    name = Column(String(100), nullable=False, unique=True)
    audit_limit = Column(Integer, nullable=False)
    token_limit = Column(Integer, nullable=False)
    price = Column(Float, nullable=False, default=0)

    users = relationship("User", back_populates="tier")

    def __repr__(self) -> str:
        return f"<Tier {self.name} audits={self.audit_limit} tokens={self.token_limit}>"
