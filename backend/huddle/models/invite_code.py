from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from huddle.database import Base, new_id, utcnow


class InviteCode(Base):
    """A shareable code that lets a new user sign up into the workspace."""

    __tablename__ = "invite_codes"

    id = Column(String(36), primary_key=True, default=new_id)
    code = Column(String(10), unique=True, index=True, nullable=False)
    created_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    uses_remaining = Column(Integer, default=5, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Relationships
    creator = relationship("User", foreign_keys=[created_by])
