from sqlalchemy import Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from huddle.database import Base, new_id, utcnow


class Channel(Base):
    __tablename__ = "channels"

    id = Column(String(36), primary_key=True, default=new_id)
    # Lowercase, whitespace collapsed to hyphens (see services.messages.normalize_channel_name)
    name = Column(String(80), nullable=False)
    description = Column(String(500), nullable=True)
    created_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Relationships
    creator = relationship("User")
    messages = relationship("Message", back_populates="channel", cascade="all, delete-orphan")
