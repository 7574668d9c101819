from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from huddle.database import Base, new_id, utcnow


class Message(Base):
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=new_id)
    content = Column(Text, nullable=False)
    channel_id = Column(String(36), ForeignKey("channels.id"), nullable=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    # NULL for top-level messages; replies point at their thread root.
    # Replies are removed by the application before the parent, not by the database.
    parent_message_id = Column(String(36), ForeignKey("messages.id"), nullable=True, index=True)
    is_pinned = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    user = relationship("User", back_populates="messages")
    channel = relationship("Channel", back_populates="messages")
    reactions = relationship(
        "Reaction",
        back_populates="message",
        cascade="all, delete-orphan",
        order_by="Reaction.created_at",
    )
    parent = relationship("Message", remote_side="Message.id", foreign_keys="Message.parent_message_id")
