from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship

from huddle.database import Base, new_id, utcnow


class Reaction(Base):
    __tablename__ = "reactions"

    id = Column(String(36), primary_key=True, default=new_id)
    message_id = Column(String(36), ForeignKey("messages.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    # Unicode emoji or :name: format
    emoji = Column(String(50), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Relationships
    message = relationship("Message", back_populates="reactions")
    user = relationship("User", back_populates="reactions")

    __table_args__ = (
        # One user can only react with the same emoji once per message
        UniqueConstraint("message_id", "user_id", "emoji", name="unique_user_emoji_per_message"),
    )
