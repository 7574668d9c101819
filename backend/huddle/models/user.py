from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import relationship

from huddle.database import Base, new_id, utcnow

AVATAR_URL_TEMPLATE = "https://api.dicebear.com/7.x/avataaars/svg?seed={seed}"


class User(Base):
    __tablename__ = "users"

    # Same value as the owning AuthIdentity.id
    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String(255), nullable=False)
    # Always stored lowercase; availability is checked before insert
    username = Column(String(30), unique=True, index=True, nullable=False)
    avatar_url = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Relationships
    messages = relationship("Message", back_populates="user")
    reactions = relationship("Reaction", back_populates="user")

    @staticmethod
    def placeholder_avatar(username: str) -> str:
        """Deterministic avatar URL seeded from the username."""
        return AVATAR_URL_TEMPLATE.format(seed=username)
