from sqlalchemy import Column, DateTime, String

from huddle.database import Base, new_id, utcnow


class AuthIdentity(Base):
    """Credential record owned by the auth backend.

    Kept apart from the ``users`` profile row; both share the same id.
    """

    __tablename__ = "auth_identities"

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
