"""
Auth backend: credential storage and token issuance.

Owns the ``auth_identities`` table.  Profile rows (``users``) are written by
the identity layer, never here; the two share an id.

No JWT decoding should happen outside this module.
"""

from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

from huddle.config import settings
from huddle.core.errors import AuthRejected, InvalidCredentials
from huddle.gateway.query import PersistenceGateway, eq
from huddle.models.auth_identity import AuthIdentity
from huddle.models.user import User

MIN_PASSWORD_LENGTH = 6

# ── Password ──────────────────────────────────────────────────────────────────


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(plain.encode(), hashed.encode())


# ── Identities ────────────────────────────────────────────────────────────────


def create_identity(gateway: PersistenceGateway, email: str, password: str) -> AuthIdentity:
    """Register a new credential.  Raises AuthRejected with a readable reason."""
    email = (email or "").strip().lower()
    if "@" not in email:
        raise AuthRejected("Unable to validate email address: invalid format")
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise AuthRejected(f"Password should be at least {MIN_PASSWORD_LENGTH} characters")
    if gateway.first("auth_identities", eq("email", email)):
        raise AuthRejected("User already registered")

    return gateway.insert(
        "auth_identities",
        {"email": email, "hashed_password": hash_password(password)},
    )


def authenticate(gateway: PersistenceGateway, email: str, password: str) -> AuthIdentity:
    identity = gateway.first("auth_identities", eq("email", (email or "").strip().lower()))
    if not identity or not verify_password(password or "", identity.hashed_password):
        raise InvalidCredentials("Invalid login credentials")
    return identity


# ── Token ─────────────────────────────────────────────────────────────────────


def create_access_token(identity_id: str, expires_delta: timedelta | None = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    payload = {"sub": identity_id, "exp": expire}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict | None:
    """Decode and validate a JWT. Returns payload dict or None on failure."""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None


# ── User Lookup ───────────────────────────────────────────────────────────────


def get_user_from_token(token: str, gateway: PersistenceGateway) -> User | None:
    """Resolve a JWT to the profile row of its identity."""
    payload = decode_access_token(token)
    if payload is None:
        return None
    identity_id = payload.get("sub")
    if not identity_id:
        return None
    return gateway.first("users", eq("id", identity_id))
