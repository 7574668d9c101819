"""
Identity: sign-up, sign-in and profile management.

The module-level functions are stateless and back the REST routes.
``IdentitySession`` wraps them for a single client: it holds the current
identity and profile and notifies subscribers after every change.
"""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass

from huddle.core.errors import (
    InvalidInput,
    NotAuthenticated,
    ProfileCreationFailed,
    UpstreamFailure,
    UsernameTaken,
)
from huddle.gateway.query import PersistenceGateway, eq, ieq
from huddle.models.user import User
from huddle.schemas.user import UserResponse
from huddle.services import auth_service

logger = logging.getLogger(__name__)

USERNAME_RE = re.compile(r"^\w{2,30}$")
EDITABLE_PROFILE_FIELDS = {"username", "avatar_url"}


@dataclass
class AuthResult:
    identity_id: str
    email: str
    token: str
    profile: User


def normalize_username(username: str) -> str:
    username = (username or "").strip().lower()
    if not USERNAME_RE.match(username):
        raise InvalidInput("Username must be 2-30 letters, numbers or underscores")
    return username


def is_username_available(gateway: PersistenceGateway, username: str) -> bool:
    return gateway.first("users", ieq("username", username)) is None


def sign_up(gateway: PersistenceGateway, email: str, password: str, username: str) -> AuthResult:
    """Create an auth identity and its profile row.

    The username check runs before the auth backend is touched.  Identity
    and profile are written in one transaction, so a failed profile insert
    leaves no orphaned identity behind.
    """
    username = normalize_username(username)
    if not is_username_available(gateway, username):
        raise UsernameTaken(username)

    try:
        with gateway.atomic():
            identity = auth_service.create_identity(gateway, email, password)
            profile = gateway.insert(
                "users",
                {
                    "id": identity.id,
                    "email": identity.email,
                    "username": username,
                    "avatar_url": User.placeholder_avatar(username),
                },
            )
    except UpstreamFailure as exc:
        logger.error("Error creating user profile for %s: %s", username, exc.message)
        raise ProfileCreationFailed(exc.message) from exc

    logger.info("Signed up %s", username)
    return AuthResult(
        identity_id=identity.id,
        email=identity.email,
        token=auth_service.create_access_token(identity.id),
        profile=profile,
    )


def sign_in(gateway: PersistenceGateway, email: str, password: str) -> AuthResult:
    identity = auth_service.authenticate(gateway, email, password)
    profile = load_profile(gateway, identity.id)
    return AuthResult(
        identity_id=identity.id,
        email=identity.email,
        token=auth_service.create_access_token(identity.id),
        profile=profile,
    )


def load_profile(gateway: PersistenceGateway, user_id: str) -> User | None:
    return gateway.first("users", eq("id", user_id))


def update_profile(gateway: PersistenceGateway, user_id: str | None, fields: dict) -> User:
    """Apply a partial profile update and return the reloaded profile."""
    if not user_id:
        raise NotAuthenticated()

    updates = {k: v for k, v in fields.items() if v is not None}
    unknown = set(updates) - EDITABLE_PROFILE_FIELDS
    if unknown:
        raise InvalidInput(f"Cannot update: {', '.join(sorted(unknown))}")
    if not updates:
        raise InvalidInput("Nothing to update")

    if "username" in updates:
        updates["username"] = normalize_username(updates["username"])
        owner = gateway.first("users", ieq("username", updates["username"]))
        if owner is not None and owner.id != user_id:
            raise UsernameTaken(updates["username"])

    rows = gateway.update("users", updates, eq("id", user_id))
    if not rows:
        raise NotAuthenticated("Profile not found")
    return load_profile(gateway, user_id)


SessionListener = Callable[["IdentitySession"], None]


class IdentitySession:
    """Current identity + profile for one client, with change notification."""

    def __init__(self, gateway: PersistenceGateway) -> None:
        self.gateway = gateway
        self.identity_id: str | None = None
        self.email: str | None = None
        self.token: str | None = None
        self.profile: UserResponse | None = None
        self.loading = False
        self._listeners: list[SessionListener] = []

    @property
    def is_authenticated(self) -> bool:
        return self.identity_id is not None

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Session listener failed")

    def accept(self, result: AuthResult) -> None:
        """Adopt an identity produced elsewhere (e.g. invite redemption)."""
        self._apply(result)
        self._notify()

    def _apply(self, result: AuthResult) -> None:
        self.identity_id = result.identity_id
        self.email = result.email
        self.token = result.token
        self.profile = UserResponse.model_validate(result.profile) if result.profile else None

    def restore(self, token: str) -> bool:
        """Resume a session from a stored access token."""
        self.loading = True
        try:
            user = auth_service.get_user_from_token(token, self.gateway)
            if user is None:
                self._clear()
                return False
            self.identity_id = user.id
            self.email = user.email
            self.token = token
            self.profile = UserResponse.model_validate(user)
            return True
        finally:
            self.loading = False
            self._notify()

    def sign_up(self, email: str, password: str, username: str) -> UserResponse:
        result = sign_up(self.gateway, email, password, username)
        self._apply(result)
        self._notify()
        return self.profile

    def sign_in(self, email: str, password: str) -> UserResponse | None:
        result = sign_in(self.gateway, email, password)
        self._apply(result)
        self._notify()
        return self.profile

    def sign_out(self) -> None:
        self._clear()
        self._notify()

    def update_profile(self, fields: dict) -> UserResponse:
        profile = update_profile(self.gateway, self.identity_id, fields)
        self.profile = UserResponse.model_validate(profile)
        self._notify()
        return self.profile

    def reload_profile(self) -> None:
        if not self.identity_id:
            return
        profile = load_profile(self.gateway, self.identity_id)
        self.profile = UserResponse.model_validate(profile) if profile else None
        self._notify()

    def _clear(self) -> None:
        self.identity_id = None
        self.email = None
        self.token = None
        self.profile = None
