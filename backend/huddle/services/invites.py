"""
Invite issuance: generate, validate and redeem workspace invite codes.

A code is usable while it is active, has uses left and has not expired.
Redemption signs the new user up first and then consumes one use; a failed
decrement is logged and never undoes the sign-up.
"""

import logging
import secrets
import string
from datetime import datetime, timedelta, timezone

from huddle.config import settings
from huddle.core.errors import InvalidInput, InviteNotFound, UpstreamFailure
from huddle.gateway.query import PersistenceGateway, eq, gt
from huddle.models.invite_code import InviteCode
from huddle.services import identity
from huddle.services.identity import AuthResult

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits  # 36 symbols


def generate_code(length: int | None = None) -> str:
    """Uniformly sample ``length`` characters from A-Z0-9."""
    length = length or settings.INVITE_CODE_LENGTH
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def generate(gateway: PersistenceGateway, user_id: str) -> InviteCode:
    if not user_id or not str(user_id).strip():
        raise InvalidInput("User ID is required")

    invite = gateway.insert(
        "invite_codes",
        {
            "code": generate_code(),
            "created_by": str(user_id),
            "expires_at": datetime.now(timezone.utc) + timedelta(days=settings.INVITE_TTL_DAYS),
            "uses_remaining": settings.INVITE_USES,
            "is_active": True,
        },
    )
    logger.info("Invite %s generated by %s", invite.code, user_id)
    return invite


def validate(gateway: PersistenceGateway, code: str) -> InviteCode:
    """Return the invite for ``code`` or raise InviteNotFound."""
    if not code:
        raise InviteNotFound(code)
    invite = gateway.first(
        "invite_codes",
        eq("code", code),
        eq("is_active", True),
        gt("uses_remaining", 0),
        gt("expires_at", datetime.now(timezone.utc)),
    )
    if invite is None:
        raise InviteNotFound(code)
    return invite


def redeem(gateway: PersistenceGateway, code: str, email: str, password: str, username: str) -> AuthResult:
    """Sign a new user up through an invite and consume one use of it."""
    invite = validate(gateway, code)
    result = identity.sign_up(gateway, email, password, username)

    # Read-then-write: concurrent redemptions can both succeed on the last use.
    remaining = invite.uses_remaining - 1
    try:
        gateway.update("invite_codes", {"uses_remaining": remaining}, eq("id", invite.id))
    except UpstreamFailure as exc:
        logger.error("Error updating invite code %s after sign-up: %s", code, exc.message)
    else:
        logger.info("Invite %s redeemed by %s (%s uses left)", code, result.profile.username, remaining)
    return result
