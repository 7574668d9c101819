"""
Invite link generation and the invite onboarding form.
"""

import logging
from collections.abc import Callable
from datetime import datetime

import httpx

from huddle.config import settings
from huddle.core.errors import AuthRejected, HuddleError, InviteNotFound, UsernameTaken
from huddle.gateway.query import PersistenceGateway
from huddle.presentation.api_client import ApiClient
from huddle.presentation.base import View
from huddle.services import invites
from huddle.services.identity import IdentitySession, USERNAME_RE

logger = logging.getLogger(__name__)


def invite_link(code: str, base_url: str | None = None) -> str:
    return f"{(base_url or settings.PUBLIC_BASE_URL).rstrip('/')}/invite/{code}"


class InviteManager(View):
    def __init__(self, api: ApiClient, current_user_id: Callable[[], str | None]) -> None:
        super().__init__()
        self.api = api
        self._current_user_id = current_user_id
        self.code: str | None = None
        self.expires_at: str | None = None
        self.generating = False

    @property
    def link(self) -> str:
        return invite_link(self.code) if self.code else ""

    async def generate(self) -> str | None:
        user_id = self._current_user_id()
        if not user_id:
            self.error = "Failed to generate invite link: Current user ID is missing"
            self._render()
            return None
        self.generating = True
        self.error = None
        self._render()
        try:
            invite = await self.api.generate_invite(user_id)
        except (httpx.HTTPError, KeyError) as exc:
            self._fail("Generating invite", exc, f"Failed to generate invite link: {exc}")
            return None
        finally:
            self.generating = False
        self.code = invite["code"]
        self.expires_at = invite.get("expires_at")
        self._render()
        return self.code


class InviteOnboarding(View):
    """Sign-up through ``/invite/<code>``."""

    def __init__(self, gateway: PersistenceGateway, session: IdentitySession, code: str | None) -> None:
        super().__init__()
        self.gateway = gateway
        self.session = session
        self.code = code
        self.valid = False
        self.expires_at: datetime | None = None
        self.submitting = False

    def validate(self) -> bool:
        if not self.code:
            self.error = "No invite code provided"
            self.valid = False
            self._render()
            return False
        try:
            invite = invites.validate(self.gateway, self.code)
        except InviteNotFound as exc:
            self.valid = False
            self._fail("Validating invite", exc, "Invalid or expired invite code")
            return False
        except HuddleError as exc:
            self.valid = False
            self._fail("Validating invite", exc, "Failed to validate invite code")
            return False
        self.valid = True
        self.expires_at = invite.expires_at
        self.error = None
        self._render()
        return True

    @staticmethod
    def check_form(email: str, password: str, username: str) -> str | None:
        """First problem with the form, or None."""
        if not email or not password or not username:
            return "All fields are required"
        if "@" not in email:
            return "Please enter a valid email address"
        if len(username.strip()) < 2:
            return "Username must be at least 2 characters long"
        if not USERNAME_RE.match(username.strip()):
            return "Username may only contain letters, digits and underscores"
        if len(password) < 6:
            return "Password must be at least 6 characters long"
        return None

    def submit(self, email: str, password: str, username: str) -> bool:
        problem = self.check_form(email, password, username)
        if problem:
            self.error = problem
            self._render()
            return False
        self.submitting = True
        try:
            result = invites.redeem(self.gateway, self.code, email, password, username)
        except UsernameTaken as exc:
            self._fail("Redeeming invite", exc, "This username is already taken")
            return False
        except InviteNotFound as exc:
            self.valid = False
            self._fail("Redeeming invite", exc, "Invalid or expired invite code")
            return False
        except AuthRejected as exc:
            self._fail("Redeeming invite", exc)
            return False
        except HuddleError as exc:
            self._fail("Redeeming invite", exc, "Failed to create account")
            return False
        finally:
            self.submitting = False
        self.error = None
        self.session.accept(result)
        self._render()
        return True
