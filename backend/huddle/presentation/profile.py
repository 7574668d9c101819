"""
Sign-in / sign-up form and the profile modal.
"""

import logging

from huddle.core.errors import HuddleError
from huddle.presentation.base import View
from huddle.services.identity import IdentitySession

logger = logging.getLogger(__name__)


class AuthForm(View):
    def __init__(self, session: IdentitySession) -> None:
        super().__init__()
        self.session = session
        self.is_sign_up = False
        self.loading = False

    def toggle_mode(self) -> None:
        self.is_sign_up = not self.is_sign_up
        self.error = None
        self._render()

    def submit(self, email: str, password: str, username: str = "") -> bool:
        self.error = None
        if self.is_sign_up and not username.strip():
            self.error = "Username is required"
            self._render()
            return False
        self.loading = True
        try:
            if self.is_sign_up:
                self.session.sign_up(email, password, username)
            else:
                self.session.sign_in(email, password)
        except HuddleError as exc:
            self._fail("Sign-up" if self.is_sign_up else "Sign-in", exc)
            return False
        finally:
            self.loading = False
        self._render()
        return True


class ProfileModal(View):
    def __init__(self, session: IdentitySession) -> None:
        super().__init__()
        self.session = session
        self.is_open = False
        self.is_editing = False
        self.username = ""
        self.loading = False
        self._unsubscribe = session.subscribe(lambda _s: self._sync())
        self._sync()

    def _sync(self) -> None:
        if not self.is_editing:
            self.username = self.session.profile.username if self.session.profile else ""
        self._render()

    def open(self) -> None:
        self.is_open = True
        self._render()

    def start_editing(self) -> None:
        self.is_editing = True
        self.error = None
        self._render()

    def cancel_editing(self) -> None:
        self.is_editing = False
        self.error = None
        self._sync()

    def save(self, username: str) -> bool:
        self.error = None
        if not username.strip():
            self.error = "Username is required"
            self._render()
            return False
        self.loading = True
        try:
            self.session.update_profile({"username": username.lower()})
        except HuddleError as exc:
            self._fail("Updating profile", exc)
            return False
        finally:
            self.loading = False
        self.is_editing = False
        self._sync()
        return True

    def sign_out(self) -> None:
        self.session.sign_out()
        self.is_open = False
        self._render()

    def close(self) -> None:
        self._unsubscribe()
        super().close()
