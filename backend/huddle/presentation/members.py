"""
Workspace member directory and the members panel.
"""

import logging

from huddle.core.errors import HuddleError
from huddle.gateway.changefeed import ChangeBus
from huddle.gateway.query import PersistenceGateway
from huddle.presentation.base import View
from huddle.schemas.user import UserResponse
from huddle.services import messages

logger = logging.getLogger(__name__)


class MemberDirectory(View):
    """All workspace profiles, kept fresh from ``users`` changes."""

    def __init__(self, gateway: PersistenceGateway, changes: ChangeBus) -> None:
        super().__init__()
        self.gateway = gateway
        self.members: list[UserResponse] = []
        self._watch(changes, "users", None, lambda _event: self.load())

    @property
    def usernames(self) -> list[str]:
        return [m.username for m in self.members]

    def load(self) -> None:
        try:
            rows = messages.list_users(self.gateway)
        except HuddleError as exc:
            self._fail("Loading members", exc, "Failed to load workspace members")
            return
        self.members = [UserResponse.model_validate(r) for r in rows]
        self.error = None
        self._render()


class MembersPanel(View):
    def __init__(self, directory: MemberDirectory) -> None:
        super().__init__()
        self.directory = directory
        self.query = ""
        directory.on_render(lambda _view: self._render())

    @property
    def filtered(self) -> list[UserResponse]:
        needle = self.query.strip().lower()
        if not needle:
            return list(self.directory.members)
        return [
            m for m in self.directory.members
            if needle in m.username.lower() or needle in m.email.lower()
        ]

    @property
    def title(self) -> str:
        return f"Members ({len(self.directory.members) or '...'})"

    @property
    def count_label(self) -> str:
        n = len(self.filtered)
        return f"{n} member{'s' if n != 1 else ''} in workspace"

    def set_query(self, value: str) -> None:
        self.query = value
        self._render()
