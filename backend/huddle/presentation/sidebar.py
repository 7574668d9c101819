"""
Channel sidebar: the channel list plus the create-channel form.
"""

import logging
from collections.abc import Callable

from huddle.core.errors import HuddleError
from huddle.gateway.changefeed import ChangeBus
from huddle.gateway.query import PersistenceGateway
from huddle.presentation.base import View
from huddle.schemas.channel import ChannelResponse
from huddle.services import messages

logger = logging.getLogger(__name__)


class Sidebar(View):
    def __init__(
        self,
        gateway: PersistenceGateway,
        changes: ChangeBus,
        current_user_id: Callable[[], str | None],
    ) -> None:
        super().__init__()
        self.gateway = gateway
        self._current_user_id = current_user_id
        self.channels: list[ChannelResponse] = []
        self.selected_id: str | None = None
        self.show_create = False
        self._watch(changes, "channels", None, lambda _event: self.load())

    @property
    def selected(self) -> ChannelResponse | None:
        return next((c for c in self.channels if c.id == self.selected_id), None)

    def load(self) -> None:
        try:
            rows = messages.list_channels(self.gateway)
        except HuddleError as exc:
            self._fail("Loading channels", exc)
            return
        self.channels = [ChannelResponse.model_validate(r) for r in rows]
        if self.selected_id is None and self.channels:
            self.selected_id = self.channels[0].id
        self._render()

    def select(self, channel_id: str) -> None:
        self.selected_id = channel_id
        self._render()

    def toggle_create(self) -> None:
        self.show_create = not self.show_create
        self._render()

    def create_channel(self, name: str, description: str | None = None) -> ChannelResponse | None:
        """Create, close the form and select the new channel."""
        if not name or not name.strip():
            return None
        try:
            channel = messages.create_channel(self.gateway, name, self._current_user_id(), description)
        except HuddleError as exc:
            self._fail("Creating channel", exc)
            return None
        created = ChannelResponse.model_validate(channel)
        self.show_create = False
        self.error = None
        if all(c.id != created.id for c in self.channels):
            self.channels.append(created)
        self.selected_id = created.id
        self._render()
        return created
