"""
Thread panel: the parent message and its replies.
"""

import logging

from huddle.core.errors import HuddleError, NotFound
from huddle.gateway.changefeed import ChangeBus
from huddle.gateway.query import PersistenceGateway
from huddle.presentation.channel_view import MessageItem, MessageListView, UserIdProvider, UsernamesProvider
from huddle.schemas.message import MessageResponse
from huddle.services import messages

logger = logging.getLogger(__name__)


class ThreadView(MessageListView):
    def __init__(
        self,
        gateway: PersistenceGateway,
        changes: ChangeBus,
        parent_id: str,
        current_user_id: UserIdProvider,
        usernames: UsernamesProvider,
    ) -> None:
        super().__init__(gateway, changes, current_user_id, usernames)
        self.parent_id = parent_id
        self.parent: MessageItem | None = None
        self.missing = False
        self._watch(changes, "messages", {"parent_message_id": parent_id}, self._on_change)
        self._watch(changes, "messages", {"id": parent_id}, self._on_change)
        self._watch(changes, "reactions", None, self._on_change)

    def _fetch(self) -> list:
        try:
            parent = messages.get_message(self.gateway, self.parent_id)
        except NotFound:
            logger.info("Thread parent %s is gone", self.parent_id)
            self.parent = None
            self.missing = True
            return []
        self.parent = self._item(parent)
        self.missing = False
        return messages.list_replies(self.gateway, self.parent_id)

    def thread_context(self, exclude_id: str | None = None) -> list[str]:
        lines = []
        if self.parent is not None and self.parent.id != exclude_id:
            lines.append(f"{self.parent.username}: {self.parent.message.content}")
        return lines + super().thread_context(exclude_id)

    def send_reply(self, content: str) -> MessageResponse | None:
        user_id = self._current_user_id()
        if not user_id or self.parent is None:
            return None
        try:
            row = messages.send(
                self.gateway, content, self.parent.message.channel_id, user_id, parent_id=self.parent_id
            )
        except HuddleError as exc:
            self._fail("Sending reply", exc)
            return None
        return MessageResponse.model_validate(row) if row is not None else None
