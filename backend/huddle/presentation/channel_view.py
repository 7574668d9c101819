"""
Channel message list, pinned-messages panel and the shared message-list
behaviour reused by the thread panel.

Views never patch their local lists: any change on ``messages`` or
``reactions`` in scope triggers a full reload from the store.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from huddle.core.errors import HuddleError
from huddle.gateway.changefeed import ChangeBus, ChangeEvent
from huddle.gateway.query import PersistenceGateway
from huddle.presentation.base import View, format_time
from huddle.presentation.mentions import Segment, format_message_content
from huddle.schemas.message import MessageResponse
from huddle.schemas.reaction import ReactionResponse
from huddle.services import messages

logger = logging.getLogger(__name__)

UserIdProvider = Callable[[], str | None]
UsernamesProvider = Callable[[], Sequence[str]]


@dataclass
class ReactionGroup:
    emoji: str
    count: int
    has_user_reacted: bool


@dataclass
class MessageItem:
    message: MessageResponse
    segments: list[Segment] = field(default_factory=list)
    reactions: list[ReactionGroup] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.message.id

    @property
    def username(self) -> str:
        return self.message.user.username if self.message.user else "Unknown User"

    @property
    def time(self) -> str:
        return format_time(self.message.created_at)


def group_reactions(reactions: Sequence[ReactionResponse], user_id: str | None) -> list[ReactionGroup]:
    """Collapse reaction rows into one group per emoji, first-seen order."""
    groups: dict[str, ReactionGroup] = {}
    for r in reactions:
        group = groups.setdefault(r.emoji, ReactionGroup(r.emoji, 0, False))
        group.count += 1
        if user_id is not None and r.user_id == user_id:
            group.has_user_reacted = True
    return list(groups.values())


class MessageListView(View):
    """Message list with reactions, pinning and deletion."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        changes: ChangeBus,
        current_user_id: UserIdProvider,
        usernames: UsernamesProvider,
    ) -> None:
        super().__init__()
        self.gateway = gateway
        self.changes = changes
        self._current_user_id = current_user_id
        self._usernames = usernames
        self.items: list[MessageItem] = []
        self.loading = False
        self.reload_count = 0
        self._pending_reactions: set[tuple[str, str]] = set()

    def _fetch(self) -> list:
        raise NotImplementedError

    def _on_change(self, event: ChangeEvent) -> None:
        logger.debug("%s reloading on %s", type(self).__name__, event.name)
        self.reload()

    def _item(self, row) -> MessageItem:
        message = MessageResponse.model_validate(row)
        return MessageItem(
            message=message,
            segments=format_message_content(message.content, self._usernames()),
            reactions=group_reactions(message.reactions, self._current_user_id()),
        )

    def reload(self) -> None:
        self.loading = True
        self.reload_count += 1
        try:
            rows = self._fetch()
        except HuddleError as exc:
            self.loading = False
            self._fail("Loading messages", exc)
            return
        self.items = [self._item(r) for r in rows]
        self.loading = False
        self.error = None
        self._render()

    def find(self, message_id: str) -> MessageItem | None:
        return next((i for i in self.items if i.id == message_id), None)

    def thread_context(self, exclude_id: str | None = None) -> list[str]:
        """Other messages as ``username: content`` lines, oldest first."""
        return [f"{i.username}: {i.message.content}" for i in self.items if i.id != exclude_id]

    def toggle_reaction(self, message_id: str, emoji: str) -> bool | None:
        user_id = self._current_user_id()
        if not user_id:
            return None
        key = (message_id, emoji)
        if key in self._pending_reactions:
            return None
        self._pending_reactions.add(key)
        try:
            return messages.toggle_reaction(self.gateway, message_id, user_id, emoji)
        except HuddleError as exc:
            self._fail("Toggling reaction", exc)
            return None
        finally:
            self._pending_reactions.discard(key)

    def toggle_pin(self, message_id: str) -> bool | None:
        item = self.find(message_id)
        current = item.message.is_pinned if item else False
        try:
            return messages.toggle_pin(self.gateway, message_id, current)
        except HuddleError as exc:
            self._fail("Toggling pin", exc)
            return None

    def delete(self, message_id: str) -> bool:
        try:
            messages.delete(self.gateway, message_id)
        except HuddleError as exc:
            self._fail("Deleting message", exc)
            return False
        return True


class ChannelView(MessageListView):
    """Top-level messages of one channel."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        changes: ChangeBus,
        channel_id: str,
        current_user_id: UserIdProvider,
        usernames: UsernamesProvider,
    ) -> None:
        super().__init__(gateway, changes, current_user_id, usernames)
        self.channel_id = channel_id
        self.active_thread_id: str | None = None
        self._watch(changes, "messages", {"channel_id": channel_id}, self._on_change)
        self._watch(changes, "reactions", None, self._on_change)

    def _fetch(self) -> list:
        return messages.list_top_level(self.gateway, self.channel_id)

    def send(self, content: str) -> MessageResponse | None:
        user_id = self._current_user_id()
        if not user_id:
            return None
        try:
            row = messages.send(self.gateway, content, self.channel_id, user_id)
        except HuddleError as exc:
            self._fail("Sending message", exc)
            return None
        return MessageResponse.model_validate(row) if row is not None else None

    def open_thread(self, message_id: str) -> None:
        self.active_thread_id = message_id
        self._render()

    def close_thread(self) -> None:
        self.active_thread_id = None
        self._render()

    def delete(self, message_id: str) -> bool:
        deleted = super().delete(message_id)
        if deleted and self.active_thread_id == message_id:
            self.close_thread()
        return deleted


class PinnedMessages(MessageListView):
    """Pinned messages of one channel, newest first."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        changes: ChangeBus,
        channel_id: str,
        current_user_id: UserIdProvider,
        usernames: UsernamesProvider,
    ) -> None:
        super().__init__(gateway, changes, current_user_id, usernames)
        self.channel_id = channel_id
        self._watch(changes, "messages", {"channel_id": channel_id}, self._on_change)

    def _fetch(self) -> list:
        return messages.list_pinned(self.gateway, self.channel_id)

    def unpin(self, message_id: str) -> bool:
        try:
            messages.toggle_pin(self.gateway, message_id, True)
        except HuddleError as exc:
            self._fail("Unpinning message", exc)
            return False
        return True
