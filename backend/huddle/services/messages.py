"""
Message and thread store access.

Top-level messages have no ``parent_message_id``; replies point at their
thread root and only show up in thread listings.  Listings are ordered
oldest first and carry author and reactions.
"""

import logging
import re

from huddle.core.errors import ConstraintViolation, InvalidInput, NotFound
from huddle.gateway.query import PersistenceGateway, eq, is_null
from huddle.models.channel import Channel
from huddle.models.message import Message
from huddle.models.user import User

logger = logging.getLogger(__name__)

_LISTING_LOAD = ("user", "reactions")
_WHITESPACE_RE = re.compile(r"\s+")


# ── Channels ──────────────────────────────────────────────────────────────────


def normalize_channel_name(name: str) -> str:
    return _WHITESPACE_RE.sub("-", (name or "").strip().lower())


def list_channels(gateway: PersistenceGateway) -> list[Channel]:
    return gateway.select("channels", order_by="created_at")


def get_channel(gateway: PersistenceGateway, channel_id: str) -> Channel:
    channel = gateway.first("channels", eq("id", channel_id))
    if channel is None:
        raise NotFound("Channel not found")
    return channel


def create_channel(
    gateway: PersistenceGateway,
    name: str,
    created_by: str | None,
    description: str | None = None,
) -> Channel:
    normalized = normalize_channel_name(name)
    if not normalized:
        raise InvalidInput("Channel name is required")
    return gateway.insert(
        "channels",
        {"name": normalized, "description": description or None, "created_by": created_by},
    )


# ── Users ─────────────────────────────────────────────────────────────────────


def list_users(gateway: PersistenceGateway) -> list[User]:
    return gateway.select("users", order_by="username")


# ── Messages ──────────────────────────────────────────────────────────────────


def get_message(gateway: PersistenceGateway, message_id: str) -> Message:
    message = gateway.first("messages", eq("id", message_id), load=_LISTING_LOAD)
    if message is None:
        raise NotFound("Message not found")
    return message


def list_top_level(gateway: PersistenceGateway, channel_id: str) -> list[Message]:
    return gateway.select(
        "messages",
        eq("channel_id", channel_id),
        is_null("parent_message_id"),
        order_by="created_at",
        load=_LISTING_LOAD,
    )


def list_replies(gateway: PersistenceGateway, parent_id: str) -> list[Message]:
    return gateway.select(
        "messages",
        eq("parent_message_id", parent_id),
        order_by="created_at",
        load=_LISTING_LOAD,
    )


def list_pinned(gateway: PersistenceGateway, channel_id: str) -> list[Message]:
    """Pinned messages of a channel, newest first."""
    return gateway.select(
        "messages",
        eq("channel_id", channel_id),
        eq("is_pinned", True),
        order_by="created_at",
        descending=True,
        load=_LISTING_LOAD,
    )


def send(
    gateway: PersistenceGateway,
    content: str,
    channel_id: str,
    user_id: str,
    parent_id: str | None = None,
) -> Message | None:
    """Store a message or reply.  Blank content is dropped and logged.

    Threads are one level deep: a reply to a reply is attached to the
    top-level message instead.
    """
    if not content or not content.strip():
        logger.warning("Ignoring empty message for channel %s from %s", channel_id, user_id)
        return None
    if parent_id is not None:
        parent = gateway.first("messages", eq("id", parent_id))
        if parent is not None and parent.parent_message_id is not None:
            parent_id = parent.parent_message_id
    return gateway.insert(
        "messages",
        {
            "content": content,
            "channel_id": channel_id,
            "user_id": user_id,
            "parent_message_id": parent_id,
        },
    )


def delete(gateway: PersistenceGateway, message_id: str) -> int:
    """Delete a message together with its direct replies.

    Both deletes share one transaction; returns the number of rows removed.
    """
    if not message_id or not str(message_id).strip():
        raise InvalidInput("Message ID is required")
    with gateway.atomic():
        replies = gateway.delete("messages", eq("parent_message_id", message_id))
        logger.info("Deleted %s replies of message %s", replies, message_id)
        removed = gateway.delete("messages", eq("id", message_id))
    logger.info("Deleted message %s", message_id)
    return replies + removed


def toggle_pin(gateway: PersistenceGateway, message_id: str, current_state: bool) -> bool:
    new_state = not current_state
    gateway.update("messages", {"is_pinned": new_state}, eq("id", message_id))
    return new_state


def toggle_reaction(gateway: PersistenceGateway, message_id: str, user_id: str, emoji: str) -> bool:
    """React if absent, un-react if present.  Returns True when a reaction was added.

    Check-then-act; a concurrent duplicate insert is rejected by the unique
    constraint and counts as already reacted.
    """
    if not emoji:
        raise InvalidInput("Emoji is required")
    key = (eq("message_id", message_id), eq("user_id", user_id), eq("emoji", emoji))
    existing = gateway.first("reactions", *key)
    if existing is not None:
        gateway.delete("reactions", eq("id", existing.id))
        return False
    try:
        gateway.insert("reactions", {"message_id": message_id, "user_id": user_id, "emoji": emoji})
    except ConstraintViolation:
        logger.warning("Reaction %s on %s by %s already present", emoji, message_id, user_id)
    return True
