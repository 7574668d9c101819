"""
Org Brain context: recent and pinned messages from every channel, flattened
into one text block for the completion service.
"""

import logging
from datetime import datetime, timezone

from huddle.config import settings
from huddle.core.errors import UpstreamFailure
from huddle.gateway.query import PersistenceGateway, eq, is_null
from huddle.models.message import Message

logger = logging.getLogger(__name__)

EMPTY_CONTEXT = "Could not retrieve relevant information from public channels."
UNKNOWN_USER = "Unknown User"


def format_timestamp(value: datetime) -> str:
    """en-US style local date and time, e.g. ``3/4/2025, 9:05:00 PM``."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    local = value.astimezone()
    hour = local.hour % 12 or 12
    suffix = "AM" if local.hour < 12 else "PM"
    return f"{local.month}/{local.day}/{local.year}, {hour}:{local.minute:02d}:{local.second:02d} {suffix}"


def format_message(channel_name: str, message: Message) -> str:
    username = message.user.username if message.user else UNKNOWN_USER
    return f"[{channel_name}] {username} ({format_timestamp(message.created_at)}): {message.content}"


def _fetch(gateway: PersistenceGateway, channel, label: str, *filters, limit: int | None = None) -> list[Message]:
    try:
        return gateway.select(
            "messages",
            eq("channel_id", channel.id),
            *filters,
            order_by="created_at",
            descending=True,
            limit=limit,
            load=("user",),
        )
    except UpstreamFailure as exc:
        logger.error("Error fetching %s messages for channel %s: %s", label, channel.name, exc.message)
        return []


def build_org_context(gateway: PersistenceGateway, limit: int | None = None) -> str:
    """Concatenate recent and pinned messages across all channels.

    Per channel: up to ``limit`` most recent top-level messages, then every
    pinned message, both newest first.  A channel whose fetch fails is
    skipped.  Failing to list channels at all raises UpstreamFailure.
    """
    limit = limit or settings.ORG_CONTEXT_MESSAGE_LIMIT
    channels = gateway.select("channels", order_by="created_at")

    lines: list[str] = []
    for channel in channels:
        recent = _fetch(gateway, channel, "recent", is_null("parent_message_id"), limit=limit)
        pinned = _fetch(gateway, channel, "pinned", eq("is_pinned", True))
        lines.extend(format_message(channel.name, m) for m in recent)
        lines.extend(format_message(channel.name, m) for m in pinned)

    return "\n\n".join(lines)
