# Change-event type definitions.
# Raw row changes (INSERT/UPDATE/DELETE) come from the persistence gateway;
# subscribers mostly care about the domain event names below.

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"

MESSAGE_CREATED = "message.created"
MESSAGE_UPDATED = "message.updated"
MESSAGE_PINNED = "message.pinned"
MESSAGE_DELETED = "message.deleted"

REACTION_ADDED = "reaction.added"
REACTION_REMOVED = "reaction.removed"

CHANNEL_CREATED = "channel.created"
CHANNEL_UPDATED = "channel.updated"
CHANNEL_DELETED = "channel.deleted"

USER_CREATED = "user.created"
USER_UPDATED = "user.updated"

INVITE_CREATED = "invite.created"
INVITE_UPDATED = "invite.updated"

_SIMPLE_NAMES = {
    ("messages", INSERT): MESSAGE_CREATED,
    ("messages", DELETE): MESSAGE_DELETED,
    ("reactions", INSERT): REACTION_ADDED,
    ("reactions", DELETE): REACTION_REMOVED,
    ("channels", INSERT): CHANNEL_CREATED,
    ("channels", UPDATE): CHANNEL_UPDATED,
    ("channels", DELETE): CHANNEL_DELETED,
    ("users", INSERT): USER_CREATED,
    ("users", UPDATE): USER_UPDATED,
    ("invite_codes", INSERT): INVITE_CREATED,
    ("invite_codes", UPDATE): INVITE_UPDATED,
}


def domain_event_name(table: str, change: str, new: dict, old: dict) -> str:
    """Name a row change the way subscribers talk about it."""
    if table == "messages" and change == UPDATE:
        if new.get("is_pinned") != old.get("is_pinned"):
            return MESSAGE_PINNED
        return MESSAGE_UPDATED
    return _SIMPLE_NAMES.get((table, change), f"{table}.{change.lower()}")
