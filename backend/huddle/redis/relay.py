"""
Change relay: forwards every ChangeBus event to Redis pub/sub.

Channel scheme:
  huddle:changes:{table}  →  JSON change payload

If Redis is not configured every publish is a no-op.
"""

import logging

from huddle.gateway.changefeed import ALL_TABLES, ChangeBus, ChangeEvent, Subscription
from huddle.redis.client import get_redis, publish_json

logger = logging.getLogger(__name__)

_PREFIX = "huddle:changes"


def channel_for(table: str) -> str:
    return f"{_PREFIX}:{table}"


async def relay_change(event: ChangeEvent) -> int:
    r = get_redis()
    if r is None:
        return 0
    receivers = await publish_json(r, channel_for(event.table), event.to_payload())
    logger.debug("Relayed %s to %d receiver(s)", event.name, receivers)
    return receivers


def attach(changes: ChangeBus) -> Subscription:
    """Register the relay on ``changes`` for every table."""
    return changes.subscribe(ALL_TABLES, None, relay_change)
