"""
Redis connection used by the change relay.

The client is built from REDIS_URL at startup without a round trip; a Redis
that is down only shows up as failed publishes, which are logged and counted
as zero receivers so the request that caused the change never fails.
"""

import json
import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from huddle.config import settings

logger = logging.getLogger(__name__)

_client: aioredis.Redis | None = None


def connect(url: str | None = None) -> aioredis.Redis | None:
    """Create the shared client for ``url`` (REDIS_URL by default).

    Returns None, leaving the relay disabled, when no URL is configured.
    """
    global _client
    url = settings.REDIS_URL if url is None else url
    if not url:
        logger.info("REDIS_URL is empty, change relay disabled")
        return None
    _client = aioredis.from_url(
        url,
        decode_responses=True,
        max_connections=settings.REDIS_MAX_CONNECTIONS,
    )
    logger.info("Change relay publishing to %s", url)
    return _client


async def disconnect() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None


def get_redis() -> aioredis.Redis | None:
    return _client


async def publish_json(r: aioredis.Redis, channel: str, payload: dict) -> int:
    """Publish ``payload`` as JSON on ``channel``.

    Returns the number of receivers, or 0 when the publish failed.
    """
    try:
        return await r.publish(channel, json.dumps(payload))
    except (RedisError, OSError) as exc:
        logger.warning("Publish to %s failed: %s", channel, exc)
        return 0
