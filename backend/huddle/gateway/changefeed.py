"""
In-process publish/subscribe for row changes.

Subscriptions are keyed by table plus an optional equality filter, the same
shape a hosted realtime service uses (``messages`` where ``channel_id=X``).
A filter matches when every key equals the value in the new row, or in the
old row for deletes.  ``table="*"`` receives everything (used by the Redis
relay and the WebSocket fan-out).

Listeners may be plain callables or coroutine functions.  A listener that
raises is logged and never breaks delivery to the others.
"""

import asyncio
import inspect
import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from huddle.core import events

logger = logging.getLogger(__name__)

ALL_TABLES = "*"

_seq = itertools.count(1)


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    change: str  # INSERT | UPDATE | DELETE
    new: dict = field(default_factory=dict)
    old: dict = field(default_factory=dict)

    @property
    def name(self) -> str:
        return events.domain_event_name(self.table, self.change, self.new, self.old)

    @property
    def record(self) -> dict:
        return self.new or self.old

    def matches(self, table: str, filters: dict | None) -> bool:
        if table not in (ALL_TABLES, self.table):
            return False
        if not filters:
            return True
        for row in (self.new, self.old):
            if row and all(str(row.get(k)) == str(v) for k, v in filters.items()):
                return True
        return False

    def to_payload(self) -> dict:
        return {
            "type": "change",
            "event": self.name,
            "table": self.table,
            "change": self.change,
            "new": self.new,
            "old": self.old,
        }


Listener = Callable[[ChangeEvent], Any]


@dataclass
class Subscription:
    id: int
    table: str
    filters: dict
    listener: Listener
    _bus: "ChangeBus"

    def unsubscribe(self) -> None:
        self._bus.unsubscribe(self)


class ChangeBus:
    def __init__(self) -> None:
        self._subscriptions: dict[int, Subscription] = {}

    def subscribe(self, table: str, filters: dict | None, listener: Listener) -> Subscription:
        sub = Subscription(id=next(_seq), table=table, filters=dict(filters or {}), listener=listener, _bus=self)
        self._subscriptions[sub.id] = sub
        logger.debug("Subscribed #%s to %s %s", sub.id, table, sub.filters)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        self._subscriptions.pop(sub.id, None)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def publish(self, event: ChangeEvent) -> None:
        """Deliver ``event`` synchronously to every matching subscriber.

        Coroutine listeners are scheduled on the running loop; with no loop
        running they are dropped with a warning.
        """
        for sub in list(self._subscriptions.values()):
            if not event.matches(sub.table, sub.filters):
                continue
            try:
                result = sub.listener(event)
            except Exception:
                logger.exception("Change listener #%s failed on %s", sub.id, event.name)
                continue
            if inspect.isawaitable(result):
                self._schedule(sub, event, result)

    def _schedule(self, sub: Subscription, event: ChangeEvent, awaitable) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running loop for async listener #%s (%s); dropped", sub.id, event.name)
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            return
        task = loop.create_task(awaitable)
        task.add_done_callback(_log_task_failure)


def _log_task_failure(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Async change listener failed: %s", exc)


bus = ChangeBus()
