import logging
from collections.abc import Callable
from datetime import datetime, timezone

from huddle.core.errors import HuddleError
from huddle.gateway.changefeed import ChangeBus, ChangeEvent, Subscription

logger = logging.getLogger(__name__)

Renderer = Callable[["View"], None]


def format_time(value: datetime) -> str:
    """``09:05 PM`` in local time."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    local = value.astimezone()
    hour = local.hour % 12 or 12
    return f"{hour:02d}:{local.minute:02d} {'AM' if local.hour < 12 else 'PM'}"


class View:
    """Headless view state: render callbacks, change subscriptions, error text.

    Subclasses mutate their own state and call ``_render()``; whoever draws
    the view registers with ``on_render``.
    """

    def __init__(self) -> None:
        self.error: str | None = None
        self._renderers: list[Renderer] = []
        self._subscriptions: list[Subscription] = []

    def on_render(self, renderer: Renderer) -> None:
        self._renderers.append(renderer)

    def _render(self) -> None:
        for renderer in list(self._renderers):
            renderer(self)

    def _watch(self, changes: ChangeBus, table: str, filters: dict | None, handler: Callable[[ChangeEvent], None]):
        self._subscriptions.append(changes.subscribe(table, filters, handler))

    def _fail(self, action: str, exc: Exception, message: str | None = None) -> None:
        detail = exc.message if isinstance(exc, HuddleError) else str(exc)
        logger.error("%s failed: %s", action, detail)
        self.error = message or detail
        self._render()

    def close(self) -> None:
        for sub in self._subscriptions:
            sub.unsubscribe()
        self._subscriptions.clear()
