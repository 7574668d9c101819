import json
import logging
from collections import defaultdict

from fastapi import WebSocket

from huddle.gateway.changefeed import ChangeBus, ChangeEvent, Subscription

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Bridges ChangeBus subscriptions to WebSocket clients.

    Each socket may hold any number of (table, filter) subscriptions; all of
    them are dropped when the socket disconnects or a send fails.
    """

    def __init__(self, changes: ChangeBus) -> None:
        self._changes = changes
        # id(websocket) -> subscriptions held for that socket
        self._subscriptions: dict[int, list[Subscription]] = defaultdict(list)

    def subscribe(self, websocket: WebSocket, table: str, filters: dict | None) -> Subscription:
        async def forward(event: ChangeEvent) -> None:
            await self.send(websocket, event.to_payload())

        sub = self._changes.subscribe(table, filters, forward)
        self._subscriptions[id(websocket)].append(sub)
        logger.info("WebSocket subscribed to %s %s", table, filters or {})
        return sub

    async def send(self, websocket: WebSocket, payload: dict) -> bool:
        try:
            await websocket.send_text(json.dumps(payload))
            return True
        except Exception:
            self.disconnect(websocket)
            return False

    def disconnect(self, websocket: WebSocket) -> None:
        for sub in self._subscriptions.pop(id(websocket), []):
            sub.unsubscribe()

    def subscription_count(self, websocket: WebSocket) -> int:
        return len(self._subscriptions.get(id(websocket), []))
