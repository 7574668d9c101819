import json
import logging

from fastapi import WebSocket, WebSocketDisconnect

from huddle.gateway.query import TABLES, PersistenceGateway
from huddle.models.user import User
from huddle.services import auth_service
from huddle.websocket.manager import ConnectionManager

logger = logging.getLogger(__name__)

# Tables a client may watch
WATCHABLE_TABLES = set(TABLES) - {"auth_identities"}


async def _authenticate(websocket: WebSocket, gateway: PersistenceGateway) -> User | None:
    """Expect the first message to be {"type": "auth", "token": "<jwt>"}."""
    await websocket.accept()  # must accept before receive_text()
    try:
        data = json.loads(await websocket.receive_text())
    except Exception:
        await websocket.close(code=1008)
        return None

    if not isinstance(data, dict) or data.get("type") != "auth":
        await websocket.close(code=1008)
        return None

    user = auth_service.get_user_from_token(data.get("token", ""), gateway)
    if user is None:
        await websocket.close(code=1008)
        return None
    return user


async def changes_ws_handler(websocket: WebSocket, gateway: PersistenceGateway, manager: ConnectionManager) -> None:
    """Full lifecycle handler for a change-feed WebSocket connection.

    After auth the client sends {"type": "subscribe", "table": ..., "filter": {...}}
    frames; every matching change is pushed as a {"type": "change", ...} frame.
    """
    user = await _authenticate(websocket, gateway)
    if user is None:
        return

    await manager.send(websocket, {"type": "ready", "user_id": user.id})
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                await manager.send(websocket, {"type": "error", "detail": "Invalid JSON"})
                continue

            msg_type = data.get("type") if isinstance(data, dict) else None
            if msg_type == "subscribe":
                table = data.get("table")
                filters = data.get("filter") or {}
                if table not in WATCHABLE_TABLES or not isinstance(filters, dict):
                    await manager.send(websocket, {"type": "error", "detail": f"Cannot subscribe to {table!r}"})
                    continue
                manager.subscribe(websocket, table, filters)
                await manager.send(websocket, {"type": "subscribed", "table": table, "filter": filters})
            elif msg_type == "ping":
                await manager.send(websocket, {"type": "pong"})
            else:
                await manager.send(websocket, {"type": "error", "detail": f"Unknown message type {msg_type!r}"})
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(websocket)
        logger.info("Change feed closed for %s", user.username)
