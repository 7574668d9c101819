"""Tests for the change-feed WebSocket and the Redis change relay."""

import json

import pytest
from fastapi.testclient import TestClient

from huddle.core import events
from huddle.gateway.changefeed import ChangeBus, ChangeEvent
from huddle.redis import client as redis_client
from huddle.redis import relay
from huddle.tests.conftest import sign_up


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _token(client: TestClient, username: str = "wsuser", email: str = "ws@example.com") -> str:
    resp = sign_up(client, username=username, email=email)
    assert resp.status_code == 200, resp.json()
    return resp.json()["access_token"]


def _make_channel(client: TestClient, token: str, name: str = "ws-room") -> str:
    resp = client.post("/api/channels", json={"name": name}, headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 201
    return resp.json()["id"]


def _connect(ws, token: str) -> dict:
    ws.send_json({"type": "auth", "token": token})
    ready = ws.receive_json()
    assert ready["type"] == "ready"
    return ready


# ---------------------------------------------------------------------------
# Change feed
# ---------------------------------------------------------------------------

class TestChangeFeed:
    def test_auth_succeeds(self, client: TestClient):
        token = _token(client)
        with client.websocket_connect("/ws/changes") as ws:
            ready = _connect(ws, token)
            assert ready["user_id"]

    def test_rejects_bad_token(self, client: TestClient):
        with pytest.raises(Exception):
            with client.websocket_connect("/ws/changes") as ws:
                ws.send_json({"type": "auth", "token": "not-a-real-token"})
                ws.receive_json()  # server closes → raises

    def test_rejects_wrong_first_message(self, client: TestClient):
        token = _token(client)
        with pytest.raises(Exception):
            with client.websocket_connect("/ws/changes") as ws:
                ws.send_json({"type": "hello", "token": token})
                ws.receive_json()

    def test_ping(self, client: TestClient):
        token = _token(client)
        with client.websocket_connect("/ws/changes") as ws:
            _connect(ws, token)
            ws.send_json({"type": "ping"})
            assert ws.receive_json() == {"type": "pong"}

    def test_private_table_refused(self, client: TestClient):
        token = _token(client)
        with client.websocket_connect("/ws/changes") as ws:
            _connect(ws, token)
            ws.send_json({"type": "subscribe", "table": "auth_identities"})
            assert ws.receive_json()["type"] == "error"

    def test_invalid_json(self, client: TestClient):
        token = _token(client)
        with client.websocket_connect("/ws/changes") as ws:
            _connect(ws, token)
            ws.send_text("{not json")
            assert ws.receive_json() == {"type": "error", "detail": "Invalid JSON"}

    def test_message_insert_is_pushed(self, client: TestClient):
        token = _token(client)
        channel_id = _make_channel(client, token)

        with client.websocket_connect("/ws/changes") as ws:
            _connect(ws, token)
            ws.send_json({"type": "subscribe", "table": "messages", "filter": {"channel_id": channel_id}})
            assert ws.receive_json()["type"] == "subscribed"

            client.post(
                f"/api/channels/{channel_id}/messages",
                json={"content": "live!"},
                headers={"Authorization": f"Bearer {token}"},
            )

            event = ws.receive_json()
            assert event["type"] == "change"
            assert event["event"] == events.MESSAGE_CREATED
            assert event["new"]["content"] == "live!"


# ---------------------------------------------------------------------------
# Redis relay
# ---------------------------------------------------------------------------

class FakeRedis:
    """Minimal in-memory fake that mimics redis.asyncio.Redis.publish."""

    def __init__(self, fail: bool = False):
        self.published: list[tuple[str, str]] = []
        self.fail = fail

    async def publish(self, channel: str, message: str):
        if self.fail:
            raise ConnectionError("redis down")
        self.published.append((channel, message))
        return 1


def _event() -> ChangeEvent:
    return ChangeEvent(table="reactions", change=events.INSERT, new={"id": "r1", "emoji": "👍"})


class TestRelay:
    @pytest.mark.asyncio
    async def test_publishes_json_per_table(self, monkeypatch):
        fake = FakeRedis()
        monkeypatch.setattr(relay, "get_redis", lambda: fake)

        await relay.relay_change(_event())

        channel, raw = fake.published[0]
        assert channel == "huddle:changes:reactions"
        payload = json.loads(raw)
        assert payload["event"] == events.REACTION_ADDED
        assert payload["new"]["emoji"] == "👍"

    @pytest.mark.asyncio
    async def test_no_redis_is_noop(self, monkeypatch):
        monkeypatch.setattr(relay, "get_redis", lambda: None)
        await relay.relay_change(_event())

    @pytest.mark.asyncio
    async def test_redis_errors_are_swallowed(self, monkeypatch):
        monkeypatch.setattr(relay, "get_redis", lambda: FakeRedis(fail=True))
        await relay.relay_change(_event())

    def test_attach_listens_to_every_table(self):
        changes = ChangeBus()
        sub = relay.attach(changes)
        assert sub.table == "*"
        assert changes.subscriber_count == 1
        sub.unsubscribe()
        assert changes.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_failed_publish_counts_no_receivers(self, monkeypatch):
        fake = FakeRedis(fail=True)
        monkeypatch.setattr(relay, "get_redis", lambda: fake)
        assert await relay.relay_change(_event()) == 0
        assert fake.published == []


class TestRedisClient:
    def test_empty_url_disables_relay(self, monkeypatch):
        monkeypatch.setattr(redis_client, "_client", None)
        assert redis_client.connect("") is None
        assert redis_client.get_redis() is None

    @pytest.mark.asyncio
    async def test_connect_is_lazy(self, monkeypatch):
        monkeypatch.setattr(redis_client, "_client", None)
        # No server on this port: building the client must not touch it.
        r = redis_client.connect("redis://127.0.0.1:1/0")
        assert r is not None
        assert redis_client.get_redis() is r
        await redis_client.disconnect()
        assert redis_client.get_redis() is None

    @pytest.mark.asyncio
    async def test_publish_json_encodes_payload(self):
        fake = FakeRedis()
        assert await redis_client.publish_json(fake, "c", {"a": 1}) == 1
        assert fake.published == [("c", '{"a": 1}')]

    @pytest.mark.asyncio
    async def test_publish_json_swallows_connection_errors(self):
        assert await redis_client.publish_json(FakeRedis(fail=True), "c", {}) == 0
