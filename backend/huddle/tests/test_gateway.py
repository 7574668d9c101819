"""Tests for the persistence gateway and the change bus."""

import asyncio

import pytest

from huddle.core import events
from huddle.core.errors import ConstraintViolation, InvalidInput
from huddle.gateway.changefeed import ALL_TABLES, ChangeBus, ChangeEvent
from huddle.gateway.query import eq, gt, ieq, is_null, lt
from huddle.tests.conftest import make_user


def _record(changes, table="*", filters=None):
    seen = []
    changes.subscribe(table, filters, seen.append)
    return seen


class TestSelect:
    def test_filters_and_ordering(self, gateway):
        for name in ("b-chan", "a-chan", "c-chan"):
            gateway.insert("channels", {"name": name})

        rows = gateway.select("channels", order_by="name")
        assert [r.name for r in rows] == ["a-chan", "b-chan", "c-chan"]

        rows = gateway.select("channels", order_by="name", descending=True, limit=2)
        assert [r.name for r in rows] == ["c-chan", "b-chan"]

        assert gateway.first("channels", eq("name", "b-chan")).name == "b-chan"
        assert gateway.first("channels", eq("name", "nope")) is None

    def test_case_insensitive_equality(self, gateway):
        make_user(gateway, "alice")
        assert gateway.first("users", ieq("username", "ALICE")) is not None
        assert gateway.first("users", eq("username", "ALICE")) is None

    def test_comparison_and_null_filters(self, gateway):
        user = make_user(gateway, "alice")
        channel = gateway.insert("channels", {"name": "general"})
        parent = gateway.insert("messages", {"content": "root", "channel_id": channel.id, "user_id": user.id})
        gateway.insert(
            "messages",
            {"content": "reply", "channel_id": channel.id, "user_id": user.id, "parent_message_id": parent.id},
        )

        top = gateway.select("messages", is_null("parent_message_id"))
        assert [m.content for m in top] == ["root"]

        later = gateway.select("messages", gt("created_at", parent.created_at))
        assert [m.content for m in later] == ["reply"]
        earlier = gateway.select("messages", lt("created_at", later[0].created_at))
        assert [m.content for m in earlier] == ["root"]

    def test_unknown_table_rejected(self, gateway):
        with pytest.raises(InvalidInput):
            gateway.select("nope")


class TestWrites:
    def test_insert_publishes_after_commit(self, gateway, changes):
        seen = _record(changes, "channels")
        row = gateway.insert("channels", {"name": "general"})

        assert len(seen) == 1
        assert seen[0].change == events.INSERT
        assert seen[0].name == events.CHANNEL_CREATED
        assert seen[0].new["id"] == row.id

    def test_update_returns_rows_and_old_values(self, gateway, changes):
        row = gateway.insert("channels", {"name": "general"})
        seen = _record(changes, "channels")

        rows = gateway.update("channels", {"description": "talk"}, eq("id", row.id))

        assert [r.description for r in rows] == ["talk"]
        assert seen[0].old["description"] is None
        assert seen[0].new["description"] == "talk"

    def test_update_and_delete_need_a_filter(self, gateway):
        with pytest.raises(InvalidInput):
            gateway.update("channels", {"name": "x"})
        with pytest.raises(InvalidInput):
            gateway.delete("channels")

    def test_delete_counts_rows(self, gateway, changes):
        gateway.insert("channels", {"name": "a"})
        gateway.insert("channels", {"name": "a"})
        gateway.insert("channels", {"name": "b"})
        seen = _record(changes, "channels")

        assert gateway.delete("channels", eq("name", "a")) == 2
        assert [e.change for e in seen] == [events.DELETE, events.DELETE]
        assert len(gateway.select("channels")) == 1

    def test_unique_violation_becomes_constraint_violation(self, gateway):
        user = make_user(gateway, "alice")
        channel = gateway.insert("channels", {"name": "general"})
        msg = gateway.insert("messages", {"content": "hi", "channel_id": channel.id, "user_id": user.id})
        values = {"message_id": msg.id, "user_id": user.id, "emoji": "👍"}
        gateway.insert("reactions", values)

        with pytest.raises(ConstraintViolation) as exc_info:
            gateway.insert("reactions", values)
        assert exc_info.value.status_code == 409
        assert len(gateway.select("reactions")) == 1

    def test_auth_identities_never_publish(self, gateway, changes):
        seen = _record(changes)
        make_user(gateway, "alice")
        assert {e.table for e in seen} == {"users"}


class TestAtomic:
    def test_events_held_until_outer_commit(self, gateway, changes):
        seen = _record(changes, "channels")
        with gateway.atomic():
            gateway.insert("channels", {"name": "one"})
            gateway.insert("channels", {"name": "two"})
            assert seen == []
        assert [e.new["name"] for e in seen] == ["one", "two"]

    def test_rollback_discards_writes_and_events(self, gateway, changes):
        seen = _record(changes, "channels")
        with pytest.raises(RuntimeError):
            with gateway.atomic():
                gateway.insert("channels", {"name": "one"})
                raise RuntimeError("boom")

        assert seen == []
        assert gateway.select("channels") == []


class TestChangeBus:
    def _event(self, **new):
        return ChangeEvent(table="messages", change=events.INSERT, new=new)

    def test_filter_matching(self):
        event = self._event(channel_id="c1", parent_message_id=None)
        assert event.matches("messages", None)
        assert event.matches("messages", {"channel_id": "c1"})
        assert not event.matches("messages", {"channel_id": "c2"})
        assert not event.matches("reactions", None)
        assert event.matches(ALL_TABLES, None)

    def test_delete_matches_on_old_row(self):
        event = ChangeEvent(table="messages", change=events.DELETE, old={"id": "m1", "channel_id": "c1"})
        assert event.matches("messages", {"channel_id": "c1"})
        assert event.name == events.MESSAGE_DELETED

    def test_pin_change_is_named(self):
        event = ChangeEvent(
            table="messages",
            change=events.UPDATE,
            new={"id": "m1", "is_pinned": True},
            old={"id": "m1", "is_pinned": False},
        )
        assert event.name == events.MESSAGE_PINNED

    def test_failing_listener_does_not_block_others(self):
        changes = ChangeBus()
        seen = []

        def broken(_event):
            raise RuntimeError("listener bug")

        changes.subscribe("messages", None, broken)
        changes.subscribe("messages", None, seen.append)
        changes.publish(self._event(channel_id="c1"))

        assert len(seen) == 1

    def test_unsubscribe(self):
        changes = ChangeBus()
        seen = []
        sub = changes.subscribe("messages", None, seen.append)
        assert changes.subscriber_count == 1

        sub.unsubscribe()
        changes.publish(self._event(channel_id="c1"))

        assert seen == []
        assert changes.subscriber_count == 0

    def test_async_listener_without_loop_is_dropped(self):
        changes = ChangeBus()
        seen = []

        async def listener(event):
            seen.append(event)

        changes.subscribe("messages", None, listener)
        changes.publish(self._event(channel_id="c1"))

        assert seen == []

    @pytest.mark.asyncio
    async def test_async_listener_scheduled_on_running_loop(self):
        changes = ChangeBus()
        seen = []

        async def listener(event):
            seen.append(event)

        changes.subscribe("messages", None, listener)
        changes.publish(self._event(channel_id="c1"))
        await asyncio.sleep(0)

        assert len(seen) == 1
