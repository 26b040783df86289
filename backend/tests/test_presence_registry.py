"""Tests for the presence registry."""
import pytest
from pydantic import ValidationError

from presence_relay.presence.registry import PresenceRegistry
from presence_relay.presence.schemas import PresenceEntry, PresenceStatus


@pytest.fixture
def reg():
    return PresenceRegistry()


class TestRegister:
    def test_register_creates_entry(self, reg):
        entry = reg.register("u1", "c1")
        assert isinstance(entry, PresenceEntry)
        assert entry.userId == "u1"
        assert entry.channelId == "c1"
        assert entry.status == PresenceStatus.ONLINE
        assert entry.connectedAt > 0
        assert reg.lookup_channel("u1") == "c1"
        assert reg.user_for_channel("c1") == "u1"
        assert reg.is_online("u1")

    def test_entries_are_immutable(self, reg):
        entry = reg.register("u1", "c1")
        with pytest.raises(ValidationError):
            entry.channelId = "c2"

    def test_second_registration_replaces_first(self, reg):
        reg.register("u1", "c1")
        reg.register("u1", "c2")
        assert reg.lookup_channel("u1") == "c2"
        assert reg.user_for_channel("c1") is None
        assert len(reg) == 1

    def test_rebinding_channel_drops_previous_user(self, reg):
        reg.register("u1", "c1")
        reg.register("u2", "c1")
        assert not reg.is_online("u1")
        assert reg.lookup_channel("u2") == "c1"

    def test_reregistering_same_pair_is_stable(self, reg):
        reg.register("u1", "c1")
        reg.register("u1", "c1")
        assert reg.snapshot_user_ids() == ["u1"]
        assert reg.deregister("c1") == "u1"


class TestDeregister:
    def test_deregister_current_channel(self, reg):
        reg.register("u1", "c1")
        assert reg.deregister("c1") == "u1"
        assert reg.lookup_channel("u1") is None
        assert not reg.is_online("u1")

    def test_stale_channel_does_not_evict_newer_one(self, reg):
        reg.register("u1", "c1")
        reg.register("u1", "c2")
        assert reg.deregister("c1") is None
        assert reg.lookup_channel("u1") == "c2"

    def test_deregister_twice_is_noop(self, reg):
        reg.register("u1", "c1")
        reg.deregister("c1")
        assert reg.deregister("c1") is None

    def test_deregister_unknown_channel(self, reg):
        assert reg.deregister("nope") is None

    def test_reconnect_race_in_either_order(self, reg):
        # Old tab closes after the new one connected.
        reg.register("u1", "old")
        reg.register("u1", "new")
        reg.deregister("old")
        assert reg.lookup_channel("u1") == "new"

        # New tab closes as well: user goes offline.
        assert reg.deregister("new") == "u1"
        assert reg.lookup_channel("u1") is None


class TestSnapshot:
    def test_insertion_order(self, reg):
        reg.register("u1", "c1")
        reg.register("u2", "c2")
        assert reg.snapshot_user_ids() == ["u1", "u2"]

    def test_disconnected_user_drops_out(self, reg):
        reg.register("u1", "c1")
        reg.register("u2", "c2")
        reg.deregister("c1")
        assert reg.snapshot_user_ids() == ["u2"]

    def test_replacement_keeps_roster_position(self, reg):
        reg.register("u1", "c1")
        reg.register("u2", "c2")
        reg.register("u1", "c3")
        assert reg.snapshot_user_ids() == ["u1", "u2"]

    def test_snapshot_is_a_copy(self, reg):
        reg.register("u1", "c1")
        snap = reg.snapshot_user_ids()
        snap.append("u9")
        assert reg.snapshot_user_ids() == ["u1"]

    def test_clear(self, reg):
        reg.register("u1", "c1")
        reg.clear()
        assert len(reg) == 0
        assert reg.user_for_channel("c1") is None
