"""Tests for ConnectionRegistry."""
from chatroom.chat.registry import UNKNOWN_USERNAME, ConnectionRegistry


class TestConnectionRegistry:

    def test_snapshot_preserves_registration_order(self):
        registry = ConnectionRegistry()
        names = ["carol", "alice", "bob", "dave"]
        for i, name in enumerate(names):
            registry.register(f"conn-{i}", name)
        assert registry.snapshot() == names
        assert len(registry) == 4

    def test_register_then_unregister_restores_prior_state(self):
        registry = ConnectionRegistry()
        registry.register("a", "alice")
        before = registry.snapshot()

        registry.register("b", "bob")
        assert registry.unregister("b") == "bob"

        assert registry.snapshot() == before
        assert "b" not in registry

    def test_unregister_unknown_connection_returns_sentinel(self):
        registry = ConnectionRegistry()
        registry.register("a", "alice")
        assert registry.unregister("ghost") == UNKNOWN_USERNAME == "Unknown"
        assert len(registry) == 1

    def test_duplicate_usernames_are_allowed(self):
        registry = ConnectionRegistry()
        registry.register("a", "sam")
        registry.register("b", "sam")
        assert registry.snapshot() == ["sam", "sam"]

    def test_empty_username_is_allowed(self):
        registry = ConnectionRegistry()
        registry.register("a", "")
        assert registry.lookup("a") == ""
        assert registry.snapshot() == [""]

    def test_reregister_overwrites_in_place(self):
        registry = ConnectionRegistry()
        registry.register("a", "alice")
        registry.register("b", "bob")
        registry.register("a", "alicia")
        assert registry.snapshot() == ["alicia", "bob"]
        assert len(registry) == 2

    def test_lookup_miss_returns_none(self):
        assert ConnectionRegistry().lookup("nope") is None

    def test_snapshot_is_a_copy(self):
        registry = ConnectionRegistry()
        registry.register("a", "alice")
        snap = registry.snapshot()
        snap.append("mallory")
        assert registry.snapshot() == ["alice"]

    def test_clear_drains_everything(self):
        registry = ConnectionRegistry()
        registry.register("a", "alice")
        registry.register("b", "bob")
        registry.clear()
        assert len(registry) == 0
        assert registry.snapshot() == []
