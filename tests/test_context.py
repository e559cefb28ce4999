"""Tests for the in-memory context store."""

from redmine_mcp.context import ContextStore


class TestContextStore:
    """Tests for ContextStore."""

    def test_starts_empty(self):
        store = ContextStore()
        assert store.get_project() is None
        assert store.get_task() is None
        assert store.get_all() == {"project_id": None, "task_id": None}

    def test_set_and_get(self):
        store = ContextStore()
        store.set_project(7)
        store.set_task(42)

        assert store.get_project() == 7
        assert store.get_task() == 42
        assert store.get_all() == {"project_id": 7, "task_id": 42}

    def test_set_overwrites(self):
        store = ContextStore()
        store.set_project(7)
        store.set_project(8)
        assert store.get_project() == 8

    def test_clear_resets_both_slots(self):
        """Clear should leave both slots unset regardless of prior state."""
        store = ContextStore()
        store.set_project(7)
        store.set_task(42)

        store.clear()

        assert store.get_all() == {"project_id": None, "task_id": None}

    def test_clear_when_already_empty(self):
        store = ContextStore()
        store.clear()
        assert store.get_all() == {"project_id": None, "task_id": None}

    def test_stores_are_independent(self):
        first = ContextStore()
        second = ContextStore()
        first.set_task(1)
        assert second.get_task() is None
