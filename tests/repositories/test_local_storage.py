# -*- coding: utf-8 -*-
"""
Tests for local key/value storage.
"""

import pytest

from repositories.local_storage import KeyValueStorage, MemoryStorage, SQLiteStorage


@pytest.fixture
def sqlite_storage(tmp_path):
    storage = SQLiteStorage(tmp_path / "nested" / "local_storage.db")
    yield storage
    storage.close()


class TestSQLiteStorage:
    """Test the SQLite-backed store."""

    def test_missing_key(self, sqlite_storage):
        assert sqlite_storage.get_item("wizard.class_teacher.draft") is None

    def test_set_and_replace(self, sqlite_storage):
        sqlite_storage.set_item("key", "first")
        sqlite_storage.set_item("key", "second")

        assert sqlite_storage.get_item("key") == "second"

    def test_remove(self, sqlite_storage):
        sqlite_storage.set_item("key", "value")
        sqlite_storage.remove_item("key")
        sqlite_storage.remove_item("never-set")

        assert sqlite_storage.get_item("key") is None

    def test_creates_parent_directory(self, sqlite_storage):
        sqlite_storage.set_item("key", "value")

        assert sqlite_storage.db_path.exists()

    def test_persists_across_connections(self, tmp_path):
        path = tmp_path / "local_storage.db"
        first = SQLiteStorage(path)
        first.set_item("key", "value")
        first.close()

        second = SQLiteStorage(path)
        assert second.get_item("key") == "value"
        second.close()


class TestMemoryStorage:
    """Test the in-memory store."""

    def test_initial_values_copied(self):
        initial = {"key": "value"}
        storage = MemoryStorage(initial)
        storage.set_item("key", "changed")

        assert initial == {"key": "value"}
        assert storage.keys() == ["key"]

    def test_remove_missing(self):
        storage = MemoryStorage()
        storage.remove_item("absent")

        assert storage.get_item("absent") is None


class TestKeyValueStorageInterface:
    """Test the storage interface."""

    def test_cannot_instantiate(self):
        with pytest.raises(TypeError):
            KeyValueStorage()

    def test_partial_implementation_rejected(self):
        class ReadOnlyStorage(KeyValueStorage):
            def get_item(self, key):
                return None

        with pytest.raises(TypeError):
            ReadOnlyStorage()
