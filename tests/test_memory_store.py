"""Tests for the in-memory secret store."""
import pytest

from envsync.secrets.domains.errors import NotFound
from envsync.secrets.domains.memory_store import InMemorySecretStore


@pytest.fixture
def store():
    return InMemorySecretStore("test", {"api-key": "one"})


class TestInMemorySecretStore:

    def test_upsert_appends_versions(self, store):
        store.upsert("api-key", "two")

        assert store.get_current("api-key").value == "two"
        assert [v.version for v in store.list_versions("api-key")] == ["2", "1"]
        assert store.get_version("api-key", "1").value == "one"

    def test_get_missing_secret(self, store):
        with pytest.raises(NotFound):
            store.get_current("missing")

    def test_get_version_returns_copy(self, store):
        """Test that callers cannot mutate stored versions."""
        version = store.get_version("api-key", "1")
        version.value = "tampered"

        assert store.get_version("api-key", "1").value == "one"

    def test_restore_copies_content(self, store):
        store.upsert("api-key", "two")
        result = store.restore("api-key", "1")

        assert result.new_version == "3"
        assert store.get_current("api-key").value == "one"

    def test_soft_delete_and_recover(self, store):
        store.upsert("api-key", "two")
        store.delete("api-key")

        assert store.list_names() == []
        assert store.deleted_names() == ["api-key"]
        with pytest.raises(NotFound):
            store.get_current("api-key")

        store.recover("api-key")
        assert store.get_current("api-key").value == "two"
        assert len(store.list_versions("api-key")) == 2

    def test_recover_unknown(self, store):
        with pytest.raises(NotFound):
            store.recover("api-key")

    def test_delete_missing(self, store):
        with pytest.raises(NotFound):
            store.delete("missing")

    def test_toggling_enabled_keeps_value(self, store):
        store.set_version_enabled("api-key", "1", False)
        version = store.get_version("api-key", "1")

        assert version.enabled is False
        assert version.value == "one"

    def test_store_type(self, store):
        assert store.store_type == "memory"
