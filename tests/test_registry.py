"""Tests for the environment registry and store factory."""
import os

import pytest

from envsync.secrets.domains.config_loader import ConfigError
from envsync.secrets.domains.errors import UnknownEnvironment
from envsync.secrets.domains.gcp_store import GCPSecretStore
from envsync.secrets.domains.memory_store import InMemorySecretStore
from envsync.secrets.domains.models import Environment
from envsync.secrets.domains.registry import EnvironmentRegistry, create_store


class TestCreateStore:

    def test_gcp_locator(self):
        store = create_store("gcp://my-project")

        assert isinstance(store, GCPSecretStore)
        assert store.project_id == "my-project"

    def test_memory_locator(self):
        store = create_store("memory://scratch")

        assert isinstance(store, InMemorySecretStore)
        assert store.list_names() == []

    def test_memory_locator_is_not_shared_between_registries(self):
        """Test that each registry built from config gets its own empty memory store."""
        config = {"environments": [{"id": "scratch", "store": "memory://scratch"}]}
        first = EnvironmentRegistry.from_config(config)
        first.client_for("scratch").upsert("token", "value")

        second = EnvironmentRegistry.from_config(config)

        assert second.client_for("scratch").list_names() == []

    @pytest.mark.parametrize("locator", ["vault://kv", "gcp://", "no-scheme"])
    def test_invalid_locators(self, locator):
        with pytest.raises(ConfigError):
            create_store(locator)


class TestEnvironmentRegistry:

    def test_from_config(self):
        registry = EnvironmentRegistry.from_config({"environments": [
            {"id": "prod", "name": "Production", "store": "memory://prod"},
            {"id": "dev", "store": "memory://dev"},
        ]})

        assert [env.id for env in registry.list()] == ["prod", "dev"]
        assert registry.get("prod").name == "Production"
        assert registry.get("dev").name == "dev"

    def test_from_config_sets_credentials(self, monkeypatch, tmp_path):
        monkeypatch.delenv("GOOGLE_APPLICATION_CREDENTIALS", raising=False)
        sa_path = str(tmp_path / "sa.json")

        EnvironmentRegistry.from_config({
            "authentication": {"type": "service_account", "service_account_path": sa_path},
            "environments": [{"id": "prod", "store": "memory://prod"}],
        })

        assert os.environ["GOOGLE_APPLICATION_CREDENTIALS"] == sa_path

    def test_duplicate_ids_rejected(self):
        with pytest.raises(ConfigError):
            EnvironmentRegistry([
                Environment("prod", "A", "memory://a"),
                Environment("prod", "B", "memory://b"),
            ])

    def test_unknown_environment(self, registry):
        with pytest.raises(UnknownEnvironment) as exc_info:
            registry.get("staging")

        assert exc_info.value.env_id == "staging"

    def test_client_for_unknown_environment(self, registry):
        with pytest.raises(UnknownEnvironment):
            registry.client_for("staging")

    def test_client_created_once(self, registry):
        """Test that a lazily created client is reused on later lookups."""
        first = registry.client_for("empty")

        assert isinstance(first, InMemorySecretStore)
        assert registry.client_for("empty") is first

    def test_injected_clients_are_used(self, registry, source_store):
        assert registry.client_for("src") is source_store

    def test_name_of_falls_back_to_id(self, registry):
        assert registry.name_of("src") == "Source"
        assert registry.name_of("staging") == "staging"
