"""Shared fixtures: in-memory environments and stores that fail on demand."""
import pytest

from envsync.secrets.domains.errors import StoreUnavailable
from envsync.secrets.domains.memory_store import InMemorySecretStore
from envsync.secrets.domains.models import Environment
from envsync.secrets.domains.registry import EnvironmentRegistry


class FlakyStore(InMemorySecretStore):
    """In-memory store that raises StoreUnavailable for chosen names or operations."""

    def __init__(self, label="flaky", secrets=None):
        self.fail_reads = set()
        self.fail_writes = set()
        self.fail_listing = False
        self.read_calls = []
        self.write_calls = []
        super().__init__(label, secrets)
        self.write_calls.clear()

    def list_names(self):
        if self.fail_listing:
            raise StoreUnavailable(f"Store '{self.label}' is unreachable")
        return super().list_names()

    def get_current(self, name):
        self.read_calls.append(name)
        if name in self.fail_reads:
            raise StoreUnavailable(f"Network error reading '{name}'")
        return super().get_current(name)

    def upsert(self, name, value):
        self.write_calls.append(name)
        if name in self.fail_writes:
            raise StoreUnavailable(f"Network error writing '{name}'")
        return super().upsert(name, value)


@pytest.fixture
def source_store():
    return FlakyStore("src", {"a": "alpha", "b": "bravo", "c": "charlie"})


@pytest.fixture
def target_store():
    return FlakyStore("tgt", {"b": "old-bravo", "c": "charlie", "d": "delta"})


@pytest.fixture
def registry(source_store, target_store):
    environments = [
        Environment(id="src", name="Source", store_locator="memory://src"),
        Environment(id="tgt", name="Target", store_locator="memory://tgt"),
        Environment(id="empty", name="Empty", store_locator="memory://empty"),
    ]
    return EnvironmentRegistry(environments, clients={"src": source_store, "tgt": target_store})
