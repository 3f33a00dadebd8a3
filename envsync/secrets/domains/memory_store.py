"""In-process secret store with full version history.

Backs ``memory://`` environments and the test suite. Every write appends a
version; deletes are soft and can be undone with ``recover``.
"""
import logging
import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List, Optional

from .errors import NotFound, StoreUnavailable
from .models import RestoreResult, SecretRecord, SecretVersion, SecretVersionSummary
from .store_client import SecretStoreClient

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemorySecretStore(SecretStoreClient):
    """Thread-safe versioned secret store kept in memory."""

    def __init__(self, label: str = "default", secrets: Optional[Dict[str, str]] = None):
        self.label = label
        self._lock = threading.Lock()
        # name -> versions, oldest first
        self._versions: Dict[str, List[SecretVersion]] = {}
        self._deleted: Dict[str, List[SecretVersion]] = {}
        self._next_version: Dict[str, int] = {}
        for name, value in (secrets or {}).items():
            self.upsert(name, value)

    @property
    def store_type(self) -> str:
        return "memory"

    def _versions_for(self, name: str) -> List[SecretVersion]:
        versions = self._versions.get(name)
        if not versions:
            raise NotFound(f"Secret '{name}' not found in store '{self.label}'")
        return versions

    def _find_version(self, name: str, version_id: str) -> SecretVersion:
        for version in self._versions_for(name):
            if version.version == version_id:
                return version
        raise NotFound(f"Version '{version_id}' of secret '{name}' not found in store '{self.label}'")

    def _append(self, name: str, value: str, content_type: Optional[str] = None,
                tags: Optional[Dict[str, str]] = None) -> SecretVersion:
        number = self._next_version.get(name, 1)
        self._next_version[name] = number + 1
        timestamp = _now()
        version = SecretVersion(
            version=str(number),
            enabled=True,
            created_on=timestamp,
            updated_on=timestamp,
            value=value,
            content_type=content_type,
            tags=dict(tags or {}),
        )
        self._versions.setdefault(name, []).append(version)
        return version

    def list_names(self) -> List[str]:
        with self._lock:
            return list(self._versions)

    def get_current(self, name: str) -> SecretRecord:
        with self._lock:
            current = self._versions_for(name)[-1]
            return SecretRecord(name=name, value=current.value, updated_on=current.created_on)

    def list_versions(self, name: str) -> List[SecretVersionSummary]:
        with self._lock:
            return [
                SecretVersionSummary(
                    version=version.version,
                    enabled=version.enabled,
                    created_on=version.created_on,
                    updated_on=version.updated_on,
                    expires_on=version.expires_on,
                )
                for version in reversed(self._versions_for(name))
            ]

    def get_version(self, name: str, version_id: str) -> SecretVersion:
        with self._lock:
            return replace(self._find_version(name, version_id))

    def upsert(self, name: str, value: str) -> SecretRecord:
        if value is None:
            raise StoreUnavailable(f"Cannot store an empty payload for secret '{name}'")
        with self._lock:
            if name in self._deleted:
                # Writing a soft-deleted name purges the deleted copy
                del self._deleted[name]
            version = self._append(name, value)
        logger.debug(f"Stored version '{version.version}' of secret '{name}' in '{self.label}'")
        return SecretRecord(name=name, value=value, updated_on=version.created_on)

    def restore(self, name: str, version_id: str) -> RestoreResult:
        with self._lock:
            source = self._find_version(name, version_id)
            version = self._append(name, source.value, source.content_type, source.tags)
        logger.debug(f"Restored secret '{name}' version '{version_id}' as '{version.version}' in '{self.label}'")
        return RestoreResult(new_version=version.version)

    def delete(self, name: str) -> None:
        with self._lock:
            self._deleted[name] = self._versions_for(name)
            del self._versions[name]
        logger.debug(f"Soft-deleted secret '{name}' in '{self.label}'")

    def recover(self, name: str) -> None:
        """Bring a soft-deleted secret back with its full history."""
        with self._lock:
            if name not in self._deleted:
                raise NotFound(f"No deleted secret '{name}' in store '{self.label}'")
            self._versions[name] = self._deleted.pop(name)

    def deleted_names(self) -> List[str]:
        with self._lock:
            return list(self._deleted)

    def set_version_enabled(self, name: str, version_id: str, enabled: bool) -> None:
        """Enable or disable a version; only the state flag changes."""
        with self._lock:
            version = self._find_version(name, version_id)
            version.enabled = enabled
            version.updated_on = _now()
