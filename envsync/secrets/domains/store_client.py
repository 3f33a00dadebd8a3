"""Abstract interface for a per-environment secret store."""
from abc import ABC, abstractmethod
from typing import List

from .models import RestoreResult, SecretRecord, SecretVersion, SecretVersionSummary


class SecretStoreClient(ABC):
    """Contract the sync engine relies on for one environment's secret store.

    Implementations raise ``NotFound`` for missing secrets or versions and
    ``StoreUnavailable`` for every other failure. Calls are blocking; the
    workflows run them off the event loop.
    """

    @property
    @abstractmethod
    def store_type(self) -> str:
        """Return the backend type (e.g. 'gcp', 'memory')."""
        pass

    @abstractmethod
    def list_names(self) -> List[str]:
        """List the names of all active secrets."""
        pass

    @abstractmethod
    def get_current(self, name: str) -> SecretRecord:
        """Get the current value of a secret.

        Raises:
            NotFound: If the secret does not exist
        """
        pass

    @abstractmethod
    def list_versions(self, name: str) -> List[SecretVersionSummary]:
        """List a secret's versions, newest first."""
        pass

    @abstractmethod
    def get_version(self, name: str, version_id: str) -> SecretVersion:
        """Get the full content of one version."""
        pass

    @abstractmethod
    def upsert(self, name: str, value: str) -> SecretRecord:
        """Create the secret or add a new current version to it.

        The returned record reports whether the store had to sanitize the name.
        """
        pass

    @abstractmethod
    def restore(self, name: str, version_id: str) -> RestoreResult:
        """Append a new version whose content equals ``version_id``."""
        pass

    @abstractmethod
    def delete(self, name: str) -> None:
        """Delete a secret. Recoverability is up to the store."""
        pass
