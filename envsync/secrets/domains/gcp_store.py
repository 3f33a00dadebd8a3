"""GCP Secret Manager store client."""
import logging
import re
from contextlib import contextmanager
from typing import List, Optional, Tuple

from google.api_core import exceptions as gcp_exceptions
from google.cloud import secretmanager

from .errors import NotFound, StoreUnavailable
from .models import RestoreResult, SecretRecord, SecretVersion, SecretVersionSummary
from .store_client import SecretStoreClient

logger = logging.getLogger(__name__)

# GCP secret ids: letters, digits, underscores and hyphens, at most 255 characters
SECRET_NAME_PATTERN = r'^[a-zA-Z0-9_-]+$'
MAX_SECRET_NAME_LENGTH = 255


def sanitize_secret_name(name: str) -> Tuple[str, bool]:
    """
    Map a secret name onto the characters GCP Secret Manager accepts.

    Args:
        name: Requested secret name

    Returns:
        Tuple of (sanitized name, whether the name was changed)
    """
    if re.match(SECRET_NAME_PATTERN, name) and len(name) <= MAX_SECRET_NAME_LENGTH:
        return name, False
    sanitized = re.sub(r'[^a-zA-Z0-9_-]', '-', name)[:MAX_SECRET_NAME_LENGTH]
    return sanitized, sanitized != name


def _version_id(resource_name: str) -> str:
    """Extract the version id from 'projects/p/secrets/s/versions/<id>'."""
    return resource_name.split("/")[-1]


@contextmanager
def _store_call(description: str):
    """Translate Google API errors into envsync store errors."""
    try:
        yield
    except gcp_exceptions.NotFound as e:
        logger.debug(f"{description}: not found ({e})")
        raise NotFound(f"{description}: not found") from e
    except (gcp_exceptions.GoogleAPICallError, gcp_exceptions.RetryError) as e:
        logger.warning(f"{description} failed: {e}")
        raise StoreUnavailable(f"{description} failed: {e}") from e
    except UnicodeDecodeError as e:
        logger.warning(f"{description} failed: payload is not valid UTF-8")
        raise StoreUnavailable(f"{description} failed: payload is not valid UTF-8 text") from e


class GCPSecretStore(SecretStoreClient):
    """Secret store backed by one GCP project's Secret Manager."""

    def __init__(self, project_id: str, client: Optional[secretmanager.SecretManagerServiceClient] = None):
        self.project_id = project_id
        self._client = client

    @property
    def store_type(self) -> str:
        return "gcp"

    @property
    def client(self) -> secretmanager.SecretManagerServiceClient:
        """Lazy-initialize client."""
        if self._client is None:
            self._client = secretmanager.SecretManagerServiceClient()
            logger.debug(f"Secret Manager client initialized for project: {self.project_id}")
        return self._client

    def _secret_path(self, name: str) -> str:
        return f"projects/{self.project_id}/secrets/{name}"

    def _version_path(self, name: str, version_id: str) -> str:
        return f"{self._secret_path(name)}/versions/{version_id}"

    def list_names(self) -> List[str]:
        with _store_call(f"List secrets in project '{self.project_id}'"):
            secrets = self.client.list_secrets(request={"parent": f"projects/{self.project_id}"})
            names = [secret.name.split("/")[-1] for secret in secrets]
        logger.debug(f"Listed {len(names)} secrets in project '{self.project_id}'")
        return names

    def get_current(self, name: str) -> SecretRecord:
        with _store_call(f"Read secret '{name}'"):
            response = self.client.access_secret_version(
                request={"name": self._version_path(name, "latest")}
            )
            version = self.client.get_secret_version(request={"name": response.name})
            value = response.payload.data.decode("UTF-8")
        return SecretRecord(name=name, value=value, updated_on=version.create_time)

    def list_versions(self, name: str) -> List[SecretVersionSummary]:
        # Secret Manager lists versions in reverse creation order
        with _store_call(f"List versions of secret '{name}'"):
            versions = self.client.list_secret_versions(request={"parent": self._secret_path(name)})
            return [self._summary(version) for version in versions]

    def get_version(self, name: str, version_id: str) -> SecretVersion:
        with _store_call(f"Read version '{version_id}' of secret '{name}'"):
            secret = self.client.get_secret(request={"name": self._secret_path(name)})
            version = self.client.get_secret_version(request={"name": self._version_path(name, version_id)})
            response = self.client.access_secret_version(request={"name": version.name})
            value = response.payload.data.decode("UTF-8")
        summary = self._summary(version)
        return SecretVersion(
            version=summary.version,
            enabled=summary.enabled,
            created_on=summary.created_on,
            updated_on=summary.updated_on,
            expires_on=secret.expire_time or None,
            value=value,
            tags=dict(secret.labels),
        )

    def upsert(self, name: str, value: str) -> SecretRecord:
        secret_id, sanitized = sanitize_secret_name(name)
        if sanitized:
            logger.info(f"Secret name '{name}' stored as '{secret_id}'")

        with _store_call(f"Write secret '{secret_id}'"):
            try:
                self.client.create_secret(
                    request={
                        "parent": f"projects/{self.project_id}",
                        "secret_id": secret_id,
                        "secret": {"replication": {"automatic": {}}},
                    }
                )
                logger.debug(f"Created new secret '{secret_id}'")
            except gcp_exceptions.AlreadyExists:
                logger.debug(f"Secret '{secret_id}' already exists")

            version = self.client.add_secret_version(
                request={"parent": self._secret_path(secret_id), "payload": {"data": value.encode("UTF-8")}}
            )

        return SecretRecord(
            name=secret_id,
            value=value,
            updated_on=version.create_time,
            name_was_sanitized=sanitized,
        )

    def restore(self, name: str, version_id: str) -> RestoreResult:
        with _store_call(f"Restore version '{version_id}' of secret '{name}'"):
            response = self.client.access_secret_version(request={"name": self._version_path(name, version_id)})
            version = self.client.add_secret_version(
                request={"parent": self._secret_path(name), "payload": {"data": response.payload.data}}
            )
        new_version = _version_id(version.name)
        logger.info(f"Restored secret '{name}' version '{version_id}' as version '{new_version}'")
        return RestoreResult(new_version=new_version)

    def delete(self, name: str) -> None:
        with _store_call(f"Delete secret '{name}'"):
            self.client.delete_secret(request={"name": self._secret_path(name)})
        logger.info(f"Deleted secret '{name}' from project '{self.project_id}'")

    @staticmethod
    def _summary(version) -> SecretVersionSummary:
        return SecretVersionSummary(
            version=_version_id(version.name),
            enabled=version.state == secretmanager.SecretVersion.State.ENABLED,
            created_on=version.create_time,
            # Secret Manager versions are immutable apart from their state
            updated_on=version.create_time,
        )
