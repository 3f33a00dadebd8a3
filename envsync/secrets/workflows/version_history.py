"""Version history and non-destructive restore for a single secret."""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional, TypeVar

from ..domains.errors import EnvSyncError, StoreUnavailable
from ..domains.models import RestoreResult, SecretVersion, SecretVersionSummary
from ..domains.registry import EnvironmentRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")


class VersionHistoryManager:
    """Lists, inspects and restores versions of one secret in one environment.

    Holds no state between calls. Restoring never removes or reorders
    versions: it appends a new current version with the restored content,
    even when the restored version is already current.
    """

    def __init__(self, registry: EnvironmentRegistry):
        self.registry = registry

    async def _call(self, env_id: str, description: str, method: Callable[..., T], *args) -> T:
        try:
            return await asyncio.to_thread(method, *args)
        except EnvSyncError:
            raise
        except Exception as e:
            logger.error(f"{description} in '{env_id}' failed: {e}")
            raise StoreUnavailable(f"{description} in '{env_id}' failed: {e}") from e

    async def list_versions(self, env_id: str, name: str) -> List[SecretVersionSummary]:
        """List versions newest first, in the order the store returns them."""
        client = self.registry.client_for(env_id)
        versions = await self._call(env_id, f"Listing versions of '{name}'", client.list_versions, name)
        logger.debug(f"Secret '{name}' in '{env_id}' has {len(versions)} version(s)")
        return versions

    async def get_version(self, env_id: str, name: str, version_id: str) -> SecretVersion:
        """Fetch a version's full content, including disabled versions."""
        client = self.registry.client_for(env_id)
        return await self._call(
            env_id, f"Reading version '{version_id}' of '{name}'", client.get_version, name, version_id
        )

    async def restore(self, env_id: str, name: str, version_id: str) -> RestoreResult:
        """
        Create a new current version with the content of ``version_id``.

        Raises:
            UnknownEnvironment: If the environment is not registered
            NotFound: If the secret or version does not exist
            StoreUnavailable: If the store call fails
        """
        client = self.registry.client_for(env_id)
        result = await self._call(
            env_id, f"Restoring version '{version_id}' of '{name}'", client.restore, name, version_id
        )
        logger.info(f"Restored '{name}' version '{version_id}' in '{env_id}' as new version '{result.new_version}'")
        return result


def version_age(created_on: Optional[datetime], now: Optional[datetime] = None) -> str:
    """Describe how long ago a version was created, e.g. 'Yesterday' or '3 weeks ago'."""
    if created_on is None:
        return ""
    now = now or datetime.now(timezone.utc)
    if created_on.tzinfo is None:
        created_on = created_on.replace(tzinfo=timezone.utc)
    days = (now - created_on).days

    if days <= 0:
        return "Today"
    if days == 1:
        return "Yesterday"
    if days < 7:
        return f"{days} days ago"
    if days < 30:
        return f"{days // 7} weeks ago"
    if days < 365:
        return f"{days // 30} months ago"
    return f"{days // 365} years ago"


def truncate_version(version: str, length: int = 8) -> str:
    if not version:
        return ""
    if len(version) <= length:
        return version
    return version[:length] + "..."
