"""Environment registry and store client factory."""
import os
import logging
from typing import Any, Dict, Iterable, List, Optional

from .config_loader import ConfigError
from .errors import UnknownEnvironment
from .gcp_store import GCPSecretStore
from .memory_store import InMemorySecretStore
from .models import Environment
from .store_client import SecretStoreClient

logger = logging.getLogger(__name__)


def create_store(locator: str) -> SecretStoreClient:
    """
    Build the store client addressed by a locator.

    Supported locators:
        gcp://<project-id>   GCP Secret Manager in that project
        memory://<label>     In-process store (empty on creation)

    A memory store lives only as long as the process that created it, so a
    memory:// environment starts empty on every CLI invocation. Use it for
    scratch runs and tests, not for secrets that must persist.

    Raises:
        ConfigError: If the locator scheme is not supported
    """
    scheme, sep, target = locator.partition("://")
    if not sep or not target:
        raise ConfigError(f"Invalid store locator '{locator}'. Expected '<scheme>://<target>'")

    if scheme == "gcp":
        return GCPSecretStore(project_id=target)
    if scheme == "memory":
        return InMemorySecretStore(label=target)

    raise ConfigError(f"Unsupported store type '{scheme}' in locator '{locator}'. Available: gcp, memory")


class EnvironmentRegistry:
    """Known environments and their lazily created store clients.

    Environments are fixed once the registry is built.
    """

    def __init__(self, environments: Iterable[Environment], clients: Optional[Dict[str, SecretStoreClient]] = None):
        self._environments: Dict[str, Environment] = {}
        for env in environments:
            if env.id in self._environments:
                raise ConfigError(f"Duplicate environment id '{env.id}'")
            self._environments[env.id] = env
        self._clients: Dict[str, SecretStoreClient] = dict(clients or {})

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "EnvironmentRegistry":
        """Build a registry from a loaded config dict.

        Sets GOOGLE_APPLICATION_CREDENTIALS when the config names a service account.
        """
        auth = config.get('authentication')
        if auth and 'service_account_path' in auth:
            os.environ['GOOGLE_APPLICATION_CREDENTIALS'] = auth['service_account_path']
            logger.info(f"Set GOOGLE_APPLICATION_CREDENTIALS from config: {auth['service_account_path']}")

        environments = [
            Environment(id=str(env['id']), name=str(env.get('name') or env['id']), store_locator=env['store'])
            for env in config['environments']
        ]
        return cls(environments)

    def list(self) -> List[Environment]:
        return list(self._environments.values())

    def get(self, env_id: str) -> Environment:
        try:
            return self._environments[env_id]
        except KeyError:
            raise UnknownEnvironment(env_id) from None

    def name_of(self, env_id: str) -> str:
        """Display name for an id, falling back to the id itself."""
        env = self._environments.get(env_id)
        return env.name if env else env_id

    def client_for(self, env_id: str) -> SecretStoreClient:
        """Return the store client for an environment, creating it on first use."""
        env = self.get(env_id)
        client = self._clients.get(env_id)
        if client is None:
            client = create_store(env.store_locator)
            self._clients[env_id] = client
            logger.debug(f"Created {client.store_type} store client for environment '{env_id}'")
        return client
