"""Single-secret operations against one environment."""
import logging
from typing import List

from ..domains.models import SecretRecord
from ..domains.registry import EnvironmentRegistry

logger = logging.getLogger(__name__)


def list_secrets(registry: EnvironmentRegistry, env_id: str) -> List[str]:
    """List secret names in an environment, sorted."""
    return sorted(registry.client_for(env_id).list_names())


def get_secret(registry: EnvironmentRegistry, env_id: str, secret_name: str) -> SecretRecord:
    """
    Fetch the current value of a secret.

    Also used to preview a source secret before copying it.

    Raises:
        UnknownEnvironment: If the environment is not registered
        NotFound: If the secret does not exist
        StoreUnavailable: If the store call fails
    """
    record = registry.client_for(env_id).get_current(secret_name)
    logger.debug(f"Fetched secret '{secret_name}' from '{env_id}'")
    return record


def set_secret(registry: EnvironmentRegistry, env_id: str, secret_name: str, secret_value: str) -> SecretRecord:
    """Create or update a secret. The returned record reports any name sanitization."""
    record = registry.client_for(env_id).upsert(secret_name, secret_value)
    if record.name_was_sanitized:
        logger.warning(f"Secret name '{secret_name}' was stored as '{record.name}' in '{env_id}'")
    logger.info(f"Secret '{record.name}' written to '{env_id}'")
    return record


def delete_secret(registry: EnvironmentRegistry, env_id: str, secret_name: str) -> None:
    registry.client_for(env_id).delete(secret_name)
    logger.info(f"Secret '{secret_name}' deleted from '{env_id}'")
