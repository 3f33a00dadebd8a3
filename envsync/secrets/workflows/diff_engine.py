"""Compare the secret namespaces of two environments."""
import asyncio
import logging

from ..domains.errors import InvalidInput, StoreUnavailable
from ..domains.models import DiffResult
from ..domains.registry import EnvironmentRegistry

logger = logging.getLogger(__name__)


def validate_environment_pair(registry: EnvironmentRegistry, source_env_id: str, target_env_id: str) -> None:
    """
    Check the preconditions shared by compare and copy operations.

    Raises:
        InvalidInput: If source and target are the same environment
        UnknownEnvironment: If either id is not registered
    """
    if source_env_id == target_env_id:
        raise InvalidInput(f"Source and target environments must be different (got '{source_env_id}' twice)")
    registry.get(source_env_id)
    registry.get(target_env_id)


def partition_names(source_names, target_names) -> DiffResult:
    """Split two name collections into source-only, target-only and shared names.

    Names are compared case-sensitively.
    """
    source = frozenset(source_names)
    target = frozenset(target_names)
    return DiffResult(
        only_in_source=source - target,
        only_in_target=target - source,
        in_both=source & target,
    )


async def compare(registry: EnvironmentRegistry, source_env_id: str, target_env_id: str) -> DiffResult:
    """
    Diff the secret names of two environments.

    Both name lists are fetched concurrently. If either fetch fails the whole
    comparison fails; no partial result is returned.

    Raises:
        InvalidInput: If source and target are the same
        UnknownEnvironment: If either environment is not registered
        StoreUnavailable: If either name list cannot be read
    """
    validate_environment_pair(registry, source_env_id, target_env_id)
    source_client = registry.client_for(source_env_id)
    target_client = registry.client_for(target_env_id)

    logger.debug(f"Comparing environments '{source_env_id}' -> '{target_env_id}'")
    try:
        source_names, target_names = await asyncio.gather(
            asyncio.to_thread(source_client.list_names),
            asyncio.to_thread(target_client.list_names),
        )
    except Exception as e:
        logger.error(f"Comparison of '{source_env_id}' and '{target_env_id}' failed: {e}")
        raise StoreUnavailable(
            f"Failed to compare '{source_env_id}' and '{target_env_id}': {e}"
        ) from e

    diff = partition_names(source_names, target_names)
    logger.info(
        f"Compared '{source_env_id}' ({diff.total_in_source}) with '{target_env_id}' ({diff.total_in_target}): "
        f"{len(diff.only_in_source)} only in source, {len(diff.only_in_target)} only in target, "
        f"{len(diff.in_both)} in both"
    )
    return diff
