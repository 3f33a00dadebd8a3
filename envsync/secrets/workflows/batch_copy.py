"""Batch copy of secrets from one environment to another.

Each secret is copied independently: a failure on one name is recorded in its
outcome and never stops the others. Outcomes are reported in the order the
names were given, whatever order the store calls complete in. There is no
rollback; names that were written stay written.
"""
import asyncio
import logging
from typing import Dict, Iterable, List, Optional

from ..domains.config_loader import DEFAULT_MAX_CONCURRENCY
from ..domains.errors import InvalidInput, NothingToEdit, ValidationError
from ..domains.models import (
    BatchCopyResult, CopyOutcome, DiffResult, EditableSecret, EditSession,
)
from ..domains.registry import EnvironmentRegistry
from ..domains.store_client import SecretStoreClient
from .diff_engine import validate_environment_pair
from .selection import ensure_copyable

logger = logging.getLogger(__name__)

COPY_SUCCESS_MESSAGE = "Secret copied successfully"


def _unique_names(names: Iterable[str]) -> List[str]:
    """Deduplicate names, keeping first-seen order."""
    if isinstance(names, (set, frozenset)):
        names = sorted(names)
    ordered = list(dict.fromkeys(names))
    if not ordered:
        raise InvalidInput("No secrets selected")
    return ordered


def _failure_message(error: Exception) -> str:
    return str(error) or type(error).__name__


def _require_value(name: str, value: Optional[str]) -> str:
    if value is None or value == "":
        raise ValidationError(f"Value for secret '{name}' is required")
    return value


class BatchCopyOrchestrator:
    """Runs direct and edit-then-copy batches between registered environments.

    The orchestrator holds no diff state; callers recompute the diff after a
    batch since the target namespace has changed.
    """

    def __init__(self, registry: EnvironmentRegistry, max_concurrency: int = DEFAULT_MAX_CONCURRENCY):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.registry = registry
        self.max_concurrency = max_concurrency

    def _prepare(self, names: Iterable[str], source_env_id: str, target_env_id: str,
                 diff: Optional[DiffResult]) -> List[str]:
        validate_environment_pair(self.registry, source_env_id, target_env_id)
        ordered = _unique_names(names)
        if diff is not None:
            ensure_copyable(ordered, diff)
        return ordered

    async def direct_copy(self, names: Iterable[str], source_env_id: str, target_env_id: str,
                          diff: Optional[DiffResult] = None) -> BatchCopyResult:
        """
        Copy the current value of each name from source to target verbatim.

        Args:
            names: Secret names to copy; sets are processed in sorted order
            source_env_id: Environment to read from
            target_env_id: Environment to write to (create or overwrite)
            diff: Current comparison; when given, names outside its copyable
                sets are rejected before any I/O

        Returns:
            BatchCopyResult with one outcome per unique name

        Raises:
            InvalidInput: If the environments are the same or no names are given
            UnknownEnvironment: If either environment is not registered
            InvalidSelection: If a name is not copyable according to ``diff``
        """
        ordered = self._prepare(names, source_env_id, target_env_id, diff)
        source = self.registry.client_for(source_env_id)
        target = self.registry.client_for(target_env_id)
        semaphore = asyncio.Semaphore(self.max_concurrency)

        logger.info(f"Copying {len(ordered)} secret(s) from '{source_env_id}' to '{target_env_id}'")
        outcomes = await asyncio.gather(
            *(self._copy_one(semaphore, source, target, name) for name in ordered)
        )
        result = BatchCopyResult(outcomes=list(outcomes))
        logger.info(result.summary_message())
        return result

    async def _copy_one(self, semaphore: asyncio.Semaphore, source: SecretStoreClient,
                        target: SecretStoreClient, name: str) -> CopyOutcome:
        async with semaphore:
            try:
                record = await asyncio.to_thread(source.get_current, name)
                written = await asyncio.to_thread(target.upsert, name, record.value)
            except Exception as e:
                logger.warning(f"Failed to copy secret '{name}': {e}")
                return CopyOutcome(secret_name=name, success=False, message=_failure_message(e))

        logger.debug(f"Copied secret '{name}'")
        return CopyOutcome(
            secret_name=name,
            success=True,
            message=COPY_SUCCESS_MESSAGE,
            name_was_sanitized=written.name_was_sanitized,
        )

    async def load_for_edit(self, names: Iterable[str], source_env_id: str, target_env_id: str,
                            diff: Optional[DiffResult] = None) -> EditSession:
        """
        Read the current source value of each name so it can be edited.

        Names whose read fails are dropped with a warning. The whole load
        finishes before anything is returned.

        Raises:
            NothingToEdit: If no secret could be loaded
        """
        ordered = self._prepare(names, source_env_id, target_env_id, diff)
        source = self.registry.client_for(source_env_id)
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def load(name: str):
            async with semaphore:
                try:
                    return await asyncio.to_thread(source.get_current, name)
                except Exception as e:
                    return e

        results = await asyncio.gather(*(load(name) for name in ordered))

        session = EditSession(source_env_id=source_env_id, target_env_id=target_env_id)
        for name, result in zip(ordered, results):
            if isinstance(result, Exception):
                logger.warning(f"Failed to load secret '{name}' for editing: {result}")
                session.failed[name] = _failure_message(result)
            else:
                session.loaded.append(
                    EditableSecret(name=name, original_value=result.value, updated_on=result.updated_on)
                )

        if not session.loaded:
            raise NothingToEdit(f"Failed to load any of {len(ordered)} secret(s) from '{source_env_id}'")

        logger.info(f"Loaded {len(session.loaded)} secret(s) for editing")
        return session

    async def commit_edits(self, session: EditSession, edits: Optional[Dict[str, str]] = None) -> BatchCopyResult:
        """
        Write each loaded secret to the target, using its edited value when given.

        A missing or empty value fails only that secret.
        """
        if not session.loaded:
            raise NothingToEdit("Edit session has no loaded secrets")
        edits = edits or {}
        loaded_names = {secret.name for secret in session.loaded}
        unknown = sorted(set(edits) - loaded_names)
        if unknown:
            logger.warning(f"Ignoring edits for secrets that were not loaded: {', '.join(unknown)}")

        target = self.registry.client_for(session.target_env_id)
        semaphore = asyncio.Semaphore(self.max_concurrency)

        logger.info(
            f"Committing {len(session.loaded)} secret(s) from '{session.source_env_id}' "
            f"to '{session.target_env_id}'"
        )
        outcomes = await asyncio.gather(
            *(self._commit_one(semaphore, target, secret, edits) for secret in session.loaded)
        )
        result = BatchCopyResult(outcomes=list(outcomes), skipped=dict(session.failed))
        logger.info(result.summary_message())
        return result

    async def _commit_one(self, semaphore: asyncio.Semaphore, target: SecretStoreClient,
                          secret: EditableSecret, edits: Dict[str, str]) -> CopyOutcome:
        value = edits[secret.name] if secret.name in edits else secret.original_value
        try:
            value = _require_value(secret.name, value)
        except ValidationError as e:
            logger.warning(str(e))
            return CopyOutcome(secret_name=secret.name, success=False, message=str(e))

        was_edited = value != secret.original_value
        async with semaphore:
            try:
                written = await asyncio.to_thread(target.upsert, secret.name, value)
            except Exception as e:
                logger.warning(f"Failed to copy secret '{secret.name}': {e}")
                return CopyOutcome(
                    secret_name=secret.name, success=False, message=_failure_message(e), was_edited=was_edited
                )

        return CopyOutcome(
            secret_name=secret.name,
            success=True,
            message=COPY_SUCCESS_MESSAGE,
            was_edited=was_edited,
            name_was_sanitized=written.name_was_sanitized,
        )

    async def edit_then_copy(self, names: Iterable[str], source_env_id: str, target_env_id: str,
                             edits: Optional[Dict[str, str]] = None,
                             diff: Optional[DiffResult] = None) -> BatchCopyResult:
        """
        Load every name from the source, then write edited or original values to the target.

        Names that fail to load are reported in ``BatchCopyResult.skipped``.

        Raises:
            NothingToEdit: If no secret could be loaded; nothing is written
        """
        session = await self.load_for_edit(names, source_env_id, target_env_id, diff=diff)
        return await self.commit_edits(session, edits)
