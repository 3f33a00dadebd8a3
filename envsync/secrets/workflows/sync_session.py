"""Stateful comparison and copy session for one source/target pair."""
import logging
from typing import Dict, Optional

from ..domains.errors import InvalidInput
from ..domains.models import BatchCopyResult, DiffResult, EditSession
from ..domains.registry import EnvironmentRegistry
from .batch_copy import BatchCopyOrchestrator
from .diff_engine import compare
from .selection import Selection, name_filter

logger = logging.getLogger(__name__)


class SyncSession:
    """Ties the diff, the operator's selection and the copy orchestrator together.

    The selection is cleared whenever the environments change, a comparison
    runs or a copy finishes. After every copy the diff is recomputed, since
    the target namespace has changed.
    """

    def __init__(self, registry: EnvironmentRegistry, orchestrator: Optional[BatchCopyOrchestrator] = None):
        self.registry = registry
        self.orchestrator = orchestrator or BatchCopyOrchestrator(registry)
        self.source_env_id: Optional[str] = None
        self.target_env_id: Optional[str] = None
        self.diff: Optional[DiffResult] = None
        self.selection = Selection()

    def set_environments(self, source_env_id: str, target_env_id: str) -> None:
        self.registry.get(source_env_id)
        self.registry.get(target_env_id)
        self.source_env_id = source_env_id
        self.target_env_id = target_env_id
        self._reset()

    def swap(self) -> None:
        """Exchange source and target."""
        self.source_env_id, self.target_env_id = self.target_env_id, self.source_env_id
        self._reset()

    def _reset(self) -> None:
        self.diff = None
        self.selection.clear()

    def _require_pair(self):
        if not self.source_env_id or not self.target_env_id:
            raise InvalidInput("Please select both source and target environments")
        return self.source_env_id, self.target_env_id

    async def compare(self) -> DiffResult:
        source, target = self._require_pair()
        self._reset()
        self.diff = await compare(self.registry, source, target)
        return self.diff

    def _require_diff(self) -> DiffResult:
        if self.diff is None:
            raise InvalidInput("Run a comparison before selecting or copying secrets")
        return self.diff

    def select(self, name: str) -> None:
        self.selection.select(name)

    def deselect(self, name: str) -> None:
        self.selection.deselect(name)

    def select_all(self, search: Optional[str] = None) -> None:
        self.selection.select_all(self._require_diff(), name_filter(search))

    def _checked_selection(self):
        diff = self._require_diff()
        if not self.selection:
            raise InvalidInput("Please select secrets to copy")
        self.selection.validate_against(diff)
        return list(self.selection), diff

    async def copy_selected(self) -> BatchCopyResult:
        """Direct-copy the selection, then refresh the diff."""
        names, diff = self._checked_selection()
        source, target = self._require_pair()
        result = await self.orchestrator.direct_copy(names, source, target, diff=diff)
        await self._refresh()
        return result

    async def load_selected_for_edit(self) -> EditSession:
        names, diff = self._checked_selection()
        source, target = self._require_pair()
        return await self.orchestrator.load_for_edit(names, source, target, diff=diff)

    async def commit_edits(self, session: EditSession, edits: Optional[Dict[str, str]] = None) -> BatchCopyResult:
        result = await self.orchestrator.commit_edits(session, edits)
        await self._refresh()
        return result

    async def _refresh(self) -> None:
        try:
            await self.compare()
        except Exception as e:
            # The copy already happened; leave the session without a diff
            logger.warning(f"Failed to refresh comparison after copy: {e}")
            self._reset()
