"""Domain models for environment secret synchronisation."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, List, Optional


@dataclass(frozen=True)
class Environment:
    """A named, isolated secret namespace backed by one store."""
    id: str
    name: str
    store_locator: str


@dataclass
class SecretRecord:
    """Current version of a secret in one environment."""
    name: str
    value: str
    updated_on: Optional[datetime] = None
    name_was_sanitized: bool = False


@dataclass
class SecretVersionSummary:
    """Version metadata without the secret value."""
    version: str
    enabled: bool
    created_on: Optional[datetime] = None
    updated_on: Optional[datetime] = None
    expires_on: Optional[datetime] = None


@dataclass
class SecretVersion(SecretVersionSummary):
    """Full content of one secret version."""
    value: str = ""
    content_type: Optional[str] = None
    tags: Dict[str, str] = field(default_factory=dict)


@dataclass
class RestoreResult:
    """Identifier of the version created by a restore."""
    new_version: str


@dataclass(frozen=True)
class DiffResult:
    """Three-way partition of two environments' secret names.

    The sets are pairwise disjoint and together cover every name in either
    environment.
    """
    only_in_source: FrozenSet[str]
    only_in_target: FrozenSet[str]
    in_both: FrozenSet[str]

    @property
    def total_in_source(self) -> int:
        return len(self.only_in_source) + len(self.in_both)

    @property
    def total_in_target(self) -> int:
        return len(self.only_in_target) + len(self.in_both)

    @property
    def copyable(self) -> FrozenSet[str]:
        """Names that can be read from the source and copied."""
        return self.only_in_source | self.in_both

    def summary(self) -> Dict[str, int]:
        return {
            "totalInSource": self.total_in_source,
            "totalInTarget": self.total_in_target,
            "onlyInSource": len(self.only_in_source),
            "onlyInTarget": len(self.only_in_target),
            "inBoth": len(self.in_both),
        }


class BatchStatus(str, Enum):
    """Overall outcome of a batch copy."""
    SUCCESS = "success"
    FAILURE = "failure"
    PARTIAL = "partial"


@dataclass
class CopyOutcome:
    """Result of copying a single secret."""
    secret_name: str
    success: bool
    message: str
    was_edited: Optional[bool] = None
    name_was_sanitized: bool = False


@dataclass
class BatchCopyResult:
    """Aggregated result of a batch copy, outcomes in input order."""
    outcomes: List[CopyOutcome] = field(default_factory=list)
    # Names dropped by the edit load phase; they never reach the commit phase.
    skipped: Dict[str, str] = field(default_factory=dict)

    @property
    def success_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.success)

    @property
    def failure_count(self) -> int:
        return sum(1 for outcome in self.outcomes if not outcome.success)

    @property
    def edited_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.success and outcome.was_edited)

    @property
    def status(self) -> BatchStatus:
        if self.failure_count == 0:
            return BatchStatus.SUCCESS
        if self.success_count == 0:
            return BatchStatus.FAILURE
        return BatchStatus.PARTIAL

    def summary_message(self) -> str:
        """Human readable summary distinguishing full, partial and failed batches."""
        if self.status is BatchStatus.SUCCESS:
            message = f"Successfully copied {self.success_count} secret(s)"
            if self.edited_count:
                message += f" ({self.edited_count} edited)"
            return message
        if self.status is BatchStatus.FAILURE:
            return f"Failed to copy all {self.failure_count} secret(s)"
        return f"Copied {self.success_count} secret(s), {self.failure_count} failed"


@dataclass
class EditableSecret:
    """A secret loaded from the source for editing before copy."""
    name: str
    original_value: str
    updated_on: Optional[datetime] = None


@dataclass
class EditSession:
    """Output of the edit load phase."""
    source_env_id: str
    target_env_id: str
    loaded: List[EditableSecret] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)
