"""Operator selection of diffed secret names."""
from typing import Callable, FrozenSet, Iterable, Iterator, Optional, Set

from ..domains.errors import InvalidSelection
from ..domains.models import DiffResult

NamePredicate = Callable[[str], bool]


def name_filter(search: Optional[str]) -> NamePredicate:
    """Case-insensitive substring match on secret names; empty search matches everything."""
    if not search:
        return lambda name: True
    needle = search.lower()
    return lambda name: needle in name.lower()


def ensure_copyable(names: Iterable[str], diff: DiffResult) -> None:
    """
    Reject names that cannot be copied from the source of ``diff``.

    Raises:
        InvalidSelection: If any name is only in the target or not in the diff at all
    """
    invalid = set(names) - diff.copyable
    if invalid:
        raise InvalidSelection(invalid)


class Selection:
    """Names the operator has marked for copying. Holds no I/O."""

    def __init__(self):
        self._names: Set[str] = set()

    def select(self, name: str) -> None:
        self._names.add(name)

    def deselect(self, name: str) -> None:
        self._names.discard(name)

    def select_all(self, diff: DiffResult, predicate: Optional[NamePredicate] = None) -> None:
        """Replace the selection with every copyable name accepted by ``predicate``."""
        predicate = predicate or name_filter(None)
        self._names = {name for name in diff.copyable if predicate(name)}

    def clear(self) -> None:
        self._names.clear()

    def validate_against(self, diff: DiffResult) -> None:
        ensure_copyable(self._names, diff)

    @property
    def names(self) -> FrozenSet[str]:
        return frozenset(self._names)

    def __contains__(self, name: str) -> bool:
        return name in self._names

    def __len__(self) -> int:
        return len(self._names)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._names))
