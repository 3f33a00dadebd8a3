"""Comparison report rendering and export."""
import json
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ..domains.models import DiffResult, Environment

logger = logging.getLogger(__name__)

ONLY_IN_SOURCE = "onlyInSource"
IN_BOTH = "inBoth"
ONLY_IN_TARGET = "onlyInTarget"


def comparison_rows(diff: DiffResult, search: Optional[str] = None) -> List[Tuple[str, str]]:
    """
    Flatten a diff into (name, status) rows.

    Rows are grouped source-only, shared, then target-only, each group sorted
    by name. ``search`` keeps only names containing it, ignoring case.
    """
    rows = [(name, ONLY_IN_SOURCE) for name in sorted(diff.only_in_source)]
    rows += [(name, IN_BOTH) for name in sorted(diff.in_both)]
    rows += [(name, ONLY_IN_TARGET) for name in sorted(diff.only_in_target)]
    if search:
        needle = search.lower()
        rows = [row for row in rows if needle in row[0].lower()]
    return rows


def build_comparison_report(diff: DiffResult, source: Environment, target: Environment,
                            compared_at: Optional[datetime] = None) -> Dict[str, Any]:
    """Build the JSON-serialisable comparison report."""
    compared_at = compared_at or datetime.now(timezone.utc)
    return {
        "comparedAt": compared_at.isoformat(),
        "source": {"id": source.id, "name": source.name},
        "target": {"id": target.id, "name": target.name},
        "summary": diff.summary(),
        "onlyInSource": sorted(diff.only_in_source),
        "onlyInTarget": sorted(diff.only_in_target),
        "inBoth": sorted(diff.in_both),
    }


def export_comparison(diff: DiffResult, source: Environment, target: Environment,
                      destination: Path) -> Path:
    """
    Write the comparison report as JSON.

    Args:
        destination: Target file, or a directory in which a
            ``comparison-<src>-vs-<tgt>-<epoch-ms>.json`` file is created

    Returns:
        Path of the written report
    """
    destination = Path(destination)
    if destination.is_dir():
        destination = destination / f"comparison-{source.id}-vs-{target.id}-{int(time.time() * 1000)}.json"

    report = build_comparison_report(diff, source, target)
    with open(destination, 'w') as f:
        json.dump(report, f, indent=2)
    logger.info(f"Comparison report written to {destination}")
    return destination
