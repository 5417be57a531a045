"""
operation_patterns.py — Detectors over a window of file operations.

Each detector is a pure function of the operation list it receives and
returns a ``PatternMatch`` or ``None``.  None of them keeps state.
"""

from __future__ import annotations

import os
import re
from collections import defaultdict

from lessonwatch.events import Operation, OperationType, PatternMatch, PatternType

DEFAULT_BULK_THRESHOLD = 10

VERBOSE_NAME_LENGTH = 80
GOOD_NAME_MIN = 20
GOOD_NAME_MAX = 60

_DATE_LIKE = re.compile(r"\d{1,2}_\d{1,2}")
_GENERIC_STEMS = [
    re.compile(r"^SUMMARY$", re.IGNORECASE),
    re.compile(r"^GUIDE$", re.IGNORECASE),
    re.compile(r"^DOCUMENT$", re.IGNORECASE),
    re.compile(r"^NOTES$", re.IGNORECASE),
]


# ---------------------------------------------------------------------------
# Grouping helpers
# ---------------------------------------------------------------------------

def group_by_type(operations: list[Operation]) -> dict[OperationType, list[Operation]]:
    groups: dict[OperationType, list[Operation]] = defaultdict(list)
    for op in operations:
        groups[op.type].append(op)
    return dict(groups)


def group_by_file(operations: list[Operation]) -> dict[str, list[Operation]]:
    groups: dict[str, list[Operation]] = defaultdict(list)
    for op in operations:
        groups[op.path or op.source or "unknown"].append(op)
    return dict(groups)


# ---------------------------------------------------------------------------
# Bulk operations
# ---------------------------------------------------------------------------

def detect_bulk_operation(
    operations: list[Operation],
    threshold: int = DEFAULT_BULK_THRESHOLD,
) -> PatternMatch | None:
    """Report the first operation type with at least *threshold* entries.

    The key is the bare pattern type, so a burst that later crosses the
    threshold for a second operation type is still the same finding.
    """
    for op_type, ops in group_by_type(operations).items():
        if len(ops) >= threshold:
            return PatternMatch(
                type=PatternType.BULK_OPERATION,
                confidence=min(len(ops) / threshold, 1.0),
                payload={
                    "operation_type": op_type.value,
                    "count": len(ops),
                    "files": [op.path for op in ops if op.path],
                },
                insights=[f"Bulk {op_type.value} affecting {len(ops)} files"],
            )
    return None


# ---------------------------------------------------------------------------
# Refinement loops
# ---------------------------------------------------------------------------

def is_refinement_sequence(operations: list[Operation]) -> bool:
    """True for rename→rename, create→modify, or a run of one operation type."""
    if len(operations) < 2:
        return False

    first, second = operations[0].type, operations[1].type
    if first is OperationType.RENAME and second is OperationType.RENAME:
        return True
    if first is OperationType.CREATE and second is OperationType.MODIFY:
        return True
    return all(op.type is first for op in operations)


def drop_write_echoes(operations: list[Operation], settle: float) -> list[Operation]:
    """Drop a modify that lands within *settle* seconds of the create before it.

    Writing a new file raises both a create and a modify event; the modify
    is part of the initial write, not a later edit.  *operations* must be
    sorted by timestamp.
    """
    kept: list[Operation] = []
    for op in operations:
        if (
            kept
            and op.type is OperationType.MODIFY
            and kept[-1].type is OperationType.CREATE
            and op.timestamp - kept[-1].timestamp <= settle
        ):
            continue
        kept.append(op)
    return kept


def detect_refinement_loop(
    operations: list[Operation],
    settle: float = 0.0,
) -> PatternMatch | None:
    """Report the most recently touched file whose operations look like iterative refinement.

    Each file has its own key, so refinement of a second file is a new
    finding even while the first one is still in the window.
    """
    candidates = []
    for path, ops in group_by_file(operations).items():
        ordered = sorted(ops, key=lambda op: op.timestamp)
        if settle > 0:
            ordered = drop_write_echoes(ordered, settle)
        if len(ordered) >= 2 and is_refinement_sequence(ordered):
            candidates.append((path, ordered))
    if not candidates:
        return None

    path, ordered = max(candidates, key=lambda item: item[1][-1].timestamp)
    return PatternMatch(
        type=PatternType.REFINEMENT_LOOP,
        confidence=0.9,
        payload={
            "file": path,
            "operations": [op.type.value for op in ordered],
            "initial_operation": ordered[0].type.value,
            "refined_operation": ordered[-1].type.value,
            "refinement_count": len(ordered) - 1,
        },
        insights=[
            f"{os.path.basename(path)} went through "
            f"{len(ordered) - 1} refinement(s): "
            + " → ".join(op.type.value for op in ordered)
        ],
        key=f"{PatternType.REFINEMENT_LOOP.value}:{path}",
    )


# ---------------------------------------------------------------------------
# Naming quality
# ---------------------------------------------------------------------------

def is_unclear_name(name: str) -> bool:
    """Date-like fragments or a bare generic word (SUMMARY, NOTES, ...)."""
    if _DATE_LIKE.search(name):
        return True
    stem = os.path.splitext(name)[0]
    return any(pattern.match(stem) for pattern in _GENERIC_STEMS)


def classify_name(name: str) -> list[str]:
    """Return the quality buckets *name* falls into: verbose, unclear, good."""
    buckets = []
    unclear = is_unclear_name(name)
    if len(name) > VERBOSE_NAME_LENGTH:
        buckets.append("verbose")
    if unclear:
        buckets.append("unclear")
    if GOOD_NAME_MIN <= len(name) <= GOOD_NAME_MAX and not unclear:
        buckets.append("good")
    return buckets


def naming_insights(buckets: dict[str, list], refinement_needed: int) -> list[str]:
    insights = []
    if buckets["verbose"]:
        insights.append(
            f"Found {len(buckets['verbose'])} overly verbose names (>{VERBOSE_NAME_LENGTH} chars)"
        )
    if buckets["unclear"]:
        insights.append(f"Found {len(buckets['unclear'])} unclear names (dates, generic terms)")
    if refinement_needed:
        insights.append(f"Refinement needed for {refinement_needed} names")
    if buckets["good"]:
        insights.append(
            f"Found {len(buckets['good'])} well-named files "
            f"({GOOD_NAME_MIN}-{GOOD_NAME_MAX} chars, descriptive)"
        )
    return insights


def detect_naming_quality(operations: list[Operation]) -> PatternMatch | None:
    """Bucket the new names of renamed files.

    Keyed on the set of renamed paths, so a later rename in the same window
    is reported again with the updated buckets.
    """
    renames = [op for op in operations if op.type is OperationType.RENAME]
    if not renames:
        return None

    buckets: dict[str, list] = {"verbose": [], "unclear": [], "good": []}
    refinement_needed = 0
    for op in renames:
        old_name = os.path.basename(op.source) if op.source else ""
        new_name = os.path.basename(op.path)
        for bucket in classify_name(new_name):
            buckets[bucket].append({"old": old_name, "new": new_name, "length": len(new_name)})
        if old_name and old_name != new_name:
            refinement_needed += 1

    if not (buckets["verbose"] or buckets["unclear"] or buckets["good"] or refinement_needed):
        return None

    return PatternMatch(
        type=PatternType.NAMING_QUALITY,
        confidence=0.85,
        payload={**buckets, "refinement_needed": refinement_needed},
        insights=naming_insights(buckets, refinement_needed),
        key=f"{PatternType.NAMING_QUALITY.value}:" + ",".join(sorted({op.path for op in renames})),
    )


# ---------------------------------------------------------------------------
# Learning opportunities (aggregate of the three above)
# ---------------------------------------------------------------------------

def detect_learning_opportunity(
    operations: list[Operation],
    threshold: int = DEFAULT_BULK_THRESHOLD,
    settle: float = 0.0,
) -> PatternMatch | None:
    opportunities = []

    if len(operations) >= threshold:
        opportunities.append({
            "type": "bulk_operation_learning",
            "count": len(operations),
            "description": f"Bulk operation affecting {len(operations)} files",
        })

    refinement = detect_refinement_loop(operations, settle)
    if refinement:
        opportunities.append({
            "type": "refinement_learning",
            "file": refinement.payload["file"],
            "description": (
                f"Refinement pattern detected: "
                f"{refinement.payload['refinement_count']} refinements"
            ),
        })

    naming = detect_naming_quality(operations)
    if naming:
        opportunities.append({
            "type": "naming_learning",
            "description": "Naming quality patterns detected",
        })

    if not opportunities:
        return None

    return PatternMatch(
        type=PatternType.LEARNING_OPPORTUNITY,
        confidence=0.9,
        payload={"opportunities": opportunities},
        insights=[o["description"] for o in opportunities],
        key=PatternType.LEARNING_OPPORTUNITY.value + ":"
        + ",".join(sorted(o["type"] for o in opportunities)),
    )
