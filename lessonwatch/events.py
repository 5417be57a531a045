"""
events.py — Shared record types for lessonwatch.

Defines the Operation record the monitoring layer emits, the
GenerationSession the aggregator builds, and the PatternMatch / Lesson
pair that flows from the detectors to the learning sinks.
"""

from __future__ import annotations

import random
import string
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class OperationType(str, Enum):
    """Kind of file operation.

    The classifier only ever produces CREATE, MODIFY and DELETE.  RENAME is
    reachable through the manual recording API, where ``source`` holds the
    old path.
    """

    CREATE = "create"
    MODIFY = "modify"
    DELETE = "delete"
    RENAME = "rename"


class PatternType(str, Enum):
    """Closed set of detector names."""

    # operation scope
    BULK_OPERATION = "bulk_operation"
    REFINEMENT_LOOP = "refinement_loop"
    NAMING_QUALITY = "naming_quality"
    LEARNING_OPPORTUNITY = "learning_opportunity"
    # generation-session scope
    CODE_STRUCTURE = "code_structure"
    IMPORT_PATTERNS = "import_patterns"
    NAMING_CONVENTIONS = "naming_conventions"
    ARCHITECTURE_PATTERNS = "architecture_patterns"
    REFINEMENT_PATTERNS = "refinement_patterns"
    SUCCESS_PATTERNS = "success_patterns"
    STYLE_CONSISTENCY = "style_consistency"
    # summary lesson emitted once per session
    GENERATION_SESSION = "generation_session"


def new_id(prefix: str) -> str:
    """Return an id like ``op_1718000000000_k3j9x0a2q``."""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"


@dataclass(frozen=True)
class Operation:
    """A single observed (or manually reported) file operation.

    Attributes:
        type:      What happened to the file.
        path:      Affected path (the new path for renames).
        timestamp: Unix epoch time the record was created.
        source:    Old path, only meaningful for renames.
        id:        Opaque record id.
    """

    type: OperationType
    path: str
    timestamp: float = field(default_factory=time.time)
    source: str | None = None
    id: str = field(default_factory=lambda: new_id("op"))


@dataclass
class GeneratedFile:
    """One file belonging to a generation session."""

    path: str
    file_type: str = "unknown"
    size: int = 0
    content: str | None = None


@dataclass
class PatternMatch:
    """Result of one detector run.

    ``key`` identifies the finding for de-duplication; two passes reporting
    the same key describe the same ongoing pattern.
    """

    type: PatternType
    confidence: float
    payload: dict[str, Any] = field(default_factory=dict)
    insights: list[str] = field(default_factory=list)
    key: str = ""

    def __post_init__(self) -> None:
        if not self.key:
            self.key = self.type.value


@dataclass
class Lesson:
    """Human-readable record handed to a learning sink."""

    type: PatternType
    question: str
    insight: str
    impact: str
    learning: list[str] = field(default_factory=list)
    confidence: float = 0.0
    payload: dict[str, Any] = field(default_factory=dict)
    session_id: str | None = None
    created_at: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "question": self.question,
            "insight": self.insight,
            "impact": self.impact,
            "learning": list(self.learning),
            "confidence": self.confidence,
            "session_id": self.session_id,
            "created_at": self.created_at,
        }


@dataclass
class GenerationSession:
    """A cluster of file creations treated as one code-generation act."""

    files: list[GeneratedFile]
    window_start: float
    window_end: float
    context: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: new_id("gen"))
    patterns: dict[PatternType, PatternMatch] = field(default_factory=dict)
    lessons: list[Lesson] = field(default_factory=list)
    code_quality: dict[str, Any] = field(default_factory=dict)
    generation_style: dict[str, Any] = field(default_factory=dict)
    proactive_debugging: dict[str, Any] = field(default_factory=dict)
