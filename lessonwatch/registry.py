"""
registry.py — Detector registry.

A ``DetectorRegistry`` maps each ``PatternType`` to a detector callable.
Registries are plain objects built once and handed to the pipeline, so
tests can construct one with fake detectors.
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Callable

from lessonwatch import generation_patterns, operation_patterns
from lessonwatch.events import PatternMatch, PatternType

logger = logging.getLogger(__name__)

Detector = Callable[[Any], PatternMatch | None]


class DetectorRegistry:
    """Ordered collection of independent detectors.

    Detectors never see each other's output, so the order only affects the
    order of the returned matches.
    """

    def __init__(self, detectors: dict[PatternType, Detector] | None = None) -> None:
        self._detectors: dict[PatternType, Detector] = dict(detectors or {})

    def register(self, pattern_type: PatternType, detector: Detector) -> None:
        self._detectors[pattern_type] = detector

    @property
    def names(self) -> list[PatternType]:
        return list(self._detectors)

    def __len__(self) -> int:
        return len(self._detectors)

    def detect_all(self, window: Any) -> list[PatternMatch]:
        """Run every detector over *window* and collect non-empty results.

        An exception in one detector is logged and that detector's result
        is dropped; the remaining detectors still run.
        """
        matches: list[PatternMatch] = []
        for pattern_type, detector in self._detectors.items():
            try:
                match = detector(window)
            except Exception:
                logger.exception("Detector %s failed", pattern_type.value)
                continue
            if match is not None:
                matches.append(match)
        return matches


def default_operation_registry(
    bulk_threshold: int = operation_patterns.DEFAULT_BULK_THRESHOLD,
    settle: float = 0.0,
) -> DetectorRegistry:
    """Stock detectors over a window of operations.

    *settle* is the debounce quiet period; a modify that close to its
    file's create is not counted as a refinement.
    """
    return DetectorRegistry({
        PatternType.BULK_OPERATION: functools.partial(
            operation_patterns.detect_bulk_operation, threshold=bulk_threshold
        ),
        PatternType.REFINEMENT_LOOP: functools.partial(
            operation_patterns.detect_refinement_loop, settle=settle
        ),
        PatternType.NAMING_QUALITY: operation_patterns.detect_naming_quality,
        PatternType.LEARNING_OPPORTUNITY: functools.partial(
            operation_patterns.detect_learning_opportunity, threshold=bulk_threshold, settle=settle
        ),
    })


def default_generation_registry() -> DetectorRegistry:
    """Stock detectors over a generation session."""
    return DetectorRegistry({
        PatternType.CODE_STRUCTURE: generation_patterns.detect_code_structure,
        PatternType.IMPORT_PATTERNS: generation_patterns.detect_import_patterns,
        PatternType.NAMING_CONVENTIONS: generation_patterns.detect_naming_conventions,
        PatternType.ARCHITECTURE_PATTERNS: generation_patterns.detect_architecture_patterns,
        PatternType.REFINEMENT_PATTERNS: generation_patterns.detect_refinement_patterns,
        PatternType.SUCCESS_PATTERNS: generation_patterns.detect_success_patterns,
        PatternType.STYLE_CONSISTENCY: generation_patterns.detect_style_consistency,
    })
