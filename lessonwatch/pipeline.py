"""
pipeline.py — Learning pipeline for lessonwatch.

Ties the pieces together into one stateful object:
  1. Receive an Operation (from the monitor or a manual caller).
  2. Append it to the bounded history.
  3. Run the operation detectors over the recent window.
  4. Feed creates into the session aggregator; closed windows become
     generation sessions that go through the generation detectors.
  5. Render confident matches as lessons and hand them to the sink.

The pipeline never raises because of a detector or a sink; failures are
logged and counted.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import Counter, deque
from pathlib import Path
from typing import Any, Callable, Iterable

from lessonwatch.aggregator import OperationHistory, SessionAggregator, TimerFactory
from lessonwatch.config import MonitorSettings
from lessonwatch.events import (
    GeneratedFile,
    GenerationSession,
    Lesson,
    Operation,
    OperationType,
    PatternType,
)
from lessonwatch.generation_patterns import (
    analyze_code_quality,
    detect_file_type,
    detect_generation_style,
    evaluate_proactive_debugging,
    read_generated_file,
)
from lessonwatch.lessons import match_to_lesson, session_lesson
from lessonwatch.registry import (
    DetectorRegistry,
    default_generation_registry,
    default_operation_registry,
)
from lessonwatch.sinks import LearningSink, as_sink

logger = logging.getLogger(__name__)

FileSpec = str | Path | GeneratedFile


class LearningPipeline:
    """Stateful operation → pattern → lesson pipeline.

    Parameters:
        sink:                Where lessons go (object with ``capture_learning``
                             or a plain callable).  ``None`` keeps lessons
                             in memory only.
        settings:            Thresholds and windows; defaults to ``MonitorSettings()``.
        operation_registry:  Detectors run over the recent operation window.
        generation_registry: Detectors run over each generation session.
        timer_factory:       ``threading.Timer``-compatible constructor used
                             for the session window.
    """

    def __init__(
        self,
        sink: LearningSink | Callable[[Lesson], None] | None = None,
        settings: MonitorSettings | None = None,
        operation_registry: DetectorRegistry | None = None,
        generation_registry: DetectorRegistry | None = None,
        timer_factory: TimerFactory | None = None,
    ) -> None:
        self.settings = settings or MonitorSettings()
        self.sink = as_sink(sink)
        self.operation_registry = operation_registry or default_operation_registry(
            self.settings.bulk_operation_threshold, settle=self.settings.quiet_period
        )
        self.generation_registry = generation_registry or default_generation_registry()

        self._lock = threading.RLock()
        self._history = OperationHistory(self.settings.history_size)
        self._sessions: deque[GenerationSession] = deque(maxlen=self.settings.session_history_size)
        self._aggregator = SessionAggregator(
            self._on_session_window,
            window=self.settings.generation_session_window,
            timer_factory=timer_factory,
        )
        self._active_keys: set[str] = set()

        self._operations_recorded = 0
        self._operations_by_type: Counter = Counter()
        self._lessons_by_type: Counter = Counter()
        self._sink_failures = 0
        self._total_sessions = 0
        self._total_files_generated = 0
        self._patterns_learned = 0
        self._proactive_sessions = 0
        self._proactive_compliant_sessions = 0
        self._proactive_coverage_average = 0.0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def history(self) -> OperationHistory:
        return self._history

    @property
    def sessions(self) -> list[GenerationSession]:
        with self._lock:
            return list(self._sessions)

    def record_operation(self, op: Operation) -> Operation:
        """Record *op*, run the operation detectors and emit new lessons."""
        with self._lock:
            self._history.append(op)
            self._operations_recorded += 1
            self._operations_by_type[op.type.value] += 1
            lessons = self._analyze_operations(op.timestamp)

        if op.type is OperationType.CREATE:
            self._aggregator.add_create(op)

        self._deliver(lessons)
        return op

    def record_code_generation_session(
        self,
        files: Iterable[FileSpec],
        context: dict[str, Any] | None = None,
    ) -> GenerationSession | None:
        """Record a generation session from explicit files.

        *files* may be paths or ``GeneratedFile`` objects; missing sizes
        and contents are read from disk.  Returns ``None`` when no files
        were given.
        """
        now = time.time()
        ctx = {**(context or {}), "recorded_by": "manual", "timestamp": now}
        return self._record_session(list(files), ctx, now, now)

    def flush(self) -> None:
        """Close the open session window now."""
        self._aggregator.flush()

    def close(self) -> None:
        self.flush()
        self._aggregator.cancel()

    def get_statistics(self) -> dict[str, Any]:
        with self._lock:
            recent = self._history.recent(time.time(), 3600.0)
            active = sorted(self._active_keys)
            return {
                "total_operations": self._operations_recorded,
                "history_size": len(self._history),
                "operations_by_type": dict(self._operations_by_type),
                "pending_creates": self._aggregator.pending,
                "recent_operations": len(recent),
                "active_patterns": active,
                "total_sessions": self._total_sessions,
                "total_files_generated": self._total_files_generated,
                "average_files_per_session": (
                    self._total_files_generated / self._total_sessions
                    if self._total_sessions
                    else 0.0
                ),
                "patterns_learned": self._patterns_learned,
                "lessons_emitted": sum(self._lessons_by_type.values()),
                "lessons_by_type": dict(self._lessons_by_type),
                "sink_failures": self._sink_failures,
                "proactive_debugging": {
                    "sessions": self._proactive_sessions,
                    "compliant_sessions": self._proactive_compliant_sessions,
                    "coverage_average": round(self._proactive_coverage_average, 3),
                },
                "recent_sessions": [
                    {
                        "id": s.id,
                        "file_count": len(s.files),
                        "pattern_count": len(s.patterns),
                        "quality_score": s.code_quality.get("score", 0.0),
                    }
                    for s in list(self._sessions)[-10:]
                ],
            }

    def get_learned_patterns(self) -> dict[str, Any]:
        """Naming and style tallies aggregated over the last 20 sessions."""
        naming: dict[str, Counter] = {"files": Counter(), "functions": Counter(), "classes": Counter()}
        style: dict[str, Counter] = {"indentation": Counter(), "quotes": Counter(), "semicolons": Counter()}

        for session in self.sessions[-20:]:
            conventions = session.patterns.get(PatternType.NAMING_CONVENTIONS)
            if conventions:
                for category, entries in conventions.payload["conventions"].items():
                    naming[category].update(e["pattern"] for e in entries)
            consistency = session.patterns.get(PatternType.STYLE_CONSISTENCY)
            if consistency:
                for dimension, counts in consistency.payload["style"].items():
                    style[dimension].update(counts)

        return {
            "naming": {k: dict(v) for k, v in naming.items()},
            "style": {k: dict(v) for k, v in style.items()},
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _analyze_operations(self, now: float) -> list[Lesson]:
        """Run operation detectors; return lessons for patterns not already active.

        A pattern key stays active while consecutive passes keep reporting
        it, so a growing burst produces a single lesson.
        """
        window = self._history.recent(now, self.settings.refinement_window)
        threshold = self.settings.operation_confidence_threshold
        confident = [
            m for m in self.operation_registry.detect_all(window) if m.confidence > threshold
        ]

        fresh = [m for m in confident if m.key not in self._active_keys]
        self._active_keys = {m.key for m in confident}
        return [match_to_lesson(m) for m in fresh]

    def _on_session_window(self, ops: list[Operation], start: float, end: float) -> None:
        paths = list(dict.fromkeys(op.path for op in ops))
        logger.info("Generation window closed: %d file(s)", len(paths))
        self._record_session(paths, {"source": "file_monitor"}, start, end)

    def _materialize(self, spec: FileSpec) -> GeneratedFile:
        if not isinstance(spec, GeneratedFile):
            return read_generated_file(str(spec), self.settings.max_file_bytes)

        if spec.content is None:
            disk = read_generated_file(spec.path, self.settings.max_file_bytes)
            return GeneratedFile(
                path=spec.path,
                file_type=spec.file_type if spec.file_type != "unknown" else disk.file_type,
                size=spec.size or disk.size,
                content=disk.content,
            )
        return GeneratedFile(
            path=spec.path,
            file_type=spec.file_type if spec.file_type != "unknown" else detect_file_type(spec.path),
            size=spec.size or len(spec.content.encode("utf-8")),
            content=spec.content,
        )

    def _refined_files(self, paths: list[str], since: float) -> list[str]:
        """Paths modified again after they were created, within the refinement window.

        A modify counts only when it is later than the file's own create
        (or *since*, for files with no recorded create) plus the debounce
        quiet period; the modify raised by the initial write does not.
        """
        wanted = set(paths)
        horizon = since + self.settings.refinement_window
        settle = self.settings.quiet_period
        ops = [op for op in self._history if op.path in wanted]
        created = {op.path: op.timestamp for op in ops if op.type is OperationType.CREATE}
        refined = {
            op.path
            for op in ops
            if op.type is OperationType.MODIFY
            and since <= op.timestamp <= horizon
            and op.timestamp > created.get(op.path, since) + settle
        }
        return [p for p in paths if p in refined]

    def _record_session(
        self,
        files: list[FileSpec],
        context: dict[str, Any],
        start: float,
        end: float,
    ) -> GenerationSession | None:
        if not files:
            logger.debug("Empty generation session discarded.")
            return None

        generated = [self._materialize(f) for f in files]
        with self._lock:
            refined = self._refined_files([g.path for g in generated], start)
        if refined:
            context = {**context, "refined_files": refined}

        session = GenerationSession(
            files=generated,
            window_start=start,
            window_end=end,
            context=context,
        )

        threshold = self.settings.generation_confidence_threshold
        for match in self.generation_registry.detect_all(session):
            if match.confidence > threshold:
                session.patterns[match.type] = match

        session.code_quality = analyze_code_quality(session)
        session.generation_style = detect_generation_style(session)
        session.proactive_debugging = evaluate_proactive_debugging(session)

        session.lessons = [match_to_lesson(m, session_id=session.id) for m in session.patterns.values()]
        session.lessons.append(session_lesson(session))

        with self._lock:
            self._sessions.append(session)
            self._update_session_statistics(session)

        logger.info(
            "Session recorded: %s (%d files, %d patterns)",
            session.id,
            len(session.files),
            len(session.patterns),
        )
        self._deliver(session.lessons)
        return session

    def _update_session_statistics(self, session: GenerationSession) -> None:
        self._total_sessions += 1
        self._total_files_generated += len(session.files)
        self._patterns_learned += len(session.patterns)

        proactive = session.proactive_debugging
        if proactive.get("status", "not_applicable") == "not_applicable":
            return
        self._proactive_sessions += 1
        if proactive["status"] in ("compliant", "compliant_with_exemptions"):
            self._proactive_compliant_sessions += 1
        previous_total = self._proactive_coverage_average * (self._proactive_sessions - 1)
        self._proactive_coverage_average = (
            previous_total + proactive.get("coverage", 0.0)
        ) / self._proactive_sessions

    def _deliver(self, lessons: list[Lesson]) -> None:
        for lesson in lessons:
            with self._lock:
                self._lessons_by_type[lesson.type.value] += 1
            if self.sink is None:
                continue
            try:
                self.sink.capture_learning(lesson)
                logger.info("Captured lesson [%s]: %s", lesson.type.value, lesson.insight)
            except Exception:
                with self._lock:
                    self._sink_failures += 1
                logger.exception("Sink failed for lesson %s", lesson.type.value)
