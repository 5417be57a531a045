"""
monitor.py — File-system operation monitor for lessonwatch.

Uses the ``watchdog`` library to watch a project directory.  Raw events
are reduced to two kinds, ``rename`` (something appeared, vanished or
moved) and ``change`` (contents changed), debounced per kind and path,
then classified into ``Operation`` records and fed to the learning
pipeline.

Public API
----------
classify_event(kind, path)
    Turn a settled raw event into an Operation (or ``None``).

Debouncer
    Per-key quiet-period timer.

FileOperationMonitor
    start_monitoring() / stop_monitoring() around a watchdog observer.
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Callable

from watchdog.events import (
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from lessonwatch.aggregator import TimerFactory
from lessonwatch.config import MonitorSettings
from lessonwatch.events import Operation, OperationType
from lessonwatch.pipeline import LearningPipeline

logger = logging.getLogger(__name__)

RENAME = "rename"
CHANGE = "change"

# ---------------------------------------------------------------------------
# Mapping watchdog event types → raw event kinds
# ---------------------------------------------------------------------------
_EVENT_KINDS = {
    FileCreatedEvent: RENAME,
    FileDeletedEvent: RENAME,
    FileMovedEvent: RENAME,
    FileModifiedEvent: CHANGE,
}


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

def _exists(path: str) -> bool:
    try:
        os.stat(path)
    except OSError:
        return False
    return True


def classify_event(kind: str, path: str) -> Operation | None:
    """Classify a settled raw event.

    ``rename`` becomes ``create`` if the path exists now and ``delete``
    otherwise, so a real rename shows up as a delete plus a create.
    ``change`` is always ``modify``.  Unknown kinds give ``None``.
    """
    if kind == RENAME:
        op_type = OperationType.CREATE if _exists(path) else OperationType.DELETE
    elif kind == CHANGE:
        op_type = OperationType.MODIFY
    else:
        return None
    return Operation(type=op_type, path=path)


# ---------------------------------------------------------------------------
# Debouncing
# ---------------------------------------------------------------------------

class Debouncer:
    """Collapses bursts of events per ``kind:path`` key.

    Each new event for a key restarts that key's timer; when the timer
    fires the latest event is forwarded once.

    Parameters:
        forward:       Called with ``(kind, path)`` once the key goes quiet.
        quiet_period:  Seconds without events before forwarding.
        timer_factory: ``threading.Timer``-compatible constructor.
    """

    def __init__(
        self,
        forward: Callable[[str, str], None],
        quiet_period: float = 1.0,
        timer_factory: TimerFactory | None = None,
    ) -> None:
        self.quiet_period = quiet_period
        self._forward = forward
        self._timer_factory = timer_factory or threading.Timer
        self._pending: dict[str, threading.Timer] = {}
        self._lock = threading.Lock()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def submit(self, kind: str, path: str) -> None:
        key = f"{kind}:{path}"
        with self._lock:
            previous = self._pending.pop(key, None)
            if previous is not None:
                previous.cancel()
            timer = self._timer_factory(
                self.quiet_period, lambda: self._fire(key, kind, path, timer)
            )
            timer.daemon = True
            self._pending[key] = timer
            timer.start()

    def cancel_all(self) -> None:
        with self._lock:
            for timer in self._pending.values():
                timer.cancel()
            self._pending.clear()

    def _fire(self, key: str, kind: str, path: str, timer: threading.Timer) -> None:
        with self._lock:
            # a newer event for this key replaced the timer while it was firing
            if self._pending.get(key) is not timer:
                return
            del self._pending[key]
        self._forward(kind, path)


# ---------------------------------------------------------------------------
# watchdog handler
# ---------------------------------------------------------------------------

class _OperationHandler(FileSystemEventHandler):
    """Translates watchdog events into debounced raw events."""

    def __init__(
        self,
        root: Path,
        debouncer: Debouncer,
        ignored_dirs: list[str],
    ) -> None:
        super().__init__()
        self._root = root
        self._debouncer = debouncer
        self._ignored = set(ignored_dirs)

    def on_any_event(self, event) -> None:  # noqa: ANN001
        if event.is_directory:
            return

        kind = _EVENT_KINDS.get(type(event))
        if kind is None:
            return

        paths = [os.fsdecode(event.src_path)]
        dest = getattr(event, "dest_path", None)
        if isinstance(event, FileMovedEvent) and dest:
            paths.append(os.fsdecode(dest))

        for path in paths:
            if self.is_ignored(path):
                continue
            self._debouncer.submit(kind, os.path.abspath(path))

    def is_ignored(self, path: str) -> bool:
        """True if *path* sits under a dot-directory or a deny-listed directory."""
        try:
            relative = Path(os.path.abspath(path)).relative_to(self._root)
        except ValueError:
            return False
        for part in relative.parts[:-1]:
            if part.startswith(".") or part in self._ignored:
                return True
        return False


# ---------------------------------------------------------------------------
# Monitor
# ---------------------------------------------------------------------------

class FileOperationMonitor:
    """Watches *root* and records file operations into a learning pipeline.

    Parameters:
        root:          Directory to watch.  Defaults to ``settings.root``.
        pipeline:      Destination pipeline; one is built from *settings*
                       when omitted.
        settings:      Runtime settings.
        timer_factory: Timer constructor shared by the debouncer and the
                       pipeline's session window (tests pass a fake).
    """

    def __init__(
        self,
        root: str | Path | None = None,
        pipeline: LearningPipeline | None = None,
        settings: MonitorSettings | None = None,
        timer_factory: TimerFactory | None = None,
    ) -> None:
        self.settings = settings or MonitorSettings()
        self.root = Path(root or self.settings.root).resolve()
        self.pipeline = pipeline or LearningPipeline(
            settings=self.settings, timer_factory=timer_factory
        )
        self.debouncer = Debouncer(
            self._process, self.settings.quiet_period, timer_factory=timer_factory
        )
        self.handler = _OperationHandler(self.root, self.debouncer, self.settings.ignored_dirs)
        self._observer: Observer | None = None

    @property
    def is_monitoring(self) -> bool:
        return self._observer is not None

    def start_monitoring(self) -> None:
        """Start the background observer.  Calling it twice is a no-op."""
        if self._observer is not None:
            logger.info("Already monitoring %s", self.root)
            return

        observer = Observer()
        if self.root.is_dir():
            try:
                observer.schedule(self.handler, str(self.root), recursive=self.settings.recursive)
                logger.info("Watching: %s (recursive=%s)", self.root, self.settings.recursive)
            except OSError as exc:
                logger.warning("Cannot watch %s: %s", self.root, exc)
        else:
            logger.warning("Path does not exist or is not a directory: %s", self.root)

        observer.daemon = True
        observer.start()
        self._observer = observer
        logger.info("File operation monitoring active.")

    def stop_monitoring(self) -> None:
        """Stop the observer, drop pending events and close the open session."""
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None
        self.debouncer.cancel_all()
        self.pipeline.flush()
        logger.info("File operation monitoring stopped.")

    def record_operation(self, op: Operation) -> Operation:
        """Record an operation performed outside the watched filesystem."""
        return self.pipeline.record_operation(op)

    def get_statistics(self) -> dict:
        return self.pipeline.get_statistics()

    def _process(self, kind: str, path: str) -> None:
        try:
            op = classify_event(kind, path)
            if op is None:
                return
            self.pipeline.record_operation(op)
            logger.info("%s: %s", op.type.value, os.path.basename(path))
        except Exception:
            logger.exception("Error processing %s event for %s", kind, path)
