"""
aggregator.py — Operation history and generation-session windowing.

``OperationHistory`` keeps the most recent operations in a bounded FIFO.
``SessionAggregator`` buffers ``create`` operations and packages them into
one batch once no new create has arrived for a full session window.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Callable, Deque

from lessonwatch.events import Operation

logger = logging.getLogger(__name__)

TimerFactory = Callable[[float, Callable[[], None]], threading.Timer]
SessionCallback = Callable[[list[Operation], float, float], None]


class OperationHistory:
    """Bounded, append-only list of operations (oldest evicted first)."""

    def __init__(self, max_size: int = 1000) -> None:
        self.max_size = max_size
        self._ops: Deque[Operation] = deque(maxlen=max_size)

    def append(self, op: Operation) -> None:
        self._ops.append(op)

    def recent(self, now: float, window: float) -> list[Operation]:
        """Return operations with a timestamp no older than *window* seconds before *now*."""
        cutoff = now - window
        return [op for op in self._ops if op.timestamp >= cutoff]

    def __iter__(self):
        return iter(list(self._ops))

    def __len__(self) -> int:
        return len(self._ops)

    def __contains__(self, op: object) -> bool:
        return op in self._ops

    def clear(self) -> None:
        self._ops.clear()


class SessionAggregator:
    """Groups bursts of file creations into generation sessions.

    Every create restarts a single timer of *window* seconds.  When the
    timer fires, all buffered creates are handed to *on_session* as one
    batch.  A steady trickle of creates less than *window* apart keeps
    deferring the batch; there is no maximum session duration.

    Parameters:
        on_session:    Called with ``(ops, window_start, window_end)``.
        window:        Quiet period in seconds that closes a session.
        timer_factory: ``threading.Timer``-compatible constructor.
    """

    def __init__(
        self,
        on_session: SessionCallback,
        window: float = 60.0,
        timer_factory: TimerFactory | None = None,
    ) -> None:
        self.window = window
        self._on_session = on_session
        self._timer_factory = timer_factory or threading.Timer
        self._recent_creates: list[Operation] = []
        self._timer = None
        self._lock = threading.RLock()

    @property
    def pending(self) -> int:
        """Number of creates waiting for the window to close."""
        return len(self._recent_creates)

    def add_create(self, op: Operation) -> None:
        with self._lock:
            self._recent_creates.append(op)
            if self._timer is not None:
                self._timer.cancel()
            timer = self._timer_factory(self.window, lambda: self._on_timer(timer))
            timer.daemon = True
            self._timer = timer
            timer.start()

    def flush(self) -> None:
        """Close the current window immediately."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        self._finalize()

    def cancel(self) -> None:
        """Drop buffered creates without producing a session."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._recent_creates = []

    def _on_timer(self, timer) -> None:
        with self._lock:
            # restarted by a later create while this timer was firing
            if self._timer is not timer:
                return
            self._timer = None
        self._finalize()

    def _finalize(self) -> None:
        with self._lock:
            batch = self._recent_creates
            self._recent_creates = []

        if not batch:
            logger.debug("Session window closed with no files; discarded.")
            return

        window_start = min(op.timestamp for op in batch)
        window_end = max(op.timestamp for op in batch)
        try:
            self._on_session(batch, window_start, window_end)
        except Exception:
            logger.exception("Session callback failed for %d file(s)", len(batch))
