"""
sinks.py — Destinations for captured lessons.

A sink is any object with ``capture_learning(lesson)``.  The pipeline
also accepts a plain callable taking a Lesson.
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Callable, Protocol

from colorama import Fore, Style, init as colorama_init

from lessonwatch.events import Lesson

logger = logging.getLogger(__name__)


class LearningSink(Protocol):
    def capture_learning(self, lesson: Lesson) -> None: ...


class CallableSink:
    """Adapts a bare function to the sink interface."""

    def __init__(self, fn: Callable[[Lesson], None]) -> None:
        self._fn = fn

    def capture_learning(self, lesson: Lesson) -> None:
        self._fn(lesson)


def as_sink(sink: LearningSink | Callable[[Lesson], None] | None) -> LearningSink | None:
    if sink is None or hasattr(sink, "capture_learning"):
        return sink  # type: ignore[return-value]
    return CallableSink(sink)


# ---------------------------------------------------------------------------
# Console
# ---------------------------------------------------------------------------

def _banner(char: str = "=", width: int = 64) -> str:
    return char * width


class ConsoleSink:
    """Prints each lesson as a coloured banner."""

    def __init__(self) -> None:
        colorama_init(autoreset=True)

    @staticmethod
    def _colour(lesson: Lesson) -> str:
        if lesson.impact.startswith("High"):
            return Fore.RED
        if lesson.impact.startswith("Medium"):
            return Fore.YELLOW
        return Fore.GREEN

    def capture_learning(self, lesson: Lesson) -> None:
        colour = self._colour(lesson)
        print()
        print(f"{colour}{_banner()}{Style.RESET_ALL}")
        print(f"{colour}  [{lesson.type.value}]{Style.RESET_ALL} {lesson.question}")
        print(f"  Insight    : {lesson.insight}")
        print(f"  Impact     : {lesson.impact}")
        print(f"  Confidence : {lesson.confidence:.2f}")
        for item in lesson.learning:
            print(f"    - {item}")
        print(f"{colour}{_banner()}{Style.RESET_ALL}")


# ---------------------------------------------------------------------------
# Markdown journal
# ---------------------------------------------------------------------------

class JournalSink:
    """Appends lessons to a Markdown journal file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    @staticmethod
    def format_entry(lesson: Lesson) -> str:
        stamp = time.strftime("%Y-%m-%d %H:%M", time.localtime(lesson.created_at))
        lines = [
            "",
            f"**{stamp}** – {lesson.question}",
            f"- **Pattern**: {lesson.type.value}",
            f"- **Insight**: {lesson.insight}",
            f"- **Impact**: {lesson.impact}",
            f"- **Confidence**: {lesson.confidence:.2f}",
        ]
        if lesson.session_id:
            lines.append(f"- **Session**: {lesson.session_id}")
        if lesson.learning:
            lines.append("- **Learning**:")
            lines.extend(f"  - {item}" for item in lesson.learning)
        return "\n".join(lines) + "\n"

    def capture_learning(self, lesson: Lesson) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as fh:
            fh.write(self.format_entry(lesson))
        logger.debug("Lesson appended to %s", self.path)


# ---------------------------------------------------------------------------
# Combinators
# ---------------------------------------------------------------------------

class CompositeSink:
    """Forwards every lesson to each member sink.

    All members are attempted; the first error is re-raised afterwards.
    """

    def __init__(self, *sinks: LearningSink | Callable[[Lesson], None]) -> None:
        self.sinks = [as_sink(s) for s in sinks if s is not None]

    def capture_learning(self, lesson: Lesson) -> None:
        first_error: Exception | None = None
        for sink in self.sinks:
            try:
                sink.capture_learning(lesson)
            except Exception as exc:
                logger.warning("Sink %s failed: %s", type(sink).__name__, exc)
                if first_error is None:
                    first_error = exc
        if first_error is not None:
            raise first_error


class RetryingSink:
    """Retries a failing sink with linear backoff.

    After the last attempt fails the lesson is appended as one JSON line to
    *spill_path* (when given) and the error is re-raised.

    Parameters:
        sink:       Wrapped sink.
        attempts:   Total number of tries (>= 1).
        backoff:    Seconds to wait before retry *n* is ``backoff * n``.
        spill_path: Optional JSON-lines file for lessons that could not be delivered.
    """

    def __init__(
        self,
        sink: LearningSink | Callable[[Lesson], None],
        attempts: int = 3,
        backoff: float = 0.5,
        spill_path: str | Path | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if attempts < 1:
            raise ValueError("attempts must be >= 1")
        self.sink = as_sink(sink)
        self.attempts = attempts
        self.backoff = backoff
        self.spill_path = Path(spill_path) if spill_path else None
        self._sleep = sleep

    def capture_learning(self, lesson: Lesson) -> None:
        for attempt in range(1, self.attempts + 1):
            try:
                self.sink.capture_learning(lesson)
                return
            except Exception as exc:
                if attempt == self.attempts:
                    logger.error(
                        "Giving up on lesson %s after %d attempt(s): %s",
                        lesson.type.value,
                        attempt,
                        exc,
                    )
                    self._spill(lesson)
                    raise
                logger.warning("Sink attempt %d failed: %s; retrying", attempt, exc)
                self._sleep(self.backoff * attempt)

    def _spill(self, lesson: Lesson) -> None:
        if self.spill_path is None:
            return
        self.spill_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.spill_path, "a", encoding="utf-8") as fh:
            fh.write(json.dumps(lesson.to_dict()) + "\n")
