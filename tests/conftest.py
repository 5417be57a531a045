"""Shared test fixtures: a virtual-time timer factory and a recording sink."""

from __future__ import annotations

import pytest

from lessonwatch.config import MonitorSettings
from lessonwatch.events import Operation, OperationType


class FakeTimer:
    """Stand-in for ``threading.Timer`` driven by a ``FakeScheduler``."""

    def __init__(self, scheduler: "FakeScheduler", interval: float, function) -> None:
        self.scheduler = scheduler
        self.interval = interval
        self.function = function
        self.deadline = scheduler.now + interval
        self.daemon = False
        self.started = False
        self.cancelled = False
        self.fired = False

    def start(self) -> None:
        self.started = True
        self.scheduler.timers.append(self)

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Virtual clock; ``advance()`` fires timers whose deadline has passed."""

    def __init__(self) -> None:
        self.now = 0.0
        self.timers: list[FakeTimer] = []

    def __call__(self, interval: float, function) -> FakeTimer:
        return FakeTimer(self, interval, function)

    @property
    def live(self) -> list[FakeTimer]:
        return [t for t in self.timers if t.started and not t.cancelled and not t.fired]

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [t for t in self.live if t.deadline <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.deadline)
            self.now = timer.deadline
            timer.fired = True
            timer.function()
        self.now = target


class RecordingSink:
    """Collects every lesson it receives."""

    def __init__(self) -> None:
        self.lessons = []

    def capture_learning(self, lesson) -> None:
        self.lessons.append(lesson)

    def of_type(self, value: str) -> list:
        return [lesson for lesson in self.lessons if lesson.type.value == value]


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def settings(tmp_path):
    return MonitorSettings(root=tmp_path, journal_path=tmp_path / "journal.md")


def make_op(op_type: OperationType, path: str, ts: float = 1000.0, source: str | None = None) -> Operation:
    """Helper to build an Operation with an explicit timestamp."""
    return Operation(type=op_type, path=path, timestamp=ts, source=source)
