"""Tests for the operation history and session windowing."""

from conftest import make_op

from lessonwatch.aggregator import OperationHistory, SessionAggregator
from lessonwatch.events import OperationType


# --- OperationHistory ---


def test_history_evicts_oldest_after_cap():
    history = OperationHistory(max_size=1000)
    ops = [make_op(OperationType.MODIFY, f"/p/f{i}.js", ts=float(i)) for i in range(1001)]
    for op in ops:
        history.append(op)

    assert len(history) == 1000
    assert ops[0] not in history
    assert ops[1] in history
    assert ops[-1] in history


def test_history_preserves_insertion_order():
    history = OperationHistory(max_size=3)
    ops = [make_op(OperationType.CREATE, f"/p/{i}", ts=float(i)) for i in range(5)]
    for op in ops:
        history.append(op)
    assert list(history) == ops[2:]


def test_history_recent_window():
    history = OperationHistory()
    for ts in (0.0, 100.0, 250.0, 400.0):
        history.append(make_op(OperationType.MODIFY, "/p/a", ts=ts))

    recent = history.recent(now=400.0, window=300.0)
    assert [op.timestamp for op in recent] == [100.0, 250.0, 400.0]


# --- SessionAggregator ---


def _collector():
    batches = []

    def on_session(ops, start, end):
        batches.append((ops, start, end))

    return batches, on_session


def test_timer_reset_merges_creates_across_window(scheduler):
    """Creates at t=0, 10 and 65 with a 60 s window end up in ONE session.

    The t=65 create arrives before the timer armed at t=10 expires (t=70)
    and restarts it, so the session only closes at t=125.
    """
    batches, on_session = _collector()
    agg = SessionAggregator(on_session, window=60.0, timer_factory=scheduler)

    agg.add_create(make_op(OperationType.CREATE, "/p/a.js", ts=0.0))
    scheduler.advance(10)
    agg.add_create(make_op(OperationType.CREATE, "/p/b.js", ts=10.0))
    scheduler.advance(55)
    agg.add_create(make_op(OperationType.CREATE, "/p/c.js", ts=65.0))

    scheduler.advance(59)  # t=124
    assert batches == []
    assert agg.pending == 3

    scheduler.advance(1)  # t=125
    assert len(batches) == 1
    ops, start, end = batches[0]
    assert [op.path for op in ops] == ["/p/a.js", "/p/b.js", "/p/c.js"]
    assert start == 0.0
    assert end == 65.0
    assert agg.pending == 0


def test_quiet_window_splits_sessions(scheduler):
    batches, on_session = _collector()
    agg = SessionAggregator(on_session, window=60.0, timer_factory=scheduler)

    agg.add_create(make_op(OperationType.CREATE, "/p/a.js", ts=0.0))
    scheduler.advance(61)
    agg.add_create(make_op(OperationType.CREATE, "/p/b.js", ts=61.0))
    scheduler.advance(61)

    assert len(batches) == 2
    assert [op.path for op in batches[0][0]] == ["/p/a.js"]
    assert [op.path for op in batches[1][0]] == ["/p/b.js"]


def test_only_one_live_timer(scheduler):
    _, on_session = _collector()
    agg = SessionAggregator(on_session, window=60.0, timer_factory=scheduler)
    for i in range(5):
        agg.add_create(make_op(OperationType.CREATE, f"/p/{i}.js"))
    assert len(scheduler.live) == 1


def test_flush_finalizes_immediately(scheduler):
    batches, on_session = _collector()
    agg = SessionAggregator(on_session, window=60.0, timer_factory=scheduler)
    agg.add_create(make_op(OperationType.CREATE, "/p/a.js"))

    agg.flush()

    assert len(batches) == 1
    assert scheduler.live == []


def test_flush_with_nothing_pending_is_discarded(scheduler):
    batches, on_session = _collector()
    agg = SessionAggregator(on_session, window=60.0, timer_factory=scheduler)
    agg.flush()
    assert batches == []


def test_cancel_drops_pending(scheduler):
    batches, on_session = _collector()
    agg = SessionAggregator(on_session, window=60.0, timer_factory=scheduler)
    agg.add_create(make_op(OperationType.CREATE, "/p/a.js"))

    agg.cancel()
    scheduler.advance(120)

    assert batches == []
    assert agg.pending == 0


def test_callback_error_does_not_propagate(scheduler, caplog):
    def boom(ops, start, end):
        raise RuntimeError("sink down")

    agg = SessionAggregator(boom, window=1.0, timer_factory=scheduler)
    agg.add_create(make_op(OperationType.CREATE, "/p/a.js"))
    scheduler.advance(2)

    assert "Session callback failed" in caplog.text
    assert agg.pending == 0


def test_superseded_timer_firing_late_is_ignored(scheduler):
    """A timer already running when a new create restarts the window does nothing."""
    batches, on_session = _collector()
    agg = SessionAggregator(on_session, window=60.0, timer_factory=scheduler)

    agg.add_create(make_op(OperationType.CREATE, "/p/a.js", ts=0.0))
    stale = scheduler.timers[0]
    agg.add_create(make_op(OperationType.CREATE, "/p/b.js", ts=1.0))
    stale.function()

    assert batches == []
    assert agg.pending == 2

    scheduler.advance(60)
    assert len(batches) == 1
    assert [op.path for op in batches[0][0]] == ["/p/a.js", "/p/b.js"]
