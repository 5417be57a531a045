"""Tests for the operation-window detectors."""

import pytest
from conftest import make_op

from lessonwatch.events import OperationType, PatternType
from lessonwatch.operation_patterns import (
    classify_name,
    detect_bulk_operation,
    detect_learning_opportunity,
    detect_naming_quality,
    detect_refinement_loop,
    drop_write_echoes,
    group_by_file,
    group_by_type,
    is_refinement_sequence,
    is_unclear_name,
)


def _creates(n, prefix="/p/f"):
    return [make_op(OperationType.CREATE, f"{prefix}{i}.js", ts=float(i)) for i in range(n)]


# --- grouping ---


def test_group_by_type_and_file():
    ops = [
        make_op(OperationType.CREATE, "/p/a"),
        make_op(OperationType.MODIFY, "/p/a"),
        make_op(OperationType.CREATE, "/p/b"),
    ]
    assert {k: len(v) for k, v in group_by_type(ops).items()} == {
        OperationType.CREATE: 2,
        OperationType.MODIFY: 1,
    }
    assert {k: len(v) for k, v in group_by_file(ops).items()} == {"/p/a": 2, "/p/b": 1}


# --- bulk ---


def test_bulk_below_threshold_is_not_detected():
    assert detect_bulk_operation(_creates(9), threshold=10) is None


def test_bulk_at_threshold_has_full_confidence():
    match = detect_bulk_operation(_creates(10), threshold=10)
    assert match is not None
    assert match.type is PatternType.BULK_OPERATION
    assert match.confidence == 1.0
    assert match.payload["operation_type"] == "create"
    assert match.payload["count"] == 10
    assert len(match.payload["files"]) == 10
    assert match.key == "bulk_operation"


def test_bulk_confidence_is_capped():
    match = detect_bulk_operation(_creates(25), threshold=10)
    assert match.confidence == 1.0


def test_bulk_confidence_scales_with_lower_threshold_ratio():
    match = detect_bulk_operation(_creates(4), threshold=4)
    assert match.confidence == 1.0
    assert detect_bulk_operation(_creates(3), threshold=4) is None


def test_bulk_counts_per_type_not_total():
    ops = _creates(5) + [make_op(OperationType.DELETE, f"/p/d{i}") for i in range(5)]
    assert detect_bulk_operation(ops, threshold=10) is None


# --- refinement ---


@pytest.mark.parametrize(
    "types, expected",
    [
        ([OperationType.RENAME, OperationType.RENAME], True),
        ([OperationType.CREATE, OperationType.MODIFY], True),
        ([OperationType.MODIFY, OperationType.MODIFY, OperationType.MODIFY], True),
        ([OperationType.CREATE, OperationType.DELETE], False),
        ([OperationType.MODIFY, OperationType.CREATE, OperationType.MODIFY], False),
        ([OperationType.CREATE], False),
    ],
)
def test_is_refinement_sequence(types, expected):
    ops = [make_op(t, "/p/a.js", ts=float(i)) for i, t in enumerate(types)]
    assert is_refinement_sequence(ops) is expected


def test_refinement_loop_sorts_by_timestamp():
    ops = [
        make_op(OperationType.MODIFY, "/p/a.js", ts=5.0),
        make_op(OperationType.CREATE, "/p/a.js", ts=1.0),
    ]
    match = detect_refinement_loop(ops)
    assert match is not None
    assert match.confidence == 0.9
    assert match.payload["operations"] == ["create", "modify"]
    assert match.payload["refinement_count"] == 1
    assert match.key == "refinement_loop:/p/a.js"


def test_refinement_loop_needs_two_ops_on_same_file():
    assert detect_refinement_loop(_creates(5)) is None


# --- naming quality ---


def test_long_name_is_verbose_never_good():
    name = "x" * 82 + ".js"
    assert len(name) == 85
    buckets = classify_name(name)
    assert "verbose" in buckets
    assert "good" not in buckets


def test_mid_length_clear_name_is_good():
    name = "customer_billing_address_validator_modules.py"
    assert len(name) == 45
    assert classify_name(name) == ["good"]


@pytest.mark.parametrize(
    "name, unclear",
    [
        ("meeting_10_10.md", True),
        ("NOTES.md", True),
        ("summary", True),
        ("Guide.txt", True),
        ("release-notes.md", False),
        ("architecture_overview.md", False),
    ],
)
def test_is_unclear_name(name, unclear):
    assert is_unclear_name(name) is unclear


def test_naming_quality_only_looks_at_renames():
    assert detect_naming_quality(_creates(3)) is None


def test_naming_quality_reports_buckets():
    ops = [
        make_op(OperationType.RENAME, "/p/" + "v" * 90 + ".md", source="/p/draft.md"),
        make_op(OperationType.RENAME, "/p/NOTES.md", source="/p/n.md"),
        make_op(OperationType.RENAME, "/p/payment_gateway_adapter.py", source="/p/pga.py"),
    ]
    match = detect_naming_quality(ops)
    assert match is not None
    assert match.type is PatternType.NAMING_QUALITY
    assert match.confidence == 0.85
    assert len(match.payload["verbose"]) == 1
    assert len(match.payload["unclear"]) == 1
    assert len(match.payload["good"]) == 1
    assert match.payload["refinement_needed"] == 3
    assert any("verbose" in i for i in match.insights)
    assert any("Refinement needed for 3 names" == i for i in match.insights)


# --- learning opportunity ---


def test_learning_opportunity_collects_findings():
    ops = _creates(10) + [make_op(OperationType.MODIFY, "/p/f0.js", ts=20.0)]
    match = detect_learning_opportunity(ops, threshold=10)
    assert match is not None
    kinds = [o["type"] for o in match.payload["opportunities"]]
    assert kinds == ["bulk_operation_learning", "refinement_learning"]
    assert match.confidence == 0.9


def test_learning_opportunity_none_for_quiet_window():
    assert detect_learning_opportunity(_creates(2), threshold=10) is None


# --- keys and write echoes ---


def test_bulk_key_is_the_same_for_every_operation_type():
    modifies = [make_op(OperationType.MODIFY, f"/p/f{i}.js", ts=float(i)) for i in range(10)]
    assert detect_bulk_operation(modifies).key == detect_bulk_operation(_creates(10)).key


def test_refinement_loop_reports_most_recent_file():
    ops = [
        make_op(OperationType.CREATE, "/p/a.js", ts=1.0),
        make_op(OperationType.MODIFY, "/p/a.js", ts=2.0),
        make_op(OperationType.CREATE, "/p/b.js", ts=3.0),
        make_op(OperationType.MODIFY, "/p/b.js", ts=4.0),
    ]
    match = detect_refinement_loop(ops)
    assert match.payload["file"] == "/p/b.js"
    assert match.key == "refinement_loop:/p/b.js"


def test_drop_write_echoes():
    ops = [
        make_op(OperationType.CREATE, "/p/a.js", ts=1.0),
        make_op(OperationType.MODIFY, "/p/a.js", ts=1.5),
        make_op(OperationType.MODIFY, "/p/a.js", ts=9.0),
    ]
    assert [op.timestamp for op in drop_write_echoes(ops, settle=1.0)] == [1.0, 9.0]


def test_refinement_loop_ignores_write_echo():
    ops = [
        make_op(OperationType.CREATE, "/p/a.js", ts=1.0),
        make_op(OperationType.MODIFY, "/p/a.js", ts=1.2),
    ]
    assert detect_refinement_loop(ops) is not None
    assert detect_refinement_loop(ops, settle=1.0) is None


def test_naming_key_follows_renamed_paths():
    first = [make_op(OperationType.RENAME, "/p/NOTES.md", source="/p/n.md")]
    second = first + [make_op(OperationType.RENAME, "/p/GUIDE.md", source="/p/g.md")]
    assert detect_naming_quality(first).key == "naming_quality:/p/NOTES.md"
    assert detect_naming_quality(second).key == "naming_quality:/p/GUIDE.md,/p/NOTES.md"
