"""Tests for the shared record types."""

import dataclasses

import pytest

from lessonwatch.events import Lesson, Operation, OperationType, PatternMatch, PatternType, new_id


def test_ids_are_prefixed_and_unique():
    ids = {new_id("op") for _ in range(200)}
    assert len(ids) == 200
    assert all(i.startswith("op_") for i in ids)


def test_operation_is_immutable():
    op = Operation(type=OperationType.CREATE, path="/p/a.js")
    with pytest.raises(dataclasses.FrozenInstanceError):
        op.path = "/p/b.js"
    assert op.id.startswith("op_")
    assert op.source is None


def test_pattern_match_key_defaults_to_type():
    assert PatternMatch(type=PatternType.NAMING_QUALITY, confidence=0.85).key == "naming_quality"
    assert PatternMatch(type=PatternType.NAMING_QUALITY, confidence=0.85, key="x").key == "x"


def test_lesson_to_dict():
    lesson = Lesson(
        type=PatternType.REFINEMENT_LOOP,
        question="q",
        insight="i",
        impact="High",
        learning=["a"],
        confidence=0.9,
        created_at=1.0,
    )
    assert lesson.to_dict() == {
        "type": "refinement_loop",
        "question": "q",
        "insight": "i",
        "impact": "High",
        "learning": ["a"],
        "confidence": 0.9,
        "session_id": None,
        "created_at": 1.0,
    }
