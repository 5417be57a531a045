"""Tests for lesson templates."""

import pytest

from lessonwatch.events import GeneratedFile, GenerationSession, PatternMatch, PatternType
from lessonwatch.lessons import match_to_lesson, session_lesson


@pytest.mark.parametrize("pattern_type", list(PatternType))
def test_every_pattern_type_renders_with_empty_payload(pattern_type):
    lesson = match_to_lesson(PatternMatch(type=pattern_type, confidence=0.8))
    assert lesson.type is pattern_type
    assert lesson.question
    assert lesson.impact
    assert lesson.confidence == 0.8


def test_bulk_lesson_is_high_impact():
    match = PatternMatch(
        type=PatternType.BULK_OPERATION,
        confidence=1.0,
        payload={"operation_type": "create", "count": 12, "files": []},
    )
    lesson = match_to_lesson(match)
    assert lesson.impact.startswith("High")
    assert "12 files" in lesson.question
    assert "bulk create" in lesson.question


def test_malformed_payload_does_not_raise():
    match = PatternMatch(
        type=PatternType.NAMING_CONVENTIONS,
        confidence=0.8,
        payload={"consistency": "not-a-dict"},
    )
    lesson = match_to_lesson(match)
    assert "Naming consistency score: 0.00" in lesson.learning


def test_import_lesson_flags_mixed_modules():
    match = PatternMatch(
        type=PatternType.IMPORT_PATTERNS,
        confidence=0.85,
        payload={"patterns": {"mixed_modules": True}},
        insights=["Uses ES6 modules", "Uses CommonJS"],
    )
    lesson = match_to_lesson(match, session_id="gen_1")
    assert lesson.insight == "Uses ES6 modules; Uses CommonJS"
    assert "Mixed module systems - consider standardizing" in lesson.learning
    assert lesson.session_id == "gen_1"


def test_session_lesson_summarises_session():
    files = [GeneratedFile(path=f"/p/a{i}.js") for i in range(6)]
    session = GenerationSession(files=files, window_start=0.0, window_end=5.0)
    session.code_quality = {"score": 1.0, "factors": {}}

    lesson = session_lesson(session)

    assert lesson.type is PatternType.GENERATION_SESSION
    assert lesson.session_id == session.id
    assert "Bulk generation: 6 files created" in lesson.insight
    assert "High quality code generated" in lesson.insight
    assert "Generation session: 6 files" in lesson.learning


def test_session_lesson_for_small_plain_session():
    session = GenerationSession(files=[GeneratedFile(path="/p/a.txt")], window_start=0.0, window_end=0.0)
    assert session_lesson(session).insight == "Generated 1 file(s)"
