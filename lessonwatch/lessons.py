"""
lessons.py — Turn pattern matches into human-readable lessons.

Every ``PatternType`` has exactly one template.  The table is checked at
import time, so adding a pattern type without a template fails loudly
instead of silently producing nothing.

Templates are best effort: a match with a missing payload field yields a
lesson with empty text in that spot, never an exception.
"""

from __future__ import annotations

from typing import Any, Callable

from lessonwatch.events import GenerationSession, Lesson, PatternMatch, PatternType


def _get(payload: dict[str, Any], *keys: str, default: Any = "") -> Any:
    value: Any = payload
    for key in keys:
        if not isinstance(value, dict) or key not in value:
            return default
        value = value[key]
    return value


def _joined(match: PatternMatch, sep: str = "; ") -> str:
    return sep.join(str(i) for i in match.insights)


# ---------------------------------------------------------------------------
# Operation-scope templates
# ---------------------------------------------------------------------------

def _bulk_operation(match: PatternMatch) -> dict[str, Any]:
    op_type = _get(match.payload, "operation_type")
    count = _get(match.payload, "count")
    return {
        "question": f"What can we learn from bulk {op_type} operation affecting {count} files?",
        "insight": (
            f"Bulk operations ({count} files) represent significant system changes "
            "that should trigger learning analysis"
        ),
        "impact": "High - bulk operations indicate systematic changes with patterns to learn from",
        "learning": [
            f"Bulk operations ({count} files) should automatically trigger learning capture",
            "Patterns in bulk operations reveal system-wide changes and improvements",
            "Bulk operation analysis can identify optimization opportunities",
        ],
    }


def _refinement_loop(match: PatternMatch) -> dict[str, Any]:
    return {
        "question": "What does the refinement pattern tell us about automated systems?",
        "insight": (
            "Refinement loops (generate → review → refine) are essential for automated "
            "systems - first-pass generation often needs refinement"
        ),
        "impact": "High - refinement patterns reveal system improvement opportunities",
        "learning": [
            "Automated systems require refinement loops for quality output",
            "First-pass generation often needs human-guided refinement",
            "Refinement patterns provide learning data for threshold adjustment",
            f"Observed {_get(match.payload, 'refinement_count', default=0)} refinement(s) "
            f"on {_get(match.payload, 'file')}",
        ],
    }


def _naming_quality(match: PatternMatch) -> dict[str, Any]:
    return {
        "question": "What can we learn from naming quality patterns?",
        "insight": f"Naming quality analysis reveals optimal thresholds: {_joined(match, ', ')}",
        "impact": "Medium - naming quality affects discoverability and maintainability",
        "learning": [
            "Optimal name length: 20-60 characters (balance descriptiveness and readability)",
            "Refinement needed when names are verbose (>80 chars) or unclear",
            "Pattern recognition can identify naming quality issues automatically",
            "Learning from corrections improves future naming generation",
        ],
    }


def _learning_opportunity(match: PatternMatch) -> dict[str, Any]:
    descriptions = [o.get("description", "") for o in _get(match.payload, "opportunities", default=[])]
    return {
        "question": "What learning opportunities were detected in file operations?",
        "insight": f"File operations contain learning opportunities: {', '.join(descriptions)}",
        "impact": "High - learning opportunities should be automatically captured",
        "learning": [
            "File operations should automatically trigger learning analysis",
            "Bulk operations, refinement patterns, and naming patterns are learning opportunities",
            "Automatic learning capture from operations enables continuous improvement",
        ],
    }


# ---------------------------------------------------------------------------
# Generation-scope templates
# ---------------------------------------------------------------------------

def _code_structure(match: PatternMatch) -> dict[str, Any]:
    return {
        "question": "What code structure patterns work well?",
        "insight": _joined(match),
        "impact": "Medium - Structure patterns inform future generation",
        "learning": [
            "Code structure patterns detected and learned",
            "Patterns can be replicated in future generations",
        ],
    }


def _import_patterns(match: PatternMatch) -> dict[str, Any]:
    mixed = _get(match.payload, "patterns", "mixed_modules", default=False)
    return {
        "question": "What import/dependency patterns are used?",
        "insight": _joined(match),
        "impact": "Medium - Import patterns inform dependency management",
        "learning": [
            "Import patterns detected",
            "Mixed module systems - consider standardizing" if mixed else "Consistent module system",
        ],
    }


def _naming_conventions(match: PatternMatch) -> dict[str, Any]:
    score = _get(match.payload, "consistency", "score", default=0.0)
    return {
        "question": "What naming conventions are preferred?",
        "insight": _joined(match),
        "impact": "High - Naming conventions affect code readability",
        "learning": [
            f"Naming consistency score: {score:.2f}",
            "Conventions can be applied to future generations",
        ],
    }


def _architecture_patterns(match: PatternMatch) -> dict[str, Any]:
    has_tests = _get(match.payload, "has_tests", default=False)
    has_docs = _get(match.payload, "has_docs", default=False)
    return {
        "question": "What architecture patterns are used?",
        "insight": _joined(match),
        "impact": "High - Architecture patterns guide system design",
        "learning": [
            "Architecture patterns detected",
            "Test-driven approach detected" if has_tests else "Consider adding tests",
            "Documentation included" if has_docs else "Consider adding documentation",
        ],
    }


def _refinement_patterns(match: PatternMatch) -> dict[str, Any]:
    return {
        "question": "What refinement patterns occur after generation?",
        "insight": _joined(match),
        "impact": "High - Refinement patterns inform generation quality",
        "learning": [
            "Refinement patterns indicate areas for improvement",
            "Future generations can incorporate these improvements",
        ],
    }


def _success_patterns(match: PatternMatch) -> dict[str, Any]:
    return {
        "question": "What makes code generation successful?",
        "insight": _joined(match),
        "impact": "High - Success patterns should be replicated",
        "learning": [
            "Success indicators identified",
            "These patterns should be replicated in future generations",
        ],
    }


def _style_consistency(match: PatternMatch) -> dict[str, Any]:
    consistency = _get(match.payload, "consistency", default=0.0)
    return {
        "question": "What code style is preferred?",
        "insight": _joined(match),
        "impact": "Medium - Style consistency improves readability",
        "learning": [
            f"Style consistency: {consistency:.2f}",
            "Style patterns can be applied to future generations",
        ],
    }


def _generation_session(match: PatternMatch) -> dict[str, Any]:
    p = match.payload
    return {
        "question": "What can we learn from this code generation session?",
        "insight": _joined(match),
        "impact": "Medium - Code generation patterns inform future generation strategies",
        "learning": [
            f"Generation session: {_get(p, 'file_count', default=0)} files",
            f"Code quality score: {_get(p, 'quality_score', default=0.0):.2f}",
            f"Patterns detected: {_get(p, 'pattern_count', default=0)}",
            f"Style consistency: {_get(p, 'style_consistency', default=0.0):.2f}",
        ],
    }


_TEMPLATES: dict[PatternType, Callable[[PatternMatch], dict[str, Any]]] = {
    PatternType.BULK_OPERATION: _bulk_operation,
    PatternType.REFINEMENT_LOOP: _refinement_loop,
    PatternType.NAMING_QUALITY: _naming_quality,
    PatternType.LEARNING_OPPORTUNITY: _learning_opportunity,
    PatternType.CODE_STRUCTURE: _code_structure,
    PatternType.IMPORT_PATTERNS: _import_patterns,
    PatternType.NAMING_CONVENTIONS: _naming_conventions,
    PatternType.ARCHITECTURE_PATTERNS: _architecture_patterns,
    PatternType.REFINEMENT_PATTERNS: _refinement_patterns,
    PatternType.SUCCESS_PATTERNS: _success_patterns,
    PatternType.STYLE_CONSISTENCY: _style_consistency,
    PatternType.GENERATION_SESSION: _generation_session,
}

_missing = set(PatternType) - set(_TEMPLATES)
if _missing:
    raise RuntimeError(f"No lesson template for: {sorted(m.value for m in _missing)}")


def match_to_lesson(match: PatternMatch, session_id: str | None = None) -> Lesson:
    """Render *match* with the template registered for its type."""
    fields = _TEMPLATES[match.type](match)
    return Lesson(
        type=match.type,
        confidence=match.confidence,
        payload=match.payload,
        session_id=session_id,
        **fields,
    )


def session_lesson(session: GenerationSession) -> Lesson:
    """Overall summary lesson for a finished generation session."""
    quality = session.code_quality.get("score", 0.0)
    style = session.patterns.get(PatternType.STYLE_CONSISTENCY)
    style_consistency = style.payload.get("consistency", 0.0) if style else 0.0

    insights = []
    if len(session.files) > 5:
        insights.append(f"Bulk generation: {len(session.files)} files created")
    if quality > 0.7:
        insights.append("High quality code generated")
    if style_consistency > 0.8:
        insights.append("Consistent code style maintained")
    if not insights:
        insights.append(f"Generated {len(session.files)} file(s)")

    summary = PatternMatch(
        type=PatternType.GENERATION_SESSION,
        confidence=1.0,
        payload={
            "file_count": len(session.files),
            "quality_score": quality,
            "pattern_count": len(session.patterns),
            "style_consistency": style_consistency,
        },
        insights=insights,
        key=f"{PatternType.GENERATION_SESSION.value}:{session.id}",
    )
    return match_to_lesson(summary, session_id=session.id)
