"""
generation_patterns.py — Heuristic analysis of generated source files.

Detectors in this module take a ``GenerationSession`` and scan the
contents of its files with regular expressions and substring checks.
Confidence values are fixed per detector; they describe how much the
heuristic is trusted, not how strong the evidence is.

Also contains the session-level helpers (code quality, generation style,
proactive-debugging coverage) and the file-reading utilities used when a
session is recorded.
"""

from __future__ import annotations

import logging
import os
import re
from collections import Counter
from typing import Any

from lessonwatch.events import GeneratedFile, GenerationSession, PatternMatch, PatternType

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Regexes
# ---------------------------------------------------------------------------
_FUNCTION_RE = re.compile(r"(?:function|const\s+\w+\s*=\s*(?:async\s+)?\(|=>|\bdef\s+\w+)")
_CLASS_RE = re.compile(r"\bclass\s+")
_METHOD_RE = re.compile(r"^\s+\w+\(", re.MULTILINE)

_ES6_IMPORT_RE = re.compile(
    r"import\s+(?:(?:\{[^}]+\}|\*\s+as\s+\w+|\w+)"
    r"(?:\s*,\s*(?:\{[^}]+\}|\*\s+as\s+\w+|\w+))*\s+from\s+)?['\"]([^'\"]+)['\"]"
)
_REQUIRE_RE = re.compile(r"require\(['\"]([^'\"]+)['\"]\)")
_PY_IMPORT_RE = re.compile(r"^\s*(?:from\s+([\w.]+)\s+import\s+\S|import\s+([\w.]+))", re.MULTILINE)

_FUNCTION_NAME_RE = re.compile(r"(?:function|const|let|var|def)\s+([a-zA-Z_$][a-zA-Z0-9_$]*)\s*[=(]")
_CLASS_NAME_RE = re.compile(r"class\s+([A-Z][a-zA-Z0-9_$]*)")

PROACTIVE_DEBUGGING_EXTENSIONS = {".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs", ".mts", ".cts"}
PROACTIVE_DEBUGGING_PATTERNS = [
    re.compile(r"debug\.(logBus|metric|time|logDiff|flag|snapshot|p[0-9]{2})\s*\("),
    re.compile(r"debug\.enabled"),
    re.compile(r"performance\.mark\s*\("),
    re.compile(r"\[proactive-debugging\]", re.IGNORECASE),
]
PROACTIVE_DEBUGGING_SKIP = re.compile(r"@proactive-debugging:\s*skip", re.IGNORECASE)

FILE_TYPES = {
    ".js": "javascript",
    ".ts": "typescript",
    ".jsx": "react",
    ".tsx": "react-typescript",
    ".json": "json",
    ".md": "markdown",
    ".py": "python",
    ".java": "java",
    ".go": "go",
    ".rs": "rust",
}


# ---------------------------------------------------------------------------
# File helpers
# ---------------------------------------------------------------------------

def detect_file_type(path: str) -> str:
    return FILE_TYPES.get(os.path.splitext(path)[1].lower(), "unknown")


def read_generated_file(path: str, max_bytes: int = 1024 * 1024) -> GeneratedFile:
    """Stat and read *path* into a ``GeneratedFile``.

    Files that vanished or cannot be read come back with ``size=0`` and
    ``content=None``; the detectors treat that as "no content".
    """
    gf = GeneratedFile(path=path, file_type=detect_file_type(path))
    try:
        gf.size = os.stat(path).st_size
        with open(path, "r", encoding="utf-8", errors="replace") as fh:
            gf.content = fh.read(max_bytes)
    except OSError as exc:
        logger.warning("Cannot read generated file %s: %s", path, exc)
        gf.size = 0
        gf.content = None
    return gf


def mode_ratio(counts: dict[str, int] | Counter) -> float:
    """Fraction of observations agreeing with the most common value (1.0 if empty)."""
    total = sum(counts.values())
    if total == 0:
        return 1.0
    return max(counts.values()) / total


def naming_pattern(name: str) -> str:
    if re.match(r"^[A-Z]", name):
        return "PascalCase"
    if re.match(r"^[a-z]", name) and re.search(r"[A-Z]", name):
        return "camelCase"
    if "_" in name:
        return "snake_case"
    if "-" in name:
        return "kebab-case"
    return "unknown"


def _module_scope(module: str) -> str:
    return "internal" if module.startswith((".", "/")) else "external"


# ---------------------------------------------------------------------------
# Detectors
# ---------------------------------------------------------------------------

def detect_code_structure(session: GenerationSession) -> PatternMatch:
    organization: dict[str, bool] = {"has_exports": False, "has_imports": False}
    functions: dict[str, Any] = {"count": 0, "has_async": False, "has_arrow": False}
    classes: dict[str, Any] = {"count": 0, "has_constructor": False, "has_methods": False}

    for f in session.files:
        if not f.content:
            continue
        content = f.content

        if "export default" in content or "module.exports" in content or "__all__" in content:
            organization["has_exports"] = True
        if "import " in content or "require(" in content:
            organization["has_imports"] = True

        found = _FUNCTION_RE.findall(content)
        if found:
            functions["count"] += len(found)
            functions["has_async"] = functions["has_async"] or "async" in content
            functions["has_arrow"] = functions["has_arrow"] or "=>" in content

        if "class " in content:
            classes["count"] += 1
            classes["has_constructor"] = (
                classes["has_constructor"]
                or "constructor(" in content
                or "def __init__(" in content
            )
            classes["has_methods"] = classes["has_methods"] or bool(_METHOD_RE.search(content))

    insights = []
    if functions["count"]:
        insights.append(f"{functions['count']} functions detected")
    if classes["count"]:
        insights.append(f"{classes['count']} classes detected")

    return PatternMatch(
        type=PatternType.CODE_STRUCTURE,
        confidence=0.8,
        payload={"file_organization": organization, "functions": functions, "classes": classes},
        insights=insights,
    )


def detect_import_patterns(session: GenerationSession) -> PatternMatch:
    es6: list[str] = []
    commonjs: list[str] = []
    python: list[str] = []
    internal: list[str] = []
    external: list[str] = []

    def _note(module: str, bucket: list[str]) -> None:
        bucket.append(module)
        (internal if _module_scope(module) == "internal" else external).append(module)

    for f in session.files:
        if not f.content:
            continue
        for module in _ES6_IMPORT_RE.findall(f.content):
            _note(module, es6)
        for module in _REQUIRE_RE.findall(f.content):
            _note(module, commonjs)
        if f.file_type == "python":
            for from_mod, plain_mod in _PY_IMPORT_RE.findall(f.content):
                _note(from_mod or plain_mod, python)

    js_systems = [name for name, found in (("es6", es6), ("commonjs", commonjs)) if found]
    summary = {
        "uses_es6": bool(es6),
        "uses_commonjs": bool(commonjs),
        "uses_python": bool(python),
        "mixed_modules": len(js_systems) > 1,
        "external_deps": sorted(set(external)),
        "internal_deps": sorted(set(internal)),
    }

    insights = []
    if summary["uses_es6"]:
        insights.append("Uses ES6 modules")
    if summary["uses_commonjs"]:
        insights.append("Uses CommonJS")
    if summary["uses_python"]:
        insights.append("Uses Python imports")
    if summary["mixed_modules"]:
        insights.append("Mixed module systems detected")
    if summary["external_deps"]:
        insights.append(f"{len(summary['external_deps'])} external dependencies")

    return PatternMatch(
        type=PatternType.IMPORT_PATTERNS,
        confidence=0.85,
        payload={"es6": es6, "commonjs": commonjs, "python": python, "patterns": summary},
        insights=insights,
    )


def detect_naming_conventions(session: GenerationSession) -> PatternMatch:
    conventions: dict[str, list[dict[str, str]]] = {"files": [], "functions": [], "classes": []}

    for f in session.files:
        file_name = os.path.basename(f.path)
        conventions["files"].append({"name": file_name, "pattern": naming_pattern(file_name)})
        if not f.content:
            continue
        for name in _FUNCTION_NAME_RE.findall(f.content):
            conventions["functions"].append({"name": name, "pattern": naming_pattern(name)})
        for name in _CLASS_NAME_RE.findall(f.content):
            conventions["classes"].append({"name": name, "pattern": naming_pattern(name)})

    consistency = {
        category: mode_ratio(Counter(entry["pattern"] for entry in entries))
        for category, entries in conventions.items()
    }
    consistency["score"] = sum(consistency.values()) / 3

    if consistency["score"] > 0.8:
        insights = ["Consistent naming conventions"]
    else:
        insights = ["Naming conventions could be more consistent"]

    return PatternMatch(
        type=PatternType.NAMING_CONVENTIONS,
        confidence=0.8,
        payload={"conventions": conventions, "consistency": consistency},
        insights=insights,
    )


def detect_architecture_patterns(session: GenerationSession) -> PatternMatch:
    has_tests = has_docs = has_config = False
    structure: Counter = Counter()

    for f in session.files:
        lowered = f.path.lower()
        if "test" in lowered or "spec" in lowered:
            has_tests = True
        if lowered.endswith(".md") or "doc" in lowered:
            has_docs = True
        if "config" in lowered or lowered.endswith(".json"):
            has_config = True

        parent = os.path.basename(os.path.dirname(f.path))
        if parent:
            structure[parent] += 1

    insights = []
    if has_tests:
        insights.append("Includes test files")
    if has_docs:
        insights.append("Includes documentation")
    if has_config:
        insights.append("Includes configuration")

    return PatternMatch(
        type=PatternType.ARCHITECTURE_PATTERNS,
        confidence=0.75,
        payload={
            "has_tests": has_tests,
            "has_docs": has_docs,
            "has_config": has_config,
            "structure": dict(structure),
        },
        insights=insights,
    )


def detect_refinement_patterns(session: GenerationSession) -> PatternMatch:
    """Files of the session that were modified again after creation.

    The pipeline puts those paths in ``session.context["refined_files"]``;
    a session recorded without operation history simply reports none.
    """
    refined = list(session.context.get("refined_files", []))
    if refined:
        insights = [f"Refinement patterns detected: {len(refined)} file(s) modified after generation"]
    else:
        insights = ["No immediate refinements detected"]
    return PatternMatch(
        type=PatternType.REFINEMENT_PATTERNS,
        confidence=0.7,
        payload={"refinements": refined},
        insights=insights,
    )


def detect_success_patterns(session: GenerationSession) -> PatternMatch:
    architecture = detect_architecture_patterns(session).payload
    naming = detect_naming_conventions(session).payload["consistency"]
    indicators = {
        "no_immediate_refinement": not session.context.get("refined_files"),
        "follows_conventions": naming["score"] > 0.8,
        "has_tests": architecture["has_tests"],
        "has_docs": architecture["has_docs"],
    }

    insights = []
    if indicators["no_immediate_refinement"]:
        insights.append("No immediate refinement needed")
    if indicators["follows_conventions"]:
        insights.append("Follows established conventions")
    if indicators["has_tests"]:
        insights.append("Includes tests")
    if indicators["has_docs"]:
        insights.append("Includes documentation")

    return PatternMatch(
        type=PatternType.SUCCESS_PATTERNS,
        confidence=0.7,
        payload={"indicators": indicators},
        insights=insights,
    )


def detect_style_consistency(session: GenerationSession) -> PatternMatch:
    indentation: Counter = Counter()
    quotes: Counter = Counter()
    semicolons: Counter = Counter()

    for f in session.files:
        if not f.content:
            continue
        content = f.content

        for line in content.splitlines():
            stripped = line.lstrip()
            if stripped and stripped != line:
                indent = line[: len(line) - len(stripped)]
                indentation["tabs" if "\t" in indent else "spaces"] += 1
                break

        single, double = content.count("'"), content.count('"')
        if single > double:
            quotes["single"] += 1
        elif double > single:
            quotes["double"] += 1

        semicolons["with" if ";" in content else "without"] += 1

    ratios = [mode_ratio(c) for c in (indentation, quotes, semicolons) if c]
    consistency = sum(ratios) / len(ratios) if ratios else 1.0

    if consistency > 0.8:
        insights = ["Consistent code style"]
    else:
        insights = ["Code style could be more consistent"]

    return PatternMatch(
        type=PatternType.STYLE_CONSISTENCY,
        confidence=0.8,
        payload={
            "style": {
                "indentation": dict(indentation),
                "quotes": dict(quotes),
                "semicolons": dict(semicolons),
            },
            "consistency": consistency,
        },
        insights=insights,
    )


# ---------------------------------------------------------------------------
# Session-level analysis
# ---------------------------------------------------------------------------

def analyze_code_quality(session: GenerationSession) -> dict[str, Any]:
    """Fraction of satisfied quality factors for the session."""
    contents = [f.content for f in session.files if f.content]
    factors = {
        "has_comments": any(
            "//" in c or "/*" in c or re.search(r"^\s*#", c, re.MULTILINE) for c in contents
        ),
        "has_error_handling": any(
            "try" in c or "catch" in c or "except" in c or "error" in c for c in contents
        ),
    }
    if PatternType.CODE_STRUCTURE in session.patterns:
        factors["has_structure"] = True
    naming = session.patterns.get(PatternType.NAMING_CONVENTIONS)
    if naming and naming.payload["consistency"]["score"] > 0.7:
        factors["consistent_naming"] = True

    score = sum(1 for v in factors.values() if v) / len(factors)
    return {"score": score, "factors": factors}


def detect_generation_style(session: GenerationSession) -> dict[str, Any]:
    total_lines = total_functions = total_classes = 0
    directories = set()
    extensions: Counter = Counter()

    for f in session.files:
        directories.add(os.path.dirname(f.path))
        extensions[os.path.splitext(f.path)[1]] += 1
        if f.content:
            total_lines += len(f.content.split("\n"))
            total_functions += len(_FUNCTION_RE.findall(f.content))
            total_classes += len(_CLASS_RE.findall(f.content))

    count = len(session.files)
    return {
        "file_count": count,
        "complexity": {
            "total_lines": total_lines,
            "total_functions": total_functions,
            "total_classes": total_classes,
            "average_lines_per_file": total_lines / count if count else 0,
            "average_functions_per_file": total_functions / count if count else 0,
        },
        "organization": {
            "directory_count": len(directories),
            "file_type_diversity": len(extensions),
            "organization_score": 1.0 if len(directories) > 1 else 0.5,
        },
    }


def evaluate_proactive_debugging(session: GenerationSession) -> dict[str, Any]:
    """Coverage of debug instrumentation across generated JS/TS sources."""
    inspected = instrumented = 0
    exempt_files: list[dict[str, str]] = []
    missing_files: list[str] = []
    evaluated: list[dict[str, str]] = []

    for f in session.files:
        if os.path.splitext(f.path)[1].lower() not in PROACTIVE_DEBUGGING_EXTENSIONS:
            continue
        inspected += 1
        content = f.content or ""

        if PROACTIVE_DEBUGGING_SKIP.search(content):
            exempt_files.append({"path": f.path, "reason": "@proactive-debugging: skip"})
            evaluated.append({"path": f.path, "status": "exempt"})
        elif any(p.search(content) for p in PROACTIVE_DEBUGGING_PATTERNS):
            instrumented += 1
            evaluated.append({"path": f.path, "status": "instrumented"})
        else:
            missing_files.append(f.path)
            evaluated.append({"path": f.path, "status": "missing"})

    covered = instrumented + len(exempt_files)
    coverage = covered / (inspected or 1)

    status = "not_applicable"
    if inspected:
        if covered == inspected:
            status = "compliant_with_exemptions" if exempt_files else "compliant"
        else:
            status = "non_compliant"

    return {
        "status": status,
        "inspected_files": inspected,
        "instrumented_files": instrumented,
        "exempt_files": exempt_files,
        "missing_files": missing_files,
        "coverage": round(coverage, 4),
        "evaluated_files": evaluated,
    }
