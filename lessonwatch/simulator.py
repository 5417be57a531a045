#!/usr/bin/env python3
"""
simulator.py — Code-generation activity simulator for lessonwatch.

Performs file operations in a directory that look like the output of a
code generator, so the monitor and pipeline can be exercised by hand:
  • A burst of new source files (one generation session, bulk creates)
  • Follow-up edits to a few of them (refinement)
  • Renames with poor names (naming quality)

Usage
-----
    # In one terminal
    python -m lessonwatch.lessonwatch_main watch --root /tmp/lw_sim --window 5

    # In another
    python -m lessonwatch.simulator generate --target-dir /tmp/lw_sim --num-files 12
"""

from __future__ import annotations

import argparse
import logging
import os
import shutil
import tempfile
import time

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("lessonwatch.simulator")

_MODULE_TEMPLATE = """\
const path = require('path');

// generated module {index}
function handler{index}(input) {{
  try {{
    return path.join(input, '{name}');
  }} catch (error) {{
    return null;
  }}
}}

module.exports = {{ handler{index} }};
"""

_UNCLEAR_NAMES = ["NOTES.md", "summary_10_10.md", "GUIDE.md"]


def simulate_generation(
    target_dir: str,
    num_files: int = 12,
    delay: float = 0.1,
    prefix: str = "a",
) -> list[str]:
    """Create ``<prefix>1.js`` … ``<prefix>N.js`` in *target_dir*.

    Returns the created paths.
    """
    os.makedirs(target_dir, exist_ok=True)
    logger.info("Generating %d files in: %s", num_files, target_dir)

    paths: list[str] = []
    for i in range(1, num_files + 1):
        name = f"{prefix}{i}.js"
        path = os.path.join(target_dir, name)
        with open(path, "w") as f:
            f.write(_MODULE_TEMPLATE.format(index=i, name=name))
        paths.append(path)
        time.sleep(delay)

    logger.info("Generation burst complete: %d files.", len(paths))
    return paths


def simulate_refinement(paths: list[str], count: int = 3, delay: float = 0.5) -> None:
    """Append a follow-up edit to the first *count* files."""
    for path in paths[:count]:
        if not os.path.exists(path):
            continue
        with open(path, "a") as f:
            f.write("// refined after review\n")
        time.sleep(delay)
    logger.info("Refined %d file(s).", min(count, len(paths)))


def simulate_renames(target_dir: str, delay: float = 0.5) -> None:
    """Create a few docs and rename them to unclear names."""
    for i, new_name in enumerate(_UNCLEAR_NAMES):
        old = os.path.join(target_dir, f"draft_{i}.md")
        with open(old, "w") as f:
            f.write(f"# Draft {i}\n")
        os.rename(old, os.path.join(target_dir, new_name))
        time.sleep(delay)
    logger.info("Renamed %d draft(s).", len(_UNCLEAR_NAMES))


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def main() -> None:
    parser = argparse.ArgumentParser(
        prog="lessonwatch-simulator",
        description="Simulate code-generation file activity for testing.",
    )
    parser.add_argument(
        "mode",
        choices=["generate", "refine", "rename"],
        help="'generate' = burst of new files; 'refine' = burst plus edits; "
        "'rename' = unclear renames.",
    )
    parser.add_argument(
        "--target-dir",
        default=None,
        help="Directory to operate in (default: auto-created temp dir).",
    )
    parser.add_argument(
        "--num-files",
        type=int,
        default=12,
        help="Number of files to generate (default: 12).",
    )
    parser.add_argument(
        "--delay",
        type=float,
        default=0.1,
        help="Seconds between file writes (default: 0.1).",
    )
    parser.add_argument(
        "--cleanup",
        action="store_true",
        help="Remove the target directory after simulation.",
    )

    args = parser.parse_args()

    target = args.target_dir or tempfile.mkdtemp(prefix="lessonwatch_sim_")

    try:
        if args.mode == "rename":
            simulate_renames(target)
        else:
            paths = simulate_generation(target, args.num_files, args.delay)
            if args.mode == "refine":
                simulate_refinement(paths)
    finally:
        if args.cleanup and os.path.isdir(target):
            shutil.rmtree(target, ignore_errors=True)
            logger.info("Cleaned up: %s", target)
        else:
            logger.info("Files remain in: %s", target)


if __name__ == "__main__":
    main()
