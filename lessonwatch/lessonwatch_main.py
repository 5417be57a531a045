#!/usr/bin/env python3
"""
lessonwatch_main.py — CLI entry point for lessonwatch.

Sub-commands
------------
watch   Monitor a project directory and capture lessons from file
        operations and generation bursts until interrupted.

record  Record one code-generation session from an explicit list of
        files and print the resulting statistics.

Usage
-----
    # Watch the current project, journal to docs/LEARNING_JOURNAL.md
    python -m lessonwatch.lessonwatch_main watch --root .

    # Record a session by hand
    python -m lessonwatch.lessonwatch_main record src/a.js src/b.js --intent "scaffold"
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path

from lessonwatch.config import MonitorSettings
from lessonwatch.monitor import FileOperationMonitor
from lessonwatch.pipeline import LearningPipeline
from lessonwatch.sinks import CompositeSink, ConsoleSink, JournalSink

logger = logging.getLogger("lessonwatch")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def build_sink(journal: Path, console: bool) -> CompositeSink:
    sinks = [JournalSink(journal)]
    if console:
        sinks.append(ConsoleSink())
    return CompositeSink(*sinks)


# ---------------------------------------------------------------------------
# Watch sub-command
# ---------------------------------------------------------------------------

def cmd_watch(args: argparse.Namespace, settings: MonitorSettings) -> int:
    root = Path(args.root) if args.root else settings.root
    if not root.is_dir():
        logger.error("Root directory not found: %s", root)
        return 1

    if args.quiet_period is not None:
        settings.quiet_period = args.quiet_period
    if args.window is not None:
        settings.generation_session_window = args.window

    journal = Path(args.journal) if args.journal else settings.journal_path

    logger.info("=== lessonwatch ===")
    logger.info("Root     : %s", root)
    logger.info("Journal  : %s", journal)
    logger.info("Debounce : %.1f s", settings.quiet_period)
    logger.info("Window   : %.1f s", settings.generation_session_window)

    pipeline = LearningPipeline(sink=build_sink(journal, not args.no_console), settings=settings)
    monitor = FileOperationMonitor(root, pipeline=pipeline, settings=settings)

    logger.info("Starting file operation monitoring …  Press Ctrl+C to stop.")
    monitor.start_monitoring()
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Monitoring stopped by user.")
    finally:
        monitor.stop_monitoring()

    print(json.dumps(monitor.get_statistics(), indent=2))
    return 0


# ---------------------------------------------------------------------------
# Record sub-command
# ---------------------------------------------------------------------------

def cmd_record(args: argparse.Namespace, settings: MonitorSettings) -> int:
    missing = [f for f in args.files if not Path(f).is_file()]
    if missing:
        logger.error("File(s) not found: %s", ", ".join(missing))
        return 1

    journal = Path(args.journal) if args.journal else settings.journal_path
    pipeline = LearningPipeline(sink=build_sink(journal, not args.no_console), settings=settings)

    context = {"intent": args.intent} if args.intent else {}
    session = pipeline.record_code_generation_session(args.files, context)
    if session is None:
        return 1

    logger.info("Session %s: %d lesson(s)", session.id, len(session.lessons))
    print(json.dumps(pipeline.get_statistics(), indent=2))
    return 0


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="lessonwatch",
        description="lessonwatch — learn from file operations and code generation bursts.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: LESSONWATCH_LOG_LEVEL or INFO).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # -- watch --
    watch_p = sub.add_parser("watch", help="Monitor a directory and capture lessons.")
    watch_p.add_argument("--root", default=None, help="Directory to watch (default: current directory).")
    watch_p.add_argument("--journal", default=None, help="Markdown journal to append lessons to.")
    watch_p.add_argument(
        "--quiet-period",
        type=float,
        default=None,
        help="Seconds of quiet before a file event is processed (default: 1.0).",
    )
    watch_p.add_argument(
        "--window",
        type=float,
        default=None,
        help="Generation session window in seconds (default: 60).",
    )
    watch_p.add_argument("--no-console", action="store_true", help="Do not print lessons to the terminal.")

    # -- record --
    record_p = sub.add_parser("record", help="Record a code generation session by hand.")
    record_p.add_argument("files", nargs="+", help="Files produced by the generation.")
    record_p.add_argument("--journal", default=None, help="Markdown journal to append lessons to.")
    record_p.add_argument("--intent", default=None, help="What the generation was meant to do.")
    record_p.add_argument("--no-console", action="store_true", help="Do not print lessons to the terminal.")

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    """Parse CLI args and dispatch to the appropriate sub-command."""
    args = build_parser().parse_args(argv)
    settings = MonitorSettings()
    configure_logging(args.log_level or settings.log_level)

    if args.command == "watch":
        return cmd_watch(args, settings)
    if args.command == "record":
        return cmd_record(args, settings)
    return 2


if __name__ == "__main__":
    sys.exit(main())
