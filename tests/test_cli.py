"""Tests for the command-line entry point."""

import json

from lessonwatch.lessonwatch_main import build_parser, main


def test_parser_watch_options():
    args = build_parser().parse_args(["watch", "--root", "src", "--window", "5", "--no-console"])
    assert args.command == "watch"
    assert args.root == "src"
    assert args.window == 5.0
    assert args.quiet_period is None
    assert args.no_console is True


def test_record_writes_journal(tmp_path, capsys):
    files = []
    for name in ("a.js", "b.js"):
        path = tmp_path / name
        path.write_text("module.exports = {};\n")
        files.append(str(path))
    journal = tmp_path / "docs" / "journal.md"

    code = main(["record", *files, "--journal", str(journal), "--intent", "scaffold", "--no-console"])

    assert code == 0
    text = journal.read_text(encoding="utf-8")
    assert "- **Pattern**: generation_session" in text
    stats = json.loads(capsys.readouterr().out)
    assert stats["total_sessions"] == 1
    assert stats["total_files_generated"] == 2


def test_record_missing_file_fails(tmp_path):
    journal = tmp_path / "journal.md"
    assert main(["record", str(tmp_path / "nope.js"), "--journal", str(journal), "--no-console"]) == 1
    assert not journal.exists()


def test_watch_missing_root_fails(tmp_path):
    assert main(["watch", "--root", str(tmp_path / "nope"), "--no-console"]) == 1
