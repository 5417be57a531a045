"""Runtime settings; defaults can be overridden with LESSONWATCH_* environment variables."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings

DEFAULT_IGNORED_DIRS = [
    "node_modules",
    "__pycache__",
    ".git",
    "venv",
    ".venv",
    "dist",
    "build",
]


class MonitorSettings(BaseSettings):
    root: Path = Path(".")
    recursive: bool = True
    ignored_dirs: list[str] = Field(default_factory=lambda: list(DEFAULT_IGNORED_DIRS))

    # Timing (seconds)
    quiet_period: float = 1.0
    generation_session_window: float = 60.0
    refinement_window: float = 300.0

    # Bounded in-memory state
    history_size: int = 1000
    session_history_size: int = 100

    # Detection thresholds
    bulk_operation_threshold: int = 10
    operation_confidence_threshold: float = 0.7
    generation_confidence_threshold: float = 0.6

    max_file_bytes: int = 1024 * 1024  # content read cap per generated file

    journal_path: Path = Path("docs/LEARNING_JOURNAL.md")
    log_level: str = "INFO"

    model_config = {"env_prefix": "LESSONWATCH_"}
