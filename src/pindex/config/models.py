"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (PINDEX__SECTION__KEY)
3. Repo YAML (.pindex/config.yaml)
4. Global YAML (~/.config/pindex/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    PINDEX__<SECTION>__<KEY>=<VALUE>

Examples:
    PINDEX__LOGGING__LEVEL=DEBUG
    PINDEX__INDEX__LANGUAGES='["typescript", "python"]'
    PINDEX__WATCHER__DEBOUNCE_MS=500
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

LanguageName = Literal[
    "typescript",
    "javascript",
    "python",
    "java",
    "kotlin",
    "vue",
    "svelte",
    "php",
    "ruby",
    "csharp",
]


class LogOutputConfig(BaseModel):
    """Single logging output configuration."""

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        PINDEX__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every indexed file.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class IndexConfig(BaseModel):
    """Index configuration.

    Env vars:
        PINDEX__INDEX__LANGUAGES: Languages whose files are indexed
        PINDEX__INDEX__MAX_FILE_SIZE_MB: Skip files larger than this
        PINDEX__INDEX__INDEX_PATH: Override index storage location
    """

    languages: list[LanguageName] = Field(
        default_factory=lambda: ["typescript", "javascript"],
        description="Languages whose source files are discovered by index_all.",
    )
    document_patterns: list[str] = Field(
        default_factory=lambda: ["**/*.md", "**/*.markdown", "**/*.yaml", "**/*.yml", "**/*.txt"],
        description="Globs for documentation files that are chunked rather than parsed.",
    )
    ignore_patterns: list[str] = Field(
        default_factory=list,
        description="Extra ignore globs, applied after .pindexignore.",
    )
    index_documents: bool = Field(
        default=True,
        description="Index documentation files alongside source.",
    )
    max_file_size_mb: int = Field(
        default=10,
        description="Skip files larger than this (MB).",
    )
    index_path: str | None = Field(
        default=None,
        description="Override index storage location. Default: .pindex/ in repo.",
    )

    @field_validator("max_file_size_mb")
    @classmethod
    def validate_max_file_size(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"max_file_size_mb must be positive, got {v}")
        return v


class WatcherConfig(BaseModel):
    """File watcher configuration.

    Env vars:
        PINDEX__WATCHER__DEBOUNCE_MS: Change debounce window
    """

    debounce_ms: int = Field(
        default=300,
        description="Debounce window before reindexing a changed file. "
        "Lower values reindex more often during rapid edits.",
    )
    step_ms: int = Field(
        default=50,
        description="Polling step used by watchfiles while waiting for changes.",
    )


class DatabaseConfig(BaseModel):
    """Database connection configuration.

    Env vars:
        PINDEX__DATABASE__BUSY_TIMEOUT_MS: SQLite busy timeout
        PINDEX__DATABASE__MAX_RETRIES: Max retry attempts for locked DB
    """

    busy_timeout_ms: int = Field(
        default=30000,
        description="SQLite busy timeout (ms). How long to wait for locks.",
    )
    max_retries: int = Field(
        default=3,
        description="Max retry attempts for locked database errors.",
    )
    retry_base_delay_sec: float = Field(
        default=0.1,
        description="Base delay between retries (exponential backoff).",
    )


class SessionConfig(BaseModel):
    """Agent session defaults.

    Env vars:
        PINDEX__SESSION__MODE: indexed or baseline
        PINDEX__SESSION__LABEL: Free-form label stored with the session
    """

    mode: Literal["indexed", "baseline"] = Field(
        default="indexed",
        description="Session mode recorded with each session row.",
    )
    label: str | None = Field(
        default=None,
        description="Optional label stored with the session row.",
    )


class PindexConfig(BaseModel):
    """Root configuration for pindex.

    All settings can be configured via:
    1. Environment variables: PINDEX__SECTION__KEY
    2. YAML config files (repo or global)
    3. Direct kwargs to load_config()
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    index: IndexConfig = Field(default_factory=IndexConfig)
    watcher: WatcherConfig = Field(default_factory=WatcherConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
