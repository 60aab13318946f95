"""
Tecspacs: Configuration
=======================

What:  Centralized configuration management using Pydantic Settings.
How:   Values come from `TECSPACS_*` environment variables (or a `.env` file),
       are validated on load and exposed through the `settings` instance.
Who:   Used as the default source of paths and database options by
       Database, FileService, StorageManager and the CLI entry point.
       Every one of them also accepts explicit overrides (tests pass their own).

Data directory layout:
    <data_dir>/
    ├── tecspacs.db          SQLite store (snippets + packages tables)
    ├── snippets/<id>.<ext>  snippet content mirror
    ├── packages/<name>/     package mirror (package.json + content/)
    └── .staging/            artifacts written before their row is committed
"""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Store settings loaded from environment variables.

    Attributes are grouped by concern for readability.
    """

    # ── Storage Location ──────────────────────────────────────────────────
    # Root of everything the store writes. `~` is expanded.
    data_dir: str = Field(default="~/.tecspacs")

    # ── Database ──────────────────────────────────────────────────────────
    # Async SQLAlchemy URL. Empty means the SQLite file inside data_dir.
    # Format: sqlite+aiosqlite:///absolute/path/to/file.db
    database_url: str = Field(default="", description="Async SQLAlchemy database URL")

    # Echo every SQL statement through the sqlalchemy.engine logger
    db_echo: bool = Field(default=False)

    # SQLite waits this long for a lock held by another connection
    busy_timeout_ms: int = Field(default=5000, ge=0, le=60000)

    # ── Mirror Layout ─────────────────────────────────────────────────────
    # Directory created under the caller's working directory by `get-pac`
    local_packages_dirname: str = Field(default="pacs")

    # Manifest written into every package directory
    manifest_filename: str = Field(default="package.json")

    # ── Logging ───────────────────────────────────────────────────────────
    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    # WARNING by default so CLI output is not interleaved with log lines
    log_level: str = Field(default="WARNING")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    @field_validator("manifest_filename", "local_packages_dirname")
    @classmethod
    def validate_single_path_component(cls, v: str) -> str:
        """Layout names must be plain file/directory names, not paths."""
        if not v or "/" in v or "\\" in v or v in {".", ".."}:
            raise ValueError(f"'{v}' must be a single file or directory name")
        return v

    # ── Derived Paths ─────────────────────────────────────────────────────
    @property
    def data_path(self) -> Path:
        return Path(self.data_dir).expanduser().resolve()

    @property
    def snippets_dir(self) -> Path:
        return self.data_path / "snippets"

    @property
    def packages_dir(self) -> Path:
        return self.data_path / "packages"

    @property
    def sqlalchemy_url(self) -> str:
        """
        What: The URL handed to create_async_engine().
        How:  An explicit database_url wins; otherwise the SQLite file
              `<data_dir>/tecspacs.db` through the aiosqlite driver.
        """
        if self.database_url:
            return self.database_url
        return f"sqlite+aiosqlite:///{self.data_path / 'tecspacs.db'}"

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_prefix": "TECSPACS_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


# Default configuration for the CLI; components accept overrides
settings = Settings()
