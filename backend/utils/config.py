"""
Monowatch Configuration Module.

Centralizes ambient settings using Pydantic Settings.
Requires Python 3.11+.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file into os.environ at module import time
# This ensures nested BaseSettings classes can read the values
_env_file = Path(__file__).parent.parent / ".env"
if _env_file.exists():
    load_dotenv(_env_file)
else:
    # Try current working directory
    load_dotenv()


class WatcherSettings(BaseSettings):
    """File watcher and action execution settings."""

    model_config = SettingsConfigDict(env_prefix="WATCHER_")

    debounce_wait_ms: int = Field(default=2000, ge=0, description="Quiet window for change bursts")
    debounce_max_wait_ms: int = Field(default=3000, ge=0, description="Latency ceiling for change bursts")
    lock_scope: Literal["global", "package"] = Field(
        default="global",
        description="Serialize change actions process-wide or per package directory",
    )
    force_color: bool = Field(default=True, description="Ask child processes to colorize output")
    clear_screen: bool = Field(default=True, description="Clear the terminal before each change action")
    config_file: str = Field(default="monowatch.config.py")
    recursive: bool = Field(default=True)

    ignore_patterns: list[str] = Field(
        default=[
            "*.pyc",
            "__pycache__",
            ".git",
            ".venv",
            "venv",
            ".idea",
            ".vscode",
            "*.egg-info",
            "node_modules",
            ".pytest_cache",
            ".mypy_cache",
            ".ruff_cache",
        ],
        description="Glob patterns never reported by the watcher",
    )

    @field_validator("ignore_patterns", mode="before")
    @classmethod
    def parse_ignore_patterns(cls, v: str | list[str]) -> list[str]:
        """Parse ignore patterns from comma-separated string or list."""
        if isinstance(v, str):
            return [p.strip() for p in v.split(",") if p.strip()]
        return v


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = Field(default="INFO")
    format: str = Field(default="console")  # "json" or "console"
    file_path: Path | None = Field(default=None)


class Settings(BaseSettings):
    """Main application settings aggregating all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application metadata
    app_name: str = Field(default="Monowatch")
    app_version: str = Field(default="0.1.0")

    # Sub-settings
    watcher: WatcherSettings = Field(default_factory=WatcherSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns singleton instance of Settings for performance.
    """
    return Settings()
