# screenshot_verify/utils/config.py
from __future__ import annotations

import functools
import tempfile
from enum import Enum
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_PROMPT = (
    "Analyze this terminal UI screenshot for visual issues, rendering problems, or alignment errors."
)
DEFAULT_NOTE = (
    "Open this image with a vision-capable model and analyze it with the prompt above"
)


# ---------- Enums ----------

class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


# ---------- Settings ----------

class Settings(BaseSettings):
    """
    Central configuration for screenshot-verify.

    Values load in this order of precedence:
      1) Environment variables
      2) .env file in the working directory
      3) Defaults below
    """

    # ---- Capture ----
    SCREENCAPTURE_BIN: str = Field(default="screencapture", description="Platform screenshot utility")
    SCREENSHOT_DIR: Path = Field(default_factory=lambda: Path(tempfile.gettempdir()))

    # ---- Verification ----
    DEFAULT_WAIT_SECONDS: float = Field(default=1.0, ge=0)
    DEFAULT_PROMPT: str = Field(default=DEFAULT_PROMPT)
    MIN_SCREENSHOT_BYTES: int = Field(default=1000, ge=0, description="Smaller artifacts are treated as corrupt")
    TERMINATE_TIMEOUT_SECONDS: float = Field(default=3.0, ge=0)
    REPORT_NOTE: str = Field(default=DEFAULT_NOTE)

    # ---- Release ----
    VERSION_FILE: Path = Field(default=Path("VERSION"))
    RELEASE_REMOTE: str = Field(default="origin")
    RELEASE_BRANCH: str = Field(default="main")

    # ---- Logging ----
    LOG_LEVEL: LogLevel = Field(default=LogLevel.INFO)
    LOG_TO_FILE: bool = Field(default=False)
    LOG_FILE: Path = Field(default=Path("./screenshot-verify.log"))
    COLORIZED_OUTPUT: bool = Field(default=True)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("SCREENSHOT_DIR", "LOG_FILE", mode="after")
    @classmethod
    def _absolutize(cls, v: Path):
        return v if v.is_absolute() else Path.cwd() / v

    @field_validator("SCREENCAPTURE_BIN")
    @classmethod
    def _bin_non_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("SCREENCAPTURE_BIN cannot be empty")
        return v

    def ensure_dirs(self) -> None:
        """Create required directories (idempotent)."""
        if self.LOG_TO_FILE:
            self.LOG_FILE.parent.mkdir(parents=True, exist_ok=True)

    def default_screenshot_path(self, epoch: int) -> Path:
        return self.SCREENSHOT_DIR / f"tui-screenshot-{epoch}.png"


# --------- Public accessor (memoized) ---------

@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Load and cache settings once per process.
    Call `get_settings.cache_clear()` if you need to reload after changing env.
    """
    s = Settings()
    s.ensure_dirs()
    return s
