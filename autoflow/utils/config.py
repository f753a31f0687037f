# autoflow/utils/config.py
from __future__ import annotations

import functools
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# ---------- Enums ----------

class BrowserType(str, Enum):
    chromium = "chromium"
    firefox = "firefox"
    webkit = "webkit"


class RunMode(str, Enum):
    SIMULATED = "SIMULATED"
    REAL = "REAL"


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


DEFAULT_ADMIN_USERNAME = "admin"
DEFAULT_ADMIN_PASSWORD = "admin"


# ---------- Settings ----------

class Settings(BaseSettings):
    """
    Central configuration for AutoFlow.

    Values load in this order of precedence:
      1) Environment variables
      2) .env file in project root
      3) Defaults below
    """

    # ---- Execution backend (remote dispatch) ----
    BACKEND_URL: str = Field(default="http://localhost:8080", description="Base URL of the execution backend")
    REQUEST_TIMEOUT_S: float = Field(default=120.0, gt=0)
    RUN_MODE: RunMode = Field(default=RunMode.SIMULATED)

    # ---- Simulation timing ----
    STEP_DELAY_MS: int = Field(default=800, ge=0, description="Artificial latency per simulated step")
    SETTLE_DELAY_MS: int = Field(default=500, ge=0, description="Pause before the simulated verdict line")
    FALLBACK_GRACE_MS: int = Field(default=3000, ge=0, description="Pause between a failed dispatch and the fallback")

    # ---- Storage ----
    DATA_DIR: Path = Field(default=Path("./data"))
    WORKFLOWS_FILE: Optional[Path] = Field(default=None, description="Defaults to DATA_DIR/workflows.yaml")
    ELEMENTS_FILE: Optional[Path] = Field(default=None, description="Defaults to DATA_DIR/elements.yaml")

    # ---- Access ----
    ADMIN_USERNAME: str = Field(default=DEFAULT_ADMIN_USERNAME)
    ADMIN_PASSWORD: str = Field(default=DEFAULT_ADMIN_PASSWORD)

    # ---- Reference backend (browser) ----
    HEADLESS: bool = Field(default=True, description="Run the backend browser headless")
    BROWSER_TYPE: BrowserType = Field(default=BrowserType.chromium, description="Playwright browser")
    PAGE_LOAD_TIMEOUT: int = Field(default=60000, ge=1000)
    IMPLICIT_WAIT_MS: int = Field(default=5000, ge=0, description="Per-element lookup timeout")
    BACKEND_HOST: str = Field(default="127.0.0.1")
    BACKEND_PORT: int = Field(default=8080, ge=1, le=65535)

    # ---- Logging ----
    LOG_LEVEL: LogLevel = Field(default=LogLevel.INFO)
    LOG_TO_FILE: bool = Field(default=False)
    LOG_FILE: Path = Field(default=Path("./autoflow.log"))
    COLORIZED_OUTPUT: bool = Field(default=True)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # ignore unknown envs to keep things flexible
    )

    @field_validator("DATA_DIR", "LOG_FILE", mode="after")
    @classmethod
    def _absolutize(cls, v: Path):
        return v if v.is_absolute() else Path.cwd() / v

    @field_validator("BACKEND_URL")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if not v.startswith("http"):
            raise ValueError("BACKEND_URL must be an absolute http(s) URL")
        return v

    @property
    def workflows_path(self) -> Path:
        return self.WORKFLOWS_FILE or self.DATA_DIR / "workflows.yaml"

    @property
    def elements_path(self) -> Path:
        return self.ELEMENTS_FILE or self.DATA_DIR / "elements.yaml"

    def ensure_dirs(self) -> None:
        """Create required directories (idempotent)."""
        for p in {self.workflows_path.parent, self.elements_path.parent}:
            p.mkdir(parents=True, exist_ok=True)
        if self.LOG_TO_FILE:
            self.LOG_FILE.parent.mkdir(parents=True, exist_ok=True)

    # Convenience: Playwright launch options dict
    def playwright_launch_kwargs(self) -> dict:
        return {"headless": self.HEADLESS}


# --------- Public accessor (memoized) ---------

@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Load and cache settings once per process.
    Call `get_settings.cache_clear()` if you need to reload after changing env.
    """
    return Settings()


# --------- Lightweight DTO for other modules ---------

class Timings(BaseModel):
    """Delays used by the execution engine, in milliseconds."""
    step_delay_ms: int = 800
    settle_delay_ms: int = 500
    fallback_grace_ms: int = 3000

    @classmethod
    def from_settings(cls, s: Settings) -> "Timings":
        return cls(
            step_delay_ms=s.STEP_DELAY_MS,
            settle_delay_ms=s.SETTLE_DELAY_MS,
            fallback_grace_ms=s.FALLBACK_GRACE_MS,
        )
