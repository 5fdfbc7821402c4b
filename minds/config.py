from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from loguru import logger
from dotenv import load_dotenv

from .errors import ConfigurationError


# Load env from the project root first, then the working directory
_here = Path(__file__).resolve().parents[1]
for _env_path in (_here / ".env", Path.cwd() / ".env"):
    if _env_path.is_file():
        load_dotenv(dotenv_path=str(_env_path), override=False)
        break


DEFAULT_API_BASE = "https://generativelanguage.googleapis.com/v1beta/models"
DEFAULT_MODEL = "gemini-2.5-flash"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"config_invalid | {name}={raw!r}; using {default}")
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"config_invalid | {name}={raw!r}; using {default}")
        return default


@dataclass(frozen=True)
class Settings:
    """Runtime knobs for the invoker and the scheduler.

    Env vars:
      - GEMINI_API_KEY (required before the first call)
      - GEMINI_MODEL (default: gemini-2.5-flash)
      - GEMINI_API_BASE, GEMINI_TEMPERATURE, GEMINI_TIMEOUT
      - MINDS_MAX_RETRIES, MINDS_BACKOFF_SECONDS, MINDS_HISTORY_LIMIT
      - MINDS_OPENING_DELAY, MINDS_MIN_DELAY, MINDS_MAX_DELAY, MINDS_LOG_LEVEL
    """

    api_key: Optional[str] = None
    model: str = DEFAULT_MODEL
    api_base: str = DEFAULT_API_BASE
    temperature: float = 0.8
    timeout: Optional[float] = None
    max_retries: int = 3
    backoff_seconds: float = 1.0
    history_limit: int = 20
    opening_delay: float = 0.5
    min_delay: float = 3.0
    max_delay: float = 5.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        timeout_raw = os.getenv("GEMINI_TIMEOUT")
        timeout = _env_float("GEMINI_TIMEOUT", 0.0) if timeout_raw else None
        return cls(
            api_key=os.getenv("GEMINI_API_KEY") or None,
            model=os.getenv("GEMINI_MODEL", DEFAULT_MODEL),
            api_base=os.getenv("GEMINI_API_BASE", DEFAULT_API_BASE).rstrip("/"),
            temperature=_env_float("GEMINI_TEMPERATURE", 0.8),
            timeout=timeout or None,
            max_retries=max(1, _env_int("MINDS_MAX_RETRIES", 3)),
            backoff_seconds=_env_float("MINDS_BACKOFF_SECONDS", 1.0),
            history_limit=max(0, _env_int("MINDS_HISTORY_LIMIT", 20)),
            opening_delay=_env_float("MINDS_OPENING_DELAY", 0.5),
            min_delay=_env_float("MINDS_MIN_DELAY", 3.0),
            max_delay=_env_float("MINDS_MAX_DELAY", 5.0),
            log_level=os.getenv("MINDS_LOG_LEVEL", "INFO").upper(),
        )

    @property
    def endpoint(self) -> str:
        return f"{self.api_base}/{self.model}:generateContent"

    def require_api_key(self) -> str:
        if not self.api_key:
            raise ConfigurationError("GEMINI_API_KEY not set; cannot call the Gemini endpoint")
        return self.api_key
