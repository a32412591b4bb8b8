"""
config.py — Configuration Loader
=================================
Reads runtime parameters from a ``.env`` file (via python-dotenv) so that
paths and palette choices can be changed without touching source code.

Usage
-----
>>> from listenstream.config import settings
>>> settings.color_low
'#446CCF'
"""

from __future__ import annotations

import logging
import os
import pathlib
from dataclasses import dataclass

from dotenv import load_dotenv


# ── locate .env relative to project root ────────────────────────────────────

_PROJECT_ROOT = pathlib.Path(__file__).resolve().parent.parent
_ENV_PATH = _PROJECT_ROOT / ".env"

load_dotenv(dotenv_path=_ENV_PATH)


# ── palette & format defaults ───────────────────────────────────────────────

DEFAULT_COLOR_LOW = "#446CCF"       # oldest artists
DEFAULT_COLOR_HIGH = "#FFFF57"
DEFAULT_PADDING_COLOR = "#F2F3F4"   # background bands
DEFAULT_DATE_FORMAT = "%Y-%m-%d"


# ── typed settings object ───────────────────────────────────────────────────

@dataclass(frozen=True)
class Settings:
    """Immutable container for all environment-sourced config."""

    # Paths
    data_path: pathlib.Path = _PROJECT_ROOT / "data.json"
    output_path: pathlib.Path = _PROJECT_ROOT / "layout.json"

    # Colour scale
    color_low: str = DEFAULT_COLOR_LOW
    color_high: str = DEFAULT_COLOR_HIGH
    padding_color: str = DEFAULT_PADDING_COLOR

    # Sample parsing
    date_format: str = DEFAULT_DATE_FORMAT

    log_level: str = "INFO"
    project_root: pathlib.Path = _PROJECT_ROOT

    @property
    def log_level_value(self) -> int:
        """Numeric ``logging`` level; unknown names fall back to INFO."""
        level = logging.getLevelName(self.log_level.upper())
        return level if isinstance(level, int) else logging.INFO


def _resolve_path(raw: str, default: pathlib.Path) -> pathlib.Path:
    if not raw:
        return default
    path = pathlib.Path(raw).expanduser()
    return path if path.is_absolute() else _PROJECT_ROOT / path


def load_settings() -> Settings:
    """Build a ``Settings`` instance from the environment."""
    defaults = Settings()
    return Settings(
        data_path=_resolve_path(
            os.getenv("LISTENSTREAM_DATA_PATH", ""), defaults.data_path,
        ),
        output_path=_resolve_path(
            os.getenv("LISTENSTREAM_OUTPUT_PATH", ""), defaults.output_path,
        ),
        color_low=os.getenv("LISTENSTREAM_COLOR_LOW", DEFAULT_COLOR_LOW),
        color_high=os.getenv("LISTENSTREAM_COLOR_HIGH", DEFAULT_COLOR_HIGH),
        padding_color=os.getenv("LISTENSTREAM_PADDING_COLOR", DEFAULT_PADDING_COLOR),
        date_format=os.getenv("LISTENSTREAM_DATE_FORMAT", DEFAULT_DATE_FORMAT),
        log_level=os.getenv("LISTENSTREAM_LOG_LEVEL", "INFO"),
    )


# Convenience: pre-loaded instance
settings = load_settings()
