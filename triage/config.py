"""
Action Triage - Centralized configuration.

Loads all settings from .env and the process environment.
This module is the foundation for every other module in the project.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (one level up from triage/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Day.ai (upstream action source)
    DAYAI_BASE_URL: str = "https://day.ai"
    DAYAI_CLIENT_ID: str = ""
    DAYAI_REFRESH_TOKEN: str = ""
    HTTP_TIMEOUT_SECONDS: float = 30.0

    # Storage: tasks.json, sync-ledger.json, client-map.json live here
    DATA_DIR: str = "data"

    # Refresh cycle
    LOOKBACK_DAYS: int = 14
    REFRESH_COOLDOWN_SECONDS: int = 60
    PRUNE_RETENTION_DAYS: int = 30
    AUTO_REFRESH_HOURS: int = 4

    # View
    OVERDUE_DAYS: int = 7

    # Client / folder suggestion
    MATCH_THRESHOLD: float = 0.25

    # Meeting context cache
    MEETING_CACHE_TTL_HOURS: int = 24

    # Optional JSON file overriding the built-in noise rules
    NOISE_RULES_PATH: str = ""

    @field_validator(
        "LOOKBACK_DAYS",
        "REFRESH_COOLDOWN_SECONDS",
        "PRUNE_RETENTION_DAYS",
        "AUTO_REFRESH_HOURS",
        "OVERDUE_DAYS",
        "MEETING_CACHE_TTL_HOURS",
        mode="before",
    )
    @classmethod
    def parse_int(cls, v: str | int) -> int:
        return int(v)

    @field_validator("MATCH_THRESHOLD", "HTTP_TIMEOUT_SECONDS", mode="before")
    @classmethod
    def parse_float(cls, v: str | float) -> float:
        return float(v)


def _load_settings() -> Settings:
    """Load settings from environment.

    Day.ai credentials are optional here: the action source raises
    ActionSourceError on first use when they are missing, so read-only
    commands (view, folders) still work without them.
    """
    return Settings(
        DAYAI_BASE_URL=os.getenv("DAYAI_BASE_URL", "https://day.ai"),
        DAYAI_CLIENT_ID=os.getenv("DAYAI_CLIENT_ID", ""),
        DAYAI_REFRESH_TOKEN=os.getenv("DAYAI_REFRESH_TOKEN", ""),
        HTTP_TIMEOUT_SECONDS=os.getenv("HTTP_TIMEOUT_SECONDS", "30"),
        DATA_DIR=os.getenv("DATA_DIR", "data"),
        LOOKBACK_DAYS=os.getenv("LOOKBACK_DAYS", "14"),
        REFRESH_COOLDOWN_SECONDS=os.getenv("REFRESH_COOLDOWN_SECONDS", "60"),
        PRUNE_RETENTION_DAYS=os.getenv("PRUNE_RETENTION_DAYS", "30"),
        AUTO_REFRESH_HOURS=os.getenv("AUTO_REFRESH_HOURS", "4"),
        OVERDUE_DAYS=os.getenv("OVERDUE_DAYS", "7"),
        MATCH_THRESHOLD=os.getenv("MATCH_THRESHOLD", "0.25"),
        MEETING_CACHE_TTL_HOURS=os.getenv("MEETING_CACHE_TTL_HOURS", "24"),
        NOISE_RULES_PATH=os.getenv("NOISE_RULES_PATH", ""),
    )


# Singleton - imported by all other modules as:
#   from triage.config import settings
settings = _load_settings()
