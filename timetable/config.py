"""Engine settings, read from the environment."""

from __future__ import annotations

import os

from pydantic import BaseModel, Field

DEFAULT_BATCH_SIZE = 100


class Settings(BaseModel):
    batch_size: int = Field(default=DEFAULT_BATCH_SIZE, gt=0)
    timezone: str = "UTC"
    log_level: str = "INFO"


def load_settings() -> Settings:
    """Build ``Settings`` from ``TIMETABLE_*`` environment variables."""
    return Settings(
        batch_size=os.environ.get("TIMETABLE_BATCH_SIZE", DEFAULT_BATCH_SIZE),
        timezone=os.environ.get("TIMETABLE_TIMEZONE", "UTC"),
        log_level=os.environ.get("TIMETABLE_LOG_LEVEL", "INFO").upper(),
    )
