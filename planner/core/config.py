"""Planner settings, loaded from ``PLANNER_*`` environment variables."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

EVENT_FILE_NAME = "event.csv"
BACKUP_FILE_NAME = "calendar_backup.txt"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PLANNER_",
        extra="ignore",
        case_sensitive=False,
    )

    data_dir: Path | None = Field(
        default=None,
        description="Directory holding event.csv; in-memory only when unset",
    )
    backup_file: Path | None = Field(
        default=None,
        description="Backup file; defaults to ../backup/calendar_backup.txt next to data_dir",
    )
    reminder_minutes: int = Field(default=30, gt=0)
    conflict_pad_days: int = Field(default=7, ge=0)
    statistics_horizon_days: int = Field(default=365, gt=0)
    log_level: str = Field(default="INFO")

    @property
    def event_file(self) -> Path | None:
        if self.data_dir is None:
            return None
        return self.data_dir / EVENT_FILE_NAME

    @property
    def resolved_backup_file(self) -> Path | None:
        if self.backup_file is not None:
            return self.backup_file
        if self.data_dir is None:
            return None
        return self.data_dir.parent / "backup" / BACKUP_FILE_NAME


@lru_cache
def get_settings() -> Settings:
    return Settings()
