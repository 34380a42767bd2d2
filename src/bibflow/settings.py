"""Configuration helpers for bibflow."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

DEFAULT_ASSETS_DIR = Path(__file__).parent / "assets"


class Settings(BaseModel):
    """Runtime configuration loaded from env vars with sensible defaults."""

    log_level: str = "INFO"
    batch_size: int = Field(default=2000, ge=1)
    queue_size: int = Field(default=2, ge=1)
    consumers: int = Field(default=1, ge=1)
    key_length_limit: int = 250
    max_title_length: int = 2048
    assets_dir: Path = Field(default_factory=lambda: DEFAULT_ASSETS_DIR)
    http_timeout: float = 60.0

    @classmethod
    def load(cls) -> "Settings":
        load_dotenv()
        return cls(
            log_level=os.environ.get("BIBFLOW_LOG_LEVEL", "INFO"),
            batch_size=int(os.environ.get("BIBFLOW_BATCH_SIZE", 2000)),
            queue_size=int(os.environ.get("BIBFLOW_QUEUE_SIZE", 2)),
            consumers=int(os.environ.get("BIBFLOW_CONSUMERS", 1)),
            key_length_limit=int(os.environ.get("BIBFLOW_KEY_LENGTH_LIMIT", 250)),
            max_title_length=int(os.environ.get("BIBFLOW_MAX_TITLE_LENGTH", 2048)),
            assets_dir=Path(os.environ.get("BIBFLOW_ASSETS_DIR", DEFAULT_ASSETS_DIR)),
            http_timeout=float(os.environ.get("BIBFLOW_HTTP_TIMEOUT", 60.0)),
        )


def get_settings() -> Settings:
    """Convenience accessor for lazy modules."""
    return Settings.load()
