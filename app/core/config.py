from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings, loaded from the environment and an optional .env file."""

    model_config = SettingsConfigDict(
        env_file=Path(__file__).resolve().parents[2] / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "Beets Audio Tools API"
    app_version: str = "0.1.0"
    log_level: str = "INFO"

    base_dir: Path = Field(default_factory=lambda: Path(__file__).resolve().parents[2])
    storage_dir: Optional[Path] = None
    temp_dir: Optional[Path] = None

    # Remote job API (stem splitter)
    replicate_api_token: Optional[str] = None
    replicate_stem_splitter_version: Optional[str] = None
    replicate_api_base: str = "https://api.replicate.com/v1"
    stem_splitter_input_key: str = "audio"

    poll_interval_seconds: float = Field(default=3.0, gt=0)
    poll_timeout_seconds: float = Field(default=120.0, gt=0)
    http_timeout_seconds: float = Field(default=60.0, gt=0)
    max_concurrent_fetches: int = Field(default=4, ge=1)
    bundle_compression_level: int = Field(default=9, ge=0, le=9)

    # ffmpeg tools
    ffmpeg_binary: Optional[str] = None
    mp3_bitrate: str = "320k"
    max_upload_bytes: int = 100 * 1024 * 1024

    allow_origins: list[str] = Field(default_factory=lambda: ["*"])

    def configure_paths(self) -> None:
        """Resolve default directories and create them when missing."""
        self.storage_dir = (self.storage_dir or (self.base_dir / "storage")).resolve()
        self.temp_dir = (self.temp_dir or (self.storage_dir / "tmp")).resolve()

        for directory in (self.storage_dir, self.temp_dir):
            directory.mkdir(parents=True, exist_ok=True)


@lru_cache()
def get_settings() -> Settings:
    settings = Settings()
    settings.configure_paths()
    return settings
