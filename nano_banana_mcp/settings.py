from __future__ import annotations

from functools import lru_cache
from typing import ClassVar

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .shard import constants as C


class Settings(BaseSettings):
    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(env_file=".env", extra="ignore")

    gemini_api_key: str | None = Field(default=None, description="API key for Google Gemini")
    workplace_path: str | None = Field(default=None, description="Directory under which images are saved")

    gemini_model: str = Field(default=C.DEFAULT_MODEL, description="Gemini model used for generation and editing")
    log_level: str = Field(default="INFO", description="Minimum level for the stderr log sink")


@lru_cache
def get_settings() -> Settings:
    return Settings()
