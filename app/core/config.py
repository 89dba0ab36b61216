from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_DIR = Path(__file__).resolve().parent.parent
PROJECT_ROOT = APP_DIR.parent
FRONTEND_DIR = PROJECT_ROOT / "frontend"
STATIC_DIR = FRONTEND_DIR / "static"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="APP_", env_file=".env", extra="ignore")

    app_name: str = "Gemini Background Editor"
    gemini_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("APP_GEMINI_API_KEY", "GEMINI_API_KEY", "GOOGLE_API_KEY", "API_KEY"),
    )
    gemini_model: str = "gemini-2.5-flash-image-preview"
    static_dir: Path = Field(default_factory=lambda: STATIC_DIR)
    cors_allow_origins: List[str] = Field(default_factory=lambda: ["*"])
    cors_allow_methods: List[str] = Field(default_factory=lambda: ["*"])
    cors_allow_headers: List[str] = Field(default_factory=lambda: ["*"])
    cors_allow_credentials: bool = False

    max_upload_bytes: int = 20 * 1024 * 1024  # inline data limit for a Gemini request
    max_concurrent_edits: int = 1

    # rembg pass for transparent-mode results that come back fully opaque
    transparent_cleanup: bool = True
    rembg_model_name: str = "u2net"
    warm_up_remover: bool = False

    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8000


@lru_cache
def get_settings() -> Settings:
    return Settings()
