from __future__ import annotations

from typing import Literal

from dotenv import find_dotenv, load_dotenv
from pydantic import AnyUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8-sig",
        case_sensitive=False,
        extra="ignore",
    )

    SUPABASE_URL: AnyUrl
    SUPABASE_SERVICE_ROLE_KEY: str
    APP_ENV: str = "local"
    FRONTEND_CORS_ORIGINS: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://127.0.0.1:5173"],
    )

    # text provider
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.5-flash"
    GEMINI_MAX_OUTPUT_TOKENS: int = 4096

    # image provider
    OPENAI_API_KEY: str = ""
    OPENAI_IMAGE_MODEL: str = "dall-e-3"

    # "unlimited", empty, or a non-negative integer; kept as text so a typo fails open
    RECIPE_GENERATION_LIMIT: str = "unlimited"

    IMAGE_STORAGE_BACKEND: Literal["local", "r2"] = "local"
    IMAGE_STORAGE_PATH: str = "./data/uploads"
    MEDIA_URL_PREFIX: str = "/uploads"

    TEXT_TIMEOUT_SECONDS: float = 90
    IMAGE_TIMEOUT_SECONDS: float = 90
    IMAGE_DOWNLOAD_TIMEOUT_SECONDS: float = 30
    TEXT_RETRIES: int = Field(default=0, ge=0)
    GENERATION_REQUEST_TIMEOUT_SECONDS: float = 120

    AUDIT_LOG_ENABLED: bool = True
    AUDIT_LOG_LEVEL: str = "info"
    AUDIT_LOG_FORMAT: Literal["json", "pretty"] = "json"


# providers that read os.environ directly (R2_*) see .env values too
load_dotenv(find_dotenv())
settings = Settings()
