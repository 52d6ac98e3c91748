from functools import lru_cache
from typing import Literal, TypeVar

from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError

T = TypeVar("T")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    youtube_api_key: str | None = None
    gemini_api_key: str | None = None
    openai_api_key: str | None = None

    supabase_url: str | None = None
    supabase_service_key: str | None = None
    supabase_table: str = "thumbnails"
    supabase_bucket: str = "thumbnails"

    vision_model_name: str = "gemini-2.0-flash"
    text_model_name: str = "gemini-2.0-flash"
    dalle_model_name: str = "dall-e-3"
    dalle_size: str = "1792x1024"
    dalle_quality: str = "standard"
    imagen_model_name: str = "imagen-3.0-generate-002"

    num_titles: int = 3
    strict_title_parsing: bool = False

    # "exclusive": a YouTube URL wins over an uploaded image. "combine": both run.
    branch_policy: Literal["exclusive", "combine"] = "exclusive"
    caption_video_thumbnail: bool = True
    caption_video_title: bool = True
    caption_generated_thumbnail: bool = False

    http_timeout: float | None = None
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()


def require_configured(value: T | None, env_name: str) -> T:
    """Return a configured secret or client, failing with the variable name (never the value)."""
    if not value:
        raise ConfigurationError(f"{env_name} environment variable not set")
    return value
