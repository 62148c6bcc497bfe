from __future__ import annotations
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Load .env file from the project root (parent of pixpen/core)
    _env_file_path = Path(__file__).parent.parent.parent / ".env"

    model_config = SettingsConfigDict(
        env_file=str(_env_file_path) if _env_file_path.exists() else ".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
    )

    app_name: str = Field(default="PixPen Object Editor", alias="APP_NAME")
    app_env: str = Field(default="dev", alias="APP_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Remote Gemini models (segmentation + generative edit)
    gemini_api_key: str = Field(default="", alias="GEMINI_API_KEY")
    gemini_api_base: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        alias="GEMINI_API_BASE",
    )
    gemini_segmentation_model: str = Field(default="gemini-2.5-flash", alias="GEMINI_SEGMENTATION_MODEL")
    gemini_image_model: str = Field(default="gemini-2.5-flash-image-preview", alias="GEMINI_IMAGE_MODEL")
    gemini_timeout_seconds: float = Field(default=120.0, alias="GEMINI_TIMEOUT_SECONDS")

    # Segmentation request shaping
    segmentation_max_edge: int = Field(default=1000, alias="SEGMENTATION_MAX_EDGE")
    segmentation_jpeg_quality: int = Field(default=70, alias="SEGMENTATION_JPEG_QUALITY")
    mask_threshold: int = Field(default=127, alias="MASK_THRESHOLD")

    # Upload validation
    image_max_size_mb: int = Field(default=20, alias="IMAGE_MAX_SIZE_MB")
    image_min_dimension: int = Field(default=16, alias="IMAGE_MIN_DIMENSION")

    # Overlay rendering
    overlay_idle_outline: bool = Field(default=False, alias="OVERLAY_IDLE_OUTLINE")

    # Front-end dev servers allowed by CORS
    cors_origins: str = Field(
        default="http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173",
        alias="CORS_ORIGINS",
    )

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]
