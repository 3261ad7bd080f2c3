"""
Application configuration using pydantic-settings.

Settings are loaded from environment variables with sensible defaults for local development.
The OpenAI API key should always be provided via the environment.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class OpenAISettings(BaseSettings):
    """Completion API configuration."""

    model_config = SettingsConfigDict(env_prefix="OPENAI_")

    api_key: str | None = None
    base_url: str | None = None
    diet_model: str = "gpt-4"
    vision_model: str = "gpt-4o"
    temperature: float = 0.7
    max_tokens: int = 500
    food_max_tokens: int = 300
    timeout_seconds: float = 60.0


class SegmentationSettings(BaseSettings):
    """Person segmentation model configuration."""

    model_config = SettingsConfigDict(env_prefix="SEGMENTATION_")

    model_selection: int = Field(1, ge=0, le=1)  # 0 = general, 1 = landscape (faster)
    flip_horizontal: bool = True
    threshold: float = Field(0.5, gt=0.0, lt=1.0)
    frame_scale: float = Field(0.5, gt=0.0, le=1.0)  # Downscale frames before segmenting


class CameraSettings(BaseSettings):
    """Camera device and sampling loop configuration."""

    model_config = SettingsConfigDict(env_prefix="CAMERA_")

    device_index: int = 0
    poll_interval_seconds: float = Field(0.0, ge=0.0)
    retry_delay_seconds: float = Field(1.0, ge=0.0)


class MeasurementSettings(BaseSettings):
    """Band positions and thresholds for the measurement extractor."""

    model_config = SettingsConfigDict(env_prefix="MEASUREMENT_")

    # shoulders, chest, waist, hips as fractions of frame height from the top
    band_fractions: list[float] = Field(default_factory=lambda: [0.15, 0.25, 0.45, 0.65])
    window_half_height: int = Field(3, ge=0)
    min_foreground_pixels: int = Field(15, ge=0)
    min_valid_bands: int = Field(3, ge=1, le=4)

    # Pixel to inch conversion
    calibration_factor: float = Field(1.0, gt=0.0)
    user_height_inches: float | None = Field(None, gt=0.0)

    @field_validator("band_fractions")
    @classmethod
    def _bands_ordered(cls, value: list[float]) -> list[float]:
        if len(value) != 4:
            raise ValueError("band_fractions needs exactly 4 values (shoulders, chest, waist, hips)")
        if any(not 0.0 < f < 1.0 for f in value):
            raise ValueError("band_fractions must lie strictly between 0 and 1")
        if any(a >= b for a, b in zip(value, value[1:])):
            raise ValueError("band_fractions must be strictly increasing top-to-bottom")
        return value


class ImageValidationSettings(BaseSettings):
    """Food image validation thresholds."""

    model_config = SettingsConfigDict(env_prefix="IMAGE_")

    max_width: int = 8192
    max_height: int = 8192
    max_file_size_mb: int = 10
    min_brightness: int = 50  # 0-255 scale
    max_brightness: int = 240
    # "mpo" is the multi-picture JPEG many phone cameras write
    allowed_formats: list[str] = Field(
        default_factory=lambda: ["jpeg", "jpg", "mpo", "png", "webp"]
    )
    max_side: int = 512  # Longest side after downscaling
    jpeg_quality: int = Field(80, ge=1, le=95)


class Settings(BaseSettings):
    """Root application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_name: str = "Bodyscan Diet Service"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: str = "development"  # development, staging, production

    # API
    api_prefix: str = "/api/v1"
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    # Nested settings
    openai: OpenAISettings = Field(default_factory=OpenAISettings)
    segmentation: SegmentationSettings = Field(default_factory=SegmentationSettings)
    camera: CameraSettings = Field(default_factory=CameraSettings)
    measurement: MeasurementSettings = Field(default_factory=MeasurementSettings)
    image_validation: ImageValidationSettings = Field(default_factory=ImageValidationSettings)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses lru_cache to ensure settings are only loaded once per process.
    """
    return Settings()
