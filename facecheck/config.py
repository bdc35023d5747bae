from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from facecheck.classifier import BLUR_THRESHOLD, BRIGHT_THRESHOLD, DARK_THRESHOLD


class Settings(BaseSettings):
    # Mean luma bounds (out of 255) for a usable single-face frame
    dark_threshold: int = Field(default=DARK_THRESHOLD, ge=0, le=255)
    bright_threshold: int = Field(default=BRIGHT_THRESHOLD, ge=0, le=255)

    blur_check_enabled: bool = False
    blur_threshold: float = Field(default=BLUR_THRESHOLD, ge=0.0)

    # Consecutive frames a new verdict must hold before the banner changes
    verdict_stable_frames: int = Field(default=3, ge=1)

    camera_enabled: bool = True
    camera_index: int = 0

    detector_model: Literal["short_range", "full_range"] = "short_range"
    min_detection_confidence: float = Field(default=0.5, ge=0.0, le=1.0)

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def _check_brightness_band(self) -> "Settings":
        if self.dark_threshold >= self.bright_threshold:
            raise ValueError(
                f"dark_threshold ({self.dark_threshold}) must be below "
                f"bright_threshold ({self.bright_threshold})"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    return Settings()
