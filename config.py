"""
Configuration for the image editor.

Settings are Pydantic models populated from defaults and IMAGE_EDITOR_*
environment variables.
"""

import logging
import os
from functools import lru_cache
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

from core.constants import EditorConstants, ExportConstants, ImageConstants, SystemConstants


class SystemSettings(BaseModel):
    """Logging and debug settings"""

    log_level: str = SystemConstants.LOG_LEVEL_DEFAULT
    debug: bool = False

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {value}")
        return level


class EditorSettings(BaseModel):
    """Crop/transform editing settings"""

    min_crop_size: float = Field(EditorConstants.MIN_CROP_SIZE, gt=0)
    initial_crop_ratio: float = Field(EditorConstants.INITIAL_CROP_RATIO, gt=0, le=1)


class ExportSettings(BaseModel):
    """Encoding settings for saved images"""

    default_mime_type: str = ExportConstants.DEFAULT_MIME_TYPE
    quality: float = Field(
        ExportConstants.DEFAULT_QUALITY,
        ge=ExportConstants.MIN_QUALITY,
        le=ExportConstants.MAX_QUALITY,
    )


class ImageSettings(BaseModel):
    """In-memory image store settings"""

    max_images: int = Field(
        ImageConstants.DEFAULT_MAX_IMAGES, ge=ImageConstants.MIN_IMAGES, le=ImageConstants.MAX_IMAGES
    )


class Settings(BaseModel):
    """Application settings"""

    environment: str = "development"
    system: SystemSettings = Field(default_factory=SystemSettings)
    editor: EditorSettings = Field(default_factory=EditorSettings)
    export: ExportSettings = Field(default_factory=ExportSettings)
    image: ImageSettings = Field(default_factory=ImageSettings)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "Settings":
        """Build settings from IMAGE_EDITOR_* environment variables."""
        environ = os.environ if environ is None else environ
        prefix = SystemConstants.ENV_PREFIX

        def env(name: str) -> Optional[str]:
            return environ.get(prefix + name)

        system: Dict[str, Any] = {}
        export: Dict[str, Any] = {}
        image: Dict[str, Any] = {}

        if env("LOG_LEVEL"):
            system["log_level"] = env("LOG_LEVEL")
        if env("DEBUG"):
            system["debug"] = env("DEBUG").lower() in ("1", "true", "yes", "on")
        if env("EXPORT_QUALITY"):
            export["quality"] = float(env("EXPORT_QUALITY"))
        if env("EXPORT_MIME_TYPE"):
            export["default_mime_type"] = env("EXPORT_MIME_TYPE")
        if env("MAX_IMAGES"):
            image["max_images"] = int(env("MAX_IMAGES"))

        return cls(
            environment=env("ENV") or "development",
            system=SystemSettings(**system),
            export=ExportSettings(**export),
            image=ImageSettings(**image),
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings.from_env()


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Configure root logging from settings."""
    settings = settings or get_settings()
    level = "DEBUG" if settings.system.debug else settings.system.log_level
    logging.basicConfig(
        level=getattr(logging, level),
        format=SystemConstants.LOG_FORMAT,
    )
