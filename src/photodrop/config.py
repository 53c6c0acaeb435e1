from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Tuple, Type

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

PACKAGE_DIR = Path(__file__).resolve().parent
MiB = 1024 * 1024


def _config_path() -> Path:
    """Path of the optional YAML config, overridable via ``PHOTODROP_CONFIG``."""
    return Path(os.getenv("PHOTODROP_CONFIG", "config.yml"))


class Settings(BaseSettings):
    """Configuration settings for the application.

    Values are read, from highest to lowest priority, from keyword
    arguments, environment variables, ``.env`` and ``config.yml``.
    """

    host: str = "0.0.0.0"
    port: int = 3001
    reload: bool = False

    upload_dir: Path = Path("uploads")
    templates_dir: Path = PACKAGE_DIR / "templates"
    static_dir: Path = Path("public")

    max_file_size: int = 5 * MiB
    allowed_mime_types: List[str] = Field(
        default_factory=lambda: ["image/jpeg", "image/png", "image/gif", "image/webp"]
    )
    allowed_extensions: List[str] = Field(
        default_factory=lambda: [".jpg", ".jpeg", ".png", ".gif", ".webp"]
    )

    verify_content: bool = False
    form_max_field_size: int = MiB
    form_max_fields: int = 1000

    log_level: str = "INFO"
    log_file: Optional[Path] = None
    log_max_bytes: int = MiB
    log_backup_count: int = 3

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("allowed_mime_types")
    @classmethod
    def _lower_mime_types(cls, value: List[str]) -> List[str]:
        return [v.strip().lower() for v in value]

    @field_validator("allowed_extensions")
    @classmethod
    def _normalize_extensions(cls, value: List[str]) -> List[str]:
        return [v if v.startswith(".") else f".{v}" for v in (v.strip().lower() for v in value)]

    @field_validator("max_file_size", "form_max_field_size")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be a positive number of bytes")
        return value

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        yaml_settings = YamlConfigSettingsSource(settings_cls, yaml_file=_config_path())
        return (init_settings, env_settings, dotenv_settings, yaml_settings, file_secret_settings)

    @property
    def max_file_size_label(self) -> str:
        return f"{self.max_file_size / MiB:g} MB"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Resolve the settings once per process."""
    return Settings()


__all__ = ["Settings", "get_settings", "MiB"]
