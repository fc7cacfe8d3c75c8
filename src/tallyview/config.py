"""Configuración segura y validada de Tallyview.

Secure and validated Tallyview configuration.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import AnyUrl, Field, TypeAdapter, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENV_PATH = Path(".env")
_ENV_LOCAL_PATH = Path(".env.local")
# Seguridad: el token de la API sólo vive en .env/.env.local. / Security: the API token only lives in .env/.env.local.
load_dotenv(_ENV_PATH, override=False)
load_dotenv(_ENV_LOCAL_PATH, override=False)


class TallyviewSettings(BaseSettings):
    """Variables de entorno y archivo .env para Tallyview.

    English: Environment variables and .env file for Tallyview.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    API_BASE_URL: str
    API_TOKEN: Optional[str] = None
    LOG_LEVEL: str = "INFO"
    STORAGE_PATH: Path = Path("data")
    REQUEST_TIMEOUT_SECONDS: float = Field(default=30.0, ge=1)
    RETRY_ATTEMPTS: int = Field(default=3, ge=1)
    REFRESH_INTERVAL_SECONDS: float = Field(default=1.0, gt=0)
    COUNTDOWN_INTERVAL_SECONDS: float = Field(default=1.0, gt=0)
    POSITION_CAROUSEL_SECONDS: float = Field(default=10.0, gt=0)
    BULLETIN_CAROUSEL_SECONDS: float = Field(default=5.0, gt=0)
    VOTER_CODES_PAGE_SIZE: int = Field(default=50, ge=1)
    CANDIDATE_CODES_PAGE_SIZE: int = Field(default=50, ge=1)
    RESULTS_PAGE_LIMIT: int = Field(default=10, ge=1)
    TIMEZONE: str = "Asia/Manila"

    @field_validator("API_BASE_URL")
    @classmethod
    def _validate_url(cls, value: str) -> str:
        """Valida la URL sin cambiar el tipo almacenado.

        English: Validate the URL without changing the stored type.
        """
        TypeAdapter(AnyUrl).validate_python(value)
        return value.rstrip("/")

    @field_validator("LOG_LEVEL")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("TIMEZONE")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    def validate_paths(self) -> None:
        """Valida que STORAGE_PATH, si existe, sea un directorio.

        English: Validate that STORAGE_PATH, when it exists, is a directory.
        """
        if self.STORAGE_PATH.exists() and not self.STORAGE_PATH.is_dir():
            raise ValueError(f"STORAGE_PATH is not a directory: {self.STORAGE_PATH}")


def load_config() -> TallyviewSettings:
    """Carga y valida configuración, fallando con detalle.

    English: Load and validate configuration, failing with details.
    """
    try:
        settings = TallyviewSettings()
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration: {exc}") from exc
    settings.validate_paths()
    return settings
