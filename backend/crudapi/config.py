"""Application settings and validation.

This module defines the application configuration using Pydantic's
BaseSettings. Values come from environment variables and, optionally, a
properties file of `key=value` lines (dotenv syntax). Environment
variables always win over the file.

Datastore settings accept either their environment name
(`DATABASE_URL`) or a dotted properties key (`datasource.url`).
"""

import os
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE = Path(__file__).resolve().parent.parent
DEFAULT_DB_URL = f"sqlite:///{BASE / 'crudapi.db'}"
SCHEMA_MODES = ("create", "create-drop", "update", "validate", "none")


def _key(env_name: str, property_key: str) -> AliasChoices:
    return AliasChoices(env_name, property_key)


class Settings(BaseSettings):
    """
    Application settings model.

    Pass `_env_file=<path>` to read a properties file; `load_settings`
    resolves the default one.
    """

    model_config = SettingsConfigDict(
        env_file=None,
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
    )

    ENV: str = Field(default="dev")
    LOG_LEVEL: str = Field(default="INFO", validation_alias=_key("LOG_LEVEL", "log.level"))

    # datastore
    DATABASE_URL: str = Field(default=DEFAULT_DB_URL, validation_alias=_key("DATABASE_URL", "datasource.url"))
    DATABASE_USERNAME: Optional[str] = Field(
        default=None, validation_alias=_key("DATABASE_USERNAME", "datasource.username")
    )
    DATABASE_PASSWORD: Optional[str] = Field(
        default=None, validation_alias=_key("DATABASE_PASSWORD", "datasource.password")
    )
    SCHEMA_MODE: str = Field(default="update", validation_alias=_key("SCHEMA_MODE", "schema.mode"))

    # auth
    JWT_SECRET: str = Field(default="change_me_for_prod", validation_alias=_key("JWT_SECRET", "jwt.secret"))
    JWT_ALGORITHM: str = Field(default="HS256")
    JWT_EXPIRE_HOURS: int = Field(default=24, ge=1)
    ALLOW_INSECURE_JWT: bool = Field(default=False)
    ALLOW_DEV_CORS: bool = Field(default=True)

    @field_validator("ENV", "SCHEMA_MODE")
    @classmethod
    def _lower(cls, v: str) -> str:
        return v.lower()

    @field_validator("LOG_LEVEL")
    @classmethod
    def _upper(cls, v: str) -> str:
        return v.upper()

    @field_validator("DATABASE_USERNAME", "DATABASE_PASSWORD")
    @classmethod
    def _blank_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @model_validator(mode="after")
    def _validate(self):
        if self.SCHEMA_MODE not in SCHEMA_MODES:
            raise ValueError(
                f"SCHEMA_MODE must be one of {', '.join(SCHEMA_MODES)}; got {self.SCHEMA_MODE!r}"
            )
        if self.ENV != "dev" and not self.ALLOW_INSECURE_JWT and self.JWT_SECRET == "change_me_for_prod":
            raise ValueError("JWT_SECRET must be set to a non-default value in non-dev environments")
        return self


def properties_path() -> Optional[Path]:
    """Return the properties file to read, if any.

    `APP_PROPERTIES` names the file explicitly and must exist; otherwise
    `application.properties` in the working directory is used when present.
    """
    raw = os.getenv("APP_PROPERTIES", "").strip()
    if raw:
        path = Path(raw)
        if not path.exists():
            raise RuntimeError(f"properties file not found: {path}")
        return path
    path = Path.cwd() / "application.properties"
    return path if path.exists() else None


def load_settings(path: Optional[Path] = None) -> Settings:
    return Settings(_env_file=path or properties_path())


settings = load_settings()
