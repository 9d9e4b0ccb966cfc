"""Runtime settings read from the environment."""

import os
from typing import List, Mapping, Optional

from pydantic import BaseModel, Field, field_validator

from .llm import DEFAULT_MODEL

# setting name -> environment variable
ENVIRONMENT_VARIABLES = {
    "api_key": "OPENROUTER_API_KEY",
    "base_url": "REVA_BASE_URL",
    "model": "REVA_MODEL",
    "max_tokens": "REVA_MAX_TOKENS",
    "temperature": "REVA_TEMPERATURE",
    "timeout": "REVA_TIMEOUT",
    "history_limit": "REVA_HISTORY_LIMIT",
    "environment": "REVA_ENV",
    "debug_routes": "REVA_DEBUG_ROUTES",
    "cors_origins": "REVA_CORS_ORIGINS",
    "log_level": "REVA_LOG_LEVEL",
    "port": "PORT",
    "host": "HOST",
}


class Settings(BaseModel):
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    model: str = DEFAULT_MODEL
    max_tokens: int = Field(1000, gt=0)
    temperature: float = Field(0.7, ge=0, le=2)
    timeout: float = Field(30.0, gt=0)
    history_limit: int = Field(5, ge=0)
    environment: str = "development"
    debug_routes: bool = False
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    port: int = Field(3001, gt=0, lt=65536)
    host: str = "0.0.0.0"

    @field_validator("api_key", "base_url", mode="before")
    @classmethod
    def _blank_is_unset(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, value):
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("environment", "log_level", mode="before")
    @classmethod
    def _normalise(cls, value, info):
        if not isinstance(value, str):
            return value
        value = value.strip()
        return value.upper() if info.field_name == "log_level" else value.lower()

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def include_error_details(self) -> bool:
        """Whether error responses may carry failure reasons and parameters."""
        return not self.is_production

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Builds settings from ``environ`` (``os.environ`` by default).

        Unset variables keep their defaults. Invalid values raise
        ``pydantic.ValidationError``.
        """
        environ = os.environ if environ is None else environ
        values = {
            name: environ[variable]
            for name, variable in ENVIRONMENT_VARIABLES.items()
            if variable in environ
        }
        return cls.model_validate(values)
