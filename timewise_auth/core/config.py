# timewise_auth/core/config.py
import os
import re
from functools import lru_cache
from typing import ClassVar, List

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from timewise_auth.core.errors import ConfigError

load_dotenv()

_LIFETIME_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h|d)?\s*$", re.IGNORECASE)
_UNIT_SECONDS = {"ms": 0.001, "s": 1, "m": 60, "h": 3600, "d": 86400}

def parse_lifetime(value: str) -> float:
    """
    Converte "24h", "15m", "7d", "500ms" ou "3600" (segundos) para segundos.
    """
    match = _LIFETIME_RE.match(str(value))
    if not match:
        raise ConfigError(f"Invalid token lifetime: {value!r}")
    amount, unit = match.groups()
    return float(amount) * _UNIT_SECONDS[(unit or "s").lower()]

def _bool_env(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}

def _default_database_url() -> str:
    data_dir = os.path.abspath(os.getenv("DATA_DIR", "./data"))
    return os.getenv("DATABASE_URL", f"sqlite:///{os.path.join(data_dir, 'auth.db')}")

class Settings(BaseModel):
    # defaults vindos do ambiente também passam pelos validators
    model_config = {"validate_default": True}

    MIN_SECRET_LENGTH: ClassVar[int] = 32

    # segredo obrigatório: sem fallback hardcoded
    SECRET_KEY: str = Field(default_factory=lambda: os.getenv("SECRET_KEY", ""))
    JWT_ALGORITHM: str = Field(default_factory=lambda: os.getenv("JWT_ALGORITHM", "HS256"))
    ACCESS_TOKEN_LIFETIME: str = Field(default_factory=lambda: os.getenv("ACCESS_TOKEN_LIFETIME", "24h"))
    REFRESH_TOKEN_EXPIRE_DAYS: int = Field(default_factory=lambda: int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "7")))

    TOKEN_STORE_BACKEND: str = Field(default_factory=lambda: os.getenv("TOKEN_STORE_BACKEND", "memory"))
    TOKEN_SWEEP_INTERVAL_SECONDS: int = Field(default_factory=lambda: int(os.getenv("TOKEN_SWEEP_INTERVAL_SECONDS", "300")))
    TOKEN_RATE_LIMIT: int = Field(default_factory=lambda: int(os.getenv("TOKEN_RATE_LIMIT", "20")))
    TOKEN_RATE_WINDOW_SECONDS: int = Field(default_factory=lambda: int(os.getenv("TOKEN_RATE_WINDOW_SECONDS", "60")))

    DATABASE_URL: str = Field(default_factory=_default_database_url)
    AUTO_MIGRATE: bool = Field(default_factory=lambda: _bool_env("AUTO_MIGRATE", "true"))
    ADMIN_EMAIL: str | None = Field(default_factory=lambda: os.getenv("ADMIN_EMAIL") or None)
    ADMIN_PASSWORD: str | None = Field(default_factory=lambda: os.getenv("ADMIN_PASSWORD") or None)

    LOG_LEVEL: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    LOG_JSON: bool = Field(default_factory=lambda: _bool_env("LOG_JSON", "true"))
    METRICS_ENABLED: bool = Field(default_factory=lambda: _bool_env("METRICS_ENABLED", "true"))
    CORS_ORIGINS: List[str] = Field(
        default_factory=lambda: [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
    )

    @field_validator("SECRET_KEY")
    @classmethod
    def _secret_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ConfigError("SECRET_KEY is not set; refusing to start with a default signing secret")
        if len(v) < cls.MIN_SECRET_LENGTH:
            raise ConfigError(f"SECRET_KEY must be at least {cls.MIN_SECRET_LENGTH} characters")
        return v

    @field_validator("JWT_ALGORITHM")
    @classmethod
    def _hmac_only(cls, v: str) -> str:
        if v not in {"HS256", "HS384", "HS512"}:
            raise ConfigError(f"Unsupported JWT_ALGORITHM: {v}")
        return v

    @field_validator("ACCESS_TOKEN_LIFETIME")
    @classmethod
    def _lifetime_parses(cls, v: str) -> str:
        parse_lifetime(v)
        return v

    @field_validator("REFRESH_TOKEN_EXPIRE_DAYS")
    @classmethod
    def _refresh_days_positive(cls, v: int) -> int:
        if v <= 0:
            raise ConfigError("REFRESH_TOKEN_EXPIRE_DAYS must be positive")
        return v

    @field_validator("TOKEN_STORE_BACKEND")
    @classmethod
    def _known_backend(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in {"memory", "database"}:
            raise ConfigError(f"Unknown TOKEN_STORE_BACKEND: {v}")
        return v

    @property
    def access_token_seconds(self) -> float:
        return parse_lifetime(self.ACCESS_TOKEN_LIFETIME)

    @property
    def refresh_token_seconds(self) -> float:
        return self.REFRESH_TOKEN_EXPIRE_DAYS * 86400

@lru_cache
def get_settings() -> Settings:
    return Settings()
