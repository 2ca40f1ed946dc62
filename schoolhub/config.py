from __future__ import annotations

import os
import secrets
import tempfile
from enum import Enum
from pathlib import Path
from typing import Any, List

from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field, field_validator

from schoolhub.logging import get_logger

logger = get_logger(__name__)

DEFAULT_DATA_DIR = "/var/lib/schoolhub"
# One year
DEFAULT_TOKEN_TTL_SECONDS = 60 * 60 * 24 * 365
MIN_SECRET_LENGTH = 32


class KVBackend(str, Enum):
    """Key-value store implementations the runtime can wire in."""

    MEMORY = "memory"
    REDIS = "redis"


def env_field(default: Any, env: str, **kwargs):
    extra = kwargs.pop("json_schema_extra", {}) or {}
    extra = {**extra, "env": env}
    return Field(default, json_schema_extra=extra, **kwargs)


class Settings(BaseModel):
    """Runtime settings, read once from the environment."""

    data_dir: str = env_field(DEFAULT_DATA_DIR, "DATA_DIR")
    kv_backend: KVBackend = env_field(KVBackend.MEMORY, "KV_BACKEND")
    redis_url: str = env_field("redis://localhost:6379/0", "REDIS_URL")
    redis_namespace: str = env_field("schoolhub", "REDIS_NAMESPACE")
    persist_memory_store: bool = env_field(
        False,
        "PERSIST_MEMORY_STORE",
        description="Write the in-memory key-value state to DATA_DIR/state on every change",
    )
    jwt_secret: str = env_field(None, "JWT_SECRET", repr=False, validate_default=True)
    token_ttl_seconds: int = env_field(
        DEFAULT_TOKEN_TTL_SECONDS, "TOKEN_TTL_SECONDS", gt=0
    )
    allow_registration: bool = env_field(True, "ALLOW_REGISTRATION")
    cors_allow_origins: List[str] = env_field([], "CORS_ALLOW_ORIGINS")
    test_mode: bool = env_field(False, "TEST_MODE")

    model_config = ConfigDict(extra="ignore")

    @classmethod
    def from_env(cls) -> "Settings":
        env_file_values = dotenv_values(".env")
        merged: dict[str, str] = {}
        for name, field in cls.model_fields.items():
            extra = field.json_schema_extra or {}
            env_key = extra.get("env") if isinstance(extra, dict) else None
            env_name = env_key or name.upper()
            if env_name in os.environ:
                merged[name] = os.environ[env_name]
            elif env_name in env_file_values:
                merged[name] = env_file_values[env_name]
        return cls(**merged)

    @field_validator("kv_backend")
    @classmethod
    def _validate_backend(cls, value: KVBackend) -> KVBackend:
        return KVBackend(value)

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("jwt_secret", mode="before")
    @classmethod
    def _ensure_jwt_secret(cls, value: str | None) -> str:
        if value:
            if len(value) < MIN_SECRET_LENGTH:
                logger.warning("jwt_secret_short", min_length=MIN_SECRET_LENGTH)
            return value
        # Persist a generated secret so tokens remain valid across restarts
        data_dir = Path(os.getenv("DATA_DIR", DEFAULT_DATA_DIR))
        secret_path = data_dir / ".jwt_secret"

        try:
            data_dir.mkdir(parents=True, exist_ok=True)
            os.chmod(data_dir, 0o700)
        except PermissionError:
            # Directory may already exist with different permissions (e.g., in container)
            pass
        except OSError as exc:
            logger.warning("jwt_secret_dir_setup", error=str(exc), path=str(data_dir))

        if secret_path.exists() and not secret_path.is_symlink():
            try:
                persisted = secret_path.read_text().strip()
                if persisted and len(persisted) >= MIN_SECRET_LENGTH:
                    return persisted
            except OSError as exc:
                logger.error("jwt_secret_read_failed", error=str(exc), path=str(secret_path))

        generated = secrets.token_urlsafe(64)
        tmp_path: str | None = None
        try:
            # Write to a temp file then rename so readers never see a partial secret
            fd, tmp_path = tempfile.mkstemp(
                dir=str(data_dir), prefix=".jwt_secret_", suffix=".tmp"
            )
            try:
                os.write(fd, generated.encode())
                os.fchmod(fd, 0o600)
            finally:
                os.close(fd)
            os.rename(tmp_path, str(secret_path))
        except OSError as exc:
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            logger.error("jwt_secret_persist_failed", error=str(exc), path=str(secret_path))
            raise RuntimeError(
                "Unable to persist JWT secret; set JWT_SECRET env var or make DATA_DIR writable"
            ) from exc
        logger.info("jwt_secret_generated", path=str(secret_path))
        return generated


def get_settings() -> Settings:
    global _settings_cache
    if _settings_cache is None:
        _settings_cache = Settings.from_env()
    return _settings_cache


_settings_cache: Settings | None = None


def reset_settings_cache() -> None:
    """Clear cached settings so future calls re-read the environment."""

    global _settings_cache
    _settings_cache = None
