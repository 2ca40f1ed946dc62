from __future__ import annotations

import threading
from typing import Optional
from urllib.parse import urlparse, urlunparse

from schoolhub.config import KVBackend, get_settings, reset_settings_cache
from schoolhub.logging import get_logger
from schoolhub.service.auth import AuthService
from schoolhub.service.passwords import PasswordHasher
from schoolhub.service.revocation import RevocationLedger
from schoolhub.service.sessions import SessionVerifier
from schoolhub.service.tokens import SigningKey, TokenCodec
from schoolhub.storage.errors import StoreError
from schoolhub.storage.kv import KeyValueStore
from schoolhub.storage.memory import MemoryStore
from schoolhub.storage.messages import MessageStore
from schoolhub.storage.redis_store import RedisStore
from schoolhub.storage.schedules import ScheduleStore
from schoolhub.storage.users import CredentialStore

logger = get_logger(__name__)


def _mask_url_password(url: Optional[str]) -> Optional[str]:
    """Mask the password component of a URL for logging.

    Example: redis://:mypassword@localhost:6379 -> redis://:***@localhost:6379
    """
    if not url:
        return url
    try:
        parsed = urlparse(url)
    except ValueError:
        return "***url_parse_error***"
    if not parsed.password:
        return url
    netloc = parsed.hostname or ""
    if parsed.port:
        netloc = f"{netloc}:{parsed.port}"
    netloc = f"{parsed.username or ''}:***@{netloc}"
    return urlunparse(
        (parsed.scheme, netloc, parsed.path, parsed.params, parsed.query, parsed.fragment)
    )


class Runtime:
    """Holds singleton service instances for the FastAPI app."""

    def __init__(self):
        self.settings = get_settings()
        logger.info(
            "runtime_init_started",
            kv_backend=self.settings.kv_backend.value,
            test_mode=self.settings.test_mode,
        )

        self.kv = self._build_store()
        self.credentials = CredentialStore(self.kv)
        self.ledger = RevocationLedger(self.kv)
        self.hasher = PasswordHasher()
        self.codec = TokenCodec(
            SigningKey.from_secret(self.settings.jwt_secret),
            ttl_seconds=self.settings.token_ttl_seconds,
        )
        self.verifier = SessionVerifier(self.codec, self.ledger, self.credentials)
        self.auth = AuthService(self.credentials, self.hasher, self.codec, self.ledger)
        self.messages = MessageStore(self.kv)
        self.schedules = ScheduleStore(self.kv)

        logger.info(
            "runtime_initialized",
            kv_backend=self.settings.kv_backend.value,
            token_ttl_seconds=self.settings.token_ttl_seconds,
            allow_registration=self.settings.allow_registration,
        )

    def _build_store(self) -> KeyValueStore:
        if self.settings.kv_backend == KVBackend.REDIS:
            store = RedisStore(
                self.settings.redis_url, namespace=self.settings.redis_namespace
            )
            try:
                store.verify_connection()
            except StoreError as exc:
                logger.error(
                    "redis_connection_failed",
                    redis_url=_mask_url_password(self.settings.redis_url),
                    error=exc.message,
                )
                raise
            logger.info(
                "redis_connected", redis_url=_mask_url_password(self.settings.redis_url)
            )
            return store
        state_dir = self.settings.data_dir if self.settings.persist_memory_store else None
        return MemoryStore(state_dir=state_dir)

    def close(self) -> None:
        self.kv.close()


runtime: Runtime | None = None
_runtime_lock = threading.Lock()


def get_runtime() -> Runtime:
    """Get or create the Runtime singleton in a thread-safe manner.

    Uses double-checked locking: the fast path skips the lock once the
    runtime exists.
    """
    global runtime
    if runtime is not None:
        return runtime
    with _runtime_lock:
        if runtime is None:
            runtime = Runtime()
        return runtime


def reset_runtime_for_tests() -> Runtime:
    """Reinitialize the runtime singleton for isolated test runs."""
    global runtime

    with _runtime_lock:
        if runtime is not None:
            runtime.close()
        reset_settings_cache()
        settings = get_settings()
        if not settings.test_mode:
            raise RuntimeError("runtime reset is only allowed in TEST_MODE")
        runtime = Runtime()
        return runtime


__all__ = ["Runtime", "get_runtime", "reset_runtime_for_tests"]
