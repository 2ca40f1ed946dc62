from __future__ import annotations

import json
from typing import Any, Iterator, Optional
from urllib.parse import quote, unquote

from redis import Redis
from redis.exceptions import RedisError

from schoolhub.logging import get_logger
from schoolhub.storage.errors import StoreError
from schoolhub.storage.kv import Key

logger = get_logger(__name__)


class RedisStore:
    """Key-value store backed by Redis string keys holding JSON values.

    Tuple keys are flattened as ``namespace:part1:part2`` with every part
    percent-encoded, so separators and glob metacharacters inside a part
    cannot collide with the key structure or with SCAN patterns.
    """

    def __init__(
        self,
        redis_url: str,
        *,
        namespace: str = "schoolhub",
        socket_timeout: float = 5.0,
        client: Optional[Redis] = None,
    ):
        self.redis_url = redis_url
        self.namespace = namespace
        self.client = client or Redis.from_url(
            redis_url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )

    def _encode_key(self, key: Key) -> str:
        return ":".join([self.namespace, *(quote(part, safe="") for part in key)])

    def _decode_key(self, raw: str) -> Key:
        parts = raw.split(":")[1:]
        return tuple(unquote(part) for part in parts)

    def _pattern(self, prefix: Key) -> str:
        if not prefix:
            return f"{self.namespace}:*"
        return f"{self._encode_key(prefix)}:*"

    def get(self, key: Key) -> Any | None:
        try:
            raw = self.client.get(self._encode_key(key))
        except RedisError as exc:
            logger.error("redis_get_failed", key_kind=key[0] if key else None, error=str(exc))
            raise StoreError("key-value store unavailable") from exc
        if raw is None:
            return None
        return self._decode_value(key, raw)

    def _decode_value(self, key: Key, raw: Any) -> Any:
        try:
            return json.loads(raw)
        except ValueError as exc:
            logger.error("redis_value_corrupt", key_kind=key[0] if key else None, error=str(exc))
            raise StoreError("corrupt value in key-value store") from exc

    def set(self, key: Key, value: Any) -> None:
        try:
            self.client.set(self._encode_key(key), json.dumps(value))
        except RedisError as exc:
            logger.error("redis_set_failed", key_kind=key[0] if key else None, error=str(exc))
            raise StoreError("key-value store unavailable") from exc

    def delete(self, key: Key) -> None:
        try:
            self.client.delete(self._encode_key(key))
        except RedisError as exc:
            logger.error("redis_delete_failed", key_kind=key[0] if key else None, error=str(exc))
            raise StoreError("key-value store unavailable") from exc

    def list(self, prefix: Key) -> Iterator[tuple[Key, Any]]:
        try:
            raw_keys = sorted(self.client.scan_iter(match=self._pattern(prefix)))
            entries = []
            for raw_key in raw_keys:
                raw = self.client.get(raw_key)
                # Key may have been deleted between SCAN and GET
                if raw is None:
                    continue
                key = self._decode_key(raw_key)
                entries.append((key, self._decode_value(key, raw)))
        except RedisError as exc:
            logger.error("redis_list_failed", prefix=list(prefix), error=str(exc))
            raise StoreError("key-value store unavailable") from exc
        entries.sort(key=lambda item: item[0])
        return iter(entries)

    def verify_connection(self) -> None:
        """Assert Redis connectivity before serving requests."""
        try:
            self.client.ping()
        except RedisError as exc:
            raise StoreError("key-value store unavailable") from exc

    def close(self) -> None:
        self.client.close()


__all__ = ["RedisStore"]
