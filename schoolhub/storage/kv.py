from __future__ import annotations

from typing import Any, Iterator, Protocol, Tuple

Key = Tuple[str, ...]


class KeyValueStore(Protocol):
    """Ordered key-value capability the rest of the system is built on.

    Keys are tuples of strings compared element-wise, values are JSON-compatible
    objects. Every operation touches a single key atomically; ``list`` yields
    the entries under a key prefix in key order.
    """

    def get(self, key: Key) -> Any | None: ...

    def set(self, key: Key, value: Any) -> None: ...

    def delete(self, key: Key) -> None: ...

    def list(self, prefix: Key) -> Iterator[tuple[Key, Any]]: ...

    def verify_connection(self) -> None: ...

    def close(self) -> None: ...


def has_prefix(key: Key, prefix: Key) -> bool:
    return key[: len(prefix)] == prefix
