from __future__ import annotations

from schoolhub.storage.kv import KeyValueStore

BLACKLIST_PREFIX = ("blacklisted_tokens",)


class RevocationLedger:
    """Permanent blacklist of tokens; there is no un-revoke."""

    def __init__(self, kv: KeyValueStore) -> None:
        self.kv = kv

    def revoke(self, token: str) -> None:
        self.kv.set((*BLACKLIST_PREFIX, token), True)

    def is_revoked(self, token: str) -> bool:
        return bool(self.kv.get((*BLACKLIST_PREFIX, token)))


__all__ = ["RevocationLedger"]
