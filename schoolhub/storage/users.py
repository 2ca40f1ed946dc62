from __future__ import annotations

from typing import List, Optional

from schoolhub.storage.kv import KeyValueStore
from schoolhub.storage.models import User, user_from_record, user_to_record

USERS_PREFIX = ("users",)


class CredentialStore:
    """User records keyed by username on top of the key-value store."""

    def __init__(self, kv: KeyValueStore) -> None:
        self.kv = kv

    def get_user(self, username: str) -> Optional[User]:
        record = self.kv.get((*USERS_PREFIX, username))
        if not record:
            return None
        return user_from_record(record)

    def exists(self, username: str) -> bool:
        return bool(self.kv.get((*USERS_PREFIX, username)))

    def save_user(self, user: User) -> None:
        self.kv.set((*USERS_PREFIX, user.username), user_to_record(user))

    def delete_user(self, username: str) -> None:
        self.kv.delete((*USERS_PREFIX, username))

    def list_users(self) -> List[User]:
        return [user_from_record(record) for _, record in self.kv.list(USERS_PREFIX)]


__all__ = ["CredentialStore"]
