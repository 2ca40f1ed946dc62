from __future__ import annotations

import uuid
from typing import Any, List, Mapping, Optional

from argon2.exceptions import HashingError

from schoolhub.logging import get_logger
from schoolhub.service.passwords import PasswordHasher
from schoolhub.service.results import AuthFailure, AuthResult
from schoolhub.service.revocation import RevocationLedger
from schoolhub.service.tokens import TokenCodec
from schoolhub.storage.errors import StoreError
from schoolhub.storage.models import ROLES, User, build_user
from schoolhub.storage.users import CredentialStore

logger = get_logger(__name__)


class AuthService:
    """Registration, login, logout and account removal.

    Every operation returns an ``AuthResult``; store and hashing errors are
    logged and turned into ``store_failure`` results. Updates to a user record
    are read-modify-write without compare-and-swap, so concurrent logins or
    logouts for the same username resolve as last writer wins.
    """

    def __init__(
        self,
        credentials: CredentialStore,
        hasher: PasswordHasher,
        codec: TokenCodec,
        ledger: RevocationLedger,
    ) -> None:
        self.credentials = credentials
        self.hasher = hasher
        self.codec = codec
        self.ledger = ledger
        self.logger = logger

    def _store_failure(self, event: str, exc: Exception, **fields: Any) -> AuthResult[Any]:
        self.logger.error(event, error=str(exc), **fields)
        return AuthResult.fail(AuthFailure.STORE_FAILURE, "store unavailable")

    def register(
        self,
        username: str,
        password: str,
        role: str,
        role_attributes: Optional[Mapping[str, Any]] = None,
    ) -> AuthResult[User]:
        if not username or not password:
            return AuthResult.fail(AuthFailure.VALIDATION, "username and password are required")
        if role not in ROLES:
            return AuthResult.fail(AuthFailure.VALIDATION, f"invalid role: {role}")
        try:
            if self.credentials.exists(username):
                self.logger.info("register_conflict", username=username)
                return AuthResult.fail(AuthFailure.ALREADY_EXISTS, "User already exists")
            password_hash = self.hasher.hash(password)
            user = build_user(
                role,
                id=str(uuid.uuid4()),
                username=username,
                password_hash=password_hash,
                attributes=role_attributes,
            )
            self.credentials.save_user(user)
        except ValueError as exc:
            return AuthResult.fail(AuthFailure.VALIDATION, str(exc))
        except HashingError as exc:
            return self._store_failure("password_hash_failed", exc, username=username)
        except StoreError as exc:
            return self._store_failure("register_store_failed", exc, username=username)
        self.logger.info("user_registered", username=username, role=role)
        return AuthResult.success(user, "User registered successfully")

    def login(self, username: str, password: str) -> AuthResult[str]:
        try:
            user = self.credentials.get_user(username)
            if user is None:
                self.logger.info("login_failed", username=username, reason="not_found")
                return AuthResult.fail(AuthFailure.NOT_FOUND, "User not found")
            if not self.hasher.verify(password, user.password_hash):
                self.logger.info("login_failed", username=username, reason="invalid_credentials")
                return AuthResult.fail(AuthFailure.INVALID_CREDENTIALS, "Invalid password")
            token = self.codec.issue(user.username, user.role)
            user.tokens.append(token)
            self.credentials.save_user(user)
        except StoreError as exc:
            return self._store_failure("login_store_failed", exc, username=username)
        self.logger.info("login_succeeded", username=username, active_sessions=len(user.tokens))
        return AuthResult.success(token)

    def logout(self, token: Optional[str]) -> AuthResult[None]:
        if not token or not self.codec.is_well_formed(token):
            return AuthResult.fail(AuthFailure.UNAUTHORIZED, "Invalid token")
        claims = self.codec.parse(token)
        if claims is None:
            return AuthResult.fail(AuthFailure.UNAUTHORIZED, "Invalid token")
        try:
            user = self.credentials.get_user(claims.username)
            if user is not None and token in user.tokens:
                user.tokens.remove(token)
                self.credentials.save_user(user)
            # Revoked even when the owner is gone so the token can never be replayed
            self.ledger.revoke(token)
        except StoreError as exc:
            return self._store_failure("logout_store_failed", exc, username=claims.username)
        if user is None:
            self.logger.info("logout_unknown_user", username=claims.username)
            return AuthResult.fail(AuthFailure.NOT_FOUND, "User not found")
        self.logger.info("logout_succeeded", username=user.username)
        return AuthResult.success(None, "Logout successful")

    def delete_user(self, username: str) -> AuthResult[None]:
        try:
            user = self.credentials.get_user(username)
            if user is None:
                return AuthResult.fail(AuthFailure.NOT_FOUND, "User not found")
            for token in user.tokens:
                self.ledger.revoke(token)
            self.credentials.delete_user(username)
        except StoreError as exc:
            return self._store_failure("delete_user_store_failed", exc, username=username)
        self.logger.info("user_deleted", username=username, revoked_tokens=len(user.tokens))
        return AuthResult.success(None, f"User {username} deleted successfully")

    def list_users(self) -> AuthResult[List[User]]:
        try:
            users = self.credentials.list_users()
        except StoreError as exc:
            return self._store_failure("list_users_store_failed", exc)
        return AuthResult.success(users)


__all__ = ["AuthService"]
