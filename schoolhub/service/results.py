from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, Type, TypeVar

from schoolhub.service.errors import (
    AuthenticationError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ServerError,
    ServiceError,
    ValidationError,
)

T = TypeVar("T")


class AuthFailure(str, Enum):
    """Failure categories returned by the auth service and session verifier."""

    VALIDATION = "validation_error"
    ALREADY_EXISTS = "already_exists"
    NOT_FOUND = "not_found"
    INVALID_CREDENTIALS = "invalid_credentials"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    STORE_FAILURE = "store_failure"


class RejectReason(str, Enum):
    """Why the session verifier refused a token, in check order."""

    MISSING = "missing"
    MALFORMED = "malformed"
    REVOKED = "revoked"
    BAD_SIGNATURE = "bad_signature"
    EXPIRED = "expired"
    UNKNOWN_USER = "unknown_user"
    INACTIVE_SESSION = "inactive_session"


_FAILURE_ERRORS: dict[AuthFailure, Type[ServiceError]] = {
    AuthFailure.VALIDATION: ValidationError,
    AuthFailure.ALREADY_EXISTS: ConflictError,
    AuthFailure.NOT_FOUND: NotFoundError,
    AuthFailure.INVALID_CREDENTIALS: AuthenticationError,
    AuthFailure.UNAUTHORIZED: AuthenticationError,
    AuthFailure.FORBIDDEN: ForbiddenError,
    AuthFailure.STORE_FAILURE: ServerError,
}


@dataclass(frozen=True)
class AuthResult(Generic[T]):
    """Success value or structured failure; lower-level exceptions never escape."""

    value: Optional[T] = None
    failure: Optional[AuthFailure] = None
    message: str = ""
    reason: Optional[RejectReason] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, value: Optional[T] = None, message: str = "") -> "AuthResult[T]":
        return cls(value=value, message=message)

    @classmethod
    def fail(
        cls,
        failure: AuthFailure,
        message: str,
        *,
        reason: Optional[RejectReason] = None,
    ) -> "AuthResult[T]":
        return cls(failure=failure, message=message, reason=reason)

    def raise_for_failure(self, public_message: Optional[str] = None) -> None:
        """Raise the ServiceError matching this failure; no-op on success.

        ``public_message`` replaces the internal message for callers that must
        not reveal which check failed.
        """
        if self.failure is None:
            return
        error_cls = _FAILURE_ERRORS[self.failure]
        message = public_message or self.message
        if self.failure is AuthFailure.STORE_FAILURE:
            message = public_message or "internal server error"
        raise error_cls(message)


__all__ = ["AuthFailure", "AuthResult", "RejectReason"]
