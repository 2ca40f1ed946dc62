from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional

from schoolhub.logging import get_logger
from schoolhub.service.results import AuthFailure, AuthResult, RejectReason
from schoolhub.service.revocation import RevocationLedger
from schoolhub.service.tokens import TokenCodec
from schoolhub.storage.errors import StoreError
from schoolhub.storage.users import CredentialStore

logger = get_logger(__name__)


@dataclass(frozen=True)
class AuthContext:
    username: str
    role: str


class SessionVerifier:
    """Admit or reject a bearer token.

    Checks run in a fixed order and stop at the first failure:
    well-formedness, revocation, signature and claims, expiry, owner
    existence, and finally membership in the owner's active tokens.
    """

    def __init__(
        self,
        codec: TokenCodec,
        ledger: RevocationLedger,
        credentials: CredentialStore,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.codec = codec
        self.ledger = ledger
        self.credentials = credentials
        self._clock = clock

    def _reject(self, reason: RejectReason) -> AuthResult[AuthContext]:
        logger.info("session_rejected", reason=reason.value)
        return AuthResult.fail(
            AuthFailure.UNAUTHORIZED, f"token rejected: {reason.value}", reason=reason
        )

    def verify(self, token: Optional[str]) -> AuthResult[AuthContext]:
        if not token:
            return self._reject(RejectReason.MISSING)
        if not self.codec.is_well_formed(token):
            return self._reject(RejectReason.MALFORMED)
        try:
            if self.ledger.is_revoked(token):
                return self._reject(RejectReason.REVOKED)
            claims = self.codec.parse(token)
            if claims is None:
                return self._reject(RejectReason.BAD_SIGNATURE)
            if claims.exp <= self._clock():
                return self._reject(RejectReason.EXPIRED)
            user = self.credentials.get_user(claims.username)
        except StoreError as exc:
            logger.error("session_verify_store_failed", error=exc.message)
            return AuthResult.fail(AuthFailure.STORE_FAILURE, "store unavailable")
        if user is None:
            return self._reject(RejectReason.UNKNOWN_USER)
        if token not in user.tokens:
            return self._reject(RejectReason.INACTIVE_SESSION)
        # Role comes from the stored record; the claim is only a snapshot
        return AuthResult.success(AuthContext(username=user.username, role=user.role))


__all__ = ["AuthContext", "SessionVerifier"]
