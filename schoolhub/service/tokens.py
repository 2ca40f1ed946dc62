from __future__ import annotations

import base64
import hashlib
import hmac
import json
import secrets
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from schoolhub.logging import get_logger

logger = get_logger(__name__)

JWT_HEADER = {"alg": "HS256", "typ": "JWT"}


@dataclass(frozen=True)
class SigningKey:
    """HMAC key material; kept out of reprs and logs."""

    secret: bytes = field(repr=False)

    @classmethod
    def from_secret(cls, secret: str) -> "SigningKey":
        if not secret:
            raise ValueError("signing secret must not be empty")
        return cls(secret.encode("utf-8"))

    def __repr__(self) -> str:
        return "SigningKey(<redacted>)"


@dataclass(frozen=True)
class TokenClaims:
    username: str
    role: str
    exp: float
    iat: Optional[float] = None
    jti: Optional[str] = None


def _encode_segment(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("utf-8").rstrip("=")


def _decode_segment(segment: str) -> bytes:
    padding = "=" * ((4 - len(segment) % 4) % 4)
    return base64.urlsafe_b64decode(segment + padding)


def _dump(data: dict[str, Any]) -> str:
    return _encode_segment(json.dumps(data, separators=(",", ":")).encode())


class TokenCodec:
    """HS256 token issue/parse.

    ``parse`` validates structure, header, signature and claim types but not
    expiry; the session verifier compares ``exp`` against its own clock so a
    revoked token can be reported as revoked regardless of its age.
    """

    def __init__(
        self,
        key: SigningKey,
        *,
        ttl_seconds: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._key = key
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def _sign(self, signing_input: str) -> str:
        digest = hmac.new(self._key.secret, signing_input.encode(), hashlib.sha256).digest()
        return _encode_segment(digest)

    def issue(self, username: str, role: str) -> str:
        now = self._clock()
        payload = {
            "username": username,
            "role": role,
            "exp": int(now + self.ttl_seconds),
            "iat": int(now),
            "jti": secrets.token_urlsafe(16),
        }
        signing_input = f"{_dump(JWT_HEADER)}.{_dump(payload)}"
        return f"{signing_input}.{self._sign(signing_input)}"

    @staticmethod
    def is_well_formed(token: Optional[str]) -> bool:
        if not token or not isinstance(token, str):
            return False
        parts = token.split(".")
        return len(parts) == 3 and all(parts)

    def parse(self, token: str) -> Optional[TokenClaims]:
        if not self.is_well_formed(token):
            return None
        header_b64, payload_b64, sig_b64 = token.split(".")

        try:
            header = json.loads(_decode_segment(header_b64))
        except (ValueError, UnicodeDecodeError):
            logger.warning("jwt_header_decode_failed")
            return None
        if not isinstance(header, dict) or header.get("alg") != "HS256":
            logger.warning(
                "jwt_invalid_algorithm",
                alg=header.get("alg") if isinstance(header, dict) else None,
            )
            return None

        expected_sig = self._sign(f"{header_b64}.{payload_b64}")
        if not hmac.compare_digest(expected_sig, sig_b64):
            return None

        try:
            payload = json.loads(_decode_segment(payload_b64))
        except (ValueError, UnicodeDecodeError) as exc:
            logger.warning("jwt_payload_decode_failed", error=str(exc))
            return None
        if not isinstance(payload, dict):
            return None

        username = payload.get("username")
        role = payload.get("role")
        exp = payload.get("exp")
        if not isinstance(username, str) or not isinstance(role, str):
            return None
        if isinstance(exp, bool) or not isinstance(exp, (int, float)):
            return None
        iat = payload.get("iat")
        return TokenClaims(
            username=username,
            role=role,
            exp=float(exp),
            iat=float(iat) if isinstance(iat, (int, float)) and not isinstance(iat, bool) else None,
            jti=payload.get("jti") if isinstance(payload.get("jti"), str) else None,
        )


__all__ = ["SigningKey", "TokenClaims", "TokenCodec"]
