"""Unit tests for password hashing and the HS256 token codec."""

import base64
import json

import pytest

from schoolhub.service.passwords import PasswordHasher
from schoolhub.service.tokens import SigningKey, TokenCodec

SECRET = "unit-test-signing-secret-0123456789abcdef"


class FrozenClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def _segment(data: dict) -> str:
    raw = json.dumps(data, separators=(",", ":")).encode()
    return base64.urlsafe_b64encode(raw).decode().rstrip("=")


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def codec(clock):
    return TokenCodec(SigningKey.from_secret(SECRET), ttl_seconds=3600, clock=clock)


class TestPasswordHasher:
    """Tests for argon2 hashing."""

    def test_hash_is_salted(self):
        hasher = PasswordHasher()
        first = hasher.hash("pw1")
        second = hasher.hash("pw1")
        assert first != second
        assert first.startswith("$argon2id$")

    def test_verify_accepts_correct_password(self):
        hasher = PasswordHasher()
        assert hasher.verify("pw1", hasher.hash("pw1")) is True

    def test_verify_rejects_wrong_password(self):
        hasher = PasswordHasher()
        assert hasher.verify("wrong", hasher.hash("pw1")) is False

    def test_verify_never_raises_on_malformed_hash(self):
        hasher = PasswordHasher()
        assert hasher.verify("pw1", "not-a-hash") is False
        assert hasher.verify("pw1", "") is False


class TestSigningKey:
    def test_repr_hides_secret(self):
        key = SigningKey.from_secret(SECRET)
        assert SECRET not in repr(key)
        assert "redacted" in repr(key)

    def test_empty_secret_rejected(self):
        with pytest.raises(ValueError):
            SigningKey.from_secret("")


class TestTokenCodec:
    """Tests for token issue and parse."""

    def test_issue_round_trips_claims(self, codec, clock):
        token = codec.issue("alice", "student")
        claims = codec.parse(token)
        assert claims is not None
        assert claims.username == "alice"
        assert claims.role == "student"
        assert claims.exp == clock.now + 3600

    def test_each_issue_is_distinct(self, codec):
        assert codec.issue("alice", "student") != codec.issue("alice", "student")

    def test_header_is_hs256(self, codec):
        header_b64 = codec.issue("alice", "student").split(".")[0]
        padded = header_b64 + "=" * (-len(header_b64) % 4)
        assert json.loads(base64.urlsafe_b64decode(padded)) == {"alg": "HS256", "typ": "JWT"}

    def test_parse_does_not_check_expiry(self, codec, clock):
        token = codec.issue("alice", "student")
        clock.now += 10 * 3600
        assert codec.parse(token) is not None

    def test_parse_rejects_other_key(self, codec, clock):
        other = TokenCodec(SigningKey.from_secret("another-secret-of-sufficient-length!!"), ttl_seconds=60, clock=clock)
        assert codec.parse(other.issue("alice", "student")) is None

    def test_parse_rejects_tampered_payload(self, codec):
        header, _, signature = codec.issue("alice", "student").split(".")
        forged = _segment({"username": "alice", "role": "admin", "exp": 9_999_999_999})
        assert codec.parse(f"{header}.{forged}.{signature}") is None

    def test_parse_rejects_none_algorithm(self, codec):
        _, payload, signature = codec.issue("alice", "student").split(".")
        header = _segment({"alg": "none", "typ": "JWT"})
        assert codec.parse(f"{header}.{payload}.{signature}") is None

    def test_parse_rejects_missing_claims(self, codec):
        # Correctly signed, but the payload lacks a role
        header = _segment({"alg": "HS256", "typ": "JWT"})
        payload = _segment({"username": "alice", "exp": 9_999_999_999})
        signature = codec._sign(f"{header}.{payload}")
        assert codec.parse(f"{header}.{payload}.{signature}") is None

    def test_parse_rejects_garbage(self, codec):
        assert codec.parse("a.b.c") is None
        assert codec.parse("not-a-token") is None

    @pytest.mark.parametrize(
        "token,expected",
        [
            ("a.b.c", True),
            ("a.b", False),
            ("a..c", False),
            ("a.b.c.d", False),
            ("", False),
            (None, False),
        ],
    )
    def test_is_well_formed(self, token, expected):
        assert TokenCodec.is_well_formed(token) is expected
