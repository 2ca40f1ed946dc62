"""Tests for the token revocation ledger."""

from schoolhub.service.revocation import RevocationLedger
from schoolhub.storage.memory import MemoryStore


def test_unknown_token_is_not_revoked():
    ledger = RevocationLedger(MemoryStore())
    assert ledger.is_revoked("a.b.c") is False


def test_revoke_is_idempotent():
    kv = MemoryStore()
    ledger = RevocationLedger(kv)
    ledger.revoke("a.b.c")
    ledger.revoke("a.b.c")
    assert ledger.is_revoked("a.b.c") is True
    assert list(kv.list(("blacklisted_tokens",))) == [(("blacklisted_tokens", "a.b.c"), True)]


def test_revocation_is_per_token():
    ledger = RevocationLedger(MemoryStore())
    ledger.revoke("a.b.c")
    assert ledger.is_revoked("a.b.d") is False


def test_revocation_survives_restart(tmp_path):
    RevocationLedger(MemoryStore(state_dir=str(tmp_path))).revoke("a.b.c")
    reloaded = RevocationLedger(MemoryStore(state_dir=str(tmp_path)))
    assert reloaded.is_revoked("a.b.c") is True
