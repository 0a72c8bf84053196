"""
Shared pytest fixtures for the OTPVault test suite.

Autouse fixtures below keep tests fast and isolated:
  - Worker pool -> started and stopped around every test
  - Argon2id    -> lowest cost parameters (key derivation is the slow part)
"""

import pytest

from otpvault import config
from otpvault.entries import Entry, TOTPConfig
from otpvault.totp import Algorithm
from otpvault.worker import init_worker_pool, shutdown_worker_pool


@pytest.fixture(autouse=True)
def _worker_pool():
    init_worker_pool()
    yield
    shutdown_worker_pool()


@pytest.fixture(autouse=True)
def _cheap_kdf(monkeypatch):
    """CryptoManager reads these on construction, so new vaults pick them up."""
    monkeypatch.setattr(config, "ARGON2_TIME_COST", 1)
    monkeypatch.setattr(config, "ARGON2_MEMORY_COST", 64)
    monkeypatch.setattr(config, "ARGON2_PARALLELISM", 1)


@pytest.fixture
def make_entry():
    def _make(name="GitHub:alice", secret="JBSWY3DPEHPK3PXP", algorithm=Algorithm.SHA1,
              digits=6, step=30, entry_id=None):
        return Entry(
            id=entry_id,
            name=name,
            secret=secret,
            totp_config=TOTPConfig(algorithm=algorithm, digits=digits, step=step),
        )
    return _make


@pytest.fixture
def vault_path(tmp_path):
    return str(tmp_path / "data" / "vault.enc")
