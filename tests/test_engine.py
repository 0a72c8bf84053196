"""Tests for the asynchronous vault engine."""

import pytest

from otpvault import engine
from otpvault.errors import AuthenticationFailure, NotFound, ValidationError
from otpvault.storage import EncryptedContainer, read_container
from otpvault.worker import is_running, run_blocking, shutdown_worker_pool

pytestmark = pytest.mark.asyncio


async def _unlocked(path, password="pw"):
    await engine.create(path, password)
    vault = await engine.load(path)
    return await engine.decrypt(password, vault)


async def test_create_then_decrypt_is_empty(vault_path):
    created = await engine.create(vault_path, "pw")
    assert not created.is_unlocked()

    vault = await engine.decrypt("pw", await engine.load(vault_path))
    assert vault.get_entries() == []


async def test_load_missing(vault_path):
    with pytest.raises(NotFound):
        await engine.load(vault_path)


async def test_wrong_password_leaves_file(vault_path):
    await engine.create(vault_path, "correct")
    with open(vault_path, 'rb') as f:
        before = f.read()

    vault = await engine.load(vault_path)
    with pytest.raises(AuthenticationFailure):
        await engine.decrypt("wrong", vault)

    with open(vault_path, 'rb') as f:
        assert f.read() == before


async def test_tampered_ciphertext(vault_path):
    await engine.create(vault_path, "pw")
    container = read_container(vault_path)
    flipped = bytearray(container.encrypted_data)
    flipped[0] ^= 0x01
    tampered = EncryptedContainer(salt=container.salt, nonce=container.nonce,
                                  encrypted_data=bytes(flipped))
    with open(vault_path, 'wb') as f:
        f.write(tampered.to_bytes())

    with pytest.raises(AuthenticationFailure):
        await engine.decrypt("pw", await engine.load(vault_path))


async def test_upsert_and_save_persists(vault_path, make_entry):
    vault = await _unlocked(vault_path)
    stored = await engine.upsert_and_save(vault, make_entry(name="Persisted"))

    reopened = await engine.decrypt("pw", await engine.load(vault_path))
    assert [e.name for e in reopened.get_entries()] == ["Persisted"]
    assert reopened.get_entry(stored.id) == stored


async def test_in_memory_changes_need_save(vault_path, make_entry):
    vault = await _unlocked(vault_path)
    engine.upsert_entry(vault, make_entry())

    reopened = await engine.decrypt("pw", await engine.load(vault_path))
    assert reopened.get_entries() == []


async def test_delete_and_save(vault_path, make_entry):
    vault = await _unlocked(vault_path)
    stored = await engine.upsert_and_save(vault, make_entry())
    await engine.delete_and_save(vault, stored.id)

    reopened = await engine.decrypt("pw", await engine.load(vault_path))
    assert reopened.get_entries() == []


async def test_delete_missing(vault_path):
    vault = await _unlocked(vault_path)
    with pytest.raises(NotFound):
        engine.delete_entry(vault, "missing")


async def test_later_save_wins(vault_path, make_entry):
    vault = await _unlocked(vault_path)
    first = vault.snapshot()
    second = vault.snapshot()
    engine.upsert_entry(first, make_entry(name="First"))
    engine.upsert_entry(second, make_entry(name="Second"))

    await engine.save(first)
    await engine.save(second)

    reopened = await engine.decrypt("pw", await engine.load(vault_path))
    assert [e.name for e in reopened.get_entries()] == ["Second"]


async def test_update_all_totp_is_deterministic(vault_path, make_entry):
    vault = await _unlocked(vault_path)
    engine.upsert_entry(vault, make_entry(name="a"))
    engine.upsert_entry(vault, make_entry(name="b", digits=8))

    first = await engine.update_all_totp(vault, unix_time=1111111109)
    second = await engine.update_all_totp(vault, unix_time=1111111109)
    assert {k: e.totp for k, e in first.items()} == {k: e.totp for k, e in second.items()}
    assert sorted(len(e.totp) for e in first.values()) == [6, 8]


async def test_substitute_publishes_codes(vault_path, make_entry):
    vault = await _unlocked(vault_path)
    stored = engine.upsert_entry(vault, make_entry())

    refreshed = await engine.update_all_totp(vault, unix_time=59)
    engine.substitute_entries(vault, refreshed)
    assert vault.get_entry(stored.id).totp == refreshed[stored.id].totp


async def test_update_all_totp_bad_secret(vault_path, make_entry):
    vault = await _unlocked(vault_path)
    engine.upsert_entry(vault, make_entry(secret="not base32!"))
    with pytest.raises(ValidationError):
        await engine.update_all_totp(vault, unix_time=59)


async def test_run_blocking_needs_pool():
    assert is_running()
    shutdown_worker_pool()
    assert not is_running()
    with pytest.raises(RuntimeError):
        await run_blocking(len, "abc")
