"""
Asynchronous vault operations.

Each coroutine hands its blocking work (Argon2id, AES-GCM, file I/O) to
the worker pool and awaits one terminal result. Vault handles are moved
between stages: pass a handle in, use the handle that comes back.
"""

import logging
import os
from typing import Dict, Mapping, Optional

from .entries import Entry
from .errors import NotFound
from .storage import Vault
from .worker import run_blocking

logger = logging.getLogger(__name__)


def _load(filepath: str) -> Vault:
    vault = Vault(filepath)
    if not vault.exists():
        logger.info(f"Vault not found on {filepath}")
        raise NotFound(f"Vault not found at {filepath}")
    return vault


async def load(filepath: str) -> Vault:
    """
    Locked handle on an existing vault file.

    Raises:
        NotFound: If there is no file at ``filepath``
    """
    return await run_blocking(_load, os.fspath(filepath))


def _create(filepath: str, password: str) -> Vault:
    vault = Vault(filepath)
    vault.create_new_vault(password)
    return vault


async def create(filepath: str, password: str) -> Vault:
    """Write a new empty vault at ``filepath`` and return a locked handle on it."""
    return await run_blocking(_create, os.fspath(filepath), password)


def _decrypt(password: str, vault: Vault) -> Vault:
    vault.unlock(password)
    return vault


async def decrypt(password: str, vault: Vault) -> Vault:
    """
    Unlock ``vault`` and return it.

    Raises:
        NotFound: If the file vanished
        CorruptData: If the container cannot be decoded
        AuthenticationFailure: On a wrong password or tampered data
    """
    return await run_blocking(_decrypt, password, vault)


async def save(vault: Vault) -> None:
    """
    Re-encrypt and persist every entry of an unlocked vault.

    Raises:
        VaultLocked: If the vault is locked
    """
    await run_blocking(vault.save)


def upsert_entry(vault: Vault, entry: Entry) -> Entry:
    """Insert or replace ``entry`` in memory. Does not persist."""
    return vault.upsert_entry(entry)


def delete_entry(vault: Vault, entry_id: str) -> None:
    """
    Remove an entry in memory. Does not persist.

    Raises:
        NotFound: If no entry has ``entry_id``
    """
    vault.delete_entry(entry_id)


def substitute_entries(vault: Vault, entries: Mapping[str, Entry]) -> None:
    vault.substitute_entries(entries)


async def upsert_and_save(vault: Vault, entry: Entry) -> Entry:
    """Insert or replace ``entry`` and persist the vault."""
    stored = vault.upsert_entry(entry)
    await save(vault)
    return stored


async def delete_and_save(vault: Vault, entry_id: str) -> None:
    vault.delete_entry(entry_id)
    await save(vault)


async def update_all_totp(vault: Vault, step_seconds: Optional[int] = None,
                          unix_time: Optional[int] = None) -> Dict[str, Entry]:
    """
    Refresh the code of every entry from a snapshot of ``vault``.

    The vault itself is not modified; pass the result to
    ``substitute_entries`` to publish the new codes.
    """
    return await run_blocking(vault.refresh_codes, step_seconds, unix_time)
