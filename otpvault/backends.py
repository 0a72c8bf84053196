"""
The two storage backends behind one capability set.

A deployment picks exactly one backend kind; callers then talk to the
returned handle through the same coroutines either way: ``list_entries``,
``add_entry``, ``update_entry``, ``delete_entry``, ``import_content`` and
``export_content``.
"""

import logging
import os
from enum import Enum
from typing import List, Union

from . import batch
from . import engine
from .entries import Entry, check_submittable
from .errors import NotFound, ValidationError
from .keepass_backend import KeePassDatabase, check_database, create_keepass_database, unlock_keepass_database
from .storage import Vault
from .worker import run_blocking

logger = logging.getLogger(__name__)


class BackendKind(Enum):
    VAULT = "vault"
    KEEPASS = "keepass"


class VaultBackend:
    """Capability set over an unlocked custom vault. Every mutation is saved at once."""

    def __init__(self, vault: Vault):
        if not vault.is_unlocked():
            raise ValueError("VaultBackend needs an unlocked vault")
        self.vault = vault

    def __repr__(self) -> str:
        return f"VaultBackend({self.vault.filepath!r})"

    @property
    def filepath(self) -> str:
        return self.vault.filepath

    async def list_entries(self) -> List[Entry]:
        return self.vault.get_entries()

    async def add_entry(self, entry: Entry) -> Entry:
        """
        Raises:
            ValidationError: If ``entry`` is not submittable
        """
        check_submittable(entry)
        return await engine.upsert_and_save(self.vault, entry)

    async def update_entry(self, entry: Entry) -> None:
        if entry.id is None:
            raise ValidationError("Cannot update entry without id")
        check_submittable(entry)
        self.vault.get_entry(entry.id)
        await engine.upsert_and_save(self.vault, entry)

    async def delete_entry(self, entry_id: str) -> None:
        await engine.delete_and_save(self.vault, entry_id)

    async def import_content(self, filepath: str) -> batch.BatchResult:
        result = await run_blocking(batch.read_batch_file, os.fspath(filepath))
        if result.entries:
            result.entries = self.vault.add_entries(result.entries)
            await engine.save(self.vault)
        logger.info(f"Imported {len(result.entries)} entries, skipped {len(result.skipped)} lines")
        return result

    async def export_content(self, filepath: str) -> int:
        return await run_blocking(batch.write_batch_file, os.fspath(filepath), self.vault.get_entries())


Backend = Union[VaultBackend, KeePassDatabase]


async def create_backend(kind: BackendKind, filepath: str, password: str) -> None:
    """Create an empty store of ``kind`` at ``filepath``."""
    if kind is BackendKind.VAULT:
        await engine.create(filepath, password)
    elif kind is BackendKind.KEEPASS:
        await create_keepass_database(filepath, password)
    else:
        raise ValueError(f"Unknown backend kind: {kind!r}")


async def unlock_backend(kind: BackendKind, filepath: str, password: str) -> Backend:
    """
    Open the store at ``filepath``.

    Raises:
        NotFound: If there is no store at ``filepath``
        AuthenticationFailure: On a wrong password (``IncorrectPassword`` for KeePass)
    """
    if kind is BackendKind.VAULT:
        vault = await engine.load(filepath)
        return VaultBackend(await engine.decrypt(password, vault))
    if kind is BackendKind.KEEPASS:
        if not check_database(filepath):
            raise NotFound(f"Database not found at {filepath}")
        return await unlock_keepass_database(filepath, password)
    raise ValueError(f"Unknown backend kind: {kind!r}")
