"""
Encrypted storage of TOTP entries.

One vault is one file. Every save re-encrypts the whole entry store and
atomically replaces the file; there are no partial updates.
"""

import datetime
import json
import logging
import os
import struct
import threading
import time
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from cryptography.exceptions import InvalidTag

from . import config
from . import totp
from .crypto import CryptoManager, decode_salt, encode_salt
from .entries import Entry, EntryStore
from .errors import AuthenticationFailure, CorruptData, NotFound, VaultLocked
from .utils import atomic_write

logger = logging.getLogger(__name__)


@dataclass
class EncryptedContainer:
    """On-disk shape of a vault: salt, nonce and ciphertext."""
    salt: str
    nonce: bytes
    encrypted_data: bytes
    version: int = config.CONTAINER_VERSION

    def to_bytes(self) -> bytes:
        salt = self.salt.encode('ascii')
        return b''.join([
            config.CONTAINER_MAGIC,
            struct.pack('<I', self.version),
            struct.pack('<I', len(salt)), salt,
            struct.pack('<I', len(self.nonce)), self.nonce,
            struct.pack('<I', len(self.encrypted_data)), self.encrypted_data,
        ])

    @classmethod
    def from_bytes(cls, data: bytes) -> 'EncryptedContainer':
        """
        Decode container bytes.

        Raises:
            CorruptData: On bad magic bytes, an unsupported version,
                truncated fields or trailing garbage
        """
        magic_len = len(config.CONTAINER_MAGIC)
        if data[:magic_len] != config.CONTAINER_MAGIC:
            raise CorruptData("Failed to deserialize encrypted vault: magic bytes mismatch")

        offset = magic_len

        def read_u32() -> int:
            nonlocal offset
            if offset + 4 > len(data):
                raise CorruptData("Failed to deserialize encrypted vault: truncated header")
            (value,) = struct.unpack_from('<I', data, offset)
            offset += 4
            return value

        def read_field() -> bytes:
            nonlocal offset
            size = read_u32()
            if offset + size > len(data):
                raise CorruptData("Failed to deserialize encrypted vault: truncated field")
            value = data[offset:offset + size]
            offset += size
            return value

        version = read_u32()
        if version != config.CONTAINER_VERSION:
            raise CorruptData(f"Unsupported vault version {version}")

        salt = read_field()
        nonce = read_field()
        encrypted_data = read_field()
        if offset != len(data):
            raise CorruptData("Failed to deserialize encrypted vault: trailing data")
        if len(nonce) != config.NONCE_SIZE:
            raise CorruptData(f"Failed to deserialize encrypted vault: nonce must be {config.NONCE_SIZE} bytes")

        try:
            salt_text = salt.decode('ascii')
        except UnicodeDecodeError:
            raise CorruptData("Failed to deserialize encrypted vault: salt is not text") from None

        return cls(salt=salt_text, nonce=nonce, encrypted_data=encrypted_data, version=version)


def read_container(filepath: str) -> EncryptedContainer:
    """Read and decode the container at ``filepath``."""
    try:
        with open(filepath, 'rb') as f:
            data = f.read()
    except FileNotFoundError:
        raise NotFound(f"Vault not found at {filepath}") from None
    return EncryptedContainer.from_bytes(data)


def _serialize_store(store: EntryStore) -> bytes:
    data = {
        'entries': [e.to_dict() for e in store.list()],
        'metadata': {
            'version': config.CONTAINER_VERSION,
            'last_modified': datetime.datetime.now().isoformat()
        }
    }
    return json.dumps(data, indent=2).encode('utf-8')


def _deserialize_store(plaintext: bytes) -> EntryStore:
    try:
        data = json.loads(plaintext.decode('utf-8'))
        return EntryStore(Entry.from_dict(e) for e in data['entries'])
    except (UnicodeDecodeError, ValueError, KeyError, TypeError) as e:
        raise CorruptData(f"Failed to deserialize vault data: {e}") from None


class Vault:
    """
    Handle on one encrypted vault file.

    A vault is either locked (only the path is known) or unlocked (the
    derived key and the decrypted entry store are held in memory).
    """

    def __init__(self, filepath: str, crypto: Optional[CryptoManager] = None):
        """
        Args:
            filepath: Path to the encrypted vault file
            crypto: Crypto manager, a default one is created if omitted
        """
        self.filepath = os.fspath(filepath)
        self.crypto = crypto or CryptoManager()
        self._lock = threading.Lock()
        self._key: Optional[bytearray] = None
        self._salt: Optional[str] = None
        self._store: Optional[EntryStore] = None

    def __repr__(self) -> str:
        state = "unlocked" if self.is_unlocked() else "locked"
        return f"Vault({self.filepath!r}, {state})"

    def exists(self) -> bool:
        return os.path.exists(self.filepath)

    def is_unlocked(self) -> bool:
        return self._key is not None

    def _require_unlocked(self) -> EntryStore:
        if self._key is None or self._store is None:
            raise VaultLocked("Vault is locked")
        return self._store

    def create_new_vault(self, master_password: str) -> None:
        """
        Write a fresh vault holding no entries. The handle stays locked.

        Parent directories are created as needed; an existing file is replaced.
        """
        with self._lock:
            salt = self.crypto.generate_salt()
            key = self.crypto.derive_key(master_password, salt)
            try:
                self._write(EntryStore(), key, encode_salt(salt))
            finally:
                self.crypto.clear_bytes(key)
            self._key = None
            self._salt = None
            self._store = None
        logger.info(f"Created vault at {self.filepath}")

    def unlock(self, master_password: str) -> None:
        """
        Decrypt the vault file with ``master_password``.

        Raises:
            NotFound: If the file does not exist
            CorruptData: If the container cannot be decoded
            AuthenticationFailure: On a wrong password or tampered ciphertext
        """
        with self._lock:
            container = read_container(self.filepath)
            key = self.crypto.derive_key(master_password, decode_salt(container.salt))
            try:
                plaintext = self.crypto.decrypt(container.encrypted_data, key, container.nonce)
            except InvalidTag:
                self.crypto.clear_bytes(key)
                logger.warning(f"Unlock failed for {self.filepath}")
                raise AuthenticationFailure("Failed to decrypt: incorrect password or corrupted data") from None

            try:
                store = _deserialize_store(plaintext)
            except CorruptData:
                self.crypto.clear_bytes(key)
                raise

            if self._key is not None:
                self.crypto.clear_bytes(self._key)
            self._store = store
            self._key = key
            self._salt = container.salt
        logger.info(f"Unlocked vault at {self.filepath} with {len(self._store)} entries")

    def lock(self) -> None:
        """Lock the vault and drop key and entries from memory."""
        with self._lock:
            if self._key is not None:
                self.crypto.clear_bytes(self._key)
            self._key = None
            self._salt = None
            self._store = None

    def save(self) -> None:
        """
        Encrypt the current entries under a fresh nonce and replace the file.

        The salt the key was derived from is written back unchanged.

        Raises:
            VaultLocked: If the vault is locked
        """
        with self._lock:
            store = self._require_unlocked()
            self._write(store, self._key, self._salt)
        logger.debug(f"Saved vault at {self.filepath}")

    def _write(self, store: EntryStore, key: bytes, salt: str) -> None:
        nonce = self.crypto.generate_nonce()
        ciphertext = self.crypto.encrypt(_serialize_store(store), key, nonce)
        container = EncryptedContainer(salt=salt, nonce=nonce, encrypted_data=ciphertext)
        atomic_write(self.filepath, container.to_bytes())

    def get_entries(self) -> List[Entry]:
        """All entries sorted by case-insensitive name."""
        with self._lock:
            return self._require_unlocked().list()

    def get_entry(self, entry_id: str) -> Entry:
        with self._lock:
            return self._require_unlocked().get(entry_id)

    def upsert_entry(self, entry: Entry) -> Entry:
        """Insert or replace an entry in memory. Call ``save`` to persist."""
        with self._lock:
            return self._require_unlocked().upsert(entry)

    def add_entries(self, entries: List[Entry]) -> List[Entry]:
        with self._lock:
            store = self._require_unlocked()
            return [store.upsert(e) for e in entries]

    def delete_entry(self, entry_id: str) -> None:
        """
        Raises:
            NotFound: If no entry has ``entry_id``
        """
        with self._lock:
            self._require_unlocked().remove(entry_id)

    def substitute_entries(self, entries: Mapping[str, Entry]) -> None:
        with self._lock:
            self._require_unlocked().substitute(entries)

    def refresh_codes(self, step_seconds: Optional[int] = None,
                      unix_time: Optional[int] = None) -> Dict[str, Entry]:
        """
        Generate the current code of every entry on a copy of the store.

        Args:
            step_seconds: Overrides every entry's own step when given
            unix_time: Defaults to the current time

        Returns:
            Mapping of identifier to refreshed entry, ready for ``substitute_entries``

        Raises:
            ValidationError: If an entry's secret is not valid base32
        """
        with self._lock:
            snapshot = self._require_unlocked().copy()

        now = int(time.time()) if unix_time is None else unix_time
        refreshed = {}
        for entry in snapshot:
            cfg = entry.totp_config
            step = cfg.step if step_seconds is None else step_seconds
            entry.totp = totp.generate(entry.secret_bytes(), cfg.algorithm, cfg.digits, step, now)
            refreshed[entry.id] = entry
        return refreshed

    def snapshot(self) -> 'Vault':
        """Independent copy of this handle and its in-memory state."""
        with self._lock:
            other = Vault(self.filepath, self.crypto)
            other._key = bytearray(self._key) if self._key is not None else None
            other._salt = self._salt
            other._store = self._store.copy() if self._store is not None else None
            return other
