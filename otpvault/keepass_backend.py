"""
KeePass (.kdbx) storage backend.

Entries live as ordinary KeePass records inside one fixed group, with the
TOTP parameters kept in custom fields. KeePass files can only be rewritten
whole, so every mutation reopens the file, changes it in memory and saves
it again while holding the database lock.
"""

import logging
import os
import threading
from typing import Dict, List, Optional, Tuple

from pykeepass import PyKeePass, create_database
from pykeepass.exceptions import CredentialsError, HeaderChecksumError, PayloadChecksumError

from . import batch
from . import config
from .entries import Entry, TOTPConfig, check_submittable
from .errors import CorruptData, IncorrectPassword, NotFound, StructuralError, ValidationError
from .totp import Algorithm, normalize_secret
from .utils import discard_temp_file, make_temp_sibling, set_owner_only_permissions
from .worker import run_blocking

logger = logging.getLogger(__name__)


def entry_to_fields(entry: Entry) -> Tuple[str, Dict[str, str]]:
    """Title and custom fields representing ``entry``."""
    cfg = entry.totp_config
    return entry.name, {
        config.KEEPASS_SECRET_KEY: normalize_secret(entry.secret),
        config.KEEPASS_ALGORITHM_KEY: cfg.algorithm.value,
        config.KEEPASS_PERIOD_KEY: str(cfg.step),
        config.KEEPASS_DIGITS_KEY: str(cfg.digits),
    }


def _int_field(fields: Dict[str, str], key: str, default: int) -> int:
    try:
        return int(fields[key])
    except (KeyError, TypeError, ValueError):
        return default


def entry_from_fields(title: Optional[str], fields: Dict[str, str],
                      entry_id: Optional[str] = None) -> Entry:
    """
    Rebuild an entry from a KeePass record.

    Raises:
        ValidationError: If the secret field is missing
    """
    name = title or config.KEEPASS_UNNAMED_ENTRY

    secret = fields.get(config.KEEPASS_SECRET_KEY)
    if not secret:
        raise ValidationError(f"Missing TOTP secret in KeePass entry '{name}'")

    algorithm_name = fields.get(config.KEEPASS_ALGORITHM_KEY) or config.DEFAULT_ALGORITHM
    algorithm = Algorithm.from_name(algorithm_name)
    if algorithm is None:
        logger.warning(f"Falling back to SHA1 for entry: {name}")
        algorithm = Algorithm.SHA1

    return Entry(
        id=entry_id,
        name=name,
        secret=secret,
        totp_config=TOTPConfig(
            algorithm=algorithm,
            digits=_int_field(fields, config.KEEPASS_DIGITS_KEY, config.DEFAULT_DIGITS),
            step=_int_field(fields, config.KEEPASS_PERIOD_KEY, config.DEFAULT_STEP),
        ),
    )


def _apply_fields(kp_entry, entry: Entry) -> None:
    title, fields = entry_to_fields(entry)
    kp_entry.title = title
    for key, value in fields.items():
        kp_entry.set_custom_property(key, value, protect=(key == config.KEEPASS_SECRET_KEY))


def _save_atomic(kp: PyKeePass, filepath: str) -> None:
    fd, tmp_path = make_temp_sibling(filepath)
    os.close(fd)
    try:
        kp.save(filename=tmp_path)
        if not set_owner_only_permissions(tmp_path):
            logger.warning(f"Failed to set secure file permissions for database: {filepath}")
        os.replace(tmp_path, filepath)
    except Exception:
        discard_temp_file(tmp_path)
        raise


def _open(filepath: str, password: str) -> PyKeePass:
    try:
        return PyKeePass(filepath, password=password)
    except FileNotFoundError:
        raise NotFound(f"Database not found at {filepath}") from None
    except CredentialsError:
        raise IncorrectPassword("Incorrect Password") from None
    except (HeaderChecksumError, PayloadChecksumError) as e:
        raise CorruptData(f"Database is corrupted: {e}") from None


def _target_group(kp: PyKeePass):
    for group in kp.root_group.subgroups:
        if group.name == config.KEEPASS_GROUP_NAME:
            return group
    raise StructuralError(f"{config.KEEPASS_GROUP_NAME} not found")


def _find_entry(group, entry_id: str):
    for kp_entry in group.entries:
        if str(kp_entry.uuid) == entry_id:
            return kp_entry
    raise NotFound(f"Entry with UUID {entry_id} not found")


def check_database(filepath: str) -> bool:
    return os.path.exists(filepath)


def _create_database(filepath: str, password: str) -> str:
    # create_database writes the blank file itself, so it gets a scratch path
    fd, scratch_path = make_temp_sibling(filepath)
    os.close(fd)
    try:
        kp = create_database(scratch_path, password=password)
        kp.add_group(kp.root_group, config.KEEPASS_GROUP_NAME)
        _save_atomic(kp, filepath)
    finally:
        discard_temp_file(scratch_path)
    logger.info(f"Created KeePass database at {filepath}")
    return filepath


async def create_keepass_database(filepath: str, password: str) -> str:
    """Create an empty database holding only the fixed group."""
    return await run_blocking(_create_database, os.fspath(filepath), password)


def _unlock_database(filepath: str, password: str) -> 'KeePassDatabase':
    _open(filepath, password)
    return KeePassDatabase(filepath, password)


async def unlock_keepass_database(filepath: str, password: str) -> 'KeePassDatabase':
    """
    Open the database once to check the password.

    Raises:
        NotFound: If the file does not exist
        IncorrectPassword: If KeePass rejects the password
    """
    return await run_blocking(_unlock_database, os.fspath(filepath), password)


class KeePassDatabase:
    """Unlocked handle on a KeePass database file."""

    def __init__(self, filepath: str, password: str, lock: Optional[threading.Lock] = None):
        self.filepath = os.fspath(filepath)
        self._password = password
        # Shared by copies of this handle to serialize whole-file rewrites.
        self._lock = lock or threading.Lock()

    def __repr__(self) -> str:
        return f"KeePassDatabase({self.filepath!r})"

    def copy(self) -> 'KeePassDatabase':
        return KeePassDatabase(self.filepath, self._password, self._lock)

    def _list_entries(self) -> List[Entry]:
        with self._lock:
            kp = _open(self.filepath, self._password)
            entries = []
            for kp_entry in _target_group(kp).entries:
                try:
                    entries.append(entry_from_fields(kp_entry.title, kp_entry.custom_properties,
                                                     str(kp_entry.uuid)))
                except ValidationError as e:
                    logger.warning(f"Skipping KeePass entry: {e}")
        entries.sort(key=lambda e: e.name.lower())
        return entries

    def _add_entries(self, entries: List[Entry]) -> List[Entry]:
        with self._lock:
            kp = _open(self.filepath, self._password)
            group = _target_group(kp)
            added = []
            for entry in entries:
                kp_entry = kp.add_entry(group, entry.name, "", "", force_creation=True)
                _apply_fields(kp_entry, entry)
                added.append(entry_from_fields(kp_entry.title, kp_entry.custom_properties,
                                               str(kp_entry.uuid)))
            _save_atomic(kp, self.filepath)
        return added

    def _update_entry(self, entry: Entry) -> None:
        with self._lock:
            kp = _open(self.filepath, self._password)
            kp_entry = _find_entry(_target_group(kp), entry.id)
            _apply_fields(kp_entry, entry)
            _save_atomic(kp, self.filepath)

    def _delete_entry(self, entry_id: str) -> None:
        with self._lock:
            kp = _open(self.filepath, self._password)
            kp.delete_entry(_find_entry(_target_group(kp), entry_id))
            _save_atomic(kp, self.filepath)

    async def list_entries(self) -> List[Entry]:
        """
        Every entry of the fixed group, sorted by case-insensitive name.

        Records without a secret are skipped with a warning.

        Raises:
            StructuralError: If the fixed group is missing
        """
        return await run_blocking(self._list_entries)

    async def add_entry(self, entry: Entry) -> Entry:
        """
        Raises:
            ValidationError: If ``entry`` is not submittable
        """
        check_submittable(entry)
        added = await run_blocking(self._add_entries, [entry])
        return added[0]

    async def update_entry(self, entry: Entry) -> None:
        """Replace every mapped field of the record with ``entry.id``."""
        if entry.id is None:
            raise ValidationError("Cannot update entry without UUID")
        check_submittable(entry)
        await run_blocking(self._update_entry, entry)

    async def delete_entry(self, entry_id: str) -> None:
        await run_blocking(self._delete_entry, entry_id)

    async def import_content(self, filepath: str) -> batch.BatchResult:
        """Add every well-formed URI line of ``filepath``. Bad lines are skipped."""
        result = await run_blocking(batch.read_batch_file, os.fspath(filepath))
        if result.entries:
            result.entries = await run_blocking(self._add_entries, result.entries)
        logger.info(f"Imported {len(result.entries)} entries, skipped {len(result.skipped)} lines")
        return result

    async def export_content(self, filepath: str) -> int:
        """
        Raises:
            ValidationError: If the database holds no entries
        """
        entries = await self.list_entries()
        return await run_blocking(batch.write_batch_file, os.fspath(filepath), entries)
