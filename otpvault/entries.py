"""
Credential records and the in-memory entry store.

The store knows nothing about files or encryption; both storage backends
build on it.
"""

import logging
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

from . import config
from . import totp
from .errors import NotFound, ValidationError
from .totp import Algorithm

logger = logging.getLogger(__name__)


@dataclass
class TOTPConfig:
    """Parameters of the code generator for one entry."""
    algorithm: Algorithm = Algorithm.SHA1
    digits: int = config.DEFAULT_DIGITS
    step: int = config.DEFAULT_STEP
    skew: int = config.DEFAULT_SKEW

    def to_dict(self) -> Dict[str, Any]:
        return {
            'algorithm': self.algorithm.value,
            'digits': self.digits,
            'step': self.step,
            'skew': self.skew,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'TOTPConfig':
        """
        Create from dictionary.

        An unknown algorithm name falls back to SHA1 with a warning.
        Other fields are taken as-is; use ``entry_problems`` to check them.
        """
        name = data.get('algorithm', config.DEFAULT_ALGORITHM)
        algorithm = Algorithm.from_name(name)
        if algorithm is None:
            logger.warning(f"Unknown algorithm '{name}', defaulting to SHA1")
            algorithm = Algorithm.SHA1
        return cls(
            algorithm=algorithm,
            digits=int(data.get('digits', config.DEFAULT_DIGITS)),
            step=int(data.get('step', config.DEFAULT_STEP)),
            skew=int(data.get('skew', config.DEFAULT_SKEW)),
        )


@dataclass
class Entry:
    """A single stored TOTP credential."""
    name: str
    secret: str
    totp_config: TOTPConfig = field(default_factory=TOTPConfig)
    id: Optional[str] = None
    # Last generated code. Never persisted.
    totp: str = field(default="", compare=False, repr=False)

    def secret_bytes(self) -> bytes:
        return totp.decode_secret(self.secret)

    def generate_totp(self, unix_time: int) -> str:
        """Compute the current code, store it on the entry and return it."""
        cfg = self.totp_config
        self.totp = totp.generate(self.secret_bytes(), cfg.algorithm, cfg.digits, cfg.step, unix_time)
        return self.totp

    def verify(self, code: str, unix_time: int) -> bool:
        cfg = self.totp_config
        return totp.verify(code, self.secret_bytes(), cfg.algorithm, cfg.digits, cfg.step,
                           unix_time, skew=cfg.skew)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'id': self.id,
            'name': self.name,
            'secret': self.secret,
            'totp_config': self.totp_config.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Entry':
        """Create from dictionary."""
        return cls(
            id=data.get('id'),
            name=data['name'],
            secret=data['secret'],
            totp_config=TOTPConfig.from_dict(data.get('totp_config') or {}),
        )


def entry_problems(entry: Entry) -> List[str]:
    """
    List every reason ``entry`` cannot be submitted.

    An empty list means the entry is valid. Nothing is corrected.
    """
    problems = []
    cfg = entry.totp_config

    if not entry.name or not entry.name.strip():
        problems.append("Name must not be empty")

    if cfg.digits not in config.SUBMITTABLE_DIGITS:
        problems.append(f"Digits must be 6 or 8, got {cfg.digits}")

    if cfg.step <= 0 or cfg.step > config.MAX_STEP:
        problems.append(f"Step must be between 1 and {config.MAX_STEP} seconds, got {cfg.step}")

    if not isinstance(cfg.algorithm, Algorithm):
        problems.append(f"Unsupported algorithm: {cfg.algorithm!r}")

    try:
        secret_len = len(entry.secret_bytes())
    except ValidationError as e:
        problems.append(str(e))
    else:
        if not config.SECRET_MIN_BYTES <= secret_len <= config.SECRET_MAX_BYTES:
            problems.append(
                f"Secret must decode to {config.SECRET_MIN_BYTES}-{config.SECRET_MAX_BYTES} bytes, "
                f"got {secret_len}"
            )

    return problems


def is_submittable(entry: Entry) -> bool:
    return not entry_problems(entry)


def check_submittable(entry: Entry) -> None:
    """Raise ValidationError listing every problem with ``entry``."""
    problems = entry_problems(entry)
    if problems:
        raise ValidationError("; ".join(problems))


@dataclass
class EntryDraft:
    """
    Form-shaped entry as typed in by a user.

    Issuer and account name are kept apart so that the colon rule of the
    OTP URI label can be checked before the entry is built.
    """
    name: str = ""
    secret: str = ""
    algorithm: Algorithm = Algorithm.SHA1
    digits: int = config.DEFAULT_DIGITS
    step: int = config.DEFAULT_STEP
    issuer: Optional[str] = None
    account_name: str = ""
    id: Optional[str] = None

    @classmethod
    def from_entry(cls, entry: Entry) -> 'EntryDraft':
        issuer, sep, account = entry.name.partition(":")
        if not sep:
            issuer, account = None, entry.name
        cfg = entry.totp_config
        return cls(
            name=entry.name,
            secret=entry.secret,
            algorithm=cfg.algorithm,
            digits=cfg.digits,
            step=cfg.step,
            issuer=issuer.strip() if issuer else None,
            account_name=account.strip(),
            id=entry.id,
        )

    def display_name(self) -> str:
        if self.name.strip():
            return self.name.strip()
        if self.issuer and self.account_name:
            return f"{self.issuer}:{self.account_name}"
        return self.account_name or (self.issuer or "")

    def _build(self) -> Entry:
        return Entry(
            id=self.id,
            name=self.display_name(),
            secret=totp.normalize_secret(self.secret),
            totp_config=TOTPConfig(algorithm=self.algorithm, digits=self.digits, step=self.step),
        )

    def problems(self) -> List[str]:
        problems = entry_problems(self._build())
        if self.issuer and ":" in self.issuer:
            problems.append("Issuer must not contain a colon")
        if ":" in self.account_name:
            problems.append("Account name must not contain a colon")
        return problems

    def to_entry(self) -> Entry:
        """
        Build the entry.

        Raises:
            ValidationError: If the draft is not submittable
        """
        problems = self.problems()
        if problems:
            raise ValidationError("; ".join(problems))
        return self._build()


def new_entry_id() -> str:
    return str(uuid.uuid4())


class EntryStore:
    """In-memory mapping from identifier to entry."""

    def __init__(self, entries: Iterable[Entry] = ()):
        self._entries: Dict[str, Entry] = {}
        for entry in entries:
            self.upsert(entry)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Entry]:
        return iter(self.list())

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self._entries

    def get(self, entry_id: str) -> Entry:
        try:
            return self._entries[entry_id]
        except KeyError:
            raise NotFound(f"Entry with id {entry_id} not found") from None

    def upsert(self, entry: Entry) -> Entry:
        """
        Insert ``entry`` or replace the one with the same identifier.

        An entry without an identifier gets a fresh one. Returns the stored entry.
        """
        if entry.id is None:
            entry = replace(entry, id=new_entry_id())
        self._entries[entry.id] = entry
        return entry

    def remove(self, entry_id: str) -> Entry:
        try:
            return self._entries.pop(entry_id)
        except KeyError:
            raise NotFound(f"Entry with id {entry_id} not found") from None

    def substitute(self, entries: Mapping[str, Entry]) -> None:
        """
        Replace the whole collection with ``entries`` in one step.

        Raises:
            ValidationError: If a key does not match its entry's identifier.
                The store is left untouched.
        """
        for entry_id, entry in entries.items():
            if entry.id != entry_id:
                raise ValidationError(f"Entry key {entry_id} does not match entry id {entry.id}")
        self._entries = dict(entries)

    def list(self) -> List[Entry]:
        """All entries sorted by case-insensitive display name."""
        return sorted(self._entries.values(), key=lambda e: e.name.lower())

    def copy(self) -> 'EntryStore':
        return EntryStore(replace(e, totp_config=replace(e.totp_config)) for e in self._entries.values())
