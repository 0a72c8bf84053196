"""
Newline-delimited OTP URI batches, the interchange format for import and export.

Blank lines and lines starting with ``#`` are ignored. A malformed line is
logged and skipped; the rest of the batch still goes through.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Tuple

from . import otp_uri
from .entries import Entry
from .errors import NotFound, ValidationError
from .utils import atomic_write

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    entries: List[Entry] = field(default_factory=list)
    # (line number, reason) of every skipped line
    skipped: List[Tuple[int, str]] = field(default_factory=list)


def parse_batch(content: str) -> BatchResult:
    """Parse every URI line in ``content``."""
    result = BatchResult()
    for line_no, line in enumerate(content.splitlines(), start=1):
        line = line.strip()
        if not line or line.startswith('#'):
            continue

        try:
            entry = otp_uri.entry_from_uri(line)
        except ValidationError as e:
            # The line itself is not logged, it carries the secret.
            logger.warning(f"Failed to parse TOTP URL on line {line_no}: {e}")
            result.skipped.append((line_no, str(e)))
            continue

        result.entries.append(entry)
    return result


def format_batch(entries: Iterable[Entry]) -> str:
    """
    One URI per line.

    Raises:
        ValidationError: If there is nothing to export
    """
    lines = [otp_uri.serialize(e) for e in entries]
    if not lines:
        raise ValidationError("No entries found to export")
    return "\n".join(lines) + "\n"


def read_batch_file(filepath: str) -> BatchResult:
    try:
        with open(filepath, 'r', encoding='utf-8') as f:
            content = f.read()
    except FileNotFoundError:
        raise NotFound(f"Import file not found: {filepath}") from None
    return parse_batch(content)


def write_batch_file(filepath: str, entries: Iterable[Entry]) -> int:
    """Export ``entries`` to ``filepath``. Returns the number written."""
    content = format_batch(entries)
    atomic_write(filepath, content.encode('utf-8'))
    return content.count("\n")
