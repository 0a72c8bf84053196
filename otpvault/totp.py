"""
Time-based one-time password codec (RFC 6238).

Pure functions only: the caller supplies the decoded secret and the Unix
time, so the same input always produces the same code.
"""

import base64
import binascii
import hashlib
from enum import Enum
from typing import Optional

import pyotp
from pyotp.utils import strings_equal

from .errors import ValidationError


class Algorithm(Enum):
    """Hash algorithms supported by the codec."""
    SHA1 = "SHA1"
    SHA256 = "SHA256"
    SHA512 = "SHA512"

    @property
    def digest(self):
        return _DIGESTS[self]

    @classmethod
    def from_name(cls, name: Optional[str]) -> Optional['Algorithm']:
        """Look up an algorithm by name, case-insensitively. Returns None if unknown."""
        if name is None:
            return None
        try:
            return cls(name.strip().upper())
        except ValueError:
            return None

    def __str__(self) -> str:
        return self.value


_DIGESTS = {
    Algorithm.SHA1: hashlib.sha1,
    Algorithm.SHA256: hashlib.sha256,
    Algorithm.SHA512: hashlib.sha512,
}


def normalize_secret(secret: str) -> str:
    """Strip all whitespace and uppercase a base32 secret."""
    return "".join(secret.split()).upper()


def decode_secret(secret: str) -> bytes:
    """
    Decode a base32 shared secret.

    Whitespace and missing padding are tolerated, so grouped secrets such
    as ``"jbsw y3dp ehpk 3pxp"`` decode the same as the compact form.

    Raises:
        ValidationError: If the text is not valid base32
    """
    cleaned = normalize_secret(secret).rstrip("=")
    if not cleaned:
        raise ValidationError("Secret is empty")
    padded = cleaned + "=" * (-len(cleaned) % 8)
    try:
        return base64.b32decode(padded)
    except (binascii.Error, ValueError) as e:
        raise ValidationError(f"Base32 decode error: {e}") from None


def encode_secret(secret_bytes: bytes) -> str:
    """Encode raw secret bytes as unpadded base32."""
    return base64.b32encode(secret_bytes).decode('ascii').rstrip("=")


def _check_arguments(algorithm: Algorithm, digits: int, step: int) -> None:
    if not isinstance(algorithm, Algorithm):
        raise ValueError(f"Unsupported algorithm: {algorithm!r}")
    if step <= 0:
        raise ValueError(f"Step must be positive, got {step}")
    if not 1 <= digits <= 10:
        raise ValueError(f"Digits must be between 1 and 10, got {digits}")


def _hotp(secret_bytes: bytes, algorithm: Algorithm, digits: int) -> pyotp.HOTP:
    return pyotp.HOTP(encode_secret(secret_bytes), digits=digits, digest=algorithm.digest)


def generate(secret_bytes: bytes, algorithm: Algorithm, digits: int, step: int, unix_time: int) -> str:
    """
    Generate the code for the window containing ``unix_time``.

    Args:
        secret_bytes: Decoded shared secret
        algorithm: HMAC hash algorithm
        digits: Length of the code, zero padded
        step: Seconds per window
        unix_time: Seconds since the Unix epoch

    Returns:
        The numeric code as a string of exactly ``digits`` characters

    Raises:
        ValueError: On a non-positive step, unsupported algorithm or digit count
    """
    _check_arguments(algorithm, digits, step)
    counter = int(unix_time) // step
    return _hotp(secret_bytes, algorithm, digits).at(counter)


def verify(code: str, secret_bytes: bytes, algorithm: Algorithm, digits: int, step: int,
           unix_time: int, skew: int = 0) -> bool:
    """Check ``code`` against the current window and ``skew`` windows either side."""
    _check_arguments(algorithm, digits, step)
    if skew < 0:
        raise ValueError(f"Skew must not be negative, got {skew}")
    hotp = _hotp(secret_bytes, algorithm, digits)
    counter = int(unix_time) // step
    for candidate in range(counter - skew, counter + skew + 1):
        if candidate >= 0 and strings_equal(str(code), hotp.at(candidate)):
            return True
    return False


def seconds_until_refresh(step: int, unix_time: int) -> int:
    """Seconds left until the next window starts. Always in ``1..step``."""
    if step <= 0:
        raise ValueError(f"Step must be positive, got {step}")
    return step - (int(unix_time) % step)
