"""
Parsing and serialization of ``otpauth://totp/...`` URIs.

Format::

    otpauth://totp/<issuer>:<account>?secret=<base32>&issuer=<name>
        &algorithm=<SHA1|SHA256|SHA512>&digits=<n>&period=<seconds>
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple
from urllib.parse import parse_qsl, quote, unquote, urlsplit

from . import config
from .entries import Entry, TOTPConfig
from .errors import (InvalidOtpType, InvalidParameter, InvalidScheme, InvalidUrl,
                     MissingSecret, ValidationError)
from .totp import Algorithm, decode_secret, normalize_secret

logger = logging.getLogger(__name__)


@dataclass
class OtpRecord:
    """The fields of one parsed OTP URI, before they become an Entry."""
    secret: str
    label: Optional[str] = None
    issuer: Optional[str] = None
    account_name: Optional[str] = None
    algorithm: Optional[str] = None
    digits: Optional[int] = None
    period: Optional[int] = None
    params: Dict[str, str] = field(default_factory=dict, repr=False)


def _parse_int(params: Dict[str, str], name: str) -> Optional[int]:
    value = params.get(name)
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        raise InvalidParameter(f"Invalid parameter: {name}") from None


def _parse_label(path: str) -> Tuple[Optional[str], Optional[str], Optional[str]]:
    """Split a URI path into (label, account name, issuer)."""
    if not path:
        return None, None, None

    decoded = unquote(path)
    issuer, sep, account = decoded.partition(":")
    if not sep:
        return decoded, decoded, None

    issuer = issuer.strip()
    account = account.strip()
    return decoded, account or None, issuer or None


def parse(uri: str) -> OtpRecord:
    """
    Parse an OTP URI.

    Raises:
        InvalidUrl: If ``uri`` is not an absolute URL
        InvalidScheme: If the scheme is not ``otpauth``
        InvalidOtpType: If the type is not ``totp``
        MissingSecret: If there is no ``secret`` parameter
        InvalidParameter: If ``digits`` or ``period`` is not an integer
    """
    try:
        parts = urlsplit(uri.strip())
    except ValueError as e:
        raise InvalidUrl(f"Invalid URL: {e}") from None

    if not parts.scheme:
        raise InvalidUrl("Invalid URL: relative URL without a base")
    if parts.scheme.lower() != config.OTP_URI_SCHEME:
        raise InvalidScheme(f"Invalid scheme: {parts.scheme}")

    otp_type = (parts.hostname or "").lower()
    if otp_type != config.OTP_URI_TYPE:
        raise InvalidOtpType(f"Invalid OTP type: {otp_type or 'missing'}")

    params: Dict[str, str] = {}
    for key, value in parse_qsl(parts.query, keep_blank_values=True):
        params[key] = value

    secret = params.get('secret')
    if not secret:
        raise MissingSecret()

    label, account_name, label_issuer = _parse_label(parts.path.lstrip('/'))
    issuer = params.get('issuer') or label_issuer

    return OtpRecord(
        secret=secret,
        label=label,
        issuer=issuer,
        account_name=account_name,
        algorithm=params.get('algorithm'),
        digits=_parse_int(params, 'digits'),
        period=_parse_int(params, 'period'),
        params=params,
    )


def to_entry(record: OtpRecord) -> Entry:
    """
    Build an Entry from a parsed URI.

    Missing or unknown algorithms fall back to SHA1 with a warning.

    Raises:
        InvalidParameter: If digits fall outside 4..10, period is not positive
            or the secret is not valid base32
    """
    if record.issuer and record.account_name:
        name = f"{record.issuer}:{record.account_name}"
    else:
        name = record.issuer or record.account_name or record.label or config.IMPORTED_ENTRY_NAME

    algorithm = Algorithm.from_name(record.algorithm)
    if algorithm is None:
        if record.algorithm is not None:
            logger.warning(f"Unknown algorithm '{record.algorithm}', defaulting to SHA1")
        algorithm = Algorithm.SHA1

    digits = config.DEFAULT_DIGITS if record.digits is None else record.digits
    low, high = config.URI_DIGITS_RANGE
    if not low <= digits <= high:
        raise InvalidParameter(f"Invalid digits value: {digits}, must be between {low} and {high}")

    step = config.DEFAULT_STEP if record.period is None else record.period
    if step <= 0:
        raise InvalidParameter(f"Invalid period value: {step}, must be positive")

    try:
        decode_secret(record.secret)
    except ValidationError as e:
        raise InvalidParameter(f"Invalid parameter: secret ({e})") from None

    return Entry(
        name=name,
        secret=normalize_secret(record.secret),
        totp_config=TOTPConfig(algorithm=algorithm, digits=digits, step=step),
    )


def entry_from_uri(uri: str) -> Entry:
    return to_entry(parse(uri))


def _clean(text: str) -> str:
    return text.replace(":", "").replace("%3A", "").replace("%3a", "")


def _split_entry_name(name: str) -> Tuple[str, Optional[str]]:
    """Derive (label, issuer) from a display name. Colons never survive inside either half."""
    issuer, sep, account = name.partition(":")
    if not sep:
        return _clean(name), None

    issuer = _clean(issuer.strip())
    account = _clean(account.strip())
    if not issuer:
        return _clean(name), None
    if not account:
        return issuer, issuer
    return f"{issuer}:{account}", issuer


def serialize(entry: Entry) -> str:
    """Render ``entry`` as an OTP URI."""
    label, issuer = _split_entry_name(entry.name)
    cfg = entry.totp_config

    uri = f"{config.OTP_URI_SCHEME}://{config.OTP_URI_TYPE}/{quote(label, safe='')}?"
    uri += f"period={cfg.step}"
    uri += f"&digits={cfg.digits}"
    uri += f"&algorithm={cfg.algorithm}"
    uri += f"&secret={quote(entry.secret, safe='')}"
    if issuer:
        uri += f"&issuer={quote(issuer, safe='')}"
    return uri
