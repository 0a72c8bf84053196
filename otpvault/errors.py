"""
Exception types raised by the vault engine.

Every error carries a machine-checkable ``category`` and a short context
string. Messages never include passwords, keys or shared secrets.
"""


class OtpVaultError(Exception):
    """Base class for all engine errors."""

    category = "error"

    def __init__(self, context: str = ""):
        super().__init__(context)
        self.context = context

    def __str__(self) -> str:
        return self.context or self.category


class NotFound(OtpVaultError):
    """Vault file, database file or entry does not exist."""
    category = "not_found"


class AuthenticationFailure(OtpVaultError):
    """Wrong password or tampered ciphertext. The two are not told apart."""
    category = "authentication_failure"


class IncorrectPassword(AuthenticationFailure):
    """The KeePass database rejected the password."""
    category = "incorrect_password"


class ValidationError(OtpVaultError):
    """Malformed entry fields on submit or decode."""
    category = "validation_error"


class StructuralError(OtpVaultError):
    """An expected container structure is missing."""
    category = "structural_error"


class CorruptData(OtpVaultError):
    """Container bytes could not be decoded."""
    category = "corrupt_data"


class VaultLocked(OtpVaultError):
    """Operation needs an unlocked vault."""
    category = "vault_locked"


class ParseError(ValidationError):
    """An OTP URI could not be parsed."""
    category = "parse_error"


class InvalidUrl(ParseError):
    pass


class InvalidScheme(ParseError):
    pass


class InvalidOtpType(ParseError):
    pass


class MissingSecret(ParseError):

    def __init__(self, context: str = "Missing required secret parameter"):
        super().__init__(context)


class InvalidParameter(ParseError):
    pass
