"""
Configuration constants for the OTPVault application.
"""

# Application Metadata
APP_VERSION = "0.3.0"  # Use: Current version of the application. Type: str. Range: Semantic versioning string (e.g., "1.0.0")
APP_NAME = "OTPVault"  # Use: Full name of the application. Type: str. Range: Any valid string.
APP_ID = "otpvault"  # Use: Short identifier used for console script and settings. Type: str. Range: Lowercase identifier.

# Security Settings
SALT_SIZE = 16  # Use: Size of the cryptographic salt in bytes for key derivation. Type: int. Range: Recommended to be at least 16 bytes (128 bits) for security.
KEY_SIZE = 32  # Use: Size of the encryption key in bytes. Corresponds to AES-256. Type: int. Range: 32 bytes (AES-256) only.
NONCE_SIZE = 12  # Use: Size of the Nonce (Number used once) in bytes for AES-GCM. Type: int. Range: 12 bytes (96 bits) is the recommended size for GCM.
ARGON2_TIME_COST = 2  # Use: Argon2id time cost parameter. Controls the number of iterations. Type: int. Range: Typically 1 to 10. Higher values increase security but also computation time.
ARGON2_MEMORY_COST = 65536  # Use: Argon2id memory cost parameter. Controls the memory usage in KiB. Type: int. Range: Recommended to be at least 65536 (64 MB). Higher values increase security but also memory usage.
ARGON2_PARALLELISM = 4  # Use: Argon2id parallelism parameter. Controls the number of threads/lanes. Type: int. Range: Typically 1 to 8, often set to the number of CPU cores.
ARGON2_HASH_LEN = 32  # Use: Length of the raw Argon2id output in bytes. The leading KEY_SIZE bytes become the AES key. Type: int. Range: At least KEY_SIZE.

# Container Format
CONTAINER_MAGIC = b'OTPV'  # Use: Magic bytes at the start of every vault file. Type: bytes. Range: Exactly 4 bytes.
CONTAINER_VERSION = 1  # Use: On-disk container version written after the magic bytes. Type: int. Range: Positive integer; readers reject newer versions.

# TOTP Defaults
DEFAULT_ALGORITHM = "SHA1"  # Use: Hash algorithm used when none is given. Type: str. Range: "SHA1", "SHA256" or "SHA512".
DEFAULT_DIGITS = 6  # Use: Number of digits in a generated code when none is given. Type: int. Range: 6 or 8 for submittable entries.
DEFAULT_STEP = 30  # Use: Seconds between two codes when none is given. Type: int. Range: 1 to MAX_STEP.
DEFAULT_SKEW = 1  # Use: Adjacent windows accepted when verifying a code. Type: int. Range: 0 to 10.

# Validation Bounds
SUBMITTABLE_DIGITS = (6, 8)  # Use: Digit counts accepted for a submittable entry. Type: tuple[int]. Range: Subset of URI_DIGITS_RANGE.
URI_DIGITS_RANGE = (4, 10)  # Use: Inclusive digit bounds accepted when decoding an OTP URI. Type: tuple[int, int]. Range: 1 to 10.
MAX_STEP = 300  # Use: Largest step in seconds accepted for a submittable entry. Type: int. Range: Positive integer.
SECRET_MIN_BYTES = 10  # Use: Minimum decoded shared secret length in bytes. Type: int. Range: Positive integer.
SECRET_MAX_BYTES = 64  # Use: Maximum decoded shared secret length in bytes. Type: int. Range: Positive integer.

# OTP URI
OTP_URI_SCHEME = "otpauth"  # Use: Scheme of the single-credential interchange URI. Type: str. Range: "otpauth".
OTP_URI_TYPE = "totp"  # Use: Only OTP type accepted in the URI host position. Type: str. Range: "totp".
IMPORTED_ENTRY_NAME = "Imported Entry"  # Use: Display name used when an imported URI carries no label and no issuer. Type: str. Range: Any non-empty string.

# KeePass Backend
KEEPASS_GROUP_NAME = "Default Group"  # Use: Name of the single group holding every TOTP record in a KeePass database. Type: str. Range: Any valid string.
KEEPASS_SECRET_KEY = "ClockodeTotpSecret"  # Use: Custom field holding the base32 shared secret. Type: str. Range: Fixed, existing Clockode databases use this name.
KEEPASS_ALGORITHM_KEY = "ClockodeTotpAlgorithm"  # Use: Custom field holding the hash algorithm name. Type: str. Range: Fixed, existing Clockode databases use this name.
KEEPASS_PERIOD_KEY = "ClockodeTotpPeriod"  # Use: Custom field holding the step in seconds. Type: str. Range: Fixed, existing Clockode databases use this name.
KEEPASS_DIGITS_KEY = "ClockodeTotpDigits"  # Use: Custom field holding the digit count. Type: str. Range: Fixed, existing Clockode databases use this name.
KEEPASS_UNNAMED_ENTRY = "Unnamed TOTP Entry"  # Use: Display name for KeePass records without a title. Type: str. Range: Any non-empty string.

# Worker Pool
WORKER_POOL_SIZE = 2  # Use: Number of background threads running KDF, AEAD and file work. Type: int. Range: Positive integer.

# User Settings
DEFAULT_THEME = "CatppuccinMacchiato"  # Use: Theme name stored in a fresh settings file. Type: str. Range: Any theme name understood by the caller.
DEFAULT_BACKEND = "vault"  # Use: Storage backend selected in a fresh settings file. Type: str. Range: "vault" or "keepass".
AVAILABLE_BACKENDS = ("vault", "keepass")  # Use: Backends a deployment may select. Type: tuple[str]. Range: Fixed.

# File and Directory Names
CONFIG_DIR_NAME = ".otpvault"  # Use: Name of the hidden directory within the user's home directory where OTPVault stores its data files. Type: str. Range: Any valid directory name.
DEFAULT_VAULT_FILE = "vault.enc"  # Use: Default filename for the encrypted vault. Type: str. Range: Any valid filename.
DEFAULT_KEEPASS_FILE = "database.kdbx"  # Use: Default filename for the KeePass database. Type: str. Range: Any valid filename.
SETTINGS_FILE = "settings.json"  # Use: Filename for persisted user settings. Type: str. Range: Any valid filename.
TEMP_FILE_SUFFIX = ".tmp"  # Use: Suffix of the sibling file written before an atomic replace. Type: str. Range: Any suffix.
