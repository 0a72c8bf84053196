"""
OTPVault
Local, password-protected manager for TOTP credentials.

Entries are kept either in an Argon2id + AES-256-GCM encrypted vault file
or as custom fields inside a KeePass database. Everything stays on the
device; nothing is sent over the network.
"""

from .config import APP_VERSION as __version__
