"""
Cryptographic operations for the vault.

Argon2id turns the master password into a 256-bit key; AES-256-GCM
encrypts the serialized entry store with a fresh 96-bit nonce per save.
"""

import base64
import binascii
import os

from argon2.low_level import Type, hash_secret_raw
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from . import config
from .errors import CorruptData


class CryptoManager:
    """Handles all cryptographic operations for the vault."""

    def __init__(self):
        """Initialize the crypto manager with the configured Argon2id cost."""
        self.time_cost = config.ARGON2_TIME_COST
        self.memory_cost = config.ARGON2_MEMORY_COST
        self.parallelism = config.ARGON2_PARALLELISM
        self.hash_len = max(config.ARGON2_HASH_LEN, config.KEY_SIZE)

    def generate_salt(self) -> bytes:
        """Generate a cryptographically secure random salt."""
        return os.urandom(config.SALT_SIZE)

    def generate_nonce(self) -> bytes:
        return os.urandom(config.NONCE_SIZE)

    def derive_key(self, password: str, salt: bytes) -> bytearray:
        """
        Derive an encryption key from a password using Argon2id.

        Args:
            password: The master password
            salt: Random salt for key derivation

        Returns:
            32-byte encryption key (the leading bytes of the raw hash), mutable
            so that it can be wiped with ``clear_bytes``
        """
        raw = hash_secret_raw(
            secret=password.encode('utf-8'),
            salt=salt,
            time_cost=self.time_cost,
            memory_cost=self.memory_cost,
            parallelism=self.parallelism,
            hash_len=self.hash_len,
            type=Type.ID
        )
        return bytearray(raw[:config.KEY_SIZE])

    def encrypt(self, plaintext: bytes, key: bytes, nonce: bytes) -> bytes:
        """
        Encrypt data using AES-256-GCM with no associated data.

        Returns:
            Ciphertext with the 16-byte tag appended
        """
        return AESGCM(bytes(key)).encrypt(nonce, plaintext, None)

    def decrypt(self, ciphertext: bytes, key: bytes, nonce: bytes) -> bytes:
        """
        Decrypt data using AES-256-GCM.

        Raises:
            cryptography.exceptions.InvalidTag: If authentication fails
        """
        return AESGCM(bytes(key)).decrypt(nonce, ciphertext, None)

    def clear_bytes(self, data: bytearray) -> None:
        """Attempt to clear sensitive bytes from memory."""
        if isinstance(data, bytearray):
            for i in range(len(data)):
                data[i] = 0


def encode_salt(salt: bytes) -> str:
    """Salt as unpadded base64 text, the form stored in the container."""
    return base64.b64encode(salt).decode('ascii').rstrip('=')


def decode_salt(text: str) -> bytes:
    try:
        return base64.b64decode(text + '=' * (-len(text) % 4), validate=True)
    except (binascii.Error, ValueError):
        raise CorruptData("Invalid salt encoding") from None
