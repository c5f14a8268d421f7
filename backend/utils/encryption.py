"""
Encryption Utilities for Sensitive Data

Provides field-level encryption for the client mobile number.
Uses AES-SIV (deterministic authenticated encryption) keyed by a
passphrase-derived key.

Encryption is deterministic: the same plaintext under the same passphrase
always yields the same ciphertext, so stored values can be compared for
equality. It does not hide repeated values.

Passphrase sources, in order:
    1. An explicit passphrase (PASSPHRASE env var), used verbatim
    2. A passphrase file (PASSPHRASE_PATH), generated with random bytes if missing
    3. A `passphrase` file next to the backend package

Usage:
    from utils.encryption import get_encryption_service

    service = get_encryption_service()
    service.initialize(passphrase_path="/var/lib/directory/passphrase")

    ciphertext = service.encrypt("+447946000939")
    plaintext = service.decrypt(ciphertext)

Security Notes:
    - Never log plaintext mobile numbers
    - The passphrase file must be kept with the data; losing it makes
      every stored mobile number unreadable
"""

import os
import base64
import binascii
import logging
from pathlib import Path
from typing import Optional, Union
from functools import lru_cache

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESSIV
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

logger = logging.getLogger(__name__)

# Default passphrase file location (backend/passphrase)
DEFAULT_PASSPHRASE_PATH = Path(__file__).resolve().parent.parent / "passphrase"

# Generated passphrase files hold this many random bytes, hex-encoded
PASSPHRASE_BYTES = 10 * 1024

# Salt for key derivation (static so ciphertexts stay stable across restarts)
KEY_DERIVATION_SALT = b"client_directory_v1_salt"
KDF_ITERATIONS = 480000

# AES-SIV-256 takes a 512-bit key
KEY_LENGTH = 64

# Prepended to every plaintext before encryption
FORMAT_VERSION = b"\x01"

SUPPORTED_ENCODINGS = ("hex", "base64")


class EncryptionError(Exception):
    """Base exception for encryption errors"""
    pass


class ConfigurationError(EncryptionError):
    """Raised when key material cannot be read or written"""
    pass


class KeyNotConfiguredError(EncryptionError):
    """Raised when encrypt/decrypt is called before initialize"""
    pass


class DecryptionError(EncryptionError):
    """Raised when a ciphertext was not produced by the current passphrase"""
    pass


def derive_key(passphrase: Union[str, bytes], iterations: int = KDF_ITERATIONS) -> bytes:
    """
    Derive the AES-SIV key from a passphrase using PBKDF2-HMAC-SHA256.

    Args:
        passphrase: Passphrase text or bytes
        iterations: PBKDF2 iteration count

    Returns:
        64 bytes of key material
    """
    if isinstance(passphrase, str):
        passphrase = passphrase.encode("utf-8")

    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=KEY_DERIVATION_SALT,
        iterations=iterations,
    )
    return kdf.derive(passphrase)


def generate_passphrase() -> str:
    """Generate a new random passphrase (hex text)."""
    return os.urandom(PASSPHRASE_BYTES).hex()


def _encode(data: bytes, encoding: str) -> str:
    if encoding == "hex":
        return data.hex()
    if encoding == "base64":
        return base64.b64encode(data).decode("ascii")
    raise EncryptionError(f"Unsupported encoding: {encoding}")


def _decode(data: str, encoding: str) -> bytes:
    if encoding == "hex":
        return bytes.fromhex(data)
    if encoding == "base64":
        return base64.b64decode(data.encode("ascii"), validate=True)
    raise EncryptionError(f"Unsupported encoding: {encoding}")


class EncryptionService:
    """
    Deterministic symmetric cipher for sensitive client fields.

    Must be initialized once at startup, before any encrypt/decrypt call.
    Concurrent initialization against the same passphrase file is not
    supported.
    """

    def __init__(self, kdf_iterations: int = KDF_ITERATIONS):
        self.kdf_iterations = kdf_iterations
        self.passphrase_path: Optional[Path] = None
        self._cipher: Optional[AESSIV] = None

    @property
    def is_initialized(self) -> bool:
        return self._cipher is not None

    def initialize(
        self,
        passphrase: Optional[str] = None,
        passphrase_path: Optional[Union[str, Path]] = None
    ) -> None:
        """
        Set up the cipher.

        An explicit passphrase outweighs the passphrase file. If the file does
        not exist it is created with a random passphrase. With neither given,
        the default path next to the backend package is used.

        Raises:
            ConfigurationError: If the passphrase file cannot be created or read
        """
        if not passphrase:
            path = Path(passphrase_path) if passphrase_path else (self.passphrase_path or DEFAULT_PASSPHRASE_PATH)
            passphrase = self._load_passphrase_file(path)
            self.passphrase_path = path

        self._cipher = AESSIV(derive_key(passphrase, self.kdf_iterations))
        logger.info("Encryption service initialized")

    def _load_passphrase_file(self, path: Path) -> str:
        try:
            if not path.exists():
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_text(generate_passphrase(), encoding="utf-8")
                logger.warning(f"Generated new passphrase file at {path}")

            passphrase = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Cannot access passphrase file {path}: {e}")
            raise ConfigurationError(f"Cannot access passphrase file {path}: {e}") from e

        if not passphrase:
            raise ConfigurationError(f"Passphrase file {path} is empty")

        return passphrase

    def _require_cipher(self) -> AESSIV:
        if self._cipher is None:
            raise KeyNotConfiguredError("Encryption service not initialized - call initialize() first")
        return self._cipher

    def encrypt(self, plaintext: str, output_encoding: str = "hex") -> str:
        """
        Encrypt a string.

        Args:
            plaintext: Value to encrypt
            output_encoding: 'hex' or 'base64'

        Returns:
            Encoded ciphertext, identical for identical plaintexts
        """
        cipher = self._require_cipher()
        ciphertext = cipher.encrypt(FORMAT_VERSION + plaintext.encode("utf-8"), None)
        return _encode(ciphertext, output_encoding)

    def decrypt(self, ciphertext: str, input_encoding: str = "hex") -> str:
        """
        Decrypt a string produced by encrypt().

        Raises:
            DecryptionError: If the ciphertext is malformed or was produced
                with a different passphrase
        """
        cipher = self._require_cipher()

        try:
            raw = _decode(ciphertext, input_encoding)
        except (ValueError, binascii.Error) as e:
            raise DecryptionError(f"Malformed ciphertext: {e}") from e

        try:
            decrypted = cipher.decrypt(raw, None)
        except (InvalidTag, ValueError):
            logger.error("Decryption failed - invalid token or wrong passphrase")
            raise DecryptionError("Invalid ciphertext - data may be corrupted or passphrase mismatch")

        if not decrypted.startswith(FORMAT_VERSION):
            raise DecryptionError("Unknown ciphertext format")

        try:
            return decrypted[len(FORMAT_VERSION):].decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecryptionError(f"Decrypted value is not UTF-8: {e}") from e

    def reset(self) -> None:
        """Drop the key material."""
        self._cipher = None


@lru_cache(maxsize=1)
def get_encryption_service() -> EncryptionService:
    """Application-wide encryption service."""
    return EncryptionService()
