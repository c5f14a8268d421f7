"""
Utils Package

Provides utility modules for:
- encryption: Field-level encryption for the client mobile number
- validation_errors: Structured error bodies for the HTTP layer
"""

from .encryption import (
    EncryptionService,
    get_encryption_service,
    generate_passphrase,
    derive_key,
    EncryptionError,
    ConfigurationError,
    DecryptionError,
    KeyNotConfiguredError,
)

__all__ = [
    'EncryptionService',
    'get_encryption_service',
    'generate_passphrase',
    'derive_key',
    'EncryptionError',
    'ConfigurationError',
    'DecryptionError',
    'KeyNotConfiguredError',
]
