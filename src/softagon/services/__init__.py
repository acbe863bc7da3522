"""Softagon services.

Cross-cutting helpers used by the persistence access layer:
- encryption: AES-256-GCM field encryption for sensitive columns
"""

from softagon.services.encryption import DecryptionError, EncryptionError, FieldEncryptor

__all__ = ["DecryptionError", "EncryptionError", "FieldEncryptor"]
