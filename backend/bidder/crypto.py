"""
Encryption of the LinkedIn access tokens kept in the users table.

Fernet key from ENCRYPTION_KEY. Without a key (development only) tokens are
stored and returned unchanged.
"""

import logging
from functools import lru_cache
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from bidder.config import get_settings

logger = logging.getLogger(__name__)


@lru_cache
def _cipher_for(key: str) -> Fernet:
    try:
        return Fernet(key.encode())
    except ValueError as exc:
        raise RuntimeError(f"ENCRYPTION_KEY is not a valid Fernet key: {exc}") from exc


@lru_cache
def _warn_plaintext() -> None:
    logger.warning("ENCRYPTION_KEY not set: LinkedIn access tokens are stored unencrypted (development only).")


def token_cipher() -> Optional[Fernet]:
    """Cipher for the configured key; None when running keyless in development."""
    settings = get_settings()
    if settings.encryption_key:
        return _cipher_for(settings.encryption_key)
    if settings.is_production:
        raise RuntimeError("ENCRYPTION_KEY must be set in production.")
    _warn_plaintext()
    return None


def encrypt_value(plaintext: Optional[str]) -> Optional[str]:
    if plaintext is None:
        return None
    cipher = token_cipher()
    return cipher.encrypt(plaintext.encode()).decode() if cipher else plaintext


def decrypt_value(ciphertext: Optional[str]) -> Optional[str]:
    """
    Plaintext token. Values that do not decrypt are returned unchanged so rows
    written before a key was configured keep working.
    """
    if ciphertext is None:
        return None
    cipher = token_cipher()
    if cipher is None:
        return ciphertext
    try:
        return cipher.decrypt(ciphertext.encode()).decode()
    except InvalidToken:
        logger.warning("Stored access token did not decrypt with ENCRYPTION_KEY, using it as-is.")
        return ciphertext
