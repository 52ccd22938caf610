"""
Encryption service for stored Telegram sessions.
Uses Fernet symmetric encryption so session strings never sit in the database in clear text.
"""

from cryptography.fernet import Fernet, InvalidToken

from app.config import settings
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class EncryptionError(Exception):
    """Custom exception for encryption/decryption errors."""

    pass


def _get_fernet() -> Fernet:
    """
    Get Fernet instance with encryption key from environment.

    Raises:
        EncryptionError: If encryption key is not configured or malformed
    """
    if not settings.ENCRYPTION_KEY:
        raise EncryptionError("ENCRYPTION_KEY not configured in environment")

    try:
        return Fernet(settings.ENCRYPTION_KEY.encode("utf-8"))
    except Exception as e:
        logger.error("Failed to initialize Fernet cipher", error=str(e))
        raise EncryptionError(f"Invalid encryption key: {e}") from e


def encrypt_session(session: str) -> bytes:
    """
    Encrypt a session string for BYTEA storage.

    Raises:
        EncryptionError: If the input is empty or encryption fails
    """
    if not session or not isinstance(session, str):
        raise EncryptionError("Session must be a non-empty string")

    fernet = _get_fernet()
    try:
        return fernet.encrypt(session.encode("utf-8"))
    except Exception as e:
        logger.error("Failed to encrypt session", error=str(e))
        raise EncryptionError(f"Encryption failed: {e}") from e


def decrypt_session(encrypted_session: bytes) -> str:
    """
    Decrypt a session string read from storage.

    Raises:
        EncryptionError: If decryption fails or the ciphertext is invalid
    """
    if isinstance(encrypted_session, memoryview):
        encrypted_session = encrypted_session.tobytes()
    if not encrypted_session or not isinstance(encrypted_session, bytes):
        raise EncryptionError("Encrypted session must be non-empty bytes")

    fernet = _get_fernet()
    try:
        return fernet.decrypt(encrypted_session).decode("utf-8")
    except InvalidToken as e:
        logger.error("Session decryption failed - invalid token")
        raise EncryptionError("Invalid or corrupted session ciphertext") from e


def validate_encryption_config() -> bool:
    """Round-trip a dummy value to confirm the key works."""
    try:
        probe = "encryption_probe_12345"
        is_valid = decrypt_session(encrypt_session(probe)) == probe
        if is_valid:
            logger.info("Encryption configuration validated successfully")
        else:
            logger.error("Encryption validation failed - data mismatch")
        return is_valid
    except EncryptionError as e:
        logger.error("Encryption configuration validation failed", error=str(e))
        return False

