"""
Read-only access to stored Telegram sessions.

Sessions are written by the login flow (phone + code exchange) that lives
outside this service; here they are only looked up and decrypted.
"""

from app.db.helpers import DatabaseError, fetch_one, with_db_retry
from app.infrastructure.observability.logging import get_logger
from app.services.infrastructure.encryption_service import EncryptionError, decrypt_session

logger = get_logger(__name__)


class CredentialStoreError(Exception):
    """Raised when a stored session exists but cannot be used."""

    def __init__(self, message: str, account_id: int | None = None, recoverable: bool = True):
        super().__init__(message)
        self.account_id = account_id
        self.recoverable = recoverable


class CredentialRepository:
    """Raw SQL access to the telegram_sessions table."""

    @with_db_retry(max_retries=2, base_delay=0.1)
    async def _fetch_ciphertext(self, account_id: int) -> bytes | None:
        row = await fetch_one(
            """
            SELECT session_ciphertext
            FROM telegram_sessions
            WHERE account_id = %s
            """,
            (account_id,),
        )
        return row["session_ciphertext"] if row else None

    async def get(self, account_id: int) -> str | None:
        """
        Return the decrypted session string, or None when the account never logged in.

        Raises:
            CredentialStoreError: if the row exists but cannot be read or decrypted
        """
        try:
            ciphertext = await self._fetch_ciphertext(account_id)
        except DatabaseError as e:
            raise CredentialStoreError(
                f"Session lookup failed: {e}", account_id=account_id, recoverable=e.recoverable
            ) from e

        if ciphertext is None:
            return None

        try:
            return decrypt_session(ciphertext)
        except EncryptionError as e:
            logger.error("Stored session could not be decrypted", account_id=account_id)
            raise CredentialStoreError(
                "Stored session is unreadable", account_id=account_id, recoverable=False
            ) from e


credential_repository = CredentialRepository()
