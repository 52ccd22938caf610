"""
Telegram Bot API client for profile photo lookup.

Resolves the largest size of the user's current avatar to a downloadable file
URL. Lookup is best-effort: `get_profile_photo_url` never raises.
"""

import httpx

from app.config import settings
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

BOT_API_BASE_URL = "https://api.telegram.org"


class TelegramBotError(Exception):
    """Raised when the Bot API answers with ok=false or an unusable payload."""

    def __init__(self, message: str, method: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.method = method
        self.status_code = status_code


class TelegramBotService:
    def __init__(
        self,
        bot_token: str | None = None,
        timeout_s: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._bot_token = bot_token
        self._timeout_s = timeout_s
        self._transport = transport

    @property
    def bot_token(self) -> str | None:
        return self._bot_token or settings.BOT_TOKEN

    async def _call(self, client: httpx.AsyncClient, method: str, params: dict) -> dict:
        response = await client.get(f"/bot{self.bot_token}/{method}", params=params)
        try:
            payload = response.json()
        except ValueError as e:
            raise TelegramBotError(
                "Non-JSON Bot API response", method=method, status_code=response.status_code
            ) from e

        if not isinstance(payload, dict):
            raise TelegramBotError(
                "Bot API response is not an object", method=method, status_code=response.status_code
            )

        if not payload.get("ok"):
            raise TelegramBotError(
                payload.get("description", "Bot API call failed"),
                method=method,
                status_code=response.status_code,
            )

        result = payload.get("result")
        if not isinstance(result, dict):
            raise TelegramBotError(
                "Bot API result is not an object", method=method, status_code=response.status_code
            )
        return result

    async def fetch_profile_photo_url(self, account_id: int) -> str | None:
        """
        Look up the current avatar file URL.

        Raises:
            TelegramBotError: on Bot API errors or malformed payloads
            httpx.HTTPError: on transport failures
        """
        if not self.bot_token:
            return None

        async with httpx.AsyncClient(
            base_url=BOT_API_BASE_URL,
            timeout=self._timeout_s or settings.PHOTO_LOOKUP_TIMEOUT_S,
            transport=self._transport,
        ) as client:
            photos = await self._call(
                client, "getUserProfilePhotos", {"user_id": account_id, "limit": 1}
            )
            if not photos.get("total_count") or not photos.get("photos"):
                return None

            try:
                # sizes are listed smallest first
                file_id = photos["photos"][0][-1]["file_id"]
            except (IndexError, KeyError, TypeError) as e:
                raise TelegramBotError("Malformed photo list", method="getUserProfilePhotos") from e

            file_info = await self._call(client, "getFile", {"file_id": file_id})
            file_path = file_info.get("file_path")
            if not file_path:
                return None

        return f"{BOT_API_BASE_URL}/file/bot{self.bot_token}/{file_path}"

    async def get_profile_photo_url(self, account_id: int) -> str | None:
        try:
            return await self.fetch_profile_photo_url(account_id)
        except (httpx.HTTPError, TelegramBotError) as e:
            logger.info(
                "Profile photo lookup failed",
                account_id=account_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None


telegram_bot_service = TelegramBotService()
