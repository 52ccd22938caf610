"""
verify.py
---------
Purpose:
    Telegram Mini App initData verification.

Notes:
    - initData is a query string signed by Telegram with a key derived from the bot token.
    - `verify_init_data` is pure and never raises; False means "unauthenticated".
    - Provides `auth_dependency` for protected routes (header X-Telegram-Init-Data).
"""

import hashlib
import hmac
import json
import time
from urllib.parse import parse_qsl

from fastapi import Header, HTTPException, status

from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.models.domain.profile_domain import IdentityClaim

logger = get_logger(__name__)

WEB_APP_DATA_KEY = b"WebAppData"
INIT_DATA_HEADER = "X-Telegram-Init-Data"

DEV_IDENTITY = IdentityClaim(
    account_id=123456789,
    display_name="Dev",
    is_premium_tier=True,
    language_code="en",
)


def _parse_pairs(init_data: str) -> list[tuple[str, str]]:
    return parse_qsl(init_data, keep_blank_values=True, strict_parsing=True)


def build_data_check_string(pairs: list[tuple[str, str]]) -> str:
    """Sorted `key=value` lines joined with newlines, `hash` excluded."""
    fields = sorted((item for item in pairs if item[0] != "hash"), key=lambda item: item[0])
    return "\n".join(f"{key}={value}" for key, value in fields)


def compute_init_data_hash(data_check_string: str, bot_token: str) -> str:
    secret_key = hmac.new(WEB_APP_DATA_KEY, bot_token.encode("utf-8"), hashlib.sha256).digest()
    return hmac.new(secret_key, data_check_string.encode("utf-8"), hashlib.sha256).hexdigest()


def verify_init_data(init_data: str | None, bot_token: str | None) -> bool:
    if not init_data or not bot_token:
        return False

    try:
        pairs = _parse_pairs(init_data)
    except ValueError:
        return False

    hashes = [value for key, value in pairs if key == "hash"]
    if len(hashes) != 1 or not hashes[0]:
        return False

    expected = compute_init_data_hash(build_data_check_string(pairs), bot_token)
    # bytes comparison: compare_digest rejects non-ASCII str
    return hmac.compare_digest(expected.encode("ascii"), hashes[0].encode("utf-8"))


def parse_identity_claim(init_data: str) -> IdentityClaim | None:
    """Decode the JSON `user` field of initData into an IdentityClaim."""
    try:
        fields = dict(_parse_pairs(init_data))
        user = json.loads(fields["user"])
        first_name = user.get("first_name") or ""
        last_name = user.get("last_name")
        display_name = f"{first_name} {last_name}" if last_name else first_name
        return IdentityClaim(
            account_id=int(user["id"]),
            display_name=display_name,
            is_premium_tier=bool(user.get("is_premium", False)),
            username=user.get("username") or None,
            language_code=user.get("language_code"),
        )
    except (AttributeError, KeyError, TypeError, ValueError):
        return None


def is_init_data_fresh(init_data: str, max_age_s: int, now: float | None = None) -> bool:
    if max_age_s <= 0:
        return True
    try:
        auth_date = int(dict(_parse_pairs(init_data))["auth_date"])
    except (KeyError, ValueError):
        return False
    current = now if now is not None else time.time()
    return current - auth_date <= max_age_s


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "tma"},
    )


def auth_dependency(
    init_data: str | None = Header(default=None, alias=INIT_DATA_HEADER),
) -> IdentityClaim:
    if not init_data:
        if settings.environment == "development" and settings.DEV_AUTH_BYPASS:
            logger.debug("Using development identity")
            return DEV_IDENTITY
        raise _unauthorized("Missing Telegram init data")

    if not verify_init_data(init_data, settings.BOT_TOKEN):
        logger.warning("initData signature rejected")
        raise _unauthorized("Invalid Telegram init data")

    if not is_init_data_fresh(init_data, settings.INIT_DATA_MAX_AGE_S):
        logger.warning("initData expired", max_age_s=settings.INIT_DATA_MAX_AGE_S)
        raise _unauthorized("Telegram init data expired")

    claim = parse_identity_claim(init_data)
    if claim is None:
        raise _unauthorized("Telegram init data has no usable user")
    return claim
