"""
MTProto message source backed by Telethon.

Opens a user session from a stored StringSession, lists recent dialogs and
recent messages, and maps Telethon objects into the plain Conversation /
MessageRecord shapes the aggregation pipeline consumes.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from telethon import TelegramClient
from telethon.sessions import StringSession

from app.config import settings
from app.features.engagement.domain.models import (
    MEDIA_KIND_DOCUMENT,
    MEDIA_KIND_PHOTO,
    SUBTYPE_AUDIO,
    SUBTYPE_STICKER,
    SUBTYPE_VIDEO,
    SUBTYPE_VIDEO_NOTE,
    SUBTYPE_VOICE,
    Conversation,
    MessageRecord,
)
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

# Dialog lists mix groups and channels in; fetch extra so enough direct chats remain.
DIALOG_OVERFETCH_FACTOR = 3

# Checked in order: a video note is also a video, a voice message is also audio.
_DOCUMENT_SUBTYPES = (
    ("sticker", SUBTYPE_STICKER),
    ("video_note", SUBTYPE_VIDEO_NOTE),
    ("voice", SUBTYPE_VOICE),
    ("video", SUBTYPE_VIDEO),
    ("audio", SUBTYPE_AUDIO),
)


class MessageSourceError(Exception):
    """Raised when the Telegram session cannot be used for reading messages."""

    def __init__(self, message: str, operation: str = "unknown", recoverable: bool = True):
        super().__init__(message)
        self.operation = operation
        self.recoverable = recoverable


def to_conversation(dialog: Any) -> Conversation:
    entity = getattr(dialog, "entity", None)
    is_bot = bool(getattr(entity, "bot", False))
    return Conversation(
        id=int(dialog.id),
        display_title=dialog.name or "Deleted Account",
        is_direct=bool(dialog.is_user) and not is_bot,
    )


def to_message_record(message: Any) -> MessageRecord:
    media_kind = None
    media_subtype = None

    if getattr(message, "photo", None) is not None:
        media_kind = MEDIA_KIND_PHOTO
    elif getattr(message, "document", None) is not None:
        media_kind = MEDIA_KIND_DOCUMENT
        for attribute, subtype in _DOCUMENT_SUBTYPES:
            if getattr(message, attribute, None):
                media_subtype = subtype
                break
    elif getattr(message, "media", None) is not None:
        # geo, contact, poll, web page previews...
        media_kind = type(message.media).__name__

    return MessageRecord(
        timestamp_seconds=int(message.date.timestamp()),
        text_body=message.message or None,
        media_kind=media_kind,
        media_subtype=media_subtype,
    )


class TelethonMessageSource:
    def __init__(self, client: TelegramClient):
        self._client = client

    async def list_recent_conversations(self, limit: int) -> list[Conversation]:
        dialogs = await self._client.get_dialogs(limit=limit * DIALOG_OVERFETCH_FACTOR)
        return [to_conversation(dialog) for dialog in dialogs]

    async def list_recent_messages(self, conversation_id: int, limit: int) -> list[MessageRecord]:
        messages = await self._client.get_messages(conversation_id, limit=limit)
        return [to_message_record(message) for message in messages if message.date is not None]


@asynccontextmanager
async def open_message_source(session: str) -> AsyncIterator[TelethonMessageSource]:
    """Connect a Telethon client for the session and disconnect on exit."""
    if not settings.telegram_api_configured():
        raise MessageSourceError("TG_API_ID / TG_API_HASH not configured", operation="connect")

    client = TelegramClient(StringSession(session), settings.TG_API_ID, settings.TG_API_HASH)
    await client.connect()
    try:
        if not await client.is_user_authorized():
            raise MessageSourceError(
                "Stored session is no longer authorized", operation="connect", recoverable=False
            )
        yield TelethonMessageSource(client)
    finally:
        await client.disconnect()
        logger.debug("Telegram client disconnected")
