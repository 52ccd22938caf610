"""
Domain models for the engagement feature.

Plain shapes handed over by a message source. They carry no Telethon types so
the aggregation pipeline can be fed by any adapter or by tests.
"""

from dataclasses import dataclass

MEDIA_KIND_PHOTO = "photo"
MEDIA_KIND_DOCUMENT = "document"

SUBTYPE_STICKER = "sticker"
SUBTYPE_VIDEO = "video"
SUBTYPE_VIDEO_NOTE = "video_note"
SUBTYPE_VOICE = "voice"
SUBTYPE_AUDIO = "audio"


@dataclass(slots=True, frozen=True)
class Conversation:
    id: int
    display_title: str
    is_direct: bool


@dataclass(slots=True, frozen=True)
class MessageRecord:
    timestamp_seconds: int
    text_body: str | None = None
    media_kind: str | None = None  # "photo", "document", or another raw kind
    media_subtype: str | None = None  # document flavour: sticker, video, video_note, voice, audio
