from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Persona(str, Enum):
    PODCASTER = "Podcaster"
    PAPARAZZI = "Paparazzi"
    STICKER_ENTHUSIAST = "StickerEnthusiast"
    STORYTELLER = "Storyteller"
    TEXTER = "Texter"


class ProfileOrigin(str, Enum):
    SYNTHESIZED = "synthesized"
    AGGREGATED = "aggregated"


class IdentityClaim(_CamelModel):
    """Verified Telegram Mini App user, scoped to one request."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    account_id: int
    display_name: str = ""
    is_premium_tier: bool = False
    username: str | None = None
    language_code: str | None = None


class ContentTypeDistribution(_CamelModel):
    """Schema v1: video notes fold into video, audio files into voice."""

    text: int = Field(default=0, ge=0)
    photo: int = Field(default=0, ge=0)
    voice: int = Field(default=0, ge=0)
    video: int = Field(default=0, ge=0)
    sticker: int = Field(default=0, ge=0)


class TopContact(_CamelModel):
    name: str
    count: int = Field(ge=0)


class ActivityProfile(_CamelModel):
    """Engagement profile returned by GET /api/stats and stored in the cache."""

    total_messages: int = Field(ge=0)
    words_count: int = Field(ge=0)
    days_on_platform: int = Field(ge=0)
    video_note_count: int = Field(default=0, ge=0)
    days_streak: int = Field(default=0, ge=0)
    ghost_mode_count: int = Field(default=0, ge=0)
    content_type: ContentTypeDistribution = Field(default_factory=ContentTypeDistribution)
    active_hours: dict[int, int] = Field(default_factory=dict)
    top_contacts: list[TopContact] = Field(default_factory=list)
    persona: Persona = Persona.TEXTER
    origin: ProfileOrigin
    photo_url: str | None = None

    @field_validator("active_hours")
    @classmethod
    def _check_hours(cls, value: dict[int, int]) -> dict[int, int]:
        for hour, count in value.items():
            if not 0 <= hour <= 23:
                raise ValueError(f"hour out of range: {hour}")
            if count < 0:
                raise ValueError(f"negative count for hour {hour}")
        return value
