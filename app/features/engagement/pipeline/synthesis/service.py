"""
Deterministic heuristic synthesis.

Builds a plausible ActivityProfile from the numeric Telegram account id when no
session is available to read real messages. Every derived value comes from a
seeded sine hash of the id, so the same account always gets the same profile;
only `daysOnPlatform` moves with the clock.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import UTC, date, datetime

from app.features.engagement.pipeline.persona import classify_persona
from app.infrastructure.observability.logging import get_logger
from app.models.domain.profile_domain import (
    ActivityProfile,
    ContentTypeDistribution,
    ProfileOrigin,
    TopContact,
)

logger = get_logger(__name__)

# Telegram ids are handed out roughly chronologically.
JOIN_DATE_BENCHMARKS: tuple[tuple[int, date], ...] = (
    (100_000, date(2013, 10, 1)),
    (10_000_000, date(2014, 5, 1)),
    (100_000_000, date(2015, 2, 1)),
    (300_000_000, date(2016, 12, 1)),
    (600_000_000, date(2018, 6, 1)),
    (1_000_000_000, date(2019, 12, 1)),
    (2_000_000_000, date(2021, 9, 1)),
    (5_000_000_000, date(2022, 3, 1)),  # 64-bit id shift
    (6_000_000_000, date(2023, 5, 1)),
    (7_000_000_000, date(2024, 1, 1)),
)

# (id threshold, base messages, tenure multiplier)
VOLUME_BRACKETS: tuple[tuple[int, int, float], ...] = (
    (100_000_000, 40_000, 2.5),
    (500_000_000, 30_000, 2.0),
    (1_000_000_000, 20_000, 1.6),
    (2_000_000_000, 15_000, 1.3),
    (5_000_000_000, 10_000, 1.0),
)
FALLBACK_VOLUME = (8_000, 0.8)

PREMIUM_MULTIPLIER = 1.5
SHORT_HANDLE_MULTIPLIER = 1.2
SHORT_HANDLE_MAX_LENGTH = 5


@dataclass(frozen=True, slots=True)
class ContentMix:
    name: str
    text: float
    photo: float
    voice: float
    sticker: float
    video: float


MEDIA_LEANING = ContentMix("media", text=0.35, photo=0.40, voice=0.05, sticker=0.12, video=0.08)
VOICE_LEANING = ContentMix("voice", text=0.38, photo=0.05, voice=0.45, sticker=0.10, video=0.02)
STICKER_LEANING = ContentMix("sticker", text=0.40, photo=0.06, voice=0.04, sticker=0.46, video=0.04)
BALANCED = ContentMix("balanced", text=0.80, photo=0.06, voice=0.04, sticker=0.07, video=0.03)

# Seeds decorrelate the independent derived quantities.
SEED_VOLUME = 1
SEED_CONTENT_MIX = 2
SEED_GHOST_MODE = 3
SEED_STREAK = 4
SEED_WORDS = 5
SEED_VIDEO_NOTES = 6
SEED_PEAK_HOUR = 7
SEED_PEAK_VOLUME = 8


def seeded_random(account_id: int, seed: int) -> float:
    """frac(sin(id + seed) * 10000), always in [0, 1)."""
    x = math.sin(float(account_id + seed)) * 10000
    return x - math.floor(x)


def estimate_join_date(account_id: int) -> date:
    for threshold, joined in JOIN_DATE_BENCHMARKS:
        if account_id < threshold:
            return joined
    return JOIN_DATE_BENCHMARKS[-1][1]


def days_on_platform(account_id: int, now: datetime | None = None) -> int:
    current = now or datetime.now(UTC)
    joined = datetime.combine(estimate_join_date(account_id), datetime.min.time(), tzinfo=UTC)
    return max(1, (current - joined).days)


def estimate_ghost_mode(account_id: int, total_messages: int) -> int:
    """Sessions opened without sending anything, as a seeded share of volume."""
    return math.floor(total_messages * (0.02 + seeded_random(account_id, SEED_GHOST_MODE) * 0.08))


class HeuristicSynthesizer:
    def synthesize(
        self,
        account_id: int,
        is_premium_tier: bool = False,
        username: str | None = None,
        now: datetime | None = None,
    ) -> ActivityProfile:
        total = self._total_messages(account_id, is_premium_tier, username)
        mix = self._content_mix(account_id)

        distribution = ContentTypeDistribution(
            text=math.floor(total * mix.text),
            photo=math.floor(total * mix.photo),
            voice=math.floor(total * mix.voice),
            video=math.floor(total * mix.video),
            sticker=math.floor(total * mix.sticker),
        )

        words_per_message = 4 + math.floor(seeded_random(account_id, SEED_WORDS) * 7)
        words_count = math.floor(total * mix.text * words_per_message)
        video_notes = math.floor(
            total * mix.video * (0.3 + seeded_random(account_id, SEED_VIDEO_NOTES) * 0.4)
        )
        streak = math.floor(5 + seeded_random(account_id, SEED_STREAK) * 30)

        profile = ActivityProfile(
            total_messages=total,
            words_count=words_count,
            days_on_platform=days_on_platform(account_id, now),
            video_note_count=video_notes,
            days_streak=streak,
            ghost_mode_count=estimate_ghost_mode(account_id, total),
            content_type=distribution,
            active_hours=self._active_hours(account_id, total),
            top_contacts=self._top_contacts(total, username),
            persona=classify_persona(distribution, is_premium_tier),
            origin=ProfileOrigin.SYNTHESIZED,
        )

        logger.debug(
            "Profile synthesized",
            account_id=account_id,
            total_messages=total,
            content_mix=mix.name,
            persona=profile.persona.value,
        )
        return profile

    def _total_messages(self, account_id: int, is_premium_tier: bool, username: str | None) -> int:
        base, multiplier = FALLBACK_VOLUME
        for threshold, bracket_base, bracket_multiplier in VOLUME_BRACKETS:
            if account_id < threshold:
                base, multiplier = bracket_base, bracket_multiplier
                break

        volume = base * multiplier * (0.8 + seeded_random(account_id, SEED_VOLUME) * 0.4)
        if is_premium_tier:
            volume *= PREMIUM_MULTIPLIER
        if username and len(username) <= SHORT_HANDLE_MAX_LENGTH:
            volume *= SHORT_HANDLE_MULTIPLIER
        return math.floor(volume)

    def _content_mix(self, account_id: int) -> ContentMix:
        roll = seeded_random(account_id, SEED_CONTENT_MIX)
        if roll > 0.8:
            return MEDIA_LEANING
        if roll < 0.2:
            return VOICE_LEANING
        if roll < 0.3:
            return STICKER_LEANING
        return BALANCED

    def _active_hours(self, account_id: int, total: int) -> dict[int, int]:
        peak = math.floor(10 + seeded_random(account_id, SEED_PEAK_HOUR) * 12)
        peak_count = math.floor(total * (0.08 + seeded_random(account_id, SEED_PEAK_VOLUME) * 0.07))
        return {
            peak - 1: peak_count // 2,
            peak: peak_count,
            peak + 1: peak_count // 3,
        }

    def _top_contacts(self, total: int, username: str | None) -> list[TopContact]:
        contacts = [TopContact(name="Saved Messages", count=math.floor(total * 0.05))]
        if username:
            contacts.append(TopContact(name=f"@{username}", count=math.floor(total * 0.02)))
        contacts.append(TopContact(name="Telegram", count=max(1, math.floor(total * 0.001))))
        return sorted(contacts, key=lambda contact: contact.count, reverse=True)


heuristic_synthesizer = HeuristicSynthesizer()
