"""
Message aggregation service.

Walks a bounded slice of recent one-on-one conversations and turns their
messages into an ActivityProfile. Conversations are fetched concurrently under
a semaphore; each fetch produces its own tally and the tallies are merged in
conversation order afterwards, so results do not depend on completion order.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta

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
from app.features.engagement.domain.ports import MessageSource
from app.features.engagement.pipeline.persona import classify_persona
from app.features.engagement.pipeline.synthesis import days_on_platform, estimate_ghost_mode
from app.infrastructure.observability.logging import get_logger
from app.models.domain.profile_domain import (
    ActivityProfile,
    ContentTypeDistribution,
    ProfileOrigin,
    TopContact,
)

logger = get_logger(__name__)

_DOCUMENT_BUCKETS = {
    SUBTYPE_STICKER: "sticker",
    SUBTYPE_VIDEO: "video",
    SUBTYPE_VIDEO_NOTE: "video",
    SUBTYPE_VOICE: "voice",
    SUBTYPE_AUDIO: "voice",
}


class AggregationError(Exception):
    """Raised when a profile cannot be aggregated at all."""

    def __init__(self, message: str, operation: str = "aggregate", recoverable: bool = True):
        super().__init__(message)
        self.operation = operation
        self.recoverable = recoverable


@dataclass
class _ConversationTally:
    message_count: int = 0
    words_count: int = 0
    video_note_count: int = 0
    content_type: Counter = field(default_factory=Counter)
    active_hours: Counter = field(default_factory=Counter)
    active_days: set[date] = field(default_factory=set)


def classify_message(message: MessageRecord) -> str | None:
    """Content bucket for a message, or None when it counts toward no bucket."""
    if message.media_kind is None:
        return "text"
    if message.media_kind == MEDIA_KIND_PHOTO:
        return "photo"
    if message.media_kind == MEDIA_KIND_DOCUMENT:
        return _DOCUMENT_BUCKETS.get(message.media_subtype or "")
    return None


def longest_daily_streak(days: set[date]) -> int:
    longest = current = 0
    previous: date | None = None
    for day in sorted(days):
        current = current + 1 if previous and day - previous == timedelta(days=1) else 1
        longest = max(longest, current)
        previous = day
    return longest


class MessageAggregationService:
    DEFAULT_RECENCY_WINDOW_DAYS = 365
    DEFAULT_MAX_CONVERSATIONS = 15
    DEFAULT_MAX_MESSAGES_PER_CONVERSATION = 200
    DEFAULT_TOP_CONTACTS_LIMIT = 15
    DEFAULT_CONCURRENCY = 4

    async def aggregate(
        self,
        source: MessageSource,
        account_id: int,
        *,
        recency_window_days: int = DEFAULT_RECENCY_WINDOW_DAYS,
        max_conversations: int = DEFAULT_MAX_CONVERSATIONS,
        max_messages_per_conversation: int = DEFAULT_MAX_MESSAGES_PER_CONVERSATION,
        top_contacts_limit: int = DEFAULT_TOP_CONTACTS_LIMIT,
        concurrency: int = DEFAULT_CONCURRENCY,
        is_premium_tier: bool = False,
        now: datetime | None = None,
    ) -> ActivityProfile:
        now = now or datetime.now(UTC)
        cutoff = int((now - timedelta(days=recency_window_days)).timestamp())

        try:
            listed = await source.list_recent_conversations(max_conversations)
        except Exception as e:
            logger.warning("Conversation listing failed", account_id=account_id, error=str(e))
            raise AggregationError(
                f"Could not list conversations: {e}", operation="list_conversations"
            ) from e

        conversations = [conv for conv in listed if conv.is_direct][:max_conversations]
        semaphore = asyncio.Semaphore(max(1, concurrency))

        results = await asyncio.gather(
            *(
                self._tally_with_semaphore(
                    semaphore, source, conv, max_messages_per_conversation, cutoff
                )
                for conv in conversations
            ),
            return_exceptions=True,
        )

        tallies: list[tuple[Conversation, _ConversationTally]] = []
        for conv, result in zip(conversations, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.warning(
                    "Skipping conversation after fetch failure",
                    account_id=account_id,
                    conversation_id=conv.id,
                    error=str(result),
                )
                continue
            tallies.append((conv, result))

        profile = self._build_profile(
            account_id, tallies, top_contacts_limit, is_premium_tier, now
        )
        logger.info(
            "Profile aggregated",
            account_id=account_id,
            conversations=len(conversations),
            conversations_used=len(tallies),
            total_messages=profile.total_messages,
        )
        return profile

    async def _tally_with_semaphore(
        self,
        semaphore: asyncio.Semaphore,
        source: MessageSource,
        conversation: Conversation,
        limit: int,
        cutoff: int,
    ) -> _ConversationTally:
        async with semaphore:
            messages = await source.list_recent_messages(conversation.id, limit)
        return self._tally_messages(messages, cutoff)

    def _tally_messages(self, messages, cutoff: int) -> _ConversationTally:
        tally = _ConversationTally()
        for message in messages:
            try:
                timestamp = int(message.timestamp_seconds)
                sent_at = datetime.fromtimestamp(timestamp, tz=UTC)
            except (TypeError, ValueError, OverflowError, OSError):
                continue
            if timestamp < cutoff:
                continue

            tally.message_count += 1
            bucket = classify_message(message)
            if bucket:
                tally.content_type[bucket] += 1
            if message.media_subtype == SUBTYPE_VIDEO_NOTE:
                tally.video_note_count += 1
            if message.text_body:
                tally.words_count += len(message.text_body.split())
            tally.active_hours[sent_at.hour] += 1
            tally.active_days.add(sent_at.date())
        return tally

    def _build_profile(
        self,
        account_id: int,
        tallies: list[tuple[Conversation, _ConversationTally]],
        top_contacts_limit: int,
        is_premium_tier: bool,
        now: datetime,
    ) -> ActivityProfile:
        content_type: Counter = Counter()
        active_hours: Counter = Counter()
        active_days: set[date] = set()
        total = words = video_notes = 0
        contacts: list[TopContact] = []

        for conv, tally in tallies:
            total += tally.message_count
            words += tally.words_count
            video_notes += tally.video_note_count
            content_type.update(tally.content_type)
            active_hours.update(tally.active_hours)
            active_days |= tally.active_days
            if tally.message_count > 0:
                contacts.append(TopContact(name=conv.display_title, count=tally.message_count))

        # sorted() is stable: equal counts keep conversation order
        contacts = sorted(contacts, key=lambda contact: contact.count, reverse=True)

        distribution = ContentTypeDistribution(**content_type)
        return ActivityProfile(
            total_messages=total,
            words_count=words,
            days_on_platform=days_on_platform(account_id, now),
            video_note_count=video_notes,
            days_streak=longest_daily_streak(active_days),
            ghost_mode_count=estimate_ghost_mode(account_id, total),
            content_type=distribution,
            active_hours=dict(sorted(active_hours.items())),
            top_contacts=contacts[:top_contacts_limit],
            persona=classify_persona(distribution, is_premium_tier),
            origin=ProfileOrigin.AGGREGATED,
        )


message_aggregation_service = MessageAggregationService()
