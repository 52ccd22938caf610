import importlib
import json

import pytest

from app.features.engagement.repository import ProfileCacheRepository, profile_cache_key
from app.models.domain.profile_domain import (
    ActivityProfile,
    ContentTypeDistribution,
    Persona,
    ProfileOrigin,
    TopContact,
)


def _profile() -> ActivityProfile:
    return ActivityProfile(
        total_messages=120,
        words_count=300,
        days_on_platform=400,
        video_note_count=2,
        days_streak=6,
        ghost_mode_count=4,
        content_type=ContentTypeDistribution(text=100, photo=20),
        active_hours={9: 50, 10: 70},
        top_contacts=[TopContact(name="Bob", count=80), TopContact(name="Eve", count=40)],
        persona=Persona.TEXTER,
        origin=ProfileOrigin.AGGREGATED,
        photo_url="https://example.org/p.jpg",
    )


def test_cache_key_is_versioned():
    assert profile_cache_key(42) == "profile:v1:42"


@pytest.mark.asyncio
async def test_put_then_get_returns_equal_profile(fake_redis):
    repo = ProfileCacheRepository(client=fake_redis)
    profile = _profile()

    assert await repo.put(42, profile) is True
    assert await repo.get(42) == profile


@pytest.mark.asyncio
async def test_stored_json_uses_camel_case(fake_redis):
    repo = ProfileCacheRepository(client=fake_redis)
    await repo.put(42, _profile())

    stored = json.loads(fake_redis.store["profile:v1:42"])

    assert stored["totalMessages"] == 120
    assert stored["contentType"]["photo"] == 20
    assert stored["topContacts"][0] == {"name": "Bob", "count": 80}
    assert stored["origin"] == "aggregated"
    assert "total_messages" not in stored


@pytest.mark.asyncio
async def test_ttl_defaults_to_permanent(fake_redis, monkeypatch):
    cache_module = importlib.import_module("app.features.engagement.repository.profile_cache_repository")
    monkeypatch.setattr(cache_module.settings, "PROFILE_CACHE_TTL_S", None)
    await ProfileCacheRepository(client=fake_redis).put(1, _profile())
    await ProfileCacheRepository(client=fake_redis, ttl_s=3600).put(2, _profile())

    assert fake_redis.ttls["profile:v1:1"] is None
    assert fake_redis.ttls["profile:v1:2"] == 3600


@pytest.mark.asyncio
async def test_missing_and_unreadable_entries_are_misses(fake_redis):
    repo = ProfileCacheRepository(client=fake_redis)
    fake_redis.store["profile:v1:7"] = '{"totalMessages": -1}'

    assert await repo.get(6) is None
    assert await repo.get(7) is None


@pytest.mark.asyncio
async def test_older_entries_without_new_categories_default_to_zero(fake_redis):
    repo = ProfileCacheRepository(client=fake_redis)
    fake_redis.store["profile:v1:8"] = json.dumps(
        {
            "totalMessages": 3,
            "wordsCount": 3,
            "daysOnPlatform": 10,
            "contentType": {"text": 3},
            "activeHours": {"14": 3},
            "origin": "synthesized",
        }
    )

    profile = await repo.get(8)

    assert profile.content_type.sticker == 0
    assert profile.active_hours == {14: 3}


@pytest.mark.asyncio
async def test_delete(fake_redis):
    repo = ProfileCacheRepository(client=fake_redis)
    await repo.put(9, _profile())

    assert await repo.delete(9) is True
    assert await repo.delete(9) is False
    assert await repo.get(9) is None
