import hashlib
import hmac
import json
import time
from contextlib import asynccontextmanager
from urllib.parse import urlencode

import pytest

from app.auth.verify import auth_dependency
from app.features.engagement.domain.models import Conversation, MessageRecord
from app.models.domain.profile_domain import IdentityClaim

TEST_BOT_TOKEN = "123456:TEST-bot-token"


def sign_init_data(fields: dict[str, str], bot_token: str = TEST_BOT_TOKEN) -> str:
    """Build an initData query string signed the way Telegram signs it."""
    data_check_string = "\n".join(f"{key}={fields[key]}" for key in sorted(fields))
    secret = hmac.new(b"WebAppData", bot_token.encode(), hashlib.sha256).digest()
    digest = hmac.new(secret, data_check_string.encode(), hashlib.sha256).hexdigest()
    return urlencode({**fields, "hash": digest})


def make_init_data(user: dict, auth_date: int | None = None, bot_token: str = TEST_BOT_TOKEN) -> str:
    fields = {
        "auth_date": str(auth_date if auth_date is not None else int(time.time())),
        "query_id": "AAHdF6IQAAAAAN0XohDhrOrc",
        "user": json.dumps(user, separators=(",", ":")),
    }
    return sign_init_data(fields, bot_token)


class FakeRedis:
    def __init__(self):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int | None] = {}

    async def set_with_ttl(self, key: str, value: str, ttl_s: int | None = None) -> bool:
        self.store[key] = value
        self.ttls[key] = ttl_s
        return True

    async def get(self, key: str) -> str | None:
        return self.store.get(key)

    async def delete(self, key: str) -> bool:
        self.ttls.pop(key, None)
        return self.store.pop(key, None) is not None


class FakeProfileCache:
    def __init__(self):
        self.entries = {}
        self.puts = 0

    async def get(self, account_id):
        return self.entries.get(account_id)

    async def put(self, account_id, profile):
        self.puts += 1
        self.entries[account_id] = profile.model_copy(deep=True)
        return True

    async def delete(self, account_id):
        return self.entries.pop(account_id, None) is not None


class FakeCredentialStore:
    def __init__(self, sessions: dict[int, str] | None = None):
        self.sessions = sessions or {}

    async def get(self, account_id):
        return self.sessions.get(account_id)


class FakePhotoLookup:
    def __init__(self, url: str | None = None):
        self.url = url

    async def get_profile_photo_url(self, account_id):
        return self.url


class FakeMessageSource:
    """In-memory message source; `failing` conversation ids raise on fetch."""

    def __init__(
        self,
        conversations: list[Conversation] | None = None,
        messages: dict[int, list[MessageRecord]] | None = None,
        failing: set[int] | None = None,
        listing_error: Exception | None = None,
    ):
        self.conversations = conversations or []
        self.messages = messages or {}
        self.failing = failing or set()
        self.listing_error = listing_error
        self.fetched: list[int] = []

    async def list_recent_conversations(self, limit):
        if self.listing_error:
            raise self.listing_error
        return list(self.conversations)

    async def list_recent_messages(self, conversation_id, limit):
        self.fetched.append(conversation_id)
        if conversation_id in self.failing:
            raise ConnectionError(f"fetch failed for {conversation_id}")
        return list(self.messages.get(conversation_id, []))[:limit]


def source_factory_for(source: FakeMessageSource):
    @asynccontextmanager
    async def _open(credential):
        yield source

    return _open


@pytest.fixture
def bot_token():
    return TEST_BOT_TOKEN


@pytest.fixture
def init_data_factory():
    return make_init_data


@pytest.fixture
def signer():
    return sign_init_data


@pytest.fixture
def message_source_factory():
    """Build a FakeMessageSource plus the async-context factory the engine expects."""

    def _build(**kwargs):
        source = FakeMessageSource(**kwargs)
        return source, source_factory_for(source)

    return _build


@pytest.fixture
def credential_store_factory():
    return FakeCredentialStore


@pytest.fixture
def photo_lookup_factory():
    return FakePhotoLookup


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def fake_cache():
    return FakeProfileCache()


@pytest.fixture
def claim():
    return IdentityClaim(account_id=555_000_111, display_name="Alice", username="alice")


@pytest.fixture
def auth_override(claim):
    def _override():
        return claim

    return _override


@pytest.fixture
def apply_auth_override(auth_override):
    def _apply(app):
        app.dependency_overrides[auth_dependency] = auth_override

    return _apply
