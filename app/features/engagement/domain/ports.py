"""Interfaces of the collaborators the engagement engine talks to."""

from collections.abc import Sequence
from contextlib import AbstractAsyncContextManager
from typing import Protocol

from app.models.domain.profile_domain import ActivityProfile

from .models import Conversation, MessageRecord


class MessageSource(Protocol):
    async def list_recent_conversations(self, limit: int) -> Sequence[Conversation]: ...

    async def list_recent_messages(self, conversation_id: int, limit: int) -> Sequence[MessageRecord]: ...


class MessageSourceFactory(Protocol):
    """Opens a message source for a stored session credential."""

    def __call__(self, credential: str) -> AbstractAsyncContextManager[MessageSource]: ...


class CredentialStore(Protocol):
    async def get(self, account_id: int) -> str | None: ...


class ProfileCache(Protocol):
    async def get(self, account_id: int) -> ActivityProfile | None: ...

    async def put(self, account_id: int, profile: ActivityProfile) -> bool: ...

    async def delete(self, account_id: int) -> bool: ...


class PhotoLookup(Protocol):
    async def get_profile_photo_url(self, account_id: int) -> str | None: ...
