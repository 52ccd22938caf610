from .models import Conversation, MessageRecord
from .ports import CredentialStore, MessageSource, MessageSourceFactory, PhotoLookup, ProfileCache

__all__ = [
    "Conversation",
    "CredentialStore",
    "MessageRecord",
    "MessageSource",
    "MessageSourceFactory",
    "PhotoLookup",
    "ProfileCache",
]
