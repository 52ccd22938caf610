from .credential_repository import CredentialRepository, CredentialStoreError, credential_repository
from .profile_cache_repository import ProfileCacheRepository, profile_cache_key, profile_cache_repository

__all__ = [
    "CredentialRepository",
    "CredentialStoreError",
    "ProfileCacheRepository",
    "credential_repository",
    "profile_cache_key",
    "profile_cache_repository",
]
