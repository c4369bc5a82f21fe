"""Credential store implementations."""

from billing_sync.infrastructure.storage.file_credential_store import FileCredentialStore
from billing_sync.infrastructure.storage.memory_credential_store import InMemoryCredentialStore

__all__ = [
    "InMemoryCredentialStore",
    "FileCredentialStore",
]
