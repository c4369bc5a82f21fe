"""In-process credential store for tests and scripts."""

from billing_sync.core.entities.session import Credential
from billing_sync.core.interfaces import ICredentialStore


class InMemoryCredentialStore(ICredentialStore):
    """Keeps the credential for the lifetime of the process."""

    def __init__(self, credential: Credential | None = None):
        self._credential = credential

    def load(self) -> Credential | None:
        return self._credential

    def save(self, credential: Credential) -> None:
        self._credential = credential

    def clear(self) -> None:
        self._credential = None
