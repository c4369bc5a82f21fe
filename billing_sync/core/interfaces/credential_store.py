"""Abstract interface for credential persistence."""

from abc import ABC, abstractmethod

from billing_sync.core.entities.session import Credential


class ICredentialStore(ABC):
    """Interface for wherever the credential survives restarts."""

    @abstractmethod
    def load(self) -> Credential | None:
        """Return the stored credential, if any."""
        pass

    @abstractmethod
    def save(self, credential: Credential) -> None:
        """Persist the credential."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove any stored credential."""
        pass
