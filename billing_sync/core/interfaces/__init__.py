"""Core interfaces (ports) for dependency injection."""

from billing_sync.core.interfaces.credential_store import ICredentialStore
from billing_sync.core.interfaces.notifier import INotifier
from billing_sync.core.interfaces.transport import ITransport, TransportResponse

__all__ = [
    "ICredentialStore",
    "INotifier",
    "ITransport",
    "TransportResponse",
]
