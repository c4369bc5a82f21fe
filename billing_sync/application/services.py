"""
Service factory functions for dependency injection.

Wires infrastructure implementations to the core services. Scripts and
UIs should import from here.
"""

from typing import TYPE_CHECKING

from billing_sync.application.records_client import RecordsClient
from billing_sync.core.entities.record import RecordKind
from billing_sync.core.services import SessionContext

if TYPE_CHECKING:
    from billing_sync.core.interfaces import ICredentialStore, INotifier, ITransport


# Singleton instances
_transport: "ITransport | None" = None
_session: SessionContext | None = None
_clients: dict[RecordKind, RecordsClient] = {}


def get_transport() -> "ITransport":
    """Get or create the shared HTTP transport."""
    global _transport

    if _transport is None:
        # Lazy import infrastructure to avoid circular imports
        from billing_sync.infrastructure.http import HttpxTransport

        _transport = HttpxTransport()
    return _transport


def get_session(store: "ICredentialStore | None" = None) -> SessionContext:
    """
    Get or create the session context.

    The first call restores any credential left in ``store``
    (an in-memory store when omitted).

    Args:
        store: Optional credential store override

    Returns:
        Shared SessionContext
    """
    global _session

    if _session is not None and store is None:
        return _session

    if store is None:
        from billing_sync.infrastructure.storage import InMemoryCredentialStore

        store = InMemoryCredentialStore()

    session = SessionContext(store)
    session.restore()
    _session = session
    return _session


def get_records_client(
    kind: RecordKind,
    transport: "ITransport | None" = None,
    session: SessionContext | None = None,
    notifier: "INotifier | None" = None,
) -> RecordsClient:
    """
    Get or create the RecordsClient of ``kind``.

    Overrides bypass the cached instance and replace it.

    Args:
        kind: Invoice or quote
        transport: Optional transport override
        session: Optional session override
        notifier: Optional notifier override

    Returns:
        Configured RecordsClient
    """
    cached = _clients.get(kind)
    if cached is not None and transport is None and session is None and notifier is None:
        return cached

    client = RecordsClient(
        kind=kind,
        transport=transport or get_transport(),
        session=session or get_session(),
        notifier=notifier,
    )
    _clients[kind] = client
    return client


def get_invoices_client() -> RecordsClient:
    return get_records_client(RecordKind.INVOICE)


def get_quotes_client() -> RecordsClient:
    return get_records_client(RecordKind.QUOTE)


def reset_services() -> None:
    """
    Reset all singleton instances.

    Useful for testing or when configuration changes. Call
    ``close_services`` first to release the HTTP client.
    """
    global _transport
    global _session

    _transport = None
    _session = None
    _clients.clear()


async def close_services() -> None:
    """Close the shared transport and drop every singleton."""
    transport = _transport
    reset_services()
    aclose = getattr(transport, "aclose", None)
    if aclose is not None:
        await aclose()


__all__ = [
    "get_transport",
    "get_session",
    "get_records_client",
    "get_invoices_client",
    "get_quotes_client",
    "reset_services",
    "close_services",
]
