"""
Application layer - the records client and service factories.

The RecordsClient is the only entry point UIs and scripts need.
"""

from billing_sync.application.records_client import RecordsClient
from billing_sync.application.services import (
    close_services,
    get_invoices_client,
    get_quotes_client,
    get_records_client,
    get_session,
    get_transport,
    reset_services,
)

__all__ = [
    "RecordsClient",
    # Service factories
    "get_transport",
    "get_session",
    "get_records_client",
    "get_invoices_client",
    "get_quotes_client",
    "reset_services",
    "close_services",
]
