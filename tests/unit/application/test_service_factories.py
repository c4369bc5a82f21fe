"""Unit tests for application service factories."""

import pytest

from billing_sync.application import services
from billing_sync.application.records_client import RecordsClient
from billing_sync.core.entities import RecordKind
from billing_sync.infrastructure.http import HttpxTransport
from billing_sync.infrastructure.storage import InMemoryCredentialStore


@pytest.fixture(autouse=True)
async def _reset_services():
    services.reset_services()
    yield
    await services.close_services()


class TestServiceFactories:
    """Tests for singleton wiring."""

    def test_transport_singleton(self):
        transport = services.get_transport()
        assert isinstance(transport, HttpxTransport)
        assert services.get_transport() is transport

    def test_session_restores_from_store(self, make_credential):
        session = services.get_session(InMemoryCredentialStore(make_credential("Admin")))
        assert session.role == "Admin"
        assert services.get_session() is session

    def test_clients_per_kind(self):
        invoices = services.get_invoices_client()
        quotes = services.get_quotes_client()

        assert isinstance(invoices, RecordsClient)
        assert invoices.kind is RecordKind.INVOICE
        assert quotes.kind is RecordKind.QUOTE
        assert services.get_invoices_client() is invoices
        assert invoices.session is quotes.session

    def test_override_replaces_cached_client(self, transport, session):
        cached = services.get_invoices_client()
        client = services.get_records_client(RecordKind.INVOICE, transport=transport, session=session)

        assert client is not cached
        assert client.engine.transport is transport
        assert services.get_invoices_client() is client

    def test_reset(self):
        client = services.get_invoices_client()
        services.reset_services()
        assert services.get_invoices_client() is not client
