"""Pytest configuration and fixtures."""

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import pytest
import structlog

from billing_sync.config import reset_settings
from billing_sync.core.entities import (
    Credential,
    LineDraft,
    Page,
    Pagination,
    RecordDraft,
    RecordKind,
    parse_record,
)
from billing_sync.core.interfaces import ITransport, TransportResponse
from billing_sync.core.services import OptimisticMutationEngine, RecordCache, SessionContext
from billing_sync.infrastructure.storage import InMemoryCredentialStore


def json_response(status: int, payload: Any = None) -> TransportResponse:
    """TransportResponse with a JSON body (empty body for None)."""
    body = b"" if payload is None else json.dumps(payload).encode("utf-8")
    return TransportResponse(status=status, body=body)


@dataclass
class RecordedCall:
    endpoint: str
    method: str
    headers: dict[str, str]
    body: bytes | None

    @property
    def path(self) -> str:
        return self.endpoint.split("?")[0]

    def json(self) -> Any:
        return json.loads(self.body) if self.body else None


@dataclass
class ScriptedTransport(ITransport):
    """
    In-memory transport answering from a route table.

    A route answer is a TransportResponse, an exception to raise, or a
    callable receiving the RecordedCall. ``on_call`` runs while the
    call is in flight, i.e. after the optimistic change was applied.
    """

    routes: dict[tuple[str, str], Any] = field(default_factory=dict)
    calls: list[RecordedCall] = field(default_factory=list)
    on_call: Callable[[RecordedCall], None] | None = None

    def add(self, method: str, path: str, answer: Any) -> "ScriptedTransport":
        self.routes[(method, path)] = answer
        return self

    async def call(
        self,
        endpoint: str,
        method: str,
        headers: dict[str, str],
        body: bytes | None = None,
    ) -> TransportResponse:
        recorded = RecordedCall(endpoint, method, dict(headers), body)
        self.calls.append(recorded)
        if self.on_call:
            self.on_call(recorded)
        answer = self.routes.get((method, recorded.path))
        if answer is None:
            return json_response(404, {"message": "Not found"})
        if isinstance(answer, BaseException):
            raise answer
        if callable(answer):
            return answer(recorded)
        return answer

    def calls_to(self, method: str, path: str) -> list[RecordedCall]:
        return [c for c in self.calls if c.method == method and c.path == path]


def invoice_payload(record_id: int, status: int = 0, **overrides: Any) -> dict[str, Any]:
    payload = {
        "id": record_id,
        "invoiceNumber": f"INV-{record_id:04d}",
        "date": "2024-03-01",
        "customer": {"id": 7, "name": "Acme SARL"},
        "status": status,
        "subTotal": 100.0,
        "vat": 20.0,
        "total": 120.0,
        "lines": [
            {"id": record_id * 10, "description": "Consulting", "quantity": 1, "unitPrice": 100.0, "taxRate": 20, "total": 100.0}
        ],
    }
    payload.update(overrides)
    return payload


def quote_payload(record_id: int, status: str = "Draft", **overrides: Any) -> dict[str, Any]:
    payload = {
        "id": record_id,
        "quoteNumber": f"QUO-{record_id:04d}",
        "issueDate": "2024-03-01",
        "expiryDate": "2024-04-01",
        "customer": {"id": 9, "name": "Globex"},
        "status": status,
        "subTotal": 50.0,
        "vat": 10.0,
        "total": 60.0,
        "lines": [
            {"id": record_id * 10, "description": "Design", "quantity": 2, "unitPrice": 25.0, "taxRate": 20, "total": 50.0}
        ],
    }
    payload.update(overrides)
    return payload


def make_page(
    kind: RecordKind,
    payloads: list[dict[str, Any]],
    total_items: int | None = None,
    page: int = 1,
    page_size: int = 10,
) -> Page:
    return Page(
        records=[parse_record(kind, p) for p in payloads],
        pagination=Pagination(
            page=page,
            page_size=page_size,
            total_items=len(payloads) if total_items is None else total_items,
        ),
    )


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Settings and bound log context are reset for every test."""
    reset_settings()
    structlog.contextvars.clear_contextvars()
    yield
    reset_settings()


@pytest.fixture
def make_credential() -> Callable[..., Credential]:
    def _make(role: str = "Manager", **overrides: Any) -> Credential:
        data = {
            "token": "token-abc",
            "role": role,
            "user_id": "user-1",
            "email": "jane.doe@example.com",
            "refresh_token": "refresh-abc",
        }
        data.update(overrides)
        return Credential(**data)

    return _make


@pytest.fixture
def credential_store() -> InMemoryCredentialStore:
    return InMemoryCredentialStore()


@pytest.fixture
def session(make_credential, credential_store) -> SessionContext:
    """Session signed in as a Manager."""
    context = SessionContext(credential_store)
    context.init(make_credential("Manager"))
    return context


@pytest.fixture
def transport() -> ScriptedTransport:
    return ScriptedTransport()


@pytest.fixture
def invoice_page() -> Callable[..., Page]:
    def _make(ids: list[int], status: int = 0, total_items: int | None = None, page: int = 1, page_size: int = 10) -> Page:
        return make_page(
            RecordKind.INVOICE,
            [invoice_payload(i, status) for i in ids],
            total_items=total_items,
            page=page,
            page_size=page_size,
        )

    return _make


@pytest.fixture
def invoice_cache(invoice_page) -> RecordCache:
    """Cache holding invoices 1-3 in Draft on a single page."""
    return RecordCache(invoice_page([1, 2, 3]))


@pytest.fixture
def invoice_engine(invoice_cache, transport, session) -> OptimisticMutationEngine:
    return OptimisticMutationEngine(
        RecordKind.INVOICE,
        invoice_cache,
        transport,
        session,
        id_factory=lambda: "tmp-fixed",
    )


@pytest.fixture
def draft() -> RecordDraft:
    return RecordDraft(
        number="INV-0100",
        customer_id=7,
        customer_name="Acme SARL",
        lines=[
            LineDraft(description="Audit", quantity=2, unit_price=150.0, tax_rate=20),
            LineDraft(description="Travel", quantity=1, unit_price=45.5, tax_rate=10),
        ],
    )


@pytest.fixture(name="json_response")
def json_response_fixture() -> Callable[..., TransportResponse]:
    return json_response


@pytest.fixture(name="invoice_payload")
def invoice_payload_fixture() -> Callable[..., dict[str, Any]]:
    return invoice_payload


@pytest.fixture(name="quote_payload")
def quote_payload_fixture() -> Callable[..., dict[str, Any]]:
    return quote_payload


@pytest.fixture(name="make_page")
def make_page_fixture() -> Callable[..., Page]:
    return make_page
