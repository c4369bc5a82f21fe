"""
Billing API endpoint table.

Paths are relative to the configured API base URL; the transport
prepends it.
"""

from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

from billing_sync.core.entities.record import RecordId, RecordKind


@dataclass(frozen=True)
class EndpointCall:
    """One request to issue through the transport."""

    method: str
    path: str
    json: Any = None
    content: bytes | None = None
    content_type: str | None = None


@dataclass(frozen=True)
class RecordEndpoints:
    """Endpoints of one record kind."""

    kind: RecordKind
    collection: str
    submit_action: str
    status_action: str | None = None
    external_status_action: str | None = None
    convert_action: str | None = None

    def item(self, record_id: RecordId) -> str:
        return f"{self.collection}/{record_id}"

    def list(self, params: dict[str, str] | None = None) -> EndpointCall:
        path = self.collection
        if params:
            path = f"{path}?{urlencode(params)}"
        return EndpointCall("GET", path)

    def create(self, payload: dict[str, Any]) -> EndpointCall:
        return EndpointCall("POST", self.collection, json=payload)

    def update(self, record_id: RecordId, payload: dict[str, Any]) -> EndpointCall:
        return EndpointCall("PUT", self.item(record_id), json=payload)

    def delete(self, record_id: RecordId) -> EndpointCall:
        return EndpointCall("DELETE", self.item(record_id))

    def submit(self, record_id: RecordId) -> EndpointCall:
        return EndpointCall("POST", f"{self.item(record_id)}/{self.submit_action}")

    def status_change(
        self, record_id: RecordId, status: Any, record_payload: dict[str, Any]
    ) -> EndpointCall:
        """
        Request for a picker-driven status change.

        Kinds with a dedicated status endpoint send only the status;
        the others send the full record with the new status.
        """
        if self.status_action:
            return EndpointCall(
                "PUT", f"{self.item(record_id)}/{self.status_action}", json={"status": status}
            )
        return EndpointCall("PUT", self.item(record_id), json={**record_payload, "status": status})

    def external_status(self, record_id: RecordId) -> EndpointCall:
        if not self.external_status_action:
            raise ValueError(f"{self.kind.value} has no external status endpoint")
        return EndpointCall("GET", f"{self.item(record_id)}/{self.external_status_action}")

    def convert(self, record_id: RecordId) -> EndpointCall:
        if not self.convert_action:
            raise ValueError(f"{self.kind.value} cannot be converted")
        return EndpointCall("POST", f"{self.item(record_id)}/{self.convert_action}")

    def import_csv(self, content: bytes) -> EndpointCall:
        return EndpointCall(
            "POST", f"{self.collection}/import-csv", content=content, content_type="text/csv"
        )


INVOICE_ENDPOINTS = RecordEndpoints(
    kind=RecordKind.INVOICE,
    collection="/invoices",
    submit_action="dgi-submit",
    external_status_action="dgi-status",
)

QUOTE_ENDPOINTS = RecordEndpoints(
    kind=RecordKind.QUOTE,
    collection="/quotes",
    submit_action="submit",
    status_action="status",
    convert_action="convert-to-invoice",
)


def endpoints_for(kind: RecordKind) -> RecordEndpoints:
    """Endpoint table of ``kind``."""
    return INVOICE_ENDPOINTS if kind == RecordKind.INVOICE else QUOTE_ENDPOINTS
