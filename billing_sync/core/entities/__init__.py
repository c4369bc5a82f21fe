"""Core domain entities."""

from billing_sync.core.entities.endpoint import (
    INVOICE_ENDPOINTS,
    QUOTE_ENDPOINTS,
    EndpointCall,
    RecordEndpoints,
    endpoints_for,
)
from billing_sync.core.entities.page import ListQuery, Page, Pagination, page_count
from billing_sync.core.entities.record import (
    Creator,
    Invoice,
    InvoiceStatus,
    LineDraft,
    LineItem,
    Party,
    Quote,
    QuoteStatus,
    Record,
    RecordDraft,
    RecordId,
    RecordKind,
    Status,
    Totals,
    apply_draft,
    coerce_status,
    compute_totals,
    is_temporary_id,
    new_temporary_id,
    parse_record,
    record_from_draft,
)
from billing_sync.core.entities.session import (
    Credential,
    CredentialEvent,
    CredentialEventType,
    Role,
    parse_role,
)

__all__ = [
    # Record entities
    "Record",
    "Invoice",
    "Quote",
    "LineItem",
    "Party",
    "Creator",
    "RecordDraft",
    "LineDraft",
    "RecordId",
    "RecordKind",
    "InvoiceStatus",
    "QuoteStatus",
    "Status",
    "Totals",
    "apply_draft",
    "coerce_status",
    "compute_totals",
    "is_temporary_id",
    "new_temporary_id",
    "parse_record",
    "record_from_draft",
    # Page entities
    "Page",
    "Pagination",
    "ListQuery",
    "page_count",
    # Endpoints
    "EndpointCall",
    "RecordEndpoints",
    "INVOICE_ENDPOINTS",
    "QUOTE_ENDPOINTS",
    "endpoints_for",
    # Session entities
    "Credential",
    "CredentialEvent",
    "CredentialEventType",
    "Role",
    "parse_role",
]
