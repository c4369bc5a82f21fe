"""
Invoice and quote entities with Pydantic v2 validation.

Server payloads use camelCase names (``subTotal``, ``vat``,
``dgiSubmissionId``...); models accept both the wire alias and the
Python field name. Monetary summaries are derived from the lines and
only trusted once they come back from the server.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum, IntEnum
from typing import Any, ClassVar, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

TEMP_ID_PREFIX = "tmp-"
DEFAULT_TAX_RATE = 20.0

# Server ids are always ints; temporary ids are "tmp-" strings.
RecordId = Union[int, str]


class RecordKind(str, Enum):
    """Kind of business record held in the cache."""

    INVOICE = "invoice"
    QUOTE = "quote"


class InvoiceStatus(IntEnum):
    """Invoice lifecycle status (integers on the wire)."""

    DRAFT = 0
    READY = 1
    AWAITING_CLEARANCE = 2
    VALIDATED = 3
    REJECTED = 4


class QuoteStatus(str, Enum):
    """Quote lifecycle status (strings on the wire)."""

    DRAFT = "Draft"
    SENT = "Sent"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"
    CONVERTED = "Converted"


Status = Union[InvoiceStatus, QuoteStatus]

STATUS_TYPES: dict[RecordKind, type[Enum]] = {
    RecordKind.INVOICE: InvoiceStatus,
    RecordKind.QUOTE: QuoteStatus,
}


def coerce_status(kind: RecordKind, value: Any) -> Status:
    """
    Convert a raw wire value into the status enum of ``kind``.

    Raises:
        ValueError: If the value is not a status of that kind.
    """
    status_type = STATUS_TYPES[kind]
    if isinstance(value, status_type):
        return value
    if status_type is InvoiceStatus and isinstance(value, str) and value.strip().isdigit():
        value = int(value)
    return status_type(value)


def new_temporary_id() -> str:
    """Return a collision-free temporary identity for an unconfirmed record."""
    return f"{TEMP_ID_PREFIX}{uuid4().hex}"


def is_temporary_id(record_id: Any) -> bool:
    """True for ids minted locally before the server confirmed the record."""
    return isinstance(record_id, str) and record_id.startswith(TEMP_ID_PREFIX)


class WireModel(BaseModel):
    """Base for models exchanged with the billing API."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict[str, Any]:
        """Serialize using server field names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class LineItem(WireModel):
    """Record line; ``total`` is quantity x unit price."""

    id: RecordId | None = None
    description: str = ""
    quantity: float = 0.0
    unit_price: float = 0.0
    tax_rate: float = DEFAULT_TAX_RATE
    total: float = 0.0

    @field_validator("quantity", "unit_price", "total", mode="before")
    @classmethod
    def coerce_numeric(cls, v: Any) -> float:
        """Convert None/empty to 0.0."""
        if v is None or v == "":
            return 0.0
        return float(v)

    @field_validator("tax_rate", mode="before")
    @classmethod
    def default_tax_rate(cls, v: Any) -> float:
        if v is None or v == "":
            return DEFAULT_TAX_RATE
        return float(v)

    @property
    def calculated_total(self) -> float:
        return round(self.quantity * self.unit_price, 2)

    @property
    def calculated_tax(self) -> float:
        return self.quantity * self.unit_price * self.tax_rate / 100


class Party(WireModel):
    """Customer reference as embedded in a record."""

    id: int | None = None
    name: str = ""


class Creator(WireModel):
    """User that created the record."""

    created_by_id: str = ""
    name: str = ""
    email: str = ""


@dataclass(frozen=True)
class Totals:
    """Monetary summary derived from lines."""

    subtotal: float
    tax: float
    total: float


def compute_totals(lines: list[Any]) -> Totals:
    """
    Compute subtotal, tax and total for a set of lines.

    Each line needs ``quantity``, ``unit_price`` and ``tax_rate``.
    Figures are rounded to 2 decimals, total = subtotal + tax.
    """
    subtotal = sum(line.quantity * line.unit_price for line in lines)
    tax = sum(
        line.quantity * line.unit_price * (line.tax_rate if line.tax_rate is not None else DEFAULT_TAX_RATE) / 100
        for line in lines
    )
    subtotal = round(subtotal, 2)
    tax = round(tax, 2)
    return Totals(subtotal=subtotal, tax=tax, total=round(subtotal + tax, 2))


class Record(WireModel):
    """
    Fields shared by invoices and quotes.

    ``id`` is an int once persisted, a temporary string before.
    """

    kind: ClassVar[RecordKind]

    id: RecordId | None = None
    customer: Party = Field(default_factory=Party)
    subtotal: float = Field(default=0.0, alias="subTotal")
    tax: float = Field(default=0.0, alias="vat")
    total: float = 0.0
    lines: list[LineItem] = Field(default_factory=list)
    external_submission_id: str | None = None
    rejection_reason: str | None = None
    created_at: datetime | None = None
    created_by: Creator | None = None

    @field_validator("subtotal", "tax", "total", mode="before")
    @classmethod
    def coerce_numeric(cls, v: Any) -> float:
        if v is None or v == "":
            return 0.0
        return float(v)

    @property
    def is_temporary(self) -> bool:
        return is_temporary_id(self.id)

    @property
    def has_total_mismatch(self) -> bool:
        """Check the summary against the lines (1 cent tolerance)."""
        totals = compute_totals(self.lines)
        return (
            abs(self.subtotal - totals.subtotal) > 0.01
            or abs(self.total - (self.subtotal + self.tax)) > 0.01
        )


class Invoice(Record):
    """Invoice as returned by ``/invoices``."""

    kind: ClassVar[RecordKind] = RecordKind.INVOICE

    number: str = Field(default="", alias="invoiceNumber")
    issue_date: date | None = Field(default=None, alias="date")
    status: InvoiceStatus = InvoiceStatus.DRAFT
    external_submission_id: str | None = Field(default=None, alias="dgiSubmissionId")
    rejection_reason: str | None = Field(default=None, alias="dgiRejectionReason")

    @field_validator("status", mode="before")
    @classmethod
    def parse_status(cls, v: Any) -> InvoiceStatus:
        if v is None:
            return InvoiceStatus.DRAFT
        return coerce_status(RecordKind.INVOICE, v)


class Quote(Record):
    """Quote as returned by ``/quotes``."""

    kind: ClassVar[RecordKind] = RecordKind.QUOTE

    number: str = Field(default="", alias="quoteNumber")
    issue_date: date | None = Field(default=None, alias="issueDate")
    expiry_date: date | None = None
    status: QuoteStatus = QuoteStatus.DRAFT
    terms_and_conditions: str = ""
    private_notes: str = ""

    @field_validator("status", mode="before")
    @classmethod
    def parse_status(cls, v: Any) -> QuoteStatus:
        if v is None:
            return QuoteStatus.DRAFT
        return coerce_status(RecordKind.QUOTE, v)


RECORD_TYPES: dict[RecordKind, type[Record]] = {
    RecordKind.INVOICE: Invoice,
    RecordKind.QUOTE: Quote,
}


def parse_record(kind: RecordKind, payload: dict[str, Any]) -> Record:
    """Validate a server payload into the record type of ``kind``."""
    return RECORD_TYPES[kind].model_validate(payload)


class LineDraft(BaseModel):
    """Line as entered by the user; validated before any optimistic change."""

    description: str = Field(min_length=1)
    quantity: float = Field(gt=0)
    unit_price: float = Field(ge=0)
    tax_rate: float = Field(default=DEFAULT_TAX_RATE, ge=0, le=100)

    @field_validator("description", mode="before")
    @classmethod
    def strip_description(cls, v: Any) -> str:
        if v is None:
            return ""
        return str(v).strip()


class RecordDraft(BaseModel):
    """
    User-submitted content for a create or update.

    ``customer_name`` is display-only: it fills the optimistic record
    until the server responds.
    """

    number: str = ""
    issue_date: date = Field(default_factory=date.today)
    customer_id: int
    customer_name: str | None = None
    status: InvoiceStatus | QuoteStatus | None = None
    lines: list[LineDraft] = Field(min_length=1)

    # Quote-only
    expiry_date: date | None = None
    terms_and_conditions: str = ""
    private_notes: str = ""

    @model_validator(mode="after")
    def strip_text(self) -> RecordDraft:
        self.terms_and_conditions = self.terms_and_conditions.strip()
        self.private_notes = self.private_notes.strip()
        return self

    @property
    def totals(self) -> Totals:
        return compute_totals(self.lines)

    def status_for(self, kind: RecordKind) -> Status:
        """Draft status coerced to ``kind``, defaulting to Draft."""
        if self.status is None:
            return STATUS_TYPES[kind]["DRAFT"]
        return coerce_status(kind, self.status.value)

    def to_payload(self, kind: RecordKind, record_id: RecordId | None = None) -> dict[str, Any]:
        """Request body for the create/update endpoint of ``kind``."""
        totals = self.totals
        payload: dict[str, Any] = {
            "customerId": self.customer_id,
            "subTotal": totals.subtotal,
            "vat": totals.tax,
            "total": totals.total,
            "status": self.status_for(kind).value,
            "lines": [
                {
                    "description": line.description,
                    "quantity": line.quantity,
                    "unitPrice": line.unit_price,
                    "taxRate": line.tax_rate,
                }
                for line in self.lines
            ],
        }
        if record_id is not None and not is_temporary_id(record_id):
            payload["id"] = record_id

        if kind == RecordKind.INVOICE:
            payload["invoiceNumber"] = self.number
            payload["date"] = self.issue_date.isoformat()
        else:
            if self.number:
                payload["quoteNumber"] = self.number
            payload["issueDate"] = self.issue_date.isoformat()
            if self.expiry_date:
                payload["expiryDate"] = self.expiry_date.isoformat()
            payload["termsAndConditions"] = self.terms_and_conditions
            payload["privateNotes"] = self.private_notes
        return payload


def _draft_lines(draft: RecordDraft) -> list[LineItem]:
    # Lines get their own temporary ids until the server assigns real ones
    return [
        LineItem(
            id=new_temporary_id(),
            description=line.description,
            quantity=line.quantity,
            unit_price=line.unit_price,
            tax_rate=line.tax_rate,
            total=round(line.quantity * line.unit_price, 2),
        )
        for line in draft.lines
    ]


def _draft_fields(kind: RecordKind, draft: RecordDraft) -> dict[str, Any]:
    totals = draft.totals
    fields: dict[str, Any] = {
        "number": draft.number,
        "issue_date": draft.issue_date,
        "status": draft.status_for(kind),
        "subtotal": totals.subtotal,
        "tax": totals.tax,
        "total": totals.total,
    }
    if kind == RecordKind.QUOTE:
        fields.update(
            expiry_date=draft.expiry_date,
            terms_and_conditions=draft.terms_and_conditions,
            private_notes=draft.private_notes,
        )
    return fields


def record_from_draft(
    kind: RecordKind,
    draft: RecordDraft,
    record_id: RecordId,
    created_by: Creator | None = None,
) -> Record:
    """Build a full tentative record for an optimistic create."""
    record_type = RECORD_TYPES[kind]
    return record_type(
        id=record_id,
        customer=Party(id=draft.customer_id, name=draft.customer_name or "Unknown Customer"),
        lines=_draft_lines(draft),
        created_at=datetime.now(),
        created_by=created_by,
        **_draft_fields(kind, draft),
    )


def apply_draft(record: Record, draft: RecordDraft) -> Record:
    """
    Return a copy of ``record`` with the edited fields of ``draft`` applied.

    Identity, creation metadata and submission ids are preserved; the
    customer name falls back to the cached one.
    """
    customer = Party(
        id=draft.customer_id,
        name=draft.customer_name or record.customer.name,
    )
    update = _draft_fields(record.kind, draft)
    update.update(customer=customer, lines=_draft_lines(draft))
    return record.model_copy(update=update, deep=True)
