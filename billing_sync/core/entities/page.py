"""
Page and pagination entities for the cached list view.

``total_pages`` is always derived from ``total_items`` and ``page_size``;
a ``totalPages`` value sent by the server is ignored.
"""

from __future__ import annotations

import math
from datetime import date
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

from billing_sync.core.entities.record import Record, RecordId, RecordKind, parse_record

# Keys a list response may use for its records
LIST_KEYS: dict[RecordKind, tuple[str, ...]] = {
    RecordKind.INVOICE: ("invoices", "items"),
    RecordKind.QUOTE: ("quotes", "items"),
}


def page_count(total_items: int, page_size: int) -> int:
    """ceil(total_items / page_size)."""
    return math.ceil(total_items / page_size)


class Pagination(BaseModel):
    """Pagination metadata of the visible page."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1)
    total_items: int = Field(default=0, ge=0)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_pages(self) -> int:
        return page_count(self.total_items, self.page_size)

    @property
    def has_more(self) -> bool:
        """True when pages exist after the current one."""
        return self.page < self.total_pages


class Page(BaseModel):
    """Ordered records in server order plus pagination."""

    records: list[Record] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)

    @property
    def is_full(self) -> bool:
        return len(self.records) >= self.pagination.page_size

    def index_of(self, record_id: RecordId) -> int | None:
        for index, record in enumerate(self.records):
            if record.id == record_id:
                return index
        return None

    @classmethod
    def from_payload(
        cls,
        kind: RecordKind,
        payload: dict[str, Any],
        page: int = 1,
        page_size: int = 10,
    ) -> Page:
        """
        Parse a list response.

        Missing pagination falls back to the requested ``page``/``page_size``
        and the number of returned records.
        """
        raw_records: list[dict[str, Any]] = []
        for key in LIST_KEYS[kind]:
            if isinstance(payload.get(key), list):
                raw_records = payload[key]
                break

        raw_pagination = payload.get("pagination")
        if not isinstance(raw_pagination, dict):
            raw_pagination = {}
        pagination = Pagination.model_validate(
            {
                "page": raw_pagination.get("page", page),
                "pageSize": raw_pagination.get("pageSize", page_size),
                "totalItems": raw_pagination.get("totalItems", len(raw_records)),
            }
        )
        return cls(
            records=[parse_record(kind, item) for item in raw_records],
            pagination=pagination,
        )


class ListQuery(BaseModel):
    """Filters and sort order of the list view."""

    date_from: date | None = None
    date_to: date | None = None
    customer_name: str | None = None
    status: str | int | None = None
    amount_from: float | None = None
    amount_to: float | None = None
    sort_field: str | None = None
    sort_direction: Literal["asc", "desc"] = "desc"

    def to_params(self, page: int, page_size: int) -> dict[str, str]:
        """Query string parameters for the list endpoint."""
        params: dict[str, str] = {}
        if self.date_from:
            params["dateFrom"] = self.date_from.isoformat()
        if self.date_to:
            params["dateTo"] = self.date_to.isoformat()
        if self.customer_name:
            params["customerName"] = self.customer_name
        if self.status is not None and self.status != "all":
            params["status"] = str(self.status)
        if self.amount_from is not None:
            params["amountFrom"] = str(self.amount_from)
        if self.amount_to is not None:
            params["amountTo"] = str(self.amount_to)
        if self.sort_field:
            params["sortField"] = self.sort_field
            params["sortDirection"] = self.sort_direction
        params["page"] = str(page)
        params["pageSize"] = str(page_size)
        return params
