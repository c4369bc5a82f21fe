"""
Optimistic Mutation Engine.

Applies a tentative change to the Record Cache before the server answers,
then either reconciles the cache with the authoritative response or
rolls it back to the snapshot taken before the change.

Every snapshot is taken synchronously before the first ``await``, and
every rollback is applied before the error is re-raised, so callers see
the final cache state as soon as the awaitable resolves.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from uuid import uuid4

from billing_sync.config import get_logger
from billing_sync.core.entities.endpoint import EndpointCall, RecordEndpoints, endpoints_for
from billing_sync.core.entities.page import ListQuery, Page
from billing_sync.core.entities.record import (
    Record,
    RecordDraft,
    RecordId,
    RecordKind,
    apply_draft,
    coerce_status,
    is_temporary_id,
    new_temporary_id,
    parse_record,
    record_from_draft,
)
from billing_sync.core.exceptions import (
    BillingSyncError,
    RecordNotFoundError,
    TransportError,
    UnauthenticatedError,
    ValidationFailedError,
)
from billing_sync.core.interfaces.transport import ITransport, TransportResponse
from billing_sync.core.services.record_cache import RecordCache
from billing_sync.core.services.session import SessionContext
from billing_sync.core.services.status_policy import submit_target

logger = get_logger(__name__)

# Keys under which the server may return an external submission id
SUBMISSION_ID_KEYS = ("dgiSubmissionId", "submissionId", "externalSubmissionId")
REJECTION_REASON_KEYS = ("dgiRejectionReason", "rejectionReason")


class MutationKind(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    STATUS_CHANGE = "status_change"


class MutationState(str, Enum):
    APPLYING = "applying"
    RECONCILING = "reconciling"
    CONFIRMED = "confirmed"
    ROLLED_BACK = "rolled_back"


@dataclass
class PendingMutation:
    """One in-flight call; dropped from the registry once settled."""

    kind: MutationKind
    target_id: RecordId
    snapshot: Any = None
    state: MutationState = MutationState.APPLYING
    mutation_id: str = field(default_factory=lambda: uuid4().hex)


class OptimisticMutationEngine:
    """
    Create, update, delete and status change with optimistic apply.

    Usage:
        engine = OptimisticMutationEngine(RecordKind.INVOICE, cache, transport, session)
        record = await engine.create(draft)
    """

    def __init__(
        self,
        kind: RecordKind,
        cache: RecordCache,
        transport: ITransport,
        session: SessionContext,
        endpoints: RecordEndpoints | None = None,
        id_factory: Callable[[], str] = new_temporary_id,
    ):
        self.kind = kind
        self.cache = cache
        self.transport = transport
        self.session = session
        self.endpoints = endpoints or endpoints_for(kind)
        self._new_id = id_factory
        self._pending: dict[str, PendingMutation] = {}
        self._query = ListQuery()

    @property
    def pending(self) -> list[PendingMutation]:
        """Mutations still waiting on the transport."""
        return list(self._pending.values())

    @property
    def query(self) -> ListQuery:
        """Filters of the last fetched page, reused by page repair."""
        return self._query

    # Pending mutation registry

    def begin(self, kind: MutationKind, target_id: RecordId, snapshot: Any = None) -> PendingMutation:
        pending = PendingMutation(kind=kind, target_id=target_id, snapshot=snapshot)
        self._pending[pending.mutation_id] = pending
        return pending

    def settle(self, pending: PendingMutation, state: MutationState) -> None:
        pending.state = state
        self._pending.pop(pending.mutation_id, None)

    # Transport

    async def send(self, call: EndpointCall) -> TransportResponse:
        """
        Issue ``call`` with the session's credential.

        Returns the response for any 2xx status.

        Raises:
            UnauthenticatedError: On 401 (the caller tears the session down)
            ValidationFailedError: On a structured validation error body
            TransportError: On any other failure
        """
        headers = self.session.auth_headers()
        body: bytes | None = None
        if call.json is not None:
            headers["Content-Type"] = "application/json"
            body = json.dumps(call.json).encode("utf-8")
        elif call.content is not None:
            headers["Content-Type"] = call.content_type or "application/octet-stream"
            body = call.content

        try:
            response = await self.transport.call(call.path, call.method, headers, body)
        except BillingSyncError:
            raise
        except Exception as e:
            raise TransportError(f"Request failed: {e}", endpoint=call.path) from e

        if response.unauthenticated:
            raise UnauthenticatedError(call.path)
        if not response.ok:
            raise self._error_from(response, call.path)
        return response

    def _error_from(self, response: TransportResponse, endpoint: str) -> BillingSyncError:
        try:
            payload = response.json()
        except ValueError:
            payload = None

        message = None
        if isinstance(payload, dict):
            if payload.get("errors") or payload.get("rowErrors"):
                try:
                    return ValidationFailedError.from_payload(payload, response.status)
                except (TypeError, ValueError, AttributeError) as e:
                    logger.warning(
                        "unparseable_error_body", kind=self.kind.value, endpoint=endpoint, error=str(e)
                    )
            message = payload.get("message") or payload.get("title")
        if message is not None and not isinstance(message, str):
            message = str(message)
        return TransportError(
            message or f"Request failed with status {response.status}",
            status=response.status,
            endpoint=endpoint,
            payload=payload if payload is not None else response.text(),
        )

    def handle_failure(self, error: BaseException) -> None:
        """Tear the session down when the server rejected the credential."""
        if isinstance(error, UnauthenticatedError) or getattr(error, "unauthenticated", False) is True:
            self.session.teardown("unauthenticated")

    def _json_object(self, response: TransportResponse, operation: str) -> dict[str, Any] | None:
        """Decode a success body; empty or unusable bodies yield None."""
        if response.is_empty:
            return None
        try:
            payload = response.json()
        except ValueError:
            logger.warning("unparseable_response", kind=self.kind.value, operation=operation)
            return None
        if not isinstance(payload, dict):
            logger.warning("unexpected_response_shape", kind=self.kind.value, operation=operation)
            return None
        return payload

    def _server_record(self, response: TransportResponse, operation: str) -> Record | None:
        payload = self._json_object(response, operation)
        if payload is None:
            return None
        try:
            record = parse_record(self.kind, payload)
        except ValueError as e:
            logger.warning(
                "unparseable_record", kind=self.kind.value, operation=operation, error=str(e)
            )
            return None
        if record.id is None:
            logger.warning("record_without_id", kind=self.kind.value, operation=operation)
            return None
        return record

    def external_id_from(self, response: TransportResponse) -> str | None:
        """External submission id carried by a success body, if any."""
        payload = self._json_object(response, "submission")
        if not payload:
            return None
        for key in SUBMISSION_ID_KEYS:
            if payload.get(key):
                return str(payload[key])
        return None

    # Mutations

    def require(self, record_id: RecordId) -> Record:
        if is_temporary_id(record_id):
            raise BillingSyncError(
                f"Record {record_id} is not saved yet",
                code="RECORD_PENDING",
                details={"record_id": str(record_id)},
            )
        record = self.cache.get(record_id)
        if record is None:
            raise RecordNotFoundError(record_id)
        return record

    def _rolled_back(self, pending: PendingMutation, error: BaseException) -> None:
        self.settle(pending, MutationState.ROLLED_BACK)
        logger.warning(
            f"record_{pending.kind.value}_rolled_back",
            kind=self.kind.value,
            record_id=pending.target_id,
            error=getattr(error, "message", str(error)),
        )
        self.handle_failure(error)

    async def create(self, draft: RecordDraft) -> Record | None:
        """
        Insert a tentative record, then swap it for the server's.

        Returns the server record, or None when the server answered
        without a usable body (the tentative record is dropped).
        """
        temp_id = self._new_id()
        optimistic = record_from_draft(self.kind, draft, temp_id, self.session.creator())
        pending = self.begin(MutationKind.CREATE, temp_id)
        self.cache.insert_at_front(optimistic)

        try:
            response = await self.send(self.endpoints.create(draft.to_payload(self.kind)))
        except BillingSyncError as e:
            self.cache.remove(temp_id)
            self._rolled_back(pending, e)
            raise

        pending.state = MutationState.RECONCILING
        server_record = self._server_record(response, "create")
        self.cache.remove(temp_id)
        if server_record is not None:
            self.cache.insert_at_front(server_record)
        self.settle(pending, MutationState.CONFIRMED)
        logger.info(
            "record_created",
            kind=self.kind.value,
            record_id=server_record.id if server_record else None,
        )
        return server_record

    async def update(self, record_id: RecordId, draft: RecordDraft) -> Record:
        """Replace a record optimistically; keep the optimistic copy on an empty body."""
        current = self.require(record_id)
        if draft.status is None:
            draft = draft.model_copy(update={"status": current.status})
        optimistic = apply_draft(current, draft)
        pending = self.begin(MutationKind.UPDATE, record_id, current)
        self.cache.replace(record_id, optimistic)

        try:
            response = await self.send(
                self.endpoints.update(record_id, draft.to_payload(self.kind, record_id))
            )
        except BillingSyncError as e:
            self.cache.replace(record_id, current)
            self._rolled_back(pending, e)
            raise

        pending.state = MutationState.RECONCILING
        server_record = self._server_record(response, "update")
        if server_record is not None:
            self.cache.replace(record_id, server_record)
        self.settle(pending, MutationState.CONFIRMED)
        logger.info("record_updated", kind=self.kind.value, record_id=record_id)
        return server_record or optimistic

    async def delete(self, record_id: RecordId) -> None:
        """Remove a record optimistically, restoring the whole page on failure."""
        self.require(record_id)
        before = self.cache.snapshot()
        pending = self.begin(MutationKind.DELETE, record_id, before)
        self.cache.remove(record_id)

        try:
            await self.send(self.endpoints.delete(record_id))
        except BillingSyncError as e:
            self.cache.restore(before)
            self._rolled_back(pending, e)
            raise

        self.settle(pending, MutationState.CONFIRMED)
        logger.info("record_deleted", kind=self.kind.value, record_id=record_id)
        await self.repair_page(before)

    async def change_status(
        self,
        record_id: RecordId,
        new_status: Any,
        *,
        call: EndpointCall | None = None,
        external_submission_id: str | None = None,
        rejection_reason: str | None = None,
    ) -> Record:
        """
        Set a new status optimistically.

        The transition is not checked here. ``call`` overrides the
        default status endpoint (submit and convert use their own).
        """
        status = coerce_status(self.kind, new_status)
        current = self.require(record_id)
        update: dict[str, Any] = {"status": status}
        if external_submission_id is not None:
            update["external_submission_id"] = external_submission_id
        if rejection_reason is not None:
            update["rejection_reason"] = rejection_reason
        optimistic = current.model_copy(update=update, deep=True)

        pending = self.begin(MutationKind.STATUS_CHANGE, record_id, current)
        self.cache.replace(record_id, optimistic)
        if call is None:
            call = self.endpoints.status_change(record_id, status.value, record_payload(current))

        try:
            response = await self.send(call)
        except BillingSyncError as e:
            self.cache.replace(record_id, current)
            self._rolled_back(pending, e)
            raise

        pending.state = MutationState.RECONCILING
        server_id = self.external_id_from(response)
        if server_id is not None:
            optimistic = optimistic.model_copy(update={"external_submission_id": server_id})
            self.cache.replace(record_id, optimistic)
        self.settle(pending, MutationState.CONFIRMED)
        logger.info(
            "record_status_changed",
            kind=self.kind.value,
            record_id=record_id,
            status=status.value,
            external_submission_id=server_id,
        )
        return optimistic

    async def submit(self, record_id: RecordId) -> Record:
        """Send a record to its submit endpoint."""
        return await self.change_status(
            record_id, submit_target(self.kind), call=self.endpoints.submit(record_id)
        )

    # Reads

    async def fetch_page(
        self,
        page: int | None = None,
        page_size: int | None = None,
        query: ListQuery | None = None,
    ) -> Page:
        """Load a page from the server and make it the cached page."""
        pagination = self.cache.pagination
        page = page or pagination.page
        page_size = page_size or pagination.page_size
        if query is not None:
            self._query = query

        call = self.endpoints.list(self._query.to_params(page, page_size))
        try:
            response = await self.send(call)
        except BillingSyncError as e:
            self.handle_failure(e)
            raise

        payload = self._json_object(response, "list")
        if payload is None:
            raise TransportError(
                "Unexpected list response", status=response.status, endpoint=call.path
            )
        try:
            fetched = Page.from_payload(self.kind, payload, page, page_size)
        except ValueError as e:
            raise TransportError(
                f"Invalid list response: {e}", status=response.status, endpoint=call.path
            ) from e

        self.cache.replace_page(fetched)
        logger.debug(
            "page_fetched",
            kind=self.kind.value,
            page=page,
            page_size=page_size,
            total_items=fetched.pagination.total_items,
        )
        return self.cache.page

    async def repair_page(self, before: Page) -> bool:
        """
        Re-fetch the current page after removals.

        Only runs when the page was full before the removal and more
        pages follow, so the gap can be filled from the next page.
        Failures are logged and swallowed.
        """
        pagination = before.pagination
        if not before.is_full or pagination.page >= pagination.total_pages:
            return False
        try:
            await self.fetch_page(pagination.page, pagination.page_size)
        except BillingSyncError as e:
            logger.warning(
                "page_repair_failed", kind=self.kind.value, page=pagination.page, error=e.message
            )
            return False
        return True

    async def refresh_external_status(self, record_id: RecordId) -> Record | None:
        """
        Pull the clearance status of a submitted record.

        Applied as-is, without an optimistic phase.
        """
        self.require(record_id)
        call = self.endpoints.external_status(record_id)
        try:
            response = await self.send(call)
        except BillingSyncError as e:
            self.handle_failure(e)
            raise

        payload = self._json_object(response, "external_status") or {}
        update: dict[str, Any] = {}
        if payload.get("status") is not None:
            try:
                update["status"] = coerce_status(self.kind, payload["status"])
            except ValueError:
                logger.warning("unknown_external_status", record_id=record_id, status=payload["status"])
        for key in SUBMISSION_ID_KEYS:
            if payload.get(key):
                update["external_submission_id"] = str(payload[key])
                break
        for key in REJECTION_REASON_KEYS:
            if payload.get(key):
                update["rejection_reason"] = str(payload[key])
                break

        # The record may have been removed while the call was in flight
        record = self.cache.get(record_id)
        if record is None:
            return None
        if update:
            record = record.model_copy(update=update)
            self.cache.replace(record_id, record)
        logger.info("external_status_refreshed", record_id=record_id, fields=sorted(update))
        return record

    async def import_records(self, filename: str, content: bytes) -> dict[str, Any]:
        """
        Upload a CSV batch and reload the current page.

        Raises:
            ValidationFailedError: With one "Row N:" block per failed row
        """
        try:
            response = await self.send(self.endpoints.import_csv(content))
        except BillingSyncError as e:
            self.handle_failure(e)
            raise

        payload = self._json_object(response, "import") or {}
        if payload.get("rowErrors"):
            raise ValidationFailedError.from_payload(payload, response.status)

        logger.info("records_imported", kind=self.kind.value, filename=filename)
        try:
            await self.fetch_page()
        except BillingSyncError as e:
            logger.warning("import_refresh_failed", kind=self.kind.value, error=e.message)
        return payload


def record_payload(record: Record) -> dict[str, Any]:
    """Full update body for a cached record."""
    payload = record.to_wire()
    payload.pop("createdBy", None)
    payload.pop("createdAt", None)
    if record.customer.id is not None:
        payload["customerId"] = record.customer.id
    return payload
