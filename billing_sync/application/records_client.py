"""
Records Client.

Outward interface of the cache for one record kind. Checks the role
policy before handing work to the engine and reports every logical
operation to the notifier exactly once.
"""

from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from typing import Any

from billing_sync.config import get_logger, get_settings
from billing_sync.config.logging import operation_context
from billing_sync.core.entities.page import ListQuery, Page
from billing_sync.core.entities.record import (
    QuoteStatus,
    Record,
    RecordDraft,
    RecordId,
    RecordKind,
    coerce_status,
)
from billing_sync.core.exceptions import (
    BillingSyncError,
    InvalidTransitionError,
    PermissionDeniedError,
    RecordNotFoundError,
)
from billing_sync.core.interfaces import INotifier, ITransport
from billing_sync.core.services import (
    ActionPermissions,
    BulkOperationCoordinator,
    OptimisticMutationEngine,
    RecordCache,
    SessionContext,
    StatusDisplay,
    StatusTransitionPolicy,
)

logger = get_logger(__name__)


class RecordsClient:
    """
    Cache consumer interface for invoices or quotes.

    Every awaitable resolves only after the cache holds its final state
    (reconciled or rolled back).
    """

    def __init__(
        self,
        kind: RecordKind,
        transport: ITransport,
        session: SessionContext,
        notifier: INotifier | None = None,
        policy: StatusTransitionPolicy | None = None,
        page_size: int | None = None,
    ):
        """
        Initialize client.

        Args:
            kind: Record kind served by this client
            transport: Billing API transport
            session: Owned session context
            notifier: Notification sink (defaults to the log notifier)
            policy: Status transition policy
            page_size: Initial page size (defaults to settings)
        """
        if notifier is None:
            # Lazy import infrastructure
            from billing_sync.infrastructure.notifications import LogNotifier

            notifier = LogNotifier()

        self.kind = kind
        self.session = session
        self.notifier = notifier
        self.policy = policy or StatusTransitionPolicy()
        self.cache = RecordCache(page_size=page_size or get_settings().pagination.default_page_size)
        self.engine = OptimisticMutationEngine(kind, self.cache, transport, session)
        self.bulk = BulkOperationCoordinator(self.engine)
        self._label = kind.value.capitalize()

    # Reads

    def get_page(self) -> Page:
        return self.cache.page

    def on_page_changed(self, listener: Callable[[Page], None]) -> Callable[[], None]:
        return self.cache.subscribe(listener)

    def permissions(self, record: Record) -> ActionPermissions:
        """Capabilities of the current role on ``record``."""
        return self.policy.action_permissions(self.session.role, self.kind, record.status)

    def status_display(self, record: Record) -> StatusDisplay:
        return self.policy.status_display(self.kind, record.status)

    async def load_page(
        self,
        page: int | None = None,
        page_size: int | None = None,
        query: ListQuery | None = None,
    ) -> Page:
        """Fetch a page; only failures are notified."""
        with self._outcome("load_page", None):
            return await self.engine.fetch_page(page, page_size, query)

    # Mutations

    @contextmanager
    def _outcome(self, action: str, success_message: str | None) -> Iterator[None]:
        with operation_context(self.kind.value, action):
            try:
                yield
            except BillingSyncError as e:
                logger.info("operation_failed", error=e.code)
                self.notifier.error(e.message)
                raise
            if success_message:
                self.notifier.success(success_message)

    def _record(self, record_id: RecordId) -> Record:
        record = self.cache.get(record_id)
        if record is None:
            raise RecordNotFoundError(record_id)
        return record

    def _ensure(self, allowed: bool, action: str, status: Any = None) -> None:
        if not allowed:
            raise PermissionDeniedError(action, self.session.role, status)

    async def create(self, draft: RecordDraft) -> Record | None:
        with self._outcome("create", f"{self._label} created successfully"):
            self._ensure(self.policy.can_create(self.session.role), "create")
            return await self.engine.create(draft)

    async def update(self, record_id: RecordId, draft: RecordDraft) -> Record:
        with self._outcome("update", f"{self._label} updated successfully"):
            record = self._record(record_id)
            role = self.session.role
            self._ensure(self.policy.can_edit(role, self.kind, record.status), "edit", record.status)
            if draft.status is not None:
                target = self._target_status(draft.status.value, record)
                if not self.policy.can_transition(role, self.kind, record.status, target):
                    raise InvalidTransitionError(role, record.status, target)
            return await self.engine.update(record_id, draft)

    async def delete(self, record_id: RecordId) -> None:
        with self._outcome("delete", f"{self._label} deleted successfully"):
            record = self._record(record_id)
            self._ensure(
                self.policy.can_delete(self.session.role, self.kind, record.status),
                "delete",
                record.status,
            )
            await self.engine.delete(record_id)

    def _target_status(self, value: Any, record: Record) -> Any:
        try:
            return coerce_status(self.kind, value)
        except ValueError:
            raise InvalidTransitionError(self.session.role, record.status, value) from None

    async def change_status(self, record_id: RecordId, new_status: Any) -> Record:
        """
        Move a record to ``new_status`` through the status picker.

        Selecting the current status is a no-op.
        """
        with self._outcome("change_status", f"{self._label} status updated successfully"):
            record = self._record(record_id)
            role = self.session.role
            self._ensure(
                self.policy.can_change_status(role, self.kind, record.status),
                "change the status of",
                record.status,
            )
            target = self._target_status(new_status, record)
            if not self.policy.can_transition(role, self.kind, record.status, target):
                raise InvalidTransitionError(role, record.status, target)
            if target == record.status:
                return record
            return await self.engine.change_status(record_id, target)

    async def submit(self, record_id: RecordId) -> Record:
        with self._outcome("submit", f"{self._label} submitted successfully"):
            record = self._record(record_id)
            self._ensure(
                self.policy.can_submit(self.session.role, self.kind, record.status),
                "submit",
                record.status,
            )
            return await self.engine.submit(record_id)

    async def convert_to_invoice(self, record_id: RecordId) -> Record:
        """Convert an accepted quote; the quote becomes Converted."""
        with self._outcome("convert", "Quote converted to invoice successfully"):
            record = self._record(record_id)
            self._ensure(
                self.policy.can_convert(self.session.role, self.kind, record.status),
                "convert",
                record.status,
            )
            return await self.engine.change_status(
                record_id, QuoteStatus.CONVERTED, call=self.engine.endpoints.convert(record_id)
            )

    async def check_external_status(self, record_id: RecordId) -> Record | None:
        with self._outcome("check_external_status", f"{self._label} clearance status refreshed"):
            record = self._record(record_id)
            self._ensure(
                self.policy.can_check_external_status(self.session.role, self.kind, record.status),
                "check the clearance status of",
                record.status,
            )
            return await self.engine.refresh_external_status(record_id)

    def _ensure_bulk(self, ids: list[RecordId], operation: str) -> None:
        role = self.session.role
        for record_id in ids:
            record = self._record(record_id)
            self._ensure(
                self.policy.can_select_for_bulk(role, self.kind, record.status, operation),  # type: ignore[arg-type]
                f"bulk {operation}",
                record.status,
            )

    async def bulk_delete(self, ids: Iterable[RecordId]) -> list[RecordId]:
        ids = list(dict.fromkeys(ids))
        if not ids:
            return []
        with self._outcome("bulk_delete", f"{len(ids)} {self.kind.value}s deleted successfully"):
            self._ensure_bulk(ids, "delete")
            return await self.bulk.bulk_delete(ids)

    async def bulk_submit(self, ids: Iterable[RecordId]) -> list[RecordId]:
        ids = list(dict.fromkeys(ids))
        if not ids:
            return []
        with self._outcome("bulk_submit", f"{len(ids)} {self.kind.value}s submitted successfully"):
            self._ensure_bulk(ids, "submit")
            return await self.bulk.bulk_submit(ids)

    async def import_csv(self, filename: str, content: bytes) -> dict[str, Any]:
        """Upload a CSV batch of records."""
        with self._outcome("import", f"{self._label}s imported successfully"):
            self._ensure(self.policy.can_create(self.session.role), "import")
            return await self.engine.import_records(filename, content)
