"""
Record Cache.

Holds the visible page of records and its pagination. Every operation is
synchronous and total: unknown ids are ignored instead of raising, so
racing bulk continuations can never corrupt or crash the cache.
"""

from __future__ import annotations

from collections.abc import Callable

from billing_sync.config import get_logger
from billing_sync.core.entities.page import Page, Pagination
from billing_sync.core.entities.record import Record, RecordId

logger = get_logger(__name__)

PageListener = Callable[[Page], None]


class RecordCache:
    """
    Single owner of the cached page.

    Reads hand out deep copies; only the mutation engine and the bulk
    coordinator write. ``total_pages`` is derived from ``total_items``
    and ``page_size`` so it is consistent after every call.
    """

    def __init__(self, page: Page | None = None, page_size: int = 10) -> None:
        self._page = page.model_copy(deep=True) if page else Page(
            pagination=Pagination(page_size=page_size)
        )
        self._listeners: list[PageListener] = []

    # Reads

    @property
    def page(self) -> Page:
        return self._page.model_copy(deep=True)

    @property
    def pagination(self) -> Pagination:
        return self._page.pagination.model_copy()

    @property
    def records(self) -> list[Record]:
        return [record.model_copy(deep=True) for record in self._page.records]

    def __len__(self) -> int:
        return len(self._page.records)

    def __contains__(self, record_id: object) -> bool:
        return self._find(record_id) is not None

    def get(self, record_id: RecordId) -> Record | None:
        """Copy of the cached record, or None."""
        index = self._find(record_id)
        if index is None:
            return None
        return self._page.records[index].model_copy(deep=True)

    def snapshot(self) -> Page:
        """Deep copy of the whole page for a later ``restore``."""
        return self._page.model_copy(deep=True)

    # Structural mutations

    def replace_page(self, page: Page) -> None:
        """Install an authoritative page from the server."""
        self._page = page.model_copy(deep=True)
        self._notify()

    def restore(self, snapshot: Page) -> None:
        """Put back a snapshot (records and totals together)."""
        self._page = snapshot.model_copy(deep=True)
        logger.debug("cache_restored", records=len(self._page.records))
        self._notify()

    def insert_at_front(self, record: Record) -> None:
        """
        Prepend a record and count it in ``total_items``.

        The page may temporarily hold more than ``page_size`` records
        until the next authoritative fetch.
        """
        self._page.records.insert(0, record.model_copy(deep=True))
        self._set_total_items(self._page.pagination.total_items + 1)
        self._notify()

    def replace(self, record_id: RecordId, record: Record) -> bool:
        """Swap the record at ``record_id`` in place. No-op when absent."""
        index = self._find(record_id)
        if index is None:
            logger.debug("cache_replace_missing", record_id=record_id)
            return False
        self._page.records[index] = record.model_copy(deep=True)
        self._notify()
        return True

    def remove(self, record_id: RecordId) -> Record | None:
        """Drop a record and uncount it. No-op when absent."""
        index = self._find(record_id)
        if index is None:
            logger.debug("cache_remove_missing", record_id=record_id)
            return None
        removed = self._page.records.pop(index)
        self._set_total_items(self._page.pagination.total_items - 1)
        self._notify()
        return removed

    def adjust_totals(self, delta: int) -> None:
        """Shift ``total_items`` by ``delta`` without touching records."""
        if delta == 0:
            return
        self._set_total_items(self._page.pagination.total_items + delta)
        self._notify()

    # Listeners

    def subscribe(self, listener: PageListener) -> Callable[[], None]:
        """Register a page-changed listener; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # Internals

    def _find(self, record_id: object) -> int | None:
        if record_id is None:
            return None
        return self._page.index_of(record_id)  # type: ignore[arg-type]

    def _set_total_items(self, total_items: int) -> None:
        self._page.pagination.total_items = max(0, total_items)

    def _notify(self) -> None:
        if not self._listeners:
            return
        page = self.page
        for listener in list(self._listeners):
            try:
                listener(page)
            except Exception:
                logger.warning("page_listener_error", exc_info=True)
