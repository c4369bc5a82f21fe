"""
Bulk Operation Coordinator.

Runs one transport call per record concurrently and keeps the batch
all-or-nothing: a single failure restores the page snapshot taken
before the batch started.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Iterable

from billing_sync.config import get_logger
from billing_sync.core.entities.page import Page
from billing_sync.core.entities.record import RecordId
from billing_sync.core.exceptions import PartialBulkFailureError
from billing_sync.core.interfaces.transport import TransportResponse
from billing_sync.core.services.mutation_engine import (
    MutationKind,
    MutationState,
    OptimisticMutationEngine,
    PendingMutation,
)
from billing_sync.core.services.status_policy import submit_target

logger = get_logger(__name__)


def _unique(ids: Iterable[RecordId]) -> list[RecordId]:
    return list(dict.fromkeys(ids))


class BulkOperationCoordinator:
    """Bulk delete and bulk submit on top of the mutation engine."""

    def __init__(self, engine: OptimisticMutationEngine):
        self.engine = engine
        self.cache = engine.cache

    async def bulk_delete(self, ids: Iterable[RecordId]) -> list[RecordId]:
        """
        Delete every record in ``ids``.

        Returns the deleted ids. On success the page is repaired with the
        pagination from before the batch.

        Raises:
            RecordNotFoundError: If an id is not cached (nothing is changed)
            PartialBulkFailureError: If any call failed (batch reverted)
        """
        ids = _unique(ids)
        if not ids:
            return []
        for record_id in ids:
            self.engine.require(record_id)

        before = self.cache.snapshot()
        pending = [self.engine.begin(MutationKind.DELETE, record_id, before) for record_id in ids]
        for record_id in ids:
            self.cache.remove(record_id)

        await self._settle_all(
            "delete",
            ids,
            pending,
            [self.engine.send(self.engine.endpoints.delete(record_id)) for record_id in ids],
            before,
        )
        logger.info("bulk_delete_completed", kind=self.engine.kind.value, count=len(ids))
        await self.engine.repair_page(before)
        return ids

    async def bulk_submit(self, ids: Iterable[RecordId]) -> list[RecordId]:
        """
        Submit every record in ``ids``.

        External submission ids returned by the server are applied once
        the whole batch succeeded.

        Raises:
            RecordNotFoundError: If an id is not cached (nothing is changed)
            PartialBulkFailureError: If any call failed (batch reverted)
        """
        ids = _unique(ids)
        if not ids:
            return []
        records = {record_id: self.engine.require(record_id) for record_id in ids}

        target = submit_target(self.engine.kind)
        before = self.cache.snapshot()
        pending = [
            self.engine.begin(MutationKind.STATUS_CHANGE, record_id, records[record_id])
            for record_id in ids
        ]
        for record_id, record in records.items():
            self.cache.replace(record_id, record.model_copy(update={"status": target}))

        responses = await self._settle_all(
            "submit",
            ids,
            pending,
            [self.engine.send(self.engine.endpoints.submit(record_id)) for record_id in ids],
            before,
        )

        for record_id, response in zip(ids, responses):
            server_id = self.engine.external_id_from(response)
            record = self.cache.get(record_id)
            if server_id is None or record is None:
                continue
            self.cache.replace(
                record_id, record.model_copy(update={"external_submission_id": server_id})
            )
        logger.info("bulk_submit_completed", kind=self.engine.kind.value, count=len(ids))
        return ids

    async def _settle_all(
        self,
        operation: str,
        ids: list[RecordId],
        pending: list[PendingMutation],
        calls: list[Awaitable[TransportResponse]],
        before: Page,
    ) -> list[TransportResponse]:
        results = await asyncio.gather(*calls, return_exceptions=True)

        failures: dict[RecordId, BaseException] = {
            record_id: result
            for record_id, result in zip(ids, results)
            if isinstance(result, BaseException)
        }
        if failures:
            self.cache.restore(before)
            for mutation in pending:
                self.engine.settle(mutation, MutationState.ROLLED_BACK)
            error = PartialBulkFailureError(operation, failures, len(ids))
            logger.warning(
                f"bulk_{operation}_rolled_back",
                kind=self.engine.kind.value,
                failed=len(failures),
                total=len(ids),
                unauthenticated=error.unauthenticated,
            )
            self.engine.handle_failure(error)
            raise error

        for mutation in pending:
            self.engine.settle(mutation, MutationState.CONFIRMED)
        return [result for result in results if not isinstance(result, BaseException)]
