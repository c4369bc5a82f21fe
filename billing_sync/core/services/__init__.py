"""
Core client services.

Layer-pure services that depend only on:
- billing_sync/core/entities/*
- billing_sync/core/interfaces/*
- billing_sync/core/exceptions.py

NO infrastructure imports. All collaborators injected via constructor.
"""

from billing_sync.core.services.bulk_coordinator import BulkOperationCoordinator
from billing_sync.core.services.mutation_engine import (
    MutationKind,
    MutationState,
    OptimisticMutationEngine,
    PendingMutation,
)
from billing_sync.core.services.record_cache import RecordCache
from billing_sync.core.services.session import SessionContext
from billing_sync.core.services.status_policy import (
    ActionPermissions,
    StatusDisplay,
    StatusTransitionPolicy,
    submit_target,
)

__all__ = [
    # Status policy
    "StatusTransitionPolicy",
    "ActionPermissions",
    "StatusDisplay",
    "submit_target",
    # Record cache
    "RecordCache",
    # Mutation engine
    "OptimisticMutationEngine",
    "PendingMutation",
    "MutationKind",
    "MutationState",
    # Bulk operations
    "BulkOperationCoordinator",
    # Session
    "SessionContext",
]
