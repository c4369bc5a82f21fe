"""
Role-gated status transition policy.

Pure tables keyed by (role, record kind, status). The client only uses
them to advise callers; the server remains the authority. Unknown roles
fail closed: no transitions, no capabilities.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from billing_sync.core.entities.record import (
    InvoiceStatus,
    QuoteStatus,
    RecordKind,
    Status,
    coerce_status,
)
from billing_sync.core.entities.session import Role, parse_role

BulkOperation = Literal["delete", "submit"]

_PRIVILEGED = frozenset({Role.MANAGER, Role.ADMIN})

# Transitions offered to Manager/Admin; Clerks keep the current status only.
_TRANSITIONS: dict[RecordKind, dict[Status, frozenset[Status]]] = {
    RecordKind.INVOICE: {
        InvoiceStatus.DRAFT: frozenset({InvoiceStatus.DRAFT, InvoiceStatus.READY}),
        InvoiceStatus.READY: frozenset({InvoiceStatus.DRAFT, InvoiceStatus.READY}),
        # Only the clearance authority moves an invoice out of these
        InvoiceStatus.AWAITING_CLEARANCE: frozenset({InvoiceStatus.AWAITING_CLEARANCE}),
        InvoiceStatus.VALIDATED: frozenset({InvoiceStatus.VALIDATED}),
        InvoiceStatus.REJECTED: frozenset({InvoiceStatus.DRAFT, InvoiceStatus.REJECTED}),
    },
    RecordKind.QUOTE: {
        QuoteStatus.DRAFT: frozenset({QuoteStatus.DRAFT, QuoteStatus.SENT}),
        QuoteStatus.SENT: frozenset(
            {QuoteStatus.DRAFT, QuoteStatus.SENT, QuoteStatus.ACCEPTED, QuoteStatus.REJECTED}
        ),
        QuoteStatus.ACCEPTED: frozenset({QuoteStatus.ACCEPTED}),
        QuoteStatus.REJECTED: frozenset({QuoteStatus.DRAFT, QuoteStatus.REJECTED}),
        QuoteStatus.CONVERTED: frozenset({QuoteStatus.CONVERTED}),
    },
}

# Statuses in which a role may edit or delete a record
_MUTABLE: dict[RecordKind, dict[Role, frozenset[Status]]] = {
    RecordKind.INVOICE: {
        Role.CLERK: frozenset({InvoiceStatus.DRAFT}),
        Role.MANAGER: frozenset({InvoiceStatus.DRAFT, InvoiceStatus.READY, InvoiceStatus.REJECTED}),
        Role.ADMIN: frozenset({InvoiceStatus.DRAFT, InvoiceStatus.READY, InvoiceStatus.REJECTED}),
    },
    RecordKind.QUOTE: {
        Role.CLERK: frozenset({QuoteStatus.DRAFT}),
        Role.MANAGER: frozenset({QuoteStatus.DRAFT, QuoteStatus.SENT, QuoteStatus.REJECTED}),
        Role.ADMIN: frozenset({QuoteStatus.DRAFT, QuoteStatus.SENT, QuoteStatus.REJECTED}),
    },
}

# (source, target) of the dedicated submit action
SUBMIT_TRANSITIONS: dict[RecordKind, tuple[Status, Status]] = {
    RecordKind.INVOICE: (InvoiceStatus.READY, InvoiceStatus.AWAITING_CLEARANCE),
    RecordKind.QUOTE: (QuoteStatus.DRAFT, QuoteStatus.SENT),
}

_REJECTED: dict[RecordKind, Status] = {
    RecordKind.INVOICE: InvoiceStatus.REJECTED,
    RecordKind.QUOTE: QuoteStatus.REJECTED,
}

# Display key and color per status
_DISPLAY: dict[RecordKind, dict[Status, tuple[str, str]]] = {
    RecordKind.INVOICE: {
        InvoiceStatus.DRAFT: ("draft", "gray"),
        InvoiceStatus.READY: ("ready", "blue"),
        InvoiceStatus.AWAITING_CLEARANCE: ("awaitingClearance", "yellow"),
        InvoiceStatus.VALIDATED: ("validated", "green"),
        InvoiceStatus.REJECTED: ("rejected", "red"),
    },
    RecordKind.QUOTE: {
        QuoteStatus.DRAFT: ("draft", "gray"),
        QuoteStatus.SENT: ("sent", "blue"),
        QuoteStatus.ACCEPTED: ("accepted", "green"),
        QuoteStatus.REJECTED: ("rejected", "red"),
        QuoteStatus.CONVERTED: ("converted", "purple"),
    },
}


@dataclass(frozen=True)
class ActionPermissions:
    """Every capability of a role on one record."""

    can_edit: bool = False
    can_delete: bool = False
    can_submit: bool = False
    can_change_status: bool = False
    can_check_external_status: bool = False
    can_convert: bool = False
    can_view_rejection_reason: bool = False
    valid_transitions: frozenset = frozenset()


@dataclass(frozen=True)
class StatusDisplay:
    """Display key, color and mutability of a status."""

    key: str
    color: str
    mutable: bool


def submit_target(kind: RecordKind) -> Status:
    """Status a record moves to when submitted."""
    return SUBMIT_TRANSITIONS[kind][1]


class StatusTransitionPolicy:
    """
    Answers "may this role do X to a record of this kind in this status".

    Every method accepts raw role/status values (as decoded from a token
    or a payload) and never raises: anything it does not recognise is
    treated as having no rights.
    """

    @staticmethod
    def _resolve(role: Any, kind: RecordKind, status: Any) -> tuple[Role, Status] | None:
        resolved_role = parse_role(role)
        if resolved_role is None:
            return None
        try:
            return resolved_role, coerce_status(kind, status)
        except (ValueError, KeyError, TypeError):
            return None

    def valid_transitions(self, role: Any, kind: RecordKind, current: Any) -> frozenset[Status]:
        """
        Statuses reachable from ``current``, including ``current`` itself.

        Empty for an unknown role or status.
        """
        resolved = self._resolve(role, kind, current)
        if resolved is None:
            return frozenset()
        resolved_role, status = resolved
        if resolved_role not in _PRIVILEGED:
            return frozenset({status})
        return _TRANSITIONS[kind].get(status, frozenset({status}))

    def can_transition(self, role: Any, kind: RecordKind, current: Any, target: Any) -> bool:
        try:
            target_status = coerce_status(kind, target)
        except (ValueError, KeyError, TypeError):
            return False
        return target_status in self.valid_transitions(role, kind, current)

    def can_create(self, role: Any) -> bool:
        return parse_role(role) is not None

    def can_edit(self, role: Any, kind: RecordKind, status: Any) -> bool:
        resolved = self._resolve(role, kind, status)
        if resolved is None:
            return False
        resolved_role, resolved_status = resolved
        return resolved_status in _MUTABLE[kind][resolved_role]

    def can_delete(self, role: Any, kind: RecordKind, status: Any) -> bool:
        # Same rules as editing
        return self.can_edit(role, kind, status)

    def can_change_status(self, role: Any, kind: RecordKind, status: Any) -> bool:
        resolved = self._resolve(role, kind, status)
        if resolved is None or resolved[0] not in _PRIVILEGED:
            return False
        return resolved[1] in _MUTABLE[kind][resolved[0]]

    def can_submit(self, role: Any, kind: RecordKind, status: Any) -> bool:
        resolved = self._resolve(role, kind, status)
        if resolved is None or resolved[0] not in _PRIVILEGED:
            return False
        return resolved[1] == SUBMIT_TRANSITIONS[kind][0]

    def can_check_external_status(self, role: Any, kind: RecordKind, status: Any) -> bool:
        if kind != RecordKind.INVOICE:
            return False
        resolved = self._resolve(role, kind, status)
        if resolved is None or resolved[0] not in _PRIVILEGED:
            return False
        return resolved[1] == InvoiceStatus.AWAITING_CLEARANCE

    def can_convert(self, role: Any, kind: RecordKind, status: Any) -> bool:
        if kind != RecordKind.QUOTE:
            return False
        resolved = self._resolve(role, kind, status)
        if resolved is None or resolved[0] not in _PRIVILEGED:
            return False
        return resolved[1] == QuoteStatus.ACCEPTED

    def can_view_rejection_reason(self, role: Any, kind: RecordKind, status: Any) -> bool:
        resolved = self._resolve(role, kind, status)
        if resolved is None:
            return False
        return resolved[1] == _REJECTED[kind]

    def can_select_for_bulk(
        self, role: Any, kind: RecordKind, status: Any, operation: BulkOperation
    ) -> bool:
        if operation == "delete":
            return self.can_delete(role, kind, status)
        if operation == "submit":
            return self.can_submit(role, kind, status)
        return False

    def action_permissions(self, role: Any, kind: RecordKind, status: Any) -> ActionPermissions:
        """Bundle every capability for one record."""
        return ActionPermissions(
            can_edit=self.can_edit(role, kind, status),
            can_delete=self.can_delete(role, kind, status),
            can_submit=self.can_submit(role, kind, status),
            can_change_status=self.can_change_status(role, kind, status),
            can_check_external_status=self.can_check_external_status(role, kind, status),
            can_convert=self.can_convert(role, kind, status),
            can_view_rejection_reason=self.can_view_rejection_reason(role, kind, status),
            valid_transitions=self.valid_transitions(role, kind, status),
        )

    @staticmethod
    def status_display(kind: RecordKind, status: Any) -> StatusDisplay:
        try:
            resolved = coerce_status(kind, status)
        except (ValueError, KeyError, TypeError):
            return StatusDisplay(key="unknown", color="gray", mutable=False)
        key, color = _DISPLAY[kind][resolved]
        mutable = resolved in _MUTABLE[kind][Role.ADMIN]
        return StatusDisplay(key=key, color=color, mutable=mutable)
