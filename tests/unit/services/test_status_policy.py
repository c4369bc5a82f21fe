"""Unit tests for StatusTransitionPolicy."""

import pytest

from billing_sync.core.entities import InvoiceStatus, QuoteStatus, RecordKind
from billing_sync.core.services import StatusTransitionPolicy, submit_target

INVOICE = RecordKind.INVOICE
QUOTE = RecordKind.QUOTE


@pytest.fixture
def policy() -> StatusTransitionPolicy:
    return StatusTransitionPolicy()


class TestValidTransitions:
    """Tests for transition sets."""

    def test_draft_invoice_clerk(self, policy):
        assert policy.valid_transitions("Clerk", INVOICE, InvoiceStatus.DRAFT) == {InvoiceStatus.DRAFT}

    def test_draft_invoice_manager(self, policy):
        assert policy.valid_transitions("Manager", INVOICE, InvoiceStatus.DRAFT) == {
            InvoiceStatus.DRAFT,
            InvoiceStatus.READY,
        }

    @pytest.mark.parametrize(
        "current,expected",
        [
            (InvoiceStatus.READY, {InvoiceStatus.DRAFT, InvoiceStatus.READY}),
            (InvoiceStatus.AWAITING_CLEARANCE, {InvoiceStatus.AWAITING_CLEARANCE}),
            (InvoiceStatus.VALIDATED, {InvoiceStatus.VALIDATED}),
            (InvoiceStatus.REJECTED, {InvoiceStatus.DRAFT, InvoiceStatus.REJECTED}),
        ],
    )
    def test_invoice_table_admin(self, policy, current, expected):
        assert policy.valid_transitions("Admin", INVOICE, current) == expected

    @pytest.mark.parametrize(
        "current,expected",
        [
            (QuoteStatus.DRAFT, {QuoteStatus.DRAFT, QuoteStatus.SENT}),
            (
                QuoteStatus.SENT,
                {QuoteStatus.DRAFT, QuoteStatus.SENT, QuoteStatus.ACCEPTED, QuoteStatus.REJECTED},
            ),
            (QuoteStatus.ACCEPTED, {QuoteStatus.ACCEPTED}),
            (QuoteStatus.REJECTED, {QuoteStatus.DRAFT, QuoteStatus.REJECTED}),
            (QuoteStatus.CONVERTED, {QuoteStatus.CONVERTED}),
        ],
    )
    def test_quote_table_manager(self, policy, current, expected):
        assert policy.valid_transitions("Manager", QUOTE, current) == expected

    def test_current_always_included_for_known_roles(self, policy):
        for role in ("Admin", "Manager", "Clerk"):
            for status in InvoiceStatus:
                assert status in policy.valid_transitions(role, INVOICE, status)
            for status in QuoteStatus:
                assert status in policy.valid_transitions(role, QUOTE, status)

    def test_raw_wire_values_accepted(self, policy):
        assert policy.valid_transitions("Manager", INVOICE, 0) == {0, 1}
        assert policy.valid_transitions("Manager", INVOICE, "1") == {InvoiceStatus.DRAFT, InvoiceStatus.READY}
        assert policy.can_transition("Manager", QUOTE, "Sent", "Accepted")

    @pytest.mark.parametrize("role", [None, "", "Auditor", "admin", 3, object()])
    def test_unknown_role_fails_closed(self, policy, role):
        assert policy.valid_transitions(role, INVOICE, InvoiceStatus.DRAFT) == frozenset()
        assert not policy.can_transition(role, INVOICE, InvoiceStatus.DRAFT, InvoiceStatus.DRAFT)
        assert not policy.can_create(role)

        permissions = policy.action_permissions(role, INVOICE, InvoiceStatus.DRAFT)
        assert not any(
            [
                permissions.can_edit,
                permissions.can_delete,
                permissions.can_submit,
                permissions.can_change_status,
                permissions.can_check_external_status,
                permissions.can_convert,
                permissions.can_view_rejection_reason,
            ]
        )
        assert permissions.valid_transitions == frozenset()

    def test_unknown_status_yields_nothing(self, policy):
        assert policy.valid_transitions("Admin", INVOICE, 99) == frozenset()
        assert policy.valid_transitions("Admin", QUOTE, "Archived") == frozenset()
        assert not policy.can_transition("Admin", INVOICE, InvoiceStatus.DRAFT, 99)


class TestCapabilities:
    """Tests for role-gated predicates."""

    def test_can_create_all_roles(self, policy):
        assert all(policy.can_create(role) for role in ("Admin", "Manager", "Clerk"))

    def test_clerk_edits_drafts_only(self, policy):
        assert policy.can_edit("Clerk", INVOICE, InvoiceStatus.DRAFT)
        assert not policy.can_edit("Clerk", INVOICE, InvoiceStatus.READY)
        assert not policy.can_delete("Clerk", QUOTE, QuoteStatus.SENT)

    @pytest.mark.parametrize(
        "status,allowed",
        [
            (InvoiceStatus.DRAFT, True),
            (InvoiceStatus.READY, True),
            (InvoiceStatus.AWAITING_CLEARANCE, False),
            (InvoiceStatus.VALIDATED, False),
            (InvoiceStatus.REJECTED, True),
        ],
    )
    def test_manager_mutable_invoice_statuses(self, policy, status, allowed):
        assert policy.can_edit("Manager", INVOICE, status) is allowed
        assert policy.can_delete("Manager", INVOICE, status) is allowed
        assert policy.can_change_status("Manager", INVOICE, status) is allowed

    def test_clerk_never_changes_status(self, policy):
        assert not policy.can_change_status("Clerk", INVOICE, InvoiceStatus.DRAFT)
        assert not policy.can_change_status("Clerk", QUOTE, QuoteStatus.DRAFT)

    def test_submit_source_status(self, policy):
        assert policy.can_submit("Manager", INVOICE, InvoiceStatus.READY)
        assert not policy.can_submit("Manager", INVOICE, InvoiceStatus.DRAFT)
        assert not policy.can_submit("Clerk", INVOICE, InvoiceStatus.READY)
        assert policy.can_submit("Admin", QUOTE, QuoteStatus.DRAFT)
        assert not policy.can_submit("Admin", QUOTE, QuoteStatus.SENT)

    def test_submit_targets(self):
        assert submit_target(INVOICE) == InvoiceStatus.AWAITING_CLEARANCE
        assert submit_target(QUOTE) == QuoteStatus.SENT

    def test_external_status_invoice_only(self, policy):
        assert policy.can_check_external_status("Manager", INVOICE, InvoiceStatus.AWAITING_CLEARANCE)
        assert not policy.can_check_external_status("Manager", INVOICE, InvoiceStatus.READY)
        assert not policy.can_check_external_status("Clerk", INVOICE, InvoiceStatus.AWAITING_CLEARANCE)
        assert not policy.can_check_external_status("Manager", QUOTE, QuoteStatus.SENT)

    def test_convert_accepted_quotes(self, policy):
        assert policy.can_convert("Admin", QUOTE, QuoteStatus.ACCEPTED)
        assert not policy.can_convert("Admin", QUOTE, QuoteStatus.SENT)
        assert not policy.can_convert("Clerk", QUOTE, QuoteStatus.ACCEPTED)
        assert not policy.can_convert("Admin", INVOICE, InvoiceStatus.VALIDATED)

    def test_rejection_reason_visible_to_any_role(self, policy):
        assert policy.can_view_rejection_reason("Clerk", INVOICE, InvoiceStatus.REJECTED)
        assert policy.can_view_rejection_reason("Manager", QUOTE, QuoteStatus.REJECTED)
        assert not policy.can_view_rejection_reason("Admin", INVOICE, InvoiceStatus.DRAFT)

    def test_bulk_selection_delegates(self, policy):
        assert policy.can_select_for_bulk("Manager", INVOICE, InvoiceStatus.READY, "submit")
        assert policy.can_select_for_bulk("Clerk", INVOICE, InvoiceStatus.DRAFT, "delete")
        assert not policy.can_select_for_bulk("Clerk", INVOICE, InvoiceStatus.READY, "delete")
        assert not policy.can_select_for_bulk("Admin", INVOICE, InvoiceStatus.DRAFT, "archive")

    def test_action_permissions_bundle(self, policy):
        permissions = policy.action_permissions("Manager", INVOICE, InvoiceStatus.READY)
        assert permissions.can_edit
        assert permissions.can_submit
        assert not permissions.can_convert
        assert permissions.valid_transitions == {InvoiceStatus.DRAFT, InvoiceStatus.READY}


class TestStatusDisplay:
    """Tests for status display metadata."""

    def test_known_status(self, policy):
        display = policy.status_display(INVOICE, InvoiceStatus.AWAITING_CLEARANCE)
        assert display.key == "awaitingClearance"
        assert display.mutable is False

    def test_mutable_status(self, policy):
        assert policy.status_display(QUOTE, "Sent").mutable is True

    def test_unknown_status(self, policy):
        display = policy.status_display(QUOTE, "Archived")
        assert display.key == "unknown"
        assert display.mutable is False
