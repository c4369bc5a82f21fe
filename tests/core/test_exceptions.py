"""Unit tests for domain exceptions."""

import pytest

from billing_sync.core.exceptions import (
    BillingSyncError,
    ConfigurationError,
    InvalidTransitionError,
    NetworkError,
    PartialBulkFailureError,
    PermissionDeniedError,
    RecordNotFoundError,
    TransportError,
    UnauthenticatedError,
    ValidationFailedError,
)


class TestBillingSyncError:
    """Tests for base BillingSyncError exception."""

    def test_basic_initialization(self):
        error = BillingSyncError("Something went wrong")
        assert str(error) == "Something went wrong"
        assert error.message == "Something went wrong"
        assert error.code == "BillingSyncError"
        assert error.details == {}

    def test_to_dict(self):
        error = BillingSyncError("Oops", code="X", details={"a": 1})
        assert error.to_dict() == {"error": "X", "message": "Oops", "details": {"a": 1}}

    def test_all_errors_are_billing_sync_errors(self):
        for error in [
            UnauthenticatedError("/invoices"),
            TransportError("bad", status=500),
            NetworkError("/invoices", "refused"),
            ValidationFailedError("invalid"),
            PartialBulkFailureError("delete", {1: TransportError("x")}, 2),
            RecordNotFoundError(5),
            PermissionDeniedError("edit", "Clerk", 1),
            InvalidTransitionError("Clerk", 0, 1),
            ConfigurationError("missing base url"),
        ]:
            assert isinstance(error, BillingSyncError)


class TestTransportErrors:
    """Tests for transport-level errors."""

    def test_unauthenticated(self):
        error = UnauthenticatedError("/invoices/1")
        assert error.code == "UNAUTHENTICATED"
        assert error.details["endpoint"] == "/invoices/1"

    def test_transport_error_keeps_payload(self):
        error = TransportError("Server error", status=503, endpoint="/quotes", payload={"x": 1})
        assert error.status == 503
        assert error.payload == {"x": 1}
        assert error.details == {"status": 503, "endpoint": "/quotes"}

    def test_network_error_is_transport_error(self):
        error = NetworkError("/invoices", "connection refused")
        assert isinstance(error, TransportError)
        assert error.code == "NETWORK_ERROR"
        assert error.status is None
        assert "connection refused" in error.message


class TestValidationFailedError:
    """Tests for parsing server validation payloads."""

    def test_error_list(self):
        error = ValidationFailedError.from_payload({"errors": ["Customer is required", "No lines"]}, 400)
        assert error.message == "Customer is required\nNo lines"
        assert error.status == 400
        assert error.field_errors == {}

    def test_field_map(self):
        error = ValidationFailedError.from_payload(
            {"errors": {"InvoiceNumber": ["Already used"], "Date": "Invalid date"}}
        )
        assert error.field_errors == {"InvoiceNumber": ["Already used"], "Date": ["Invalid date"]}
        assert error.message == "Already used\nInvalid date"

    def test_row_errors(self):
        error = ValidationFailedError.from_payload(
            {
                "rowErrors": [
                    {"rowNumber": 2, "errors": ["Missing customer", "Bad date"]},
                    {"rowNumber": 5, "errors": ["Negative quantity"]},
                ]
            }
        )
        assert error.message == "Row 2:\nMissing customer\nBad date\nRow 5:\nNegative quantity"
        assert error.row_errors == [(2, ["Missing customer", "Bad date"]), (5, ["Negative quantity"])]
        assert error.details["row_errors"][1] == {"row_number": 5, "errors": ["Negative quantity"]}

    def test_scalar_field_value(self):
        error = ValidationFailedError.from_payload({"errors": {"customerId": 42}}, 400)
        assert error.field_errors == {"customerId": ["42"]}
        assert error.message == "42"

    def test_malformed_rows(self):
        error = ValidationFailedError.from_payload(
            {
                "rowErrors": [
                    {"rowNumber": None, "errors": ["Missing customer"]},
                    "not a row",
                    {"rowNumber": "seven", "errors": "Bad date"},
                ]
            }
        )
        assert error.row_errors == [(0, ["Missing customer"]), (0, ["Bad date"])]
        assert error.message == "Row 0:\nMissing customer\nRow 0:\nBad date"

    def test_non_list_rows_ignored(self):
        error = ValidationFailedError.from_payload({"rowErrors": {"rowNumber": 1}, "title": "Import failed"})
        assert error.row_errors == []
        assert error.message == "Import failed"

    @pytest.mark.parametrize(
        "payload,expected",
        [
            ({"title": "One or more validation errors occurred."}, "One or more validation errors occurred."),
            ({"message": "Invalid request"}, "Invalid request"),
            ({}, "Validation failed"),
        ],
    )
    def test_fallback_message(self, payload, expected):
        assert ValidationFailedError.from_payload(payload).message == expected


class TestPartialBulkFailureError:
    """Tests for the aggregate bulk error."""

    def test_lists_failed_ids(self):
        error = PartialBulkFailureError("delete", {2: TransportError("Locked", status=409)}, 3)
        assert error.code == "PARTIAL_BULK_FAILURE"
        assert error.details["failed_ids"] == ["2"]
        assert error.message == "Bulk delete failed for 1 of 3 records: Locked"
        assert not error.unauthenticated

    def test_unauthenticated_flag(self):
        error = PartialBulkFailureError(
            "submit",
            {1: TransportError("x"), 2: UnauthenticatedError("/invoices/2/dgi-submit")},
            2,
        )
        assert error.unauthenticated


class TestClientSideErrors:
    """Tests for advisory policy errors."""

    def test_record_not_found(self):
        error = RecordNotFoundError(12)
        assert error.code == "RECORD_NOT_FOUND"
        assert error.details == {"record_id": "12"}

    def test_permission_denied(self):
        error = PermissionDeniedError("delete", "Clerk", "Ready")
        assert error.message == "Role 'Clerk' cannot delete a record in status Ready"

    def test_invalid_transition(self):
        error = InvalidTransitionError("Manager", "Accepted", "Draft")
        assert error.code == "INVALID_TRANSITION"
        assert error.details == {"role": "Manager", "current": "Accepted", "target": "Draft"}
