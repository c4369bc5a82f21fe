"""
Domain exceptions for the billing sync client.

Every failed mutation surfaces one of these after its rollback has been
applied to the cache.
"""

from typing import Any


def _row_number(value: Any) -> int:
    """Server row number, 0 when missing or not numeric."""
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


class BillingSyncError(Exception):
    """Base exception for all billing sync errors."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict:
        """Convert to dictionary for display or logging."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


# Session Exceptions
class UnauthenticatedError(BillingSyncError):
    """Server rejected the credential (HTTP 401)."""

    def __init__(self, endpoint: str | None = None):
        super().__init__(
            "Session expired, please sign in again",
            code="UNAUTHENTICATED",
            details={"endpoint": endpoint},
        )


# Transport Exceptions
class TransportError(BillingSyncError):
    """Generic non-2xx response or unusable server reply."""

    def __init__(
        self,
        message: str,
        status: int | None = None,
        endpoint: str | None = None,
        payload: Any = None,
    ):
        super().__init__(
            message,
            code="TRANSPORT_ERROR",
            details={"status": status, "endpoint": endpoint},
        )
        self.status = status
        self.payload = payload


class NetworkError(TransportError):
    """Request never produced a response (connection refused, timeout...)."""

    def __init__(self, endpoint: str, reason: str):
        super().__init__(f"Network error calling {endpoint}: {reason}", endpoint=endpoint)
        self.code = "NETWORK_ERROR"
        self.details["reason"] = reason


class ValidationFailedError(BillingSyncError):
    """
    Server rejected the payload with structured validation errors.

    ``field_errors`` maps a server field name to its messages;
    ``row_errors`` holds batch import failures as (row number, messages).
    """

    def __init__(
        self,
        message: str,
        field_errors: dict[str, list[str]] | None = None,
        row_errors: list[tuple[int, list[str]]] | None = None,
        status: int | None = None,
    ):
        super().__init__(
            message,
            code="VALIDATION_FAILED",
            details={
                "status": status,
                "field_errors": field_errors or {},
                "row_errors": [
                    {"row_number": row, "errors": errors} for row, errors in row_errors or []
                ],
            },
        )
        self.field_errors = field_errors or {}
        self.row_errors = row_errors or []
        self.status = status

    @classmethod
    def from_payload(cls, payload: dict[str, Any], status: int | None = None) -> "ValidationFailedError":
        """
        Build from a server error body.

        Accepts ``errors`` either as a list of general messages or as a
        field -> messages map, plus ``rowErrors`` as
        ``[{"rowNumber": n, "errors": [...]}]``.
        """
        messages: list[str] = []
        field_errors: dict[str, list[str]] = {}

        errors = payload.get("errors")
        if isinstance(errors, list):
            messages.extend(str(e) for e in errors)
        elif isinstance(errors, dict):
            for field, field_messages in errors.items():
                if isinstance(field_messages, (list, tuple)):
                    field_errors[str(field)] = [str(m) for m in field_messages]
                else:
                    field_errors[str(field)] = [str(field_messages)]
                messages.extend(field_errors[str(field)])

        row_errors: list[tuple[int, list[str]]] = []
        rows = payload.get("rowErrors")
        for row in rows if isinstance(rows, list) else []:
            if not isinstance(row, dict):
                continue
            row_number = _row_number(row.get("rowNumber"))
            raw_messages = row.get("errors") or []
            if not isinstance(raw_messages, (list, tuple)):
                raw_messages = [raw_messages]
            row_messages = [str(m) for m in raw_messages]
            row_errors.append((row_number, row_messages))
            messages.append(f"Row {row_number}:\n" + "\n".join(row_messages))

        if not messages:
            messages.append(str(payload.get("title") or payload.get("message") or "Validation failed"))

        return cls("\n".join(messages), field_errors, row_errors, status)


# Bulk Exceptions
class PartialBulkFailureError(BillingSyncError):
    """At least one call of a bulk operation failed; the whole batch was reverted."""

    def __init__(
        self,
        operation: str,
        failures: dict[Any, BaseException],
        total: int,
    ):
        first = next(iter(failures.values()), None)
        reason = getattr(first, "message", None) or str(first)
        super().__init__(
            f"Bulk {operation} failed for {len(failures)} of {total} records: {reason}",
            code="PARTIAL_BULK_FAILURE",
            details={
                "operation": operation,
                "total": total,
                "failed_ids": [str(record_id) for record_id in failures],
            },
        )
        self.operation = operation
        self.failures = failures
        self.total = total

    @property
    def unauthenticated(self) -> bool:
        """True when any call in the batch hit a 401."""
        return any(isinstance(e, UnauthenticatedError) for e in self.failures.values())


# Cache / Policy Exceptions
class RecordNotFoundError(BillingSyncError):
    """Record is not present in the cached page."""

    def __init__(self, record_id: Any):
        super().__init__(
            f"Record not found: {record_id}",
            code="RECORD_NOT_FOUND",
            details={"record_id": str(record_id)},
        )


class PermissionDeniedError(BillingSyncError):
    """Role is not allowed to perform the action on a record in this status."""

    def __init__(self, action: str, role: str | None, status: Any):
        super().__init__(
            f"Role '{role}' cannot {action} a record in status {status}",
            code="PERMISSION_DENIED",
            details={"action": action, "role": role, "status": str(status)},
        )


class InvalidTransitionError(BillingSyncError):
    """Status transition not permitted for the role."""

    def __init__(self, role: str | None, current: Any, target: Any):
        super().__init__(
            f"Role '{role}' cannot move a record from {current} to {target}",
            code="INVALID_TRANSITION",
            details={"role": role, "current": str(current), "target": str(target)},
        )


class ConfigurationError(BillingSyncError):
    """Configuration error."""

    pass
