"""Infrastructure layer implementations."""

from billing_sync.infrastructure import http, notifications, storage

__all__ = ["http", "notifications", "storage"]
