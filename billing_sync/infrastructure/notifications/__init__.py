"""Notifier implementations."""

from billing_sync.infrastructure.notifications.log_notifier import LogNotifier

__all__ = ["LogNotifier"]
