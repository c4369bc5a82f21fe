"""Notifier that writes user-facing messages to the structured log."""

from billing_sync.config import get_logger
from billing_sync.core.interfaces import INotifier

logger = get_logger(__name__)


class LogNotifier(INotifier):
    """Default notifier for headless use."""

    def success(self, message: str) -> None:
        logger.info("notify_success", message=message)

    def error(self, message: str) -> None:
        logger.error("notify_error", message=message)
