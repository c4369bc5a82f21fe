"""Abstract interface for user-facing notifications."""

from abc import ABC, abstractmethod


class INotifier(ABC):
    """
    Transient notification sink (toast, status bar, log).

    Called once per logical operation, never per network call.
    """

    @abstractmethod
    def success(self, message: str) -> None:
        """Report a completed operation."""
        pass

    @abstractmethod
    def error(self, message: str) -> None:
        """Report a failed operation."""
        pass
