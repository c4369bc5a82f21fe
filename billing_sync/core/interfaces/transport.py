"""
Abstract interface for the request/response transport.

The engine only needs a status code and a body; anything about
connections, timeouts or retries belongs to the implementation.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass
class TransportResponse:
    """Status code and raw body of one call."""

    status: int
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def unauthenticated(self) -> bool:
        return self.status == 401

    @property
    def is_empty(self) -> bool:
        return not self.body.strip()

    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        """
        Decode the body as JSON.

        Raises:
            ValueError: If the body is empty or not valid JSON.
        """
        if self.is_empty:
            raise ValueError("Empty response body")
        return json.loads(self.body)


class ITransport(ABC):
    """
    Interface for the billing API transport.

    Implementations: HttpxTransport
    """

    @abstractmethod
    async def call(
        self,
        endpoint: str,
        method: str,
        headers: dict[str, str],
        body: bytes | None = None,
    ) -> TransportResponse:
        """
        Issue one request.

        Args:
            endpoint: Path relative to the API base URL (may carry a query string)
            method: HTTP method
            headers: Request headers, including Authorization
            body: Optional raw request body

        Returns:
            TransportResponse for any HTTP status

        Raises:
            NetworkError: If no response was received
        """
        pass
