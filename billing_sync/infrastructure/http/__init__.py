"""HTTP transport implementations."""

from billing_sync.infrastructure.http.httpx_transport import HttpxTransport

__all__ = ["HttpxTransport"]
