"""Optimistic, role-aware client cache for server-owned invoices and quotes."""

__version__ = "0.1.0"
