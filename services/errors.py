"""Error types shared by the store and the services built on top of it."""

from __future__ import annotations


class InvalidArgument(ValueError):
    """Caller input is malformed or outside the accepted domain."""


class NotAvailable(RuntimeError):
    """The reading store cannot serve the request right now."""

    retryable = True
