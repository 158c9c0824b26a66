"""
Exception hierarchy for the build status adapter.

Configuration problems are deliberately absent: an adapter with unusable
settings goes inert instead of raising.
"""

from __future__ import annotations


class AdapterError(RuntimeError):
    """Raised when an adapter encounters a non-recoverable error."""


class AlreadyInitializedError(AdapterError):
    """Raised when ``initialize`` is called twice on the same adapter."""


class NotInitializedError(AdapterError):
    """Raised when an adapter property is read before ``initialize``."""


class MalformedRevisionError(AdapterError, ValueError):
    """Raised when a build's source version is not a parsable revision id."""


class APIError(AdapterError):
    """Raised when an HTTP API call fails."""
