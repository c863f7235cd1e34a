"""Exception types raised by the Blinko sync engine."""

from __future__ import annotations


class BlinkoSyncError(Exception):
    """Base class for all sync errors surfaced to callers."""


class ConfigurationError(BlinkoSyncError):
    """Raised when the server endpoint or access token is missing."""


class RemoteError(BlinkoSyncError):
    """Raised when the Blinko server answers with a bad status or an unparsable body.

    Attributes:
        status: HTTP status code of the response.
        snippet: Leading part of the response body (at most 200 characters).
    """

    def __init__(self, status: int, snippet: str = "", message: str | None = None) -> None:
        self.status = status
        self.snippet = snippet
        self.message = message or f"Blinko API error: {status} {snippet}".rstrip()
        super().__init__(self.message)


class AttachmentError(BlinkoSyncError):
    """Raised when a single attachment cannot be downloaded or written."""

    def __init__(self, name: str, reason: str) -> None:
        self.name = name
        self.reason = reason
        super().__init__(f"Attachment '{name}' failed: {reason}")


class FilesystemConflictError(BlinkoSyncError):
    """Raised when a note path is occupied by a node of the wrong type."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Path is occupied by a node of the wrong type: {path}")


class TemplateError(BlinkoSyncError):
    """Raised when a path template renders no usable segment."""
