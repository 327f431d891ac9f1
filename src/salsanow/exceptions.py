"""
Exception hierarchy shared by the manifest loader, Nexus client, download
utilities, shortcut and game services.

The mod installer never raises these to its caller: it converts them into a
failed :class:`~salsanow.models.InstallResult`. Everything else raises them
to its direct caller.
"""

from __future__ import annotations

from typing import Optional


class SalsaError(Exception):
    """
    Base class for all salsanow errors.

    Attributes:
        message: Human readable message, shown to the user as-is.
        code: HTTP status code when the error came from a response.
    """

    def __init__(self, message: str, code: Optional[int] = None):
        self.message = message
        self.code = code
        super().__init__(message)

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} code={self.code!r} message={self.message!r}>"


class FetchError(SalsaError):
    """A remote manifest document could not be retrieved."""


class ParseError(SalsaError):
    """Retrieved content is not valid JSON or does not match the expected shape."""


class HostApiError(SalsaError):
    """The Nexus Mods API rejected the request (bad key, HTTP error, transport failure)."""


class TransferError(SalsaError):
    """A streamed download failed."""


class ExtractionError(SalsaError):
    """An archive could not be decompressed."""


class FilesystemError(SalsaError):
    """A directory or file could not be created."""


class UnsupportedOperation(SalsaError):
    """The requested capability is not available on this platform."""


class ShortcutError(SalsaError):
    """Shortcut creation was attempted but failed."""


class ToolNotFoundError(SalsaError):
    """An external tool (e.g. DepotDownloader) is not installed."""


class OperationCancelled(SalsaError):
    """A cancellation signal was observed between chunks of I/O."""


class ConfigError(SalsaError):
    """The configuration file is unreadable or malformed."""
