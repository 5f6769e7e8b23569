"""Custom exceptions for mrzip."""

from typing import List, Optional


class MrzipError(Exception):
    """Base exception for all mrzip errors."""


class InvalidPackError(MrzipError):
    """Raised when the source is not a pack (not a zip, or no manifest)."""


class SchemaValidationError(MrzipError):
    """Raised when the manifest is malformed or uses an unsupported version."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        self.errors = list(errors or [])
        if self.errors:
            message = f"{message}: " + "; ".join(self.errors)
        super().__init__(message)


class SelectionError(MrzipError):
    """Raised when a selection names paths the manifest does not contain."""

    def __init__(self, unknown_paths):
        self.unknown_paths = sorted(unknown_paths)
        shown = ", ".join(self.unknown_paths[:5])
        if len(self.unknown_paths) > 5:
            shown += f" (+{len(self.unknown_paths) - 5} more)"
        super().__init__(f"Selection contains paths not in the manifest: {shown}")


class PerFileDownloadError(MrzipError):
    """Raised when a single file could not be fetched.

    Recovered by the scheduler: the file is skipped and the job continues.
    """

    def __init__(
        self, path: str, url: str, reason: str, status_code: Optional[int] = None
    ):
        self.path = path
        self.url = url
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Failed to download {path} from {url}: {reason}")


class ArchiveWriteError(MrzipError):
    """Raised when the output archive cannot be written."""


class TransportError(MrzipError):
    """Raised when the channel to a running job breaks unexpectedly."""
