"""
annotrack exceptions module.

Contains exception classes used across multiple modules to avoid circular dependencies.
"""


class AnnotrackError(Exception):
    """Base class for annotrack errors."""

    pass


class StorageError(AnnotrackError):
    """Exception raised when a document cannot be read or written."""

    pass


class StorageReadError(StorageError):
    """Exception raised when a document exists but cannot be read.

    Raised instead of returning a default so that a failed read is never
    mistaken for an empty document and overwritten on the next write.
    """

    pass


class StorageWriteError(StorageError):
    """Exception raised when a document cannot be written."""

    pass


class UpstreamAPIError(AnnotrackError):
    """Exception raised when the annotation tool API request fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class InvalidModalityError(AnnotrackError, ValueError):
    """Exception raised for a modality outside the supported set."""

    pass


class SchedulerAlreadyRunningError(AnnotrackError):
    """Exception raised when starting a scheduler that is already running."""

    pass


class RefreshInProgressError(AnnotrackError):
    """Exception raised when a bulk refresh is requested while one is running."""

    pass
