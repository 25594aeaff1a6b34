from typing import Optional

from config import logger


class DocumentStoreError(Exception):
    """Base error for document store failures."""


class DocumentStoreUnavailableError(DocumentStoreError):
    """Raised when an operation needs the store but it was never initialised."""

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or "Document store is not initialised")


class RecordWriteError(DocumentStoreError):
    """Raised when an add/update/delete against the store fails.

    The original SDK exception is chained as ``__cause__`` so callers can keep
    their form open and the logs retain the underlying failure.
    """

    def __init__(self, operation: str, path: str, message: Optional[str] = None) -> None:
        msg = message or f"Failed to {operation} record at '{path}'"
        super().__init__(msg)
        self.operation = operation
        self.path = path
        logger.warning("Record write failed", operation=operation, path=path)
