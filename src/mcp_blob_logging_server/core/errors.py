"""Exception taxonomy for the logging engine."""

from __future__ import annotations


class BlobLoggingError(Exception):
    """Base class for errors raised by formatters, writers and strategies."""


class ValidationError(BlobLoggingError, ValueError):
    """An entry or configuration was rejected before any backend call."""


class EntryTooLargeError(BlobLoggingError):
    """A single formatted entry exceeds the append payload ceiling."""

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(f"Log entry too large: {size} bytes. Max: {limit} bytes")
        self.size = size
        self.limit = limit


class NotFoundError(BlobLoggingError):
    """The blob behind a logical log file does not exist."""


class AccessError(BlobLoggingError):
    """The credential service or backend refused access."""


class ContainerMissingError(BlobLoggingError):
    """The configured container does not exist (permanent configuration error)."""

    def __init__(self, container_name: str) -> None:
        super().__init__(
            f"Container '{container_name}' does not exist. "
            "Please ensure the container exists before logging."
        )
        self.container_name = container_name


class StrategyNotInitializedError(BlobLoggingError):
    """A strategy was used before ``initialize`` completed."""


class LoggingOperationError(BlobLoggingError):
    """Facade-level failure carrying an operation-specific prefix.

    The original error is available as ``__cause__``.
    """

    def __init__(self, operation: str, cause: BaseException) -> None:
        super().__init__(f"Failed to {operation}: {cause}")
        self.operation = operation
