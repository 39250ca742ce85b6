"""
Custom exceptions for the stream manager.

This module defines the exception hierarchy used throughout the application.
"""

from typing import Optional


class StreamManagerError(Exception):
    """Base exception for all stream manager errors."""

    pass


class ValidationError(StreamManagerError):
    """Stream configuration is malformed."""

    pass


class ConfigurationError(StreamManagerError):
    """Configuration is invalid or missing."""

    pass


class DuplicateNameError(StreamManagerError):
    """A stream with the same name already exists."""

    def __init__(self, name: str):
        super().__init__(f"stream name already exists: {name}")
        self.name = name


class NotFoundError(StreamManagerError):
    """No stream is registered under the given name."""

    def __init__(self, name: str):
        super().__init__(f"stream not found: {name}")
        self.name = name


class AlreadyRunningError(StreamManagerError):
    """The stream already has a live process."""

    def __init__(self, name: str):
        super().__init__(f"stream already started: {name}")
        self.name = name


class SpawnError(StreamManagerError):
    """The external process could not be launched."""

    def __init__(self, message: str, command: list[str] | None = None):
        """
        Initialize spawn error with command details.

        Args:
            message: Error message
            command: Command that could not be launched
        """
        super().__init__(message)
        self.command = command


class StreamRuntimeError(StreamManagerError):
    """
    Diagnostic captured from a terminated process.

    Runners hand these out through ``last_error()`` and ``close()``; the
    registry reports them through status queries and never raises them.
    """

    def __init__(self, detail: str, returncode: Optional[int] = None):
        """
        Initialize runtime error.

        Args:
            detail: Captured diagnostic tail
            returncode: Exit code of the process, if it exited
        """
        super().__init__(detail)
        self.detail = detail
        self.returncode = returncode


class StoreError(StreamManagerError):
    """Durable store operation failed."""

    pass


class ProbeError(StreamManagerError):
    """Failed to probe media source."""

    pass
