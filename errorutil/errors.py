"""Exception hierarchy for errorutil runs."""

from __future__ import annotations

from pathlib import Path


class ErrorUtilError(RuntimeError):
    """Base class for fatal errorutil failures."""


class RootDirectoryError(ErrorUtilError):
    """Raised when the root directory to scan cannot be read."""


class ConfigError(ErrorUtilError):
    """Raised when the configuration file cannot be parsed."""


class ComponentError(ErrorUtilError):
    """Raised when the component metadata file is unreadable or malformed."""


class ComponentNotFoundError(ComponentError):
    """Raised when no component metadata file exists in the info directory."""


class CounterPersistenceError(ComponentError):
    """Raised when source files changed but the advanced counter was not saved.

    ``committed_next`` is the counter value the rewritten files require; the
    metadata file on disk still holds ``persisted_next``.
    """

    def __init__(self, message: str, *, committed_next: int, persisted_next: int) -> None:
        super().__init__(message)
        self.committed_next = committed_next
        self.persisted_next = persisted_next


class ArtifactWriteError(ErrorUtilError):
    """Raised when an output artifact cannot be written."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Failed to write {path}: {reason}")
        self.path = path


__all__ = [
    "ArtifactWriteError",
    "ComponentError",
    "ComponentNotFoundError",
    "ConfigError",
    "CounterPersistenceError",
    "ErrorUtilError",
    "RootDirectoryError",
]
