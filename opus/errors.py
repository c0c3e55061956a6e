"""Errors raised by the Opus installer core.

Every error is fatal for the package operation that raised it. The host
reports it through its normal error channel and moves on to the next
package.
"""

from pathlib import Path


class OpusError(Exception):
    """Base class for all Opus errors."""

    def __init__(self, message: str, package_name: str | None = None):
        self.package_name = package_name
        super().__init__(message)


class ConfigurationError(OpusError):
    """A declared mapping or manifest is malformed or disallowed."""

    def __init__(
        self,
        message: str,
        package_name: str | None = None,
        path: Path | None = None,
    ):
        self.path = path
        super().__init__(message, package_name)


class SourceNotFoundError(OpusError):
    """A declared source path does not exist or is not a regular file or directory."""


class DirectoryConflictError(OpusError):
    """A path needed as a directory is a file, or a path needed as a file is a directory."""


class PermissionDeniedError(OpusError):
    """A target exists but is not writable, or a directory could not be created."""


class LedgerCorruptError(OpusError):
    """The persisted installation map exists but cannot be read or parsed."""

    def __init__(self, message: str, path: Path | None = None):
        self.path = path
        super().__init__(message)


class CleanupError(OpusError):
    """Removing an unclaimed path failed under high integrity."""

    def __init__(self, message: str, path: str):
        self.path = path
        super().__init__(message)


class LedgerLockedError(OpusError):
    """Another installer process holds the installation map lock."""

    def __init__(self, message: str, path: Path | None = None):
        self.path = path
        super().__init__(message)
