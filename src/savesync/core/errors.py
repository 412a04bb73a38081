"""
savesync error types.

Every failure a sync pass can surface derives from SyncError so callers
can isolate one target's failure from the next.
"""

from __future__ import annotations

from pathlib import Path


class SyncError(Exception):
    """Base class for all savesync errors."""


class SyncIOError(SyncError):
    """Filesystem operation failed on a specific path."""

    def __init__(self, path: Path | str, cause: OSError) -> None:
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"io: {cause}, file: {self.path}")


class SymlinkError(SyncError):
    """A symbolic link was found inside a tree being hashed."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        super().__init__(f"cannot sync symlink '{self.path}'")


class BadDigestError(SyncError, ValueError):
    """Digest bytes or hex text are malformed."""


class UnknownTargetError(SyncError, KeyError):
    """No target with the given name is configured."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"invalid target '{name}'")

    def __str__(self) -> str:
        return self.args[0]


class TargetNotSyncableError(SyncError):
    """The target exists but has sync disabled."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"'{name}' is not configured for sync")


class LaunchError(SyncError):
    """A wrapped command could not be started."""

    def __init__(self, command: str, cause: OSError) -> None:
        self.command = command
        self.cause = cause
        super().__init__(f"failed to launch '{command}': {cause}")


class ConfigurationError(SyncError):
    """Configuration is missing, unreadable or incomplete."""


class UnofferedChoiceError(SyncError):
    """A conflict resolver answered with a choice it was not offered."""
