"""
savesync directory replacement.

Replaces a directory with a full copy of another while moving whatever
was there into a timestamped backup. The move into the backup root is the
crash-safety seam: until it happens the destination is untouched, after it
happens the backup holds the displaced content.
"""

from __future__ import annotations

import shutil
from datetime import datetime
from pathlib import Path

from savesync.core.errors import SyncIOError
from savesync.core.logging import get_logger

logger = get_logger(__name__)

IMPLICIT_PREFIX = "implicit_"
EXPLICIT_PREFIX = "explicit_"


def backup_path(backup_root: Path, prefix: str, now: datetime | None = None) -> Path:
    """Return an unused backup path named prefix + RFC 3339 timestamp."""
    stamp = (now or datetime.now()).astimezone().isoformat()
    candidate = backup_root / f"{prefix}{stamp}"
    counter = 2
    while candidate.exists():
        candidate = backup_root / f"{prefix}{stamp}.{counter}"
        counter += 1
    return candidate


def _copy_contents(source: Path, destination: Path) -> None:
    """Copy everything inside source into the existing destination."""
    if not source.exists():
        return
    try:
        shutil.copytree(source, destination, symlinks=True, dirs_exist_ok=True)
    except OSError as exc:
        raise SyncIOError(destination, exc) from exc


def _move(source: Path, destination: Path) -> None:
    try:
        shutil.move(str(source), str(destination))
    except OSError as exc:
        raise SyncIOError(source, exc) from exc


def _mkdir(path: Path) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise SyncIOError(path, exc) from exc


def replace_directory(
    source: Path,
    target: Path,
    backup_root: Path,
    *,
    staged: bool = False,
) -> Path | None:
    """Replace target with a copy of source, backing target up first.

    Args:
        source: Directory whose content is copied
        target: Directory to replace
        backup_root: Directory receiving the displaced target
        staged: Copy into a sibling staging directory and rename it into
            place, so a crash never leaves a half-copied target

    Returns:
        Path of the backup, or None if target did not exist
    """
    logger.info("Replacing directory", source=source, target=target)
    _mkdir(backup_root)
    _mkdir(target.parent)

    staging: Path | None = None
    if staged:
        staging = target.parent / f".{target.name}.staging"
        if staging.exists():
            try:
                shutil.rmtree(staging)
            except OSError as exc:
                raise SyncIOError(staging, exc) from exc
        _mkdir(staging)
        _copy_contents(source, staging)

    backup: Path | None = None
    if target.exists():
        backup = backup_path(backup_root, IMPLICIT_PREFIX)
        _move(target, backup)
        logger.info("Backed up directory", target=target, backup=backup)

    if staging is not None:
        _move(staging, target)
    else:
        _mkdir(target)
        _copy_contents(source, target)

    return backup


def copy_to_backup(source: Path, backup_root: Path, prefix: str = EXPLICIT_PREFIX) -> Path:
    """Copy source into a new timestamped directory under backup_root."""
    _mkdir(backup_root)
    destination = backup_path(backup_root, prefix)
    _mkdir(destination)
    _copy_contents(source, destination)
    logger.info("Created backup", source=source, backup=destination)
    return destination
