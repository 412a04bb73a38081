"""
savesync directory hashing.

Produces one Digest for a whole directory tree. Entries are visited
depth-first in file-name order so two machines walking the same content
feed identical bytes into the hash. For every entry below the root the
hash receives:

    relative path (UTF-8, '/' separated) | 0x00 | kind | size (u64 LE)

followed by the file content for regular files. Kind is 0x01 for files
and 0x02 for directories. Symbolic links abort the whole hash.
"""

from __future__ import annotations

import hashlib
import os
import stat
import struct
from collections.abc import Iterator
from pathlib import Path

from savesync.core.errors import SymlinkError, SyncIOError
from savesync.core.logging import get_logger
from savesync.sync.digest import Digest

logger = get_logger(__name__)

CHUNK_SIZE = 65536
ENTRY_FILE = b"\x01"
ENTRY_DIRECTORY = b"\x02"
_SIZE = struct.Struct("<Q")


def _sorted_entries(directory: Path) -> list[os.DirEntry[str]]:
    try:
        with os.scandir(directory) as it:
            entries = list(it)
    except OSError as exc:
        raise SyncIOError(directory, exc) from exc
    return sorted(entries, key=lambda entry: os.fsencode(entry.name))


def walk_sorted(root: Path) -> Iterator[tuple[Path, os.stat_result]]:
    """Yield (path, lstat) for every entry under root in file-name order.

    Directories are yielded before their contents. Raises SymlinkError on
    the first symbolic link encountered.
    """
    for entry in _sorted_entries(root):
        path = Path(entry.path)
        try:
            info = entry.stat(follow_symlinks=False)
        except OSError as exc:
            raise SyncIOError(path, exc) from exc

        if stat.S_ISLNK(info.st_mode):
            raise SymlinkError(path)

        yield path, info

        if stat.S_ISDIR(info.st_mode):
            yield from walk_sorted(path)


def _update_with_file(path: Path, context: hashlib._Hash) -> None:
    try:
        with open(path, "rb") as handle:
            while True:
                chunk = handle.read(CHUNK_SIZE)
                if not chunk:
                    break
                context.update(chunk)
    except OSError as exc:
        raise SyncIOError(path, exc) from exc


def hash_directory(directory: Path) -> Digest:
    """Hash the structure and content of a directory tree.

    A directory that does not exist hashes as an empty tree.
    """
    directory = Path(directory)
    context = hashlib.sha256()

    if not directory.exists():
        logger.debug("Hashing missing directory as empty tree", path=directory)
        return Digest.from_bytes(context.digest())
    if not directory.is_dir():
        raise SyncIOError(directory, NotADirectoryError(f"Not a directory: {directory}"))

    entries = 0
    for path, info in walk_sorted(directory):
        relative = path.relative_to(directory).as_posix()
        is_file = stat.S_ISREG(info.st_mode)

        context.update(os.fsencode(relative))
        context.update(b"\x00")
        context.update(ENTRY_FILE if is_file else ENTRY_DIRECTORY)
        context.update(_SIZE.pack(info.st_size))

        if is_file:
            _update_with_file(path, context)
        entries += 1

    digest = Digest.from_bytes(context.digest())
    logger.debug("Hashed directory", path=directory, entries=entries, digest=digest)
    return digest
