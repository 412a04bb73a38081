"""
savesync sync manager.

Drives reconciliation passes for configured targets. Per target ``name``
the layout is::

    <remote>/<name>/head        mirror of the last synchronized content
    <remote>/<name>/backup/     displaced copies of head
    <local_dir>/<name>/lastsync hex digest agreed by both sides
    <local_dir>/<name>/backup/  displaced copies of the content directory
"""

from __future__ import annotations

import subprocess
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from savesync.core.config import SaveSyncConfig
from savesync.core.errors import (
    BadDigestError,
    ConfigurationError,
    LaunchError,
    SyncError,
    SyncIOError,
)
from savesync.core.logging import OperationLogger, get_logger
from savesync.sync.classifier import ConflictChoice, ConflictResolver, Disposition, classify
from savesync.sync.digest import Digest
from savesync.sync.hasher import hash_directory
from savesync.sync.replacer import copy_to_backup, replace_directory
from savesync.sync.resolvers import policy_resolver

logger = get_logger(__name__)

EPOCH = datetime.fromtimestamp(0).astimezone()


@dataclass(frozen=True)
class TargetPaths:
    name: str
    content: Path
    head: Path
    remote_backup: Path
    local_root: Path
    lastsync: Path
    local_backup: Path


@dataclass
class SyncReport:
    """What one sync pass saw and did."""

    target: str
    disposition: Disposition
    local: Digest
    remote: Digest
    lastsync: Digest
    recorded: Digest | None = None
    backup: Path | None = None
    started_at: datetime = field(default_factory=datetime.now)
    ended_at: datetime | None = None

    @property
    def aborted(self) -> bool:
        return self.disposition is Disposition.ABORT

    def to_dict(self) -> dict[str, object]:
        return {
            "target": self.target,
            "disposition": self.disposition.name,
            "local": self.local.hex(),
            "remote": self.remote.hex(),
            "lastsync": self.lastsync.hex(),
            "recorded": self.recorded.hex() if self.recorded else None,
            "backup": str(self.backup) if self.backup else None,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
        }


@dataclass
class RunReport:
    """Result of a sync-wrapped command launch."""

    target: str
    command: str
    args: list[str]
    before: SyncReport
    after: SyncReport | None = None
    returncode: int | None = None

    @property
    def launched(self) -> bool:
        return self.returncode is not None


@dataclass
class TargetStatus:
    """Read-only view of a target's three digests."""

    target: str
    enabled: bool
    content: Path
    local: Digest
    remote: Digest
    lastsync: Digest
    lastsync_time: datetime | None

    @property
    def local_ahead(self) -> bool:
        return self.local != self.lastsync

    @property
    def remote_ahead(self) -> bool:
        return self.remote != self.lastsync

    @property
    def in_sync(self) -> bool:
        return self.local == self.remote

    @property
    def state(self) -> str:
        if self.in_sync:
            return "in sync"
        if self.local_ahead and self.remote_ahead:
            return "conflict"
        return "local ahead" if self.local_ahead else "remote ahead"

    def to_dict(self) -> dict[str, object]:
        return {
            "target": self.target,
            "enabled": self.enabled,
            "content": str(self.content),
            "local": self.local.hex(),
            "remote": self.remote.hex(),
            "lastsync": self.lastsync.hex(),
            "lastsync_time": self.lastsync_time.isoformat() if self.lastsync_time else None,
            "state": self.state,
        }


@dataclass
class TargetOutcome:
    """Per-target result of a bulk operation."""

    target: str
    report: SyncReport | None = None
    backup: Path | None = None
    error: SyncError | None = None
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


def _refuse_conflict(lastsync_time: datetime, choices: Sequence[ConflictChoice]) -> Disposition:
    raise ConfigurationError("sync conflict needs a resolver but none was given")


class SyncManager:
    """Reconciles each configured target's local directory with its remote head."""

    def __init__(self, config: SaveSyncConfig, resolver: ConflictResolver | None = None) -> None:
        self.config = config
        self.remote = config.require_remote()
        if resolver is None and config.sync.conflict_policy != "ask":
            resolver = policy_resolver(config.sync.conflict_policy)
        self.resolver = resolver

    def paths(self, name: str) -> TargetPaths:
        target = self.config.get_target(name)
        remote_root = self.remote / name
        local_root = self.config.local_dir / name
        return TargetPaths(
            name=name,
            content=target.dir,
            head=remote_root / "head",
            remote_backup=remote_root / "backup",
            local_root=local_root,
            lastsync=local_root / "lastsync",
            local_backup=local_root / "backup",
        )

    def read_lastsync(self, paths: TargetPaths) -> tuple[Digest, datetime | None]:
        """Read the recorded digest and its write time; no record means zero digest."""
        try:
            raw = paths.lastsync.read_bytes()
            written = datetime.fromtimestamp(paths.lastsync.stat().st_mtime).astimezone()
        except OSError:
            return Digest.zero(), None
        try:
            return Digest.from_hex(raw.decode("ascii")), written
        except (UnicodeDecodeError, BadDigestError) as exc:
            logger.warning("Ignoring unreadable lastsync record", path=paths.lastsync, error=str(exc))
            return Digest.zero(), None

    def write_lastsync(self, paths: TargetPaths, digest: Digest) -> None:
        try:
            paths.lastsync.write_text(digest.hex())
        except OSError as exc:
            raise SyncIOError(paths.lastsync, exc) from exc

    def _ensure_dir(self, path: Path) -> None:
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise SyncIOError(path, exc) from exc

    def sync(
        self,
        name: str,
        resolver: ConflictResolver | None = None,
        allow_abort: bool = False,
    ) -> SyncReport:
        """Run one reconciliation pass for a target.

        Args:
            name: Configured target name
            resolver: Conflict resolver for this pass, defaults to the manager's
            allow_abort: Offer abort to the resolver (used before a launch)

        Returns:
            SyncReport describing the decision and any replacement
        """
        self.config.get_syncable_target(name)
        paths = self.paths(name)
        resolver = resolver or self.resolver or _refuse_conflict

        with OperationLogger("sync", logger, target=name) as op:
            local = hash_directory(paths.content)
            self._ensure_dir(paths.head)
            remote = hash_directory(paths.head)
            self._ensure_dir(paths.local_root)
            lastsync, lastsync_time = self.read_lastsync(paths)

            logger.info(
                "Computed digests",
                target=name,
                local=local,
                lastsync=lastsync,
                remote=remote,
            )

            disposition = classify(
                local,
                remote,
                lastsync,
                lastsync_time or EPOCH,
                resolver,
                allow_abort=allow_abort,
            )
            report = SyncReport(
                target=name,
                disposition=disposition,
                local=local,
                remote=remote,
                lastsync=lastsync,
            )
            op.update(disposition=disposition.name)

            if disposition is Disposition.TAKE_LOCAL:
                report.backup = replace_directory(
                    paths.content,
                    paths.head,
                    paths.remote_backup,
                    staged=self.config.sync.staged_replace,
                )
                report.recorded = local
            elif disposition is Disposition.TAKE_REMOTE:
                report.backup = replace_directory(
                    paths.head,
                    paths.content,
                    paths.local_backup,
                    staged=self.config.sync.staged_replace,
                )
                report.recorded = remote
            elif disposition is Disposition.NO_SYNC and local == remote and local != lastsync:
                # Both sides already agree; only the record is stale.
                report.recorded = local

            if report.recorded is not None:
                self.write_lastsync(paths, report.recorded)

        report.ended_at = datetime.now()
        return report

    def sync_all(self, resolver: ConflictResolver | None = None) -> list[TargetOutcome]:
        """Sync every enabled target in turn; one failure does not stop the rest."""
        outcomes: list[TargetOutcome] = []
        for name, target in self.config.targets.items():
            if not target.sync:
                logger.info("Skipping target with sync disabled", target=name)
                outcomes.append(TargetOutcome(target=name, skipped=True))
                continue
            try:
                outcomes.append(TargetOutcome(target=name, report=self.sync(name, resolver)))
            except SyncError as exc:
                logger.error("Sync failed", target=name, error=str(exc))
                outcomes.append(TargetOutcome(target=name, error=exc))
        return outcomes

    def run(
        self,
        name: str,
        command: str,
        args: Sequence[str] = (),
        resolver: ConflictResolver | None = None,
    ) -> RunReport:
        """Sync, launch a command and wait for it, then sync again.

        A conflict before the launch may abort it. The second pass never
        offers abort. A non-zero exit status is logged, not raised.
        """
        before = self.sync(name, resolver, allow_abort=True)
        report = RunReport(target=name, command=command, args=list(args), before=before)
        if before.aborted:
            logger.info("Launch aborted by conflict resolution", target=name, command=command)
            return report

        logger.info("Launching command", target=name, command=command, args=list(args))
        try:
            completed = subprocess.run([command, *args], check=False)
        except OSError as exc:
            raise LaunchError(command, exc) from exc

        report.returncode = completed.returncode
        if completed.returncode != 0:
            logger.error(
                f"'{command}' exited with status {completed.returncode}",
                target=name,
                command=command,
                returncode=completed.returncode,
            )

        report.after = self.sync(name, resolver, allow_abort=False)
        return report

    def backup(self, name: str) -> Path:
        """Copy a target's content directory into its local backup root."""
        paths = self.paths(name)
        with OperationLogger("backup", logger, target=name):
            return copy_to_backup(paths.content, paths.local_backup)

    def backup_all(self) -> list[TargetOutcome]:
        outcomes: list[TargetOutcome] = []
        for name in self.config.targets:
            try:
                outcomes.append(TargetOutcome(target=name, backup=self.backup(name)))
            except SyncError as exc:
                logger.error("Backup failed", target=name, error=str(exc))
                outcomes.append(TargetOutcome(target=name, error=exc))
        return outcomes

    def status(self, name: str) -> TargetStatus:
        """Hash both sides without creating or modifying anything."""
        target = self.config.get_target(name)
        paths = self.paths(name)
        lastsync, lastsync_time = self.read_lastsync(paths)
        return TargetStatus(
            target=name,
            enabled=target.sync,
            content=paths.content,
            local=hash_directory(paths.content),
            remote=hash_directory(paths.head),
            lastsync=lastsync,
            lastsync_time=lastsync_time,
        )
