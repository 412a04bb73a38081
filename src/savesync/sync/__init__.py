"""
savesync sync module.

Provides directory digests, three-way divergence classification and
backup-preserving directory replacement.
"""

from savesync.sync.classifier import ConflictChoice, Disposition, classify
from savesync.sync.digest import Digest
from savesync.sync.hasher import hash_directory
from savesync.sync.manager import SyncManager, SyncReport, RunReport, TargetOutcome

__all__ = [
    "ConflictChoice",
    "Digest",
    "Disposition",
    "RunReport",
    "SyncManager",
    "SyncReport",
    "TargetOutcome",
    "classify",
    "hash_directory",
]
