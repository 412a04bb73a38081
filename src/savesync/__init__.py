"""
savesync - Keep a local directory and its remote mirror in agreement.

Detects which side of each configured target changed since the last
agreed state and replaces the other side, keeping a backup of whatever
it overwrites.
"""

__version__ = "1.0.0"
__author__ = "savesync developers"

from savesync.core.config import SaveSyncConfig
from savesync.sync.manager import SyncManager

__all__ = ["SaveSyncConfig", "SyncManager", "__version__"]
