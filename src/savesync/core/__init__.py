"""
savesync core - configuration, logging and error types shared by the
sync engine and the command line.
"""

from savesync.core.config import SaveSyncConfig, TargetConfig, load_config
from savesync.core.errors import SyncError
from savesync.core.logging import get_logger, setup_logging

__all__ = [
    "SaveSyncConfig",
    "TargetConfig",
    "load_config",
    "SyncError",
    "get_logger",
    "setup_logging",
]
