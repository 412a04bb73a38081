"""
savesync CLI Module.

Provides the command-line interface for savesync operations.
"""

from savesync.cli.main import main, cli

__all__ = ["main", "cli"]
