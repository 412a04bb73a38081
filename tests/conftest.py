"""
Pytest configuration and fixtures for savesync tests.
"""

import sys
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Generator

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

TreeWriter = Callable[[Path, dict[str, "str | bytes | None"]], Path]


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


def _write_tree(root: Path, files: dict) -> Path:
    """Create files under root; a None value creates an empty directory."""
    root.mkdir(parents=True, exist_ok=True)
    for relative, content in files.items():
        path = root / relative
        if content is None:
            path.mkdir(parents=True, exist_ok=True)
            continue
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content)
    return root


@pytest.fixture
def write_tree() -> TreeWriter:
    """Return a helper that populates a directory from a {path: content} map."""
    return _write_tree


@pytest.fixture
def sample_config(temp_dir: Path) -> "SaveSyncConfig":
    """Configuration with one enabled target named 'game' and one disabled target."""
    from savesync.core.config import LoggingConfig, SaveSyncConfig, TargetConfig

    (temp_dir / "saves" / "game").mkdir(parents=True)
    return SaveSyncConfig(
        remote=temp_dir / "remote",
        local_dir=temp_dir / "local",
        targets={
            "game": TargetConfig(dir=temp_dir / "saves" / "game"),
            "paused": TargetConfig(dir=temp_dir / "saves" / "paused", sync=False),
        },
        logging=LoggingConfig(
            console_enabled=False,
            file_enabled=False,
            log_directory=temp_dir / "logs",
        ),
    )


@pytest.fixture
def manager(sample_config: "SaveSyncConfig") -> "SyncManager":
    from savesync.sync.manager import SyncManager

    return SyncManager(sample_config)


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow running tests")
