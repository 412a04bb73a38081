"""
Tests for savesync.sync.replacer module.
"""

from datetime import datetime
from pathlib import Path

import pytest

from savesync.sync.hasher import hash_directory
from savesync.sync.replacer import (
    EXPLICIT_PREFIX,
    IMPLICIT_PREFIX,
    backup_path,
    copy_to_backup,
    replace_directory,
)

SOURCE_FILES = {"slot1.sav": "new progress", "data/world.bin": b"\x10" * 64, "empty": None}
TARGET_FILES = {"slot1.sav": "old progress", "stale.tmp": "remove me", "data/world.bin": b"\x01"}


@pytest.fixture
def dirs(temp_dir: Path, write_tree) -> dict[str, Path]:
    return {
        "source": write_tree(temp_dir / "source", SOURCE_FILES),
        "target": write_tree(temp_dir / "target", TARGET_FILES),
        "backup": temp_dir / "backup",
    }


class TestBackupPath:
    """Tests for backup naming."""

    def test_prefix_and_timestamp(self, temp_dir: Path) -> None:
        now = datetime(2024, 3, 9, 18, 5, 7)
        path = backup_path(temp_dir, IMPLICIT_PREFIX, now)
        assert path.parent == temp_dir
        assert path.name.startswith("implicit_2024-03-09T18:05:07")
        parsed = datetime.fromisoformat(path.name[len(IMPLICIT_PREFIX):])
        assert parsed.tzinfo is not None

    def test_collision_gets_suffix(self, temp_dir: Path) -> None:
        now = datetime(2024, 3, 9, 18, 5, 7)
        first = backup_path(temp_dir, IMPLICIT_PREFIX, now)
        first.mkdir()
        second = backup_path(temp_dir, IMPLICIT_PREFIX, now)
        assert second != first
        assert second.name == f"{first.name}.2"


class TestReplaceDirectory:
    """Tests for replace_directory."""

    @pytest.mark.parametrize("staged", [False, True])
    def test_replaces_and_preserves_prior_content(self, dirs: dict[str, Path], staged: bool) -> None:
        source_hash = hash_directory(dirs["source"])
        target_hash = hash_directory(dirs["target"])

        backup = replace_directory(dirs["source"], dirs["target"], dirs["backup"], staged=staged)

        assert backup is not None
        assert backup.parent == dirs["backup"]
        assert backup.name.startswith(IMPLICIT_PREFIX)
        assert hash_directory(backup) == target_hash
        assert hash_directory(dirs["target"]) == source_hash
        assert not (dirs["target"] / "stale.tmp").exists()
        assert (dirs["target"] / "empty").is_dir()

    def test_source_untouched(self, dirs: dict[str, Path]) -> None:
        source_hash = hash_directory(dirs["source"])
        replace_directory(dirs["source"], dirs["target"], dirs["backup"])
        assert hash_directory(dirs["source"]) == source_hash

    def test_missing_target_has_no_backup(self, dirs: dict[str, Path], temp_dir: Path) -> None:
        target = temp_dir / "fresh" / "target"
        backup = replace_directory(dirs["source"], target, dirs["backup"])
        assert backup is None
        assert hash_directory(target) == hash_directory(dirs["source"])
        assert list(dirs["backup"].iterdir()) == []

    def test_missing_source_empties_target(self, dirs: dict[str, Path], temp_dir: Path) -> None:
        backup = replace_directory(temp_dir / "nothing", dirs["target"], dirs["backup"])
        assert backup is not None
        assert dirs["target"].is_dir()
        assert list(dirs["target"].iterdir()) == []

    def test_repeated_replacements_keep_every_backup(self, dirs: dict[str, Path]) -> None:
        first = replace_directory(dirs["source"], dirs["target"], dirs["backup"])
        second = replace_directory(dirs["source"], dirs["target"], dirs["backup"])
        assert first != second
        assert len(list(dirs["backup"].iterdir())) == 2

    def test_staged_leaves_no_staging_directory(self, dirs: dict[str, Path]) -> None:
        replace_directory(dirs["source"], dirs["target"], dirs["backup"], staged=True)
        leftovers = [p.name for p in dirs["target"].parent.iterdir() if "staging" in p.name]
        assert leftovers == []

    def test_staged_clears_stale_staging(self, dirs: dict[str, Path]) -> None:
        stale = dirs["target"].parent / ".target.staging"
        stale.mkdir()
        (stale / "junk").write_text("from a crashed run")
        replace_directory(dirs["source"], dirs["target"], dirs["backup"], staged=True)
        assert not (dirs["target"] / "junk").exists()
        assert hash_directory(dirs["target"]) == hash_directory(dirs["source"])


class TestCopyToBackup:
    """Tests for explicit backups."""

    def test_copy(self, dirs: dict[str, Path]) -> None:
        target_hash = hash_directory(dirs["target"])
        backup = copy_to_backup(dirs["target"], dirs["backup"])
        assert backup.name.startswith(EXPLICIT_PREFIX)
        assert hash_directory(backup) == target_hash
        assert hash_directory(dirs["target"]) == target_hash
