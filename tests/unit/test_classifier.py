"""
Tests for savesync.sync.classifier module.
"""

import hashlib
from datetime import datetime
from typing import Sequence

import pytest

from savesync.core.errors import UnofferedChoiceError
from savesync.sync.classifier import (
    BULK_CHOICES,
    LAUNCH_CHOICES,
    ConflictChoice,
    Disposition,
    classify,
    conflict_choices,
)
from savesync.sync.digest import Digest

LASTSYNC_TIME = datetime(2024, 5, 1, 12, 30).astimezone()


def digest(label: str) -> Digest:
    return Digest.from_bytes(hashlib.sha256(label.encode()).digest())


BASE = digest("base")
LOCAL = digest("local")
REMOTE = digest("remote")


class RecordingResolver:
    """Resolver that answers with a fixed disposition and records calls."""

    def __init__(self, answer: Disposition = Disposition.NO_SYNC) -> None:
        self.answer = answer
        self.calls: list[tuple[datetime, tuple[ConflictChoice, ...]]] = []

    def __call__(self, lastsync_time: datetime, choices: Sequence[ConflictChoice]) -> Disposition:
        self.calls.append((lastsync_time, tuple(choices)))
        return self.answer


class TestChoiceSets:
    """Tests for the choices offered to resolvers."""

    def test_bulk_choices(self) -> None:
        assert [c.label for c in BULK_CHOICES] == ["keep local", "keep remote", "ignore"]
        assert Disposition.ABORT not in {c.disposition for c in BULK_CHOICES}

    def test_launch_choices_add_abort(self) -> None:
        assert LAUNCH_CHOICES[:3] == BULK_CHOICES
        assert LAUNCH_CHOICES[-1] == ConflictChoice("abort", Disposition.ABORT)

    def test_conflict_choices(self) -> None:
        assert conflict_choices(False) == BULK_CHOICES
        assert conflict_choices(True) == LAUNCH_CHOICES


class TestClassify:
    """Truth table of the three-way comparison."""

    def test_all_equal(self) -> None:
        resolver = RecordingResolver()
        assert classify(BASE, BASE, BASE, LASTSYNC_TIME, resolver) is Disposition.NO_SYNC
        assert resolver.calls == []

    def test_local_changed(self) -> None:
        resolver = RecordingResolver()
        assert classify(LOCAL, BASE, BASE, LASTSYNC_TIME, resolver) is Disposition.TAKE_LOCAL
        assert resolver.calls == []

    def test_remote_changed(self) -> None:
        resolver = RecordingResolver()
        assert classify(BASE, REMOTE, BASE, LASTSYNC_TIME, resolver) is Disposition.TAKE_REMOTE
        assert resolver.calls == []

    def test_converged_independently(self) -> None:
        resolver = RecordingResolver()
        assert classify(LOCAL, LOCAL, BASE, LASTSYNC_TIME, resolver) is Disposition.NO_SYNC
        assert resolver.calls == []

    def test_no_history_with_equal_sides(self) -> None:
        resolver = RecordingResolver()
        zero = Digest.zero()
        assert classify(LOCAL, LOCAL, zero, LASTSYNC_TIME, resolver) is Disposition.NO_SYNC

    def test_no_history_with_different_sides_is_conflict(self) -> None:
        resolver = RecordingResolver(Disposition.TAKE_LOCAL)
        zero = Digest.zero()
        assert classify(LOCAL, REMOTE, zero, LASTSYNC_TIME, resolver) is Disposition.TAKE_LOCAL
        assert len(resolver.calls) == 1

    @pytest.mark.parametrize(
        "answer",
        [Disposition.TAKE_LOCAL, Disposition.TAKE_REMOTE, Disposition.NO_SYNC],
    )
    def test_conflict_asks_resolver_once(self, answer: Disposition) -> None:
        resolver = RecordingResolver(answer)
        assert classify(LOCAL, REMOTE, BASE, LASTSYNC_TIME, resolver) is answer
        assert len(resolver.calls) == 1
        when, choices = resolver.calls[0]
        assert when == LASTSYNC_TIME
        assert choices == BULK_CHOICES

    def test_conflict_with_abort_offered(self) -> None:
        resolver = RecordingResolver(Disposition.ABORT)
        result = classify(LOCAL, REMOTE, BASE, LASTSYNC_TIME, resolver, allow_abort=True)
        assert result is Disposition.ABORT
        assert resolver.calls[0][1] == LAUNCH_CHOICES

    def test_abort_not_offered_is_rejected(self) -> None:
        resolver = RecordingResolver(Disposition.ABORT)
        with pytest.raises(UnofferedChoiceError, match="ABORT"):
            classify(LOCAL, REMOTE, BASE, LASTSYNC_TIME, resolver)
