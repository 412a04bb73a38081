"""
savesync divergence classification.

Compares the local, remote and last-agreed digests of a target and decides
which side, if any, should be propagated. Only a true conflict (both sides
moved away from lastsync in different directions) consults the resolver.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime
from enum import Enum, auto
from typing import NamedTuple

from savesync.core.errors import UnofferedChoiceError
from savesync.core.logging import get_logger
from savesync.sync.digest import Digest

logger = get_logger(__name__)


class Disposition(Enum):
    """Outcome of classifying one sync pass."""

    NO_SYNC = auto()
    TAKE_LOCAL = auto()
    TAKE_REMOTE = auto()
    ABORT = auto()


class ConflictChoice(NamedTuple):
    label: str
    disposition: Disposition


BULK_CHOICES: tuple[ConflictChoice, ...] = (
    ConflictChoice("keep local", Disposition.TAKE_LOCAL),
    ConflictChoice("keep remote", Disposition.TAKE_REMOTE),
    ConflictChoice("ignore", Disposition.NO_SYNC),
)
LAUNCH_CHOICES: tuple[ConflictChoice, ...] = BULK_CHOICES + (
    ConflictChoice("abort", Disposition.ABORT),
)

ConflictResolver = Callable[[datetime, Sequence[ConflictChoice]], Disposition]


def conflict_choices(allow_abort: bool) -> tuple[ConflictChoice, ...]:
    """Choice set offered to a resolver; abort only exists when a launch can be cancelled."""
    return LAUNCH_CHOICES if allow_abort else BULK_CHOICES


def classify(
    local: Digest,
    remote: Digest,
    lastsync: Digest,
    lastsync_time: datetime,
    resolver: ConflictResolver,
    allow_abort: bool = False,
) -> Disposition:
    """Decide which side of a target to propagate.

    Args:
        local: Digest of the local content directory now
        remote: Digest of the remote head mirror now
        lastsync: Digest recorded after the previous reconciliation
        lastsync_time: When lastsync was written, passed to the resolver
        resolver: Called once when both sides diverged differently
        allow_abort: Offer the abort choice to the resolver

    Returns:
        The disposition for this pass
    """
    if local == remote:
        return Disposition.NO_SYNC

    local_ahead = local != lastsync
    remote_ahead = remote != lastsync

    if local_ahead and remote_ahead:
        choices = conflict_choices(allow_abort)
        logger.info(
            "Both sides changed since last sync",
            local=local,
            remote=remote,
            lastsync=lastsync,
            lastsync_time=lastsync_time.isoformat(),
        )
        disposition = resolver(lastsync_time, choices)
        if disposition not in {choice.disposition for choice in choices}:
            raise UnofferedChoiceError(
                f"conflict resolver returned {disposition.name}, "
                f"which was not offered ({', '.join(c.label for c in choices)})"
            )
        return disposition
    if local_ahead:
        return Disposition.TAKE_LOCAL
    if remote_ahead:
        return Disposition.TAKE_REMOTE
    return Disposition.NO_SYNC
