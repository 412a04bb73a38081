"""
savesync headless conflict resolvers.

A resolver is called with the time of the last recorded sync and the
choices it may pick from. Interactive prompting lives in the CLI.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from savesync.core.logging import get_logger
from savesync.sync.classifier import ConflictChoice, ConflictResolver, Disposition

logger = get_logger(__name__)

POLICY_DISPOSITIONS: dict[str, Disposition] = {
    "local": Disposition.TAKE_LOCAL,
    "remote": Disposition.TAKE_REMOTE,
    "ignore": Disposition.NO_SYNC,
    "abort": Disposition.ABORT,
}


def fixed_resolver(disposition: Disposition) -> ConflictResolver:
    """Resolver that always answers with the same disposition.

    If the disposition is not among the offered choices (abort on a bulk
    pass) the conflict is ignored instead.
    """

    def resolve(lastsync_time: datetime, choices: Sequence[ConflictChoice]) -> Disposition:
        offered = {choice.disposition for choice in choices}
        if disposition in offered:
            result = disposition
        else:
            result = Disposition.NO_SYNC
        logger.info(
            "Conflict resolved by policy",
            requested=disposition.name,
            resolved=result.name,
            lastsync_time=lastsync_time.isoformat(),
        )
        return result

    return resolve


def policy_resolver(policy: str) -> ConflictResolver:
    """Build a resolver from a policy name: local, remote, ignore or abort."""
    try:
        return fixed_resolver(POLICY_DISPOSITIONS[policy])
    except KeyError:
        raise ValueError(f"Unknown conflict policy: {policy}") from None
