"""
Staleness engine — decide whether the generator must run again.

Generation can take minutes, so it is skipped whenever the generated
code is known to be current. It must never be skipped when it is not.
Four signals are checked, cheapest first, and the first one that fires
wins:

    1. forced            the always-regenerate policy is on
    2. no_fingerprint /  the last successful run used other arguments
       arguments_changed (or left no readable record)
    3. output_outdated   the build directory says generated code is stale
    4. tool_updated      the generator was reinstalled after the last run

Dependencies becoming newer than the fingerprint are not checked here:
their install markers are graph prerequisites of the fingerprint, so
the graph re-runs the evaluation whenever one of them changes.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Protocol

from genguard.core.persistence.fingerprint import fingerprint_mtime, read_fingerprint

logger = logging.getLogger(__name__)

StaleReason = Literal[
    "forced",
    "no_fingerprint",
    "arguments_changed",
    "output_outdated",
    "tool_updated",
    "up_to_date",
]


class OutputCheck(Protocol):
    """Downstream build step's view of the generated output."""

    def is_output_current(self) -> bool: ...


@dataclass(frozen=True)
class StalenessVerdict:
    """Whether to regenerate, and which signal decided it."""

    stale: bool
    reason: StaleReason

    def __bool__(self) -> bool:
        return self.stale

    @classmethod
    def fresh(cls) -> StalenessVerdict:
        return cls(stale=False, reason="up_to_date")


def needs_regeneration(
    fingerprint_path: Path,
    candidate_args: list[str],
    output_check: OutputCheck,
    tool_timestamp: Callable[[], float] | None = None,
    always_regenerate: bool = False,
) -> StalenessVerdict:
    """Evaluate the four staleness signals in order.

    Args:
        fingerprint_path: Fingerprint of the last successful generation.
        candidate_args: Arguments the generator would receive now.
        output_check: Downstream "is the generated output current" query.
        tool_timestamp: Returns the generator installation's mtime
            (0.0 when unknown). None skips the check.
        always_regenerate: Force policy.

    Returns:
        A verdict; truthy when regeneration is needed.
    """
    if always_regenerate:
        return StalenessVerdict(stale=True, reason="forced")

    recorded = read_fingerprint(fingerprint_path)
    if recorded is None:
        return StalenessVerdict(stale=True, reason="no_fingerprint")
    if recorded != list(candidate_args):
        logger.debug("Arguments changed: %s -> %s", recorded, candidate_args)
        return StalenessVerdict(stale=True, reason="arguments_changed")

    if not output_check.is_output_current():
        return StalenessVerdict(stale=True, reason="output_outdated")

    if tool_timestamp is not None:
        generated_at = fingerprint_mtime(fingerprint_path)
        if generated_at is None:
            # Deleted between the read above and now
            return StalenessVerdict(stale=True, reason="no_fingerprint")
        if tool_timestamp() > generated_at:
            return StalenessVerdict(stale=True, reason="tool_updated")

    return StalenessVerdict.fresh()
