"""Match finger output against recent-login evidence in a session transcript."""

from __future__ import annotations

import logging
from typing import Dict, List, Pattern

logger = logging.getLogger(__name__)


def find_active_names(
    transcript: str,
    finger_pattern: Pattern[str],
    recent_login_pattern: Pattern[str],
) -> List[str]:
    """Names whose finger line is immediately followed by a recent-login line.

    Only the very next line counts; evidence further down the transcript is
    ignored. The last line has no successor and never qualifies.
    """

    lines = [line.strip() for line in transcript.split("\n")]
    active: List[str] = []
    for index in range(len(lines) - 1):
        match = finger_pattern.search(lines[index])
        if not match or not match.group(1):
            continue
        if recent_login_pattern.search(lines[index + 1]):
            active.append(match.group(1))
    return active


def prune_roster(
    roster: Dict[str, str],
    transcript: str,
    finger_pattern: Pattern[str],
    recent_login_pattern: Pattern[str],
) -> Dict[str, str]:
    """Return a copy of ``roster`` without the characters seen logging in recently."""

    pruned = dict(roster)
    for name in find_active_names(transcript, finger_pattern, recent_login_pattern):
        if pruned.pop(name, None) is not None:
            logger.debug("%s logged in recently; dropping from review", name)
    logger.info("%d of %d character(s) still need review", len(pruned), len(roster))
    return pruned


__all__ = ["find_active_names", "prune_roster"]
