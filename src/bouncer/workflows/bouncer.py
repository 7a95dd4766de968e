"""End-to-end bouncer run: crawl the wiki, finger the roster, prune."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import aiohttp

from .correlate import find_active_names, prune_roster
from .report import report_entries
from .roster import Roster, RosterCrawler
from .session import MushSession, OpenConnection
from .settings import Settings

logger = logging.getLogger(__name__)


@dataclass
class BouncerResult:
    """Outcome of one run; ``remaining`` is what the report lists."""

    roster: Roster
    remaining: Roster
    active: List[str]
    transcript: str = field(repr=False)
    failures: List[Tuple[str, str]] = field(default_factory=list)
    elapsed_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "counts": {
                "roster": len(self.roster),
                "active": len(self.active),
                "remaining": len(self.remaining),
                "failed_pages": len(self.failures),
            },
            "active": sorted(set(self.active)),
            "remaining": report_entries(self.remaining),
            "failures": [{"url": url, "reason": reason} for url, reason in self.failures],
            "elapsed_seconds": round(self.elapsed_seconds, 3),
        }


async def run_bouncer_async(
    settings: Settings,
    *,
    soft_fail: bool = False,
    http_session: Optional[aiohttp.ClientSession] = None,
    open_connection: Optional[OpenConnection] = None,
) -> BouncerResult:
    start = time.perf_counter()

    crawler = RosterCrawler(settings, soft_fail=soft_fail)
    roster = await crawler.build_roster(http_session)

    transcript = await MushSession(settings, open_connection=open_connection).run(list(roster))

    active = find_active_names(transcript, settings.finger_pattern, settings.recent_login_pattern)
    remaining = prune_roster(roster, transcript, settings.finger_pattern, settings.recent_login_pattern)

    elapsed = time.perf_counter() - start
    logger.info(
        "Finished in %.2fs (%d in roster, %d need review)",
        elapsed,
        len(roster),
        len(remaining),
    )
    return BouncerResult(
        roster=roster,
        remaining=remaining,
        active=active,
        transcript=transcript,
        failures=list(crawler.failures),
        elapsed_seconds=elapsed,
    )


def run_bouncer(settings: Settings, *, soft_fail: bool = False) -> BouncerResult:
    """Run crawl, session and correlation in one event loop."""

    return asyncio.run(run_bouncer_async(settings, soft_fail=soft_fail))


__all__ = ["BouncerResult", "run_bouncer", "run_bouncer_async"]
