"""High-level exports for the bouncer workflows."""

from .bouncer import BouncerResult, run_bouncer, run_bouncer_async
from .correlate import find_active_names, prune_roster
from .errors import BouncerError, ConfigError, PageFetchError, SessionError
from .report import format_report, report_entries
from .roster import RosterCrawler, build_roster
from .session import MushSession, run_session
from .settings import Settings, Timing, load_settings

__all__ = [
    "BouncerError",
    "BouncerResult",
    "ConfigError",
    "MushSession",
    "PageFetchError",
    "RosterCrawler",
    "SessionError",
    "Settings",
    "Timing",
    "build_roster",
    "find_active_names",
    "format_report",
    "load_settings",
    "prune_roster",
    "report_entries",
    "run_bouncer",
    "run_bouncer_async",
    "run_session",
]
