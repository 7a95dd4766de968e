"""Render the characters needing review as a MUSH ``+request``."""

from __future__ import annotations

from typing import Dict, List, Tuple

from .bouncer_config import REPORT_HEADER, REPORT_NAME_WIDTH


def _sorted_items(roster: Dict[str, str]) -> List[Tuple[str, str]]:
    return sorted(roster.items(), key=lambda item: (item[0].lower(), item[0]))


def _pad(name: str) -> str:
    # MUSH-side padding so names line up in a column; width is in UTF-8 bytes.
    width = len(name.encode("utf-8"))
    if width < REPORT_NAME_WIDTH:
        return f"[space({REPORT_NAME_WIDTH - width})]"
    return " "


def format_report(roster: Dict[str, str]) -> str:
    """Return the ``+request`` command text, one ``%t``-indented row per character."""

    parts = [REPORT_HEADER]
    for name, url in _sorted_items(roster):
        parts.append(f"%t{name}{_pad(name)}{url} %r")
    return "".join(parts)


def report_entries(roster: Dict[str, str]) -> List[Dict[str, str]]:
    return [{"name": name, "url": url} for name, url in _sorted_items(roster)]


__all__ = ["format_report", "report_entries"]
