"""Offline configuration diagnostics for ``bouncer doctor``.

Checks are grouped by the stage of a run they affect (config file, MUSH
session, wiki crawl, transcript patterns, timing) so a failing run can be
traced to the part of the config that feeds it. Nothing here touches the
network.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..core.keys import (
    K_ACTIVE_CHARACTER_REGEX,
    K_FINGER_REGEX,
    K_ON_MUSH_AS_REGEX,
    K_PASSWORD,
    K_RECENT_LOGIN_REGEX,
)
from .errors import ConfigError
from .settings import GROUPED_PATTERNS, Settings, read_config_file, resolve_config_path, settings_from_mapping

SECTIONS = (
    ("config", "Config file"),
    ("session", "MUSH session"),
    ("wiki", "Wiki crawl"),
    ("patterns", "Patterns"),
    ("timing", "Timing"),
)

# Where each pattern is applied during a run.
PATTERN_ROLES = {
    K_ACTIVE_CHARACTER_REGEX: "wiki index links",
    K_ON_MUSH_AS_REGEX: "character page name",
    K_FINGER_REGEX: "finger output name",
    K_RECENT_LOGIN_REGEX: "line after finger output",
}


def mask_password(password: str) -> str:
    """Show only the length of a password."""

    if not password:
        return ""
    return f"{'*' * min(len(password), 8)} ({len(password)} chars)"


def _session_checks(settings: Settings, add_check) -> None:
    add_check("session", "mush_endpoint", True, detail="Port within 1024-65535", value=settings.endpoint)
    add_check("session", "login", True, value=settings.login)
    add_check(
        "session",
        K_PASSWORD,
        bool(settings.password),
        level="warn",
        value=mask_password(settings.password),
        remedy="Set 'password' in the config file or BOUNCER_PASSWORD.",
    )
    add_check(
        "session",
        "commands",
        True,
        detail=(
            f"on_connect={settings.on_connect!r} finger={settings.finger_command!r} "
            f"on_disconnect={settings.on_disconnect!r}"
        ),
    )


def _pattern_checks(settings: Settings, add_check) -> None:
    patterns = {
        K_ACTIVE_CHARACTER_REGEX: settings.active_character_pattern,
        K_ON_MUSH_AS_REGEX: settings.on_mush_as_pattern,
        K_FINGER_REGEX: settings.finger_pattern,
        K_RECENT_LOGIN_REGEX: settings.recent_login_pattern,
    }
    for key, pattern in patterns.items():
        detail = f"matches {PATTERN_ROLES[key]}; {pattern.groups} capture group(s)"
        if key in GROUPED_PATTERNS:
            detail += ", group 1 is used"
        add_check("patterns", key, True, detail=detail, value=pattern.pattern)


def build_doctor_report(path: str | Path | None = None) -> Dict[str, Any]:
    config_path = resolve_config_path(path)
    report: Dict[str, Any] = {
        "generated_at": datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z"),
        "ok": True,
        "config_path": str(config_path),
        "checks": [],
    }

    def add_check(
        section: str,
        name: str,
        status: bool,
        *,
        detail: Optional[str] = None,
        remedy: Optional[str] = None,
        level: str = "info",
        value: Optional[str] = None,
    ) -> None:
        entry: Dict[str, Any] = {
            "section": section,
            "name": name,
            "status": "ok" if status else "failed",
            "level": level,
            "detail": detail,
        }
        if remedy:
            entry["remedy"] = remedy
        if value is not None:
            entry["value"] = value
        report["checks"].append(entry)
        if not status and level == "warn":
            report["ok"] = False

    exists = config_path.exists()
    add_check(
        "config",
        "config_file",
        exists,
        level="warn",
        detail=str(config_path),
        remedy="Create ~/.bouncer.json or set BOUNCER_CONFIG to its location.",
    )
    if not exists:
        return report

    try:
        settings = settings_from_mapping(read_config_file(config_path))
    except ConfigError as exc:
        add_check("config", "config_valid", False, level="warn", detail=str(exc),
                  remedy="Fix the reported key and rerun doctor.")
        return report
    add_check("config", "config_valid", True, detail="All required keys present")

    _session_checks(settings, add_check)
    add_check("wiki", "wiki_index", True, value=settings.index_url)
    _pattern_checks(settings, add_check)

    timing = settings.timing
    add_check(
        "timing",
        "timing",
        True,
        detail=(
            f"settle={timing.settle_delay}s query={timing.query_delay}s "
            f"poll={timing.poll_interval}s http_timeout={timing.http_timeout}s batch={timing.batch_size}"
        ),
    )
    return report


def format_doctor_report(report: Dict[str, Any]) -> str:
    status = "OK" if report.get("ok", True) else "PROBLEMS FOUND"
    lines: List[str] = [
        f"Bouncer doctor: {status}",
        f"Config: {report.get('config_path')} (checked {report.get('generated_at')})",
    ]
    checks = report.get("checks", [])
    for section, title in SECTIONS:
        entries = [check for check in checks if check.get("section") == section]
        if not entries:
            continue
        lines.append("")
        lines.append(f"{title}:")
        for check in entries:
            mark = "ok" if check.get("status") == "ok" else "FAIL"
            row = f"  [{mark}] {check.get('name')}"
            if check.get("value"):
                row += f" = {check['value']}"
            lines.append(row)
            if check.get("detail"):
                lines.append(f"         {check['detail']}")
            if check.get("status") != "ok" and check.get("remedy"):
                lines.append(f"         fix: {check['remedy']}")
    return "\n".join(lines) + "\n"


__all__ = ["build_doctor_report", "format_doctor_report", "mask_password"]
