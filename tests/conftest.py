import json
from pathlib import Path

import pytest

from bouncer.workflows.settings import Timing, settings_from_mapping

FAST_TIMING = Timing(
    settle_delay=0.05,
    query_delay=0.01,
    poll_interval=0.01,
    http_timeout=5.0,
    batch_size=10,
)


def base_config() -> dict:
    return {
        "host": " mush.example.org ",
        "port": 4201,
        "login": "Bouncer",
        "password": "hunter2",
        "wiki_base": "http://wiki.example.org",
        "active_character_page": "/Active",
        "active_character_regex": r'<a href="(/char/[^"]+)"',
        "on_mush_as_regex": r"  On MUSH as: (\w+)  ",
        "finger_regex": r"^(\w+) is here",
        "recent_login_regex": r"Last login: \d+ minutes? ago",
        "on_connect": "@quiet",
        "on_disconnect": "@unquiet",
        "finger_command": "+finger",
    }


@pytest.fixture
def config_data() -> dict:
    return base_config()


@pytest.fixture
def make_settings():
    def _make(timing: Timing = FAST_TIMING, **overrides):
        data = base_config()
        data.update(overrides)
        return settings_from_mapping(data, timing=timing)

    return _make


@pytest.fixture
def config_file(tmp_path: Path, config_data: dict) -> Path:
    path = tmp_path / "bouncer.json"
    path.write_text(json.dumps(config_data), encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "BOUNCER_CONFIG",
        "BOUNCER_PASSWORD",
        "BOUNCER_SETTLE_DELAY",
        "BOUNCER_QUERY_DELAY",
        "BOUNCER_POLL_INTERVAL",
        "BOUNCER_HTTP_TIMEOUT",
        "BOUNCER_BATCH_SIZE",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fast_timing() -> Timing:
    return FAST_TIMING
