"""Load and validate the bouncer configuration file.

The result is an immutable :class:`Settings` value that is built once at
startup and handed explicitly to the crawler, the session driver and the
correlator.
"""

from __future__ import annotations

import codecs
import json
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Pattern

from ..core.keys import (
    K_ACTIVE_CHARACTER_PAGE,
    K_ACTIVE_CHARACTER_REGEX,
    K_ENCODING,
    K_FINGER_COMMAND,
    K_FINGER_REGEX,
    K_HOST,
    K_LOGIN,
    K_ON_CONNECT,
    K_ON_DISCONNECT,
    K_ON_MUSH_AS_REGEX,
    K_PASSWORD,
    K_PORT,
    K_RECENT_LOGIN_REGEX,
    K_WIKI_BASE,
)
from .bouncer_config import (
    BATCH_SIZE,
    DEFAULT_CONFIG_PATH,
    DEFAULT_ENCODING,
    ENV_BATCH_SIZE,
    ENV_CONFIG_PATH,
    ENV_HTTP_TIMEOUT,
    ENV_PASSWORD,
    ENV_POLL_INTERVAL,
    ENV_QUERY_DELAY,
    ENV_SETTLE_DELAY,
    HTTP_TIMEOUT,
    POLL_INTERVAL,
    PORT_MAX,
    PORT_MIN,
    QUERY_DELAY,
    READ_CHUNK_SIZE,
    SETTLE_DELAY,
)
from .errors import ConfigError

logger = logging.getLogger(__name__)

REQUIRED_KEYS = (
    K_HOST,
    K_PORT,
    K_LOGIN,
    K_PASSWORD,
    K_WIKI_BASE,
    K_ACTIVE_CHARACTER_PAGE,
    K_ACTIVE_CHARACTER_REGEX,
    K_ON_MUSH_AS_REGEX,
    K_FINGER_REGEX,
    K_RECENT_LOGIN_REGEX,
    K_ON_CONNECT,
    K_ON_DISCONNECT,
    K_FINGER_COMMAND,
)

# Patterns whose first capture group carries the value we need.
GROUPED_PATTERNS = (K_ACTIVE_CHARACTER_REGEX, K_ON_MUSH_AS_REGEX, K_FINGER_REGEX)


@dataclass(frozen=True, slots=True)
class Timing:
    settle_delay: float = SETTLE_DELAY
    query_delay: float = QUERY_DELAY
    poll_interval: float = POLL_INTERVAL
    http_timeout: float = HTTP_TIMEOUT
    read_chunk_size: int = READ_CHUNK_SIZE
    batch_size: int = BATCH_SIZE


@dataclass(frozen=True, slots=True)
class Settings:
    """Validated, process-lifetime configuration."""

    host: str
    port: int
    login: str
    password: str = field(repr=False)
    wiki_base: str
    active_character_page: str
    active_character_pattern: Pattern[str]
    on_mush_as_pattern: Pattern[str]
    finger_pattern: Pattern[str]
    recent_login_pattern: Pattern[str]
    on_connect: str
    on_disconnect: str
    finger_command: str
    encoding: str = DEFAULT_ENCODING
    timing: Timing = Timing()

    @property
    def index_url(self) -> str:
        return self.wiki_base + self.active_character_page

    @property
    def endpoint(self) -> str:
        return f"{self.host}:{self.port}"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "")
    if not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ConfigError(f"{name} must be positive")
    return value


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "")
    if not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None
    if value <= 0:
        raise ConfigError(f"{name} must be positive")
    return value


def resolve_config_path(path: str | Path | None = None) -> Path:
    """Explicit path, then ``BOUNCER_CONFIG``, then ``~/.bouncer.json``."""

    if path:
        return Path(path).expanduser()
    env_path = os.getenv(ENV_CONFIG_PATH)
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_PATH


def read_config_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Unable to read config file {path}: {exc}") from exc
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")
    return data


def compile_pattern(key: str, source: Any, *, needs_group: bool) -> Pattern[str]:
    if not isinstance(source, str):
        raise ConfigError(f"'{key}' must be a string")
    try:
        pattern = re.compile(source)
    except re.error as exc:
        raise ConfigError(f"'{key}' is not a valid pattern: {exc}") from exc
    if needs_group and pattern.groups < 1:
        raise ConfigError(f"'{key}' must contain at least one capture group")
    return pattern


def _text(data: Dict[str, Any], key: str) -> str:
    value = data[key]
    if not isinstance(value, str):
        raise ConfigError(f"'{key}' must be a string")
    return value.strip()


def _port(value: Any) -> int:
    # JSON integers only: no strings, floats or booleans.
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"'port' must be an integer, got {value!r}")
    if value < PORT_MIN or value > PORT_MAX:
        raise ConfigError(f"Invalid port number {value}; expected {PORT_MIN}-{PORT_MAX}")
    return value


def _encoding(value: Any) -> str:
    if value is None:
        return DEFAULT_ENCODING
    if not isinstance(value, str) or not value.strip():
        raise ConfigError("'encoding' must be a non-empty string")
    try:
        codecs.lookup(value.strip())
    except LookupError:
        raise ConfigError(f"Unknown encoding {value!r}") from None
    return value.strip()


def load_timing() -> Timing:
    return Timing(
        settle_delay=_env_float(ENV_SETTLE_DELAY, SETTLE_DELAY),
        query_delay=_env_float(ENV_QUERY_DELAY, QUERY_DELAY),
        poll_interval=_env_float(ENV_POLL_INTERVAL, POLL_INTERVAL),
        http_timeout=_env_float(ENV_HTTP_TIMEOUT, HTTP_TIMEOUT),
        batch_size=_env_int(ENV_BATCH_SIZE, BATCH_SIZE),
    )


def settings_from_mapping(data: Dict[str, Any], *, timing: Optional[Timing] = None) -> Settings:
    """Validate a decoded config object and build :class:`Settings`."""

    missing = [key for key in REQUIRED_KEYS if key not in data]
    if missing:
        raise ConfigError(f"Missing config keys: {', '.join(missing)}")

    password = os.getenv(ENV_PASSWORD) or _text(data, K_PASSWORD)

    # on_mush_as is the only pattern that gets trimmed before compiling.
    on_mush_as_source = data[K_ON_MUSH_AS_REGEX]
    if isinstance(on_mush_as_source, str):
        on_mush_as_source = on_mush_as_source.strip()

    return Settings(
        host=_text(data, K_HOST),
        port=_port(data[K_PORT]),
        login=_text(data, K_LOGIN),
        password=password.strip(),
        wiki_base=_text(data, K_WIKI_BASE),
        active_character_page=_text(data, K_ACTIVE_CHARACTER_PAGE),
        active_character_pattern=compile_pattern(
            K_ACTIVE_CHARACTER_REGEX, data[K_ACTIVE_CHARACTER_REGEX], needs_group=True
        ),
        on_mush_as_pattern=compile_pattern(K_ON_MUSH_AS_REGEX, on_mush_as_source, needs_group=True),
        finger_pattern=compile_pattern(K_FINGER_REGEX, data[K_FINGER_REGEX], needs_group=True),
        recent_login_pattern=compile_pattern(
            K_RECENT_LOGIN_REGEX, data[K_RECENT_LOGIN_REGEX], needs_group=False
        ),
        on_connect=_text(data, K_ON_CONNECT),
        on_disconnect=_text(data, K_ON_DISCONNECT),
        finger_command=_text(data, K_FINGER_COMMAND),
        encoding=_encoding(data.get(K_ENCODING)),
        timing=timing or load_timing(),
    )


def load_settings(path: str | Path | None = None) -> Settings:
    config_path = resolve_config_path(path)
    logger.debug("Loading configuration from %s", config_path)
    settings = settings_from_mapping(read_config_file(config_path))
    logger.debug("Configured MUSH endpoint %s, wiki index %s", settings.endpoint, settings.index_url)
    return settings


__all__ = [
    "GROUPED_PATTERNS",
    "REQUIRED_KEYS",
    "Settings",
    "Timing",
    "compile_pattern",
    "load_settings",
    "load_timing",
    "read_config_file",
    "resolve_config_path",
    "settings_from_mapping",
]
