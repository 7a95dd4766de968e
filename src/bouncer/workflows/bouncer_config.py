"""Bouncer defaults (paths, protocol strings, timing constants).

Centralizes static defaults so the session and crawler modules have no
embedded magic numbers. Settings are built from these values; env vars and
the config file override them at load time.
"""

from __future__ import annotations

from pathlib import Path

# Paths
CONFIG_FILENAME = ".bouncer.json"
DEFAULT_CONFIG_PATH = Path.home() / CONFIG_FILENAME

# Env vars
ENV_CONFIG_PATH = "BOUNCER_CONFIG"
ENV_PASSWORD = "BOUNCER_PASSWORD"
ENV_SETTLE_DELAY = "BOUNCER_SETTLE_DELAY"
ENV_QUERY_DELAY = "BOUNCER_QUERY_DELAY"
ENV_POLL_INTERVAL = "BOUNCER_POLL_INTERVAL"
ENV_HTTP_TIMEOUT = "BOUNCER_HTTP_TIMEOUT"
ENV_BATCH_SIZE = "BOUNCER_BATCH_SIZE"

# Port range accepted for the MUSH endpoint (registered + dynamic)
PORT_MIN = 1024
PORT_MAX = 65535

# Protocol
LINE_ENDING = "\r\n"
LOGIN_VERB = "connect"
QUIT_COMMAND = "QUIT"
DEFAULT_ENCODING = "utf-8"

# Timing (seconds). These are pacing heuristics for the remote server, not
# correctness guarantees.
SETTLE_DELAY = 1.0
QUERY_DELAY = 0.1
POLL_INTERVAL = 0.1
HTTP_TIMEOUT = 30.0

# Socket reads
READ_CHUNK_SIZE = 65536

# Crawl fan-out
BATCH_SIZE = 10

# Report
REPORT_HEADER = (
    "+request Wiki cleanup=The following characters need to be reviewed "
    "for activity:%r%r"
)
REPORT_NAME_WIDTH = 10
