"""Config file keys, so settings and doctor agree on the JSON schema."""

from __future__ import annotations

# Connection
K_HOST = "host"
K_PORT = "port"
K_LOGIN = "login"
K_PASSWORD = "password"
K_ENCODING = "encoding"

# Wiki
K_WIKI_BASE = "wiki_base"
K_ACTIVE_CHARACTER_PAGE = "active_character_page"

# Patterns
K_ACTIVE_CHARACTER_REGEX = "active_character_regex"
K_ON_MUSH_AS_REGEX = "on_mush_as_regex"
K_FINGER_REGEX = "finger_regex"
K_RECENT_LOGIN_REGEX = "recent_login_regex"

# Protocol commands
K_ON_CONNECT = "on_connect"
K_ON_DISCONNECT = "on_disconnect"
K_FINGER_COMMAND = "finger_command"
