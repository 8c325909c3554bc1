"""Centralized constants for the health probe server.

Defaults shared by the server, the settings loader and the entry point
are collected here so every layer agrees on them.
"""

from __future__ import annotations

# -- Listening address -------------------------------------------------------
DEFAULT_HOSTNAME = "+"  # Wildcard: bind all interfaces.
WILDCARD_HOSTNAMES = frozenset({"+", "*", ""})
DEFAULT_PATH = "/health"
DEFAULT_PORT = 8081
MAX_PORT = 65_535

# -- Wire format -------------------------------------------------------------
CONTENT_TYPE = "text/plain"
BODY_ENCODING = "ascii"  # Status keywords.
MESSAGE_CONTENT_TYPE = "text/plain; charset=utf-8"
MESSAGE_ENCODING = "utf-8"  # Evaluator error messages.

# -- Accept loop -------------------------------------------------------------
ACCEPT_THREAD_NAME = "healthprobe-accept"
REQUEST_TIMEOUT_SECONDS = 10.0  # Read timeout on an accepted connection.
