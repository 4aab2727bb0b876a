from __future__ import annotations
from typing import Any

# ========================================
#           INPUT VALIDATION HELPERS
# ========================================
"""
Helpers the configuration layer and the CLIs call to decide if a
user-supplied value is safe to start a server or client with.
"""

# IANA registered ports: below is reserved for system services, above is dynamic/private.
MIN_PORT = 1024
MAX_PORT = 49151


def is_registered_port(port: Any) -> bool:
    """
    returns True if port is an int in the registered range [1024, 49151].
    """
    return isinstance(port, int) and not isinstance(port, bool) and MIN_PORT <= port <= MAX_PORT


def validate_port(port: Any) -> int:
    """Return port unchanged, or raise ValueError if it is outside [1024, 49151]."""
    if not is_registered_port(port):
        raise ValueError(f"Port {port} not in range {MIN_PORT}-{MAX_PORT}.")
    return port


def is_participant_name(name: Any) -> bool:
    """
    Accepts any non-blank string as a sender name.

    Examples: "server", "alice", "Bob Smith"
    """
    return isinstance(name, str) and bool(name.strip())


def validate_participant_name(name: Any) -> str:
    if not is_participant_name(name):
        raise ValueError(f"Invalid participant name: {name!r}")
    return name
