"""Shared utilities used across the booking conversation engine."""

import secrets
import string
import time

_ID_ALPHABET = string.ascii_lowercase + string.digits


def _random_suffix(length: int = 9) -> str:
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


def generate_session_id() -> str:
    """Create an opaque session identifier.

    Examples:
        >>> generate_session_id().startswith("session_")
        True
    """
    return f"session_{int(time.time() * 1000)}_{_random_suffix()}"


def generate_message_id() -> str:
    """Create a unique chat message identifier."""
    return f"msg_{int(time.time() * 1000)}_{_random_suffix()}"
