"""Upload session token generation."""

import re
import secrets
from collections.abc import Container

# 16 random bytes, i.e. 128 bits of entropy.
TOKEN_BYTES = 16

_TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_-]{16,128}$")


def generate_session_id(active: Container[str] = frozenset()) -> str:
    """Return a fresh unguessable session id not present in ``active``."""
    while True:
        candidate = secrets.token_urlsafe(TOKEN_BYTES)
        if candidate not in active:
            return candidate


def is_valid_session_id(value: str | None) -> bool:
    """Check that a session id from a link is well formed."""
    return bool(value) and _TOKEN_PATTERN.fullmatch(value) is not None
