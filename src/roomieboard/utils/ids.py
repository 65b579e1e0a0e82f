from __future__ import annotations

import secrets
import time

_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_ALPHABET[rem])
    return "".join(reversed(digits))


def generate_id() -> str:
    """Millisecond timestamp in base36 followed by a random base36 tail."""
    stamp = _base36(time.time_ns() // 1_000_000)
    tail = "".join(secrets.choice(_ALPHABET) for _ in range(11))
    return stamp + tail
