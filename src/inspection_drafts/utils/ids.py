"""Identifier generation for locally created records."""

from __future__ import annotations

import secrets
import string
import time

_ALPHABET = string.ascii_lowercase + string.digits


def _random_suffix(length: int = 9) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def new_inspection_id() -> str:
    """Return an ID of the form ``inspection_<epoch millis>_<9 random chars>``."""
    return f"inspection_{int(time.time() * 1000)}_{_random_suffix()}"


def new_item_id() -> str:
    """ID for rooms, photos and audio clips."""
    return f"{int(time.time() * 1000):x}{_random_suffix(6)}"
