"""Run and record identifier helpers."""

from __future__ import annotations

import string
from datetime import datetime, timezone

from trafficsync.common.heuristics import Draw

NODE_ID_PREFIX = "node-"
NODE_ID_ALPHABET = string.ascii_lowercase + string.digits
NODE_ID_LENGTH = 5


def generate_run_id() -> str:
    now = datetime.now(tz=timezone.utc)
    return now.strftime("run-%Y%m%dT%H%M%S%fZ")


def synthesize_node_id(draw: Draw, taken: set[str]) -> str:
    """Random ``node-xxxxx`` id, redrawn until it is free within ``taken``."""
    while True:
        suffix = "".join(draw.choices(NODE_ID_ALPHABET, k=NODE_ID_LENGTH))
        candidate = f"{NODE_ID_PREFIX}{suffix}"
        if candidate not in taken:
            return candidate
