"""Identifier helpers for records created locally (contacts, drafts, schedules)."""

import time
import uuid


def generate_id(prefix: str) -> str:
    """``<prefix>_<epoch ms>_<9 random hex chars>``; unique enough for one process."""
    return f"{prefix}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"
