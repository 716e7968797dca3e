"""Identifier generators for records that arrive without a natural identity."""
import random
import string
import time
from typing import Container

_BASE36 = string.ascii_lowercase + string.digits


def _now_ms() -> int:
    return int(time.time() * 1000)


def new_import_cid() -> str:
    """Prospect id for an imported row lacking ``cid``: ``import-<ms>-<random>``."""
    return f"import-{_now_ms()}-{random.random()}"


def new_remote_cid() -> str:
    """Prospect id for a remote sheet row lacking ``cid``."""
    return f"gen-{random.random()}"


def new_outreach_id() -> str:
    """Outreach id for a row lacking one: ``LID-<ms>-<9 base36 chars>``."""
    suffix = "".join(random.choices(_BASE36, k=9))
    return f"LID-{_now_ms()}-{suffix}"


def new_manual_cid(taken: Container[str] = ()) -> str:
    """
    Prospect id for a record entered by hand: ``GEN-<ms>``.

    Two creates inside the same millisecond would collide, so the timestamp
    is bumped until the id is not in ``taken``.
    """
    stamp = _now_ms()
    while f"GEN-{stamp}" in taken:
        stamp += 1
    return f"GEN-{stamp}"
