from __future__ import annotations

import time
from datetime import date, datetime


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def now_ms() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return int(time.time() * 1000)


def local_date_from_ms(epoch_ms: int) -> date:
    """Local calendar day for an epoch-millisecond timestamp."""
    return datetime.fromtimestamp(epoch_ms / 1000).date()


def parse_hhmm(value: str):
    """Parse HH:MM string into time."""
    return datetime.strptime(value, "%H:%M").time()
