# geoattend/core/clock.py
"""Single source of "now" for every expiry and freshness check.

Callers must go through ``clock.utcnow()`` (module attribute lookup) so tests
can freeze time by patching this function.
"""
from datetime import datetime, timezone


def utcnow() -> datetime:
    # Naive UTC, matching what the SQLite DateTime columns round-trip.
    return datetime.now(timezone.utc).replace(tzinfo=None)
