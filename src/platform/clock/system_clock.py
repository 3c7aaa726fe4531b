"""
System Clock

Single source of "now" for expiry computation. Wall-clock UTC timestamps are what
clients see (created_at / expires_at); the monotonic reading is used to measure
intervals that must not jump with NTP corrections.
"""

from datetime import datetime, timezone
import time


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def monotonic(self) -> float:
        return time.monotonic()
