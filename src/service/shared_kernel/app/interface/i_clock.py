from datetime import datetime
from typing import Protocol


class IClock(Protocol):
    def now(self) -> datetime:
        """Current UTC time, timezone-aware"""
        ...

    def monotonic(self) -> float: ...
