from enum import IntEnum, StrEnum


class LeaseStatus(StrEnum):
    ACTIVE = 'ACTIVE'
    EXPIRED = 'EXPIRED'
    CANCELLED = 'CANCELLED'


class LeaseDuration(IntEnum):
    """Allowed hold lengths, in minutes"""

    THIRTY_MINUTES = 30
    ONE_HOUR = 60
    TWO_HOURS = 120
    ONE_DAY = 1440

    @property
    def label(self) -> str:
        return _DURATION_LABELS[self]


_DURATION_LABELS = {
    LeaseDuration.THIRTY_MINUTES: '30 minutes',
    LeaseDuration.ONE_HOUR: '1 hour',
    LeaseDuration.TWO_HOURS: '2 hours',
    LeaseDuration.ONE_DAY: '24 hours',
}
