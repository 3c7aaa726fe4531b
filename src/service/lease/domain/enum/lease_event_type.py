from enum import StrEnum


class LeaseEventType(StrEnum):
    """Live event types pushed on the product lease stream"""

    LEASE_CREATED = 'lease_created'
    LEASE_CANCELLED = 'lease_cancelled'
    LEASE_EXPIRED = 'lease_expired'
    CONNECTED = 'connected'
