"""
Lease Domain Events

Emitted by the single lease transition path so that live subscribers and the
store never disagree about a lease's state.
"""

from datetime import datetime

import attrs
from uuid_utils import UUID

from src.service.lease.domain.entity.lease_entity import Lease
from src.service.lease.domain.enum.lease_event_type import LeaseEventType
from src.service.lease.domain.enum.lease_status import LeaseStatus


@attrs.define(frozen=True)
class LeaseChangedEvent:
    event_type: LeaseEventType
    lease_id: UUID
    product_id: str
    holder_id: str
    status: LeaseStatus
    expires_at: datetime
    occurred_at: datetime

    @classmethod
    def from_lease(
        cls, *, lease: Lease, event_type: LeaseEventType, occurred_at: datetime
    ) -> 'LeaseChangedEvent':
        return cls(
            event_type=event_type,
            lease_id=lease.id,
            product_id=lease.product_id,
            holder_id=lease.holder_id,
            status=lease.status,
            expires_at=lease.expires_at,
            occurred_at=occurred_at,
        )

    def to_payload(self) -> dict:
        return {
            'event_type': self.event_type.value,
            'lease_id': str(self.lease_id),
            'product_id': self.product_id,
            'holder_id': self.holder_id,
            'status': self.status.value,
            'expires_at': self.expires_at.isoformat(),
            'occurred_at': self.occurred_at.isoformat(),
        }
