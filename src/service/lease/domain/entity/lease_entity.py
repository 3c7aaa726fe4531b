from datetime import datetime, timedelta

import attrs
from uuid_utils import UUID

from src.platform.exception.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidArgumentError,
)
from src.platform.logging.loguru_io import Logger
from src.service.lease.domain.enum.lease_status import LeaseDuration, LeaseStatus


@attrs.define(frozen=True)
class Lease:
    """
    Time-bounded exclusive hold on a product

    Lifecycle: ACTIVE -> CANCELLED (holder only) | ACTIVE -> EXPIRED (once now >= expires_at).
    Terminal states are final. Instances are immutable; transitions return a new Lease.
    """

    id: UUID
    product_id: str
    holder_id: str
    duration: LeaseDuration
    created_at: datetime
    expires_at: datetime
    status: LeaseStatus = LeaseStatus.ACTIVE
    holder_name: str = ''
    ended_at: datetime | None = None

    @classmethod
    @Logger.io
    def create(
        cls,
        *,
        id: UUID,
        product_id: str,
        holder_id: str,
        duration_minutes: int,
        now: datetime,
        holder_name: str = '',
    ) -> 'Lease':
        duration = cls.validate_duration(duration_minutes)
        return cls(
            id=id,
            product_id=product_id,
            holder_id=holder_id,
            holder_name=holder_name,
            duration=duration,
            created_at=now,
            expires_at=now + timedelta(minutes=int(duration)),
        )

    @staticmethod
    def validate_duration(duration_minutes: int) -> LeaseDuration:
        try:
            return LeaseDuration(duration_minutes)
        except ValueError:
            allowed = ', '.join(str(int(d)) for d in LeaseDuration)
            raise InvalidArgumentError(f'duration_minutes must be one of {allowed}') from None

    @property
    def is_active(self) -> bool:
        return self.status is LeaseStatus.ACTIVE

    def is_due(self, *, now: datetime) -> bool:
        return self.is_active and now >= self.expires_at

    def remaining_seconds(self, *, now: datetime) -> int:
        if not self.is_active:
            return 0
        return max(0, int((self.expires_at - now).total_seconds()))

    def ensure_holder(self, requester_id: str) -> None:
        if self.holder_id != requester_id:
            raise ForbiddenError('Only the holder can manage this lease')

    @Logger.io
    def cancel(self, *, now: datetime) -> 'Lease':
        self._ensure_active()
        return attrs.evolve(self, status=LeaseStatus.CANCELLED, ended_at=now)

    @Logger.io
    def expire(self, *, now: datetime) -> 'Lease':
        self._ensure_active()
        if now < self.expires_at:
            raise ConflictError('Lease has not reached its expiry yet', lease_id=str(self.id))
        return attrs.evolve(self, status=LeaseStatus.EXPIRED, ended_at=now)

    def _ensure_active(self) -> None:
        if not self.is_active:
            raise ConflictError(
                f'Lease is already {self.status.value.lower()}',
                lease_id=str(self.id),
                status=self.status.value,
            )
