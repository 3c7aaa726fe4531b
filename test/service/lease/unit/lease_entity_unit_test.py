from datetime import datetime, timedelta, timezone

import pytest
import uuid_utils

from src.platform.exception.exceptions import ConflictError, ForbiddenError, InvalidArgumentError
from src.service.lease.domain.entity.lease_entity import Lease
from src.service.lease.domain.enum.lease_status import LeaseDuration, LeaseStatus


pytestmark = pytest.mark.unit

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
HOLDER_ID = '65f1c2a9e4b0a1b2c3d4e501'
PRODUCT_ID = '65f1c2a9e4b0a1b2c3d4f001'


def _lease(duration_minutes: int = 30) -> Lease:
    return Lease.create(
        id=uuid_utils.uuid7(),
        product_id=PRODUCT_ID,
        holder_id=HOLDER_ID,
        duration_minutes=duration_minutes,
        now=NOW,
    )


class TestLeaseCreate:
    @pytest.mark.parametrize('minutes', [30, 60, 120, 1440])
    def test_expires_after_chosen_duration(self, minutes):
        lease = _lease(minutes)

        assert lease.status is LeaseStatus.ACTIVE
        assert lease.duration is LeaseDuration(minutes)
        assert lease.expires_at - lease.created_at == timedelta(minutes=minutes)

    @pytest.mark.parametrize('minutes', [0, 15, 45, 1441])
    def test_rejects_durations_outside_the_allowed_set(self, minutes):
        with pytest.raises(InvalidArgumentError):
            _lease(minutes)

    def test_duration_labels(self):
        assert [d.label for d in LeaseDuration] == ['30 minutes', '1 hour', '2 hours', '24 hours']


class TestLeaseTransitions:
    def test_cancel_records_end(self):
        cancelled = _lease().cancel(now=NOW + timedelta(minutes=5))

        assert cancelled.status is LeaseStatus.CANCELLED
        assert cancelled.ended_at == NOW + timedelta(minutes=5)
        assert cancelled.remaining_seconds(now=NOW) == 0

    def test_terminal_states_are_final(self):
        cancelled = _lease().cancel(now=NOW)

        with pytest.raises(ConflictError):
            cancelled.cancel(now=NOW)
        with pytest.raises(ConflictError):
            cancelled.expire(now=NOW + timedelta(hours=1))

    def test_expire_only_once_due(self):
        lease = _lease()

        with pytest.raises(ConflictError):
            lease.expire(now=lease.expires_at - timedelta(seconds=1))

        expired = lease.expire(now=lease.expires_at)
        assert expired.status is LeaseStatus.EXPIRED

    def test_is_due_at_exact_expiry(self):
        lease = _lease()

        assert not lease.is_due(now=lease.expires_at - timedelta(microseconds=1))
        assert lease.is_due(now=lease.expires_at)

    def test_remaining_seconds(self):
        lease = _lease()

        assert lease.remaining_seconds(now=NOW) == 30 * 60
        assert lease.remaining_seconds(now=NOW + timedelta(hours=1)) == 0

    def test_only_holder_may_manage(self):
        lease = _lease()

        lease.ensure_holder(HOLDER_ID)
        with pytest.raises(ForbiddenError):
            lease.ensure_holder('65f1c2a9e4b0a1b2c3d4e599')
