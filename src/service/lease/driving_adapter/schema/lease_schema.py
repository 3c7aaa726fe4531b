from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from src.platform.types import ObjectIdStr, UtilsUUID7
from src.service.lease.domain.entity.lease_entity import Lease


class LeaseCreateRequest(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={
            'example': {'product_id': '65f1c2a9e4b0a1b2c3d4e5f6', 'duration_minutes': 60}
        }
    )

    product_id: ObjectIdStr
    duration_minutes: int  # one of 30, 60, 120, 1440 (checked by the domain)


class LeaseResponse(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={
            'example': {
                'id': '01234567-89ab-7def-0123-456789abcdef',
                'product_id': '65f1c2a9e4b0a1b2c3d4e5f6',
                'holder_id': '65f1c2a9e4b0a1b2c3d4e5f7',
                'holder_name': 'Alice',
                'status': 'ACTIVE',
                'duration_minutes': 60,
                'duration_label': '1 hour',
                'reserved_at': '2025-01-10T10:30:00Z',
                'expires_at': '2025-01-10T11:30:00Z',
                'ended_at': None,
                'remaining_seconds': 3600,
            }
        }
    )

    id: UtilsUUID7
    product_id: str
    holder_id: str
    holder_name: str
    status: str
    duration_minutes: int
    duration_label: str
    reserved_at: datetime
    expires_at: datetime
    ended_at: Optional[datetime] = None
    remaining_seconds: int

    @classmethod
    def from_lease(cls, lease: Lease, *, now: datetime) -> 'LeaseResponse':
        return cls(
            id=lease.id,  # type: ignore[arg-type]
            product_id=lease.product_id,
            holder_id=lease.holder_id,
            holder_name=lease.holder_name,
            status=lease.status.value,
            duration_minutes=int(lease.duration),
            duration_label=lease.duration.label,
            reserved_at=lease.created_at,
            expires_at=lease.expires_at,
            ended_at=lease.ended_at,
            remaining_seconds=lease.remaining_seconds(now=now),
        )


class LeaseCreatedResponse(BaseModel):
    lease: LeaseResponse
    message: str


class LeaseCancelledResponse(BaseModel):
    lease: LeaseResponse
    message: str
