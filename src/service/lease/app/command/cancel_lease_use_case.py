from typing import Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from uuid_utils import UUID

from src.platform.config.di import Container
from src.platform.logging.loguru_io import Logger
from src.service.lease.app.command.lease_state_transitioner import LeaseStateTransitioner
from src.service.lease.domain.entity.lease_entity import Lease


class CancelLeaseUseCase:
    """
    Holder releases an ACTIVE lease.

    Forbidden for anyone but the holder, NotFound for unknown ids and Conflict once
    the lease is terminal (a second cancel, or a lease already expired).
    """

    def __init__(self, *, transitioner: LeaseStateTransitioner) -> None:
        self.transitioner = transitioner

    @classmethod
    @inject
    def depends(
        cls,
        transitioner: LeaseStateTransitioner = Depends(Provide[Container.lease_transitioner]),
    ) -> Self:
        return cls(transitioner=transitioner)

    @Logger.io
    async def execute(self, *, lease_id: UUID, requester_id: str) -> Lease:
        return await self.transitioner.cancel(lease_id=lease_id, requester_id=requester_id)
