from typing import Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from uuid_utils import UUID

from src.platform.config.di import Container
from src.platform.exception.exceptions import NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.lease.app.command.lease_state_transitioner import LeaseStateTransitioner
from src.service.lease.app.interface.i_lease_store import ILeaseStore
from src.service.lease.domain.entity.lease_entity import Lease


class GetLeaseUseCase:
    def __init__(self, *, lease_store: ILeaseStore, transitioner: LeaseStateTransitioner) -> None:
        self.lease_store = lease_store
        self.transitioner = transitioner

    @classmethod
    @inject
    def depends(
        cls,
        lease_store: ILeaseStore = Depends(Provide[Container.lease_store]),
        transitioner: LeaseStateTransitioner = Depends(Provide[Container.lease_transitioner]),
    ) -> Self:
        return cls(lease_store=lease_store, transitioner=transitioner)

    @Logger.io
    async def execute(self, *, lease_id: UUID, requester_id: str) -> Lease:
        lease = await self.lease_store.get(lease_id=lease_id)
        if lease is None:
            raise NotFoundError('Lease not found')
        lease.ensure_holder(requester_id)
        return await self.transitioner.refreshed(lease=lease)
