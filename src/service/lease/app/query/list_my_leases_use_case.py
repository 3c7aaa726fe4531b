from typing import Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.platform.logging.loguru_io import Logger
from src.service.lease.app.command.lease_state_transitioner import LeaseStateTransitioner
from src.service.lease.app.interface.i_lease_store import ILeaseStore
from src.service.lease.domain.entity.lease_entity import Lease
from src.service.lease.domain.enum.lease_status import LeaseStatus


class ListMyLeasesUseCase:
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

    @Logger.io(truncate_content=True)
    async def execute(self, *, holder_id: str, status: LeaseStatus | None = None) -> list[Lease]:
        """All of the holder's leases, newest first, with due leases expired on the way"""
        leases = [
            await self.transitioner.refreshed(lease=lease)
            for lease in await self.lease_store.list_by_holder(holder_id=holder_id)
        ]
        if status is not None:
            leases = [lease for lease in leases if lease.status is status]
        return leases
