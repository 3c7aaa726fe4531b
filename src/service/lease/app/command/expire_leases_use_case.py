from src.platform.logging.loguru_io import Logger
from src.service.lease.app.command.lease_state_transitioner import LeaseStateTransitioner
from src.service.lease.app.interface.i_lease_store import ILeaseStore
from src.service.shared_kernel.app.interface.i_clock import IClock


class ExpireLeasesUseCase:
    """
    Expiry sweep: every ACTIVE lease past expiry becomes EXPIRED.

    Leases are handled one at a time, each under its own product lock, so a sweep
    competes with foreground requests for one transition at a time only.
    """

    def __init__(
        self, *, lease_store: ILeaseStore, transitioner: LeaseStateTransitioner, clock: IClock
    ) -> None:
        self.lease_store = lease_store
        self.transitioner = transitioner
        self.clock = clock

    async def execute(self) -> int:
        due = await self.lease_store.list_due(now=self.clock.now())
        expired = 0
        for lease in due:
            if await self.transitioner.expire_if_due(lease_id=lease.id, source='sweep'):
                expired += 1

        if expired:
            Logger.base.info(f'🧹 [LEASE SWEEP] Expired {expired}/{len(due)} due leases')
        return expired
