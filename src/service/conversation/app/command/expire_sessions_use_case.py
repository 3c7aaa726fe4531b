from src.platform.logging.loguru_io import Logger
from src.platform.metrics.hold_chat_metrics import metrics
from src.service.conversation.app.interface.i_presence_hub import IPresenceHub
from src.service.conversation.app.interface.i_session_store import ISessionStore
from src.service.shared_kernel.app.interface.i_clock import IClock


class ExpireSessionsUseCase:
    """
    Retention sweep: sessions past created_at + retention become read-only and
    their rooms are told so. One session at a time, each under its own lock.
    """

    def __init__(
        self, *, session_store: ISessionStore, presence_hub: IPresenceHub, clock: IClock
    ) -> None:
        self.session_store = session_store
        self.presence_hub = presence_hub
        self.clock = clock

    async def execute(self) -> int:
        due = await self.session_store.list_due_for_retention(now=self.clock.now())
        expired = 0
        for session in due:
            updated = await self.session_store.mark_read_only(
                session_id=session.id, now=self.clock.now()
            )
            if updated is None:
                continue
            expired += 1
            metrics.sessions_expired.inc()
            try:
                await self.presence_hub.publish_session_expired(session_id=session.id)
            except Exception as e:
                Logger.base.warning(f'⚠️ [CONVERSATION] session_expired for {session.id} not sent: {e}')

        if expired:
            Logger.base.info(f'🧹 [SESSION SWEEP] {expired} conversations became read-only')
        return expired
