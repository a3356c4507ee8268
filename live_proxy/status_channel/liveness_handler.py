import logging
from typing import Optional

from live_proxy.liveness import LivenessProber
from live_proxy.vars import POLL_INTERVAL_S

from .payloads import status_payload
from .session import SessionContext, SessionHandler, StatusConnection

logger = logging.getLogger("uvicorn.error")


class LivenessStatusHandler(SessionHandler):
    """
    Pushes the backend's liveness to the client every ``interval`` seconds.

    The session stays open after the backend becomes reachable and keeps
    resending the reachable payload; the landing page reloads itself when it
    sees it. Send failures propagate and end the session.
    """

    def __init__(self, prober: LivenessProber, interval: float = POLL_INTERVAL_S):
        self.prober = prober
        self.interval = interval

    async def handle(self, ctx: SessionContext, conn: StatusConnection) -> None:
        last_reachable: Optional[bool] = None
        while True:
            ctx.raise_if_cancelled()

            reachable = await self.prober.probe()
            await conn.send_text(status_payload(reachable))

            if reachable and last_reachable is not True:
                logger.info(
                    f"[StatusChannel] Connection {ctx.connection_id}: "
                    f"proxy destination {self.prober.address} is reachable now"
                )
            elif not reachable:
                if last_reachable:
                    logger.info(
                        f"[StatusChannel] Connection {ctx.connection_id}: "
                        f"proxy destination {self.prober.address} became unreachable"
                    )
                logger.debug(
                    f"[StatusChannel] Connection {ctx.connection_id}: "
                    f"liveness check for {self.prober.address} failed"
                )
            last_reachable = reachable

            await ctx.sleep(self.interval)
