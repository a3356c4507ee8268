import asyncio
import logging
from dataclasses import dataclass

from live_proxy.vars import PROBE_TIMEOUT_S

logger = logging.getLogger("uvicorn.error")


@dataclass(frozen=True)
class BackendAddress:
    """A ``host:port`` pair to dial. An empty host means the local machine."""

    host: str
    port: int

    @classmethod
    def parse(cls, address: str) -> "BackendAddress":
        """
        Parse ``host:port``, ``:port`` or ``[v6-host]:port``.

        Raises:
            ValueError: when the port is missing, not numeric or out of range.
        """
        if not address or ":" not in address:
            raise ValueError(f"address {address!r} is missing a port")

        host, _, raw_port = address.rpartition(":")
        if host.startswith("[") and host.endswith("]"):
            host = host[1:-1]

        try:
            port = int(raw_port)
        except ValueError:
            raise ValueError(f"address {address!r} has a non-numeric port") from None
        if not 0 < port < 65536:
            raise ValueError(f"address {address!r} has an out-of-range port")

        return cls(host=host, port=port)

    @property
    def dial_host(self) -> str:
        return self.host or "localhost"

    @property
    def netloc(self) -> str:
        host = self.dial_host
        if ":" in host:
            host = f"[{host}]"
        return f"{host}:{self.port}"

    def __str__(self) -> str:
        return self.netloc


async def probe(address: BackendAddress | str, timeout: float = PROBE_TIMEOUT_S) -> bool:
    """
    Check whether ``address`` accepts TCP connections within ``timeout`` seconds.

    The connection is closed right away and no data is exchanged. Refusals,
    timeouts and resolution errors all report ``False``; nothing is raised.
    """
    if isinstance(address, str):
        address = BackendAddress.parse(address)

    try:
        _, writer = await asyncio.wait_for(
            asyncio.open_connection(address.dial_host, address.port),
            timeout=timeout,
        )
    except (OSError, asyncio.TimeoutError) as e:
        logger.debug(f"[Liveness] {address} not reachable: {e!r}")
        return False

    writer.close()
    try:
        await writer.wait_closed()
    except OSError:
        # peer reset while we hung up; the connect itself succeeded
        pass
    return True


class LivenessProber:
    """Probes one backend address with a fixed timeout. No retries."""

    def __init__(self, address: BackendAddress | str, timeout: float = PROBE_TIMEOUT_S):
        if isinstance(address, str):
            address = BackendAddress.parse(address)
        self.address = address
        self.timeout = timeout

    async def probe(self) -> bool:
        return await probe(self.address, self.timeout)

    def __repr__(self) -> str:
        return f"LivenessProber(address={self.address}, timeout={self.timeout})"
