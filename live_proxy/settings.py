from dataclasses import dataclass, field

from live_proxy.liveness import BackendAddress
from live_proxy.vars import (
    LIVE_PROXY_ADDR,
    LIVE_PROXY_BACKEND_ADDR,
    LIVE_PROXY_BASE_PATH,
    LIVE_PROXY_ORIGIN_PATTERNS,
    LIVE_PROXY_SUBPROTOCOLS,
    LIVE_PROXY_TITLE,
    LOG_LEVEL,
    POLL_INTERVAL_S,
    PROBE_TIMEOUT_S,
    PROXY_TIMEOUT,
)


@dataclass(frozen=True)
class Settings:
    """Runtime configuration, resolved once at startup and never mutated."""

    addr: str = LIVE_PROXY_ADDR
    proxy_addr: str = LIVE_PROXY_BACKEND_ADDR
    base_path: str = LIVE_PROXY_BASE_PATH
    title: str = LIVE_PROXY_TITLE
    probe_timeout: float = PROBE_TIMEOUT_S
    poll_interval: float = POLL_INTERVAL_S
    proxy_timeout: float = PROXY_TIMEOUT
    subprotocols: tuple[str, ...] = field(
        default_factory=lambda: tuple(LIVE_PROXY_SUBPROTOCOLS)
    )
    origin_patterns: tuple[str, ...] = field(
        default_factory=lambda: tuple(LIVE_PROXY_ORIGIN_PATTERNS)
    )
    log_level: str = LOG_LEVEL

    def __post_init__(self):
        # fail at startup rather than on the first request
        self.listen_address
        self.backend_address
        if self.probe_timeout <= 0:
            raise ValueError("probe timeout must be positive")
        if self.poll_interval < 0:
            raise ValueError("poll interval must not be negative")

    @property
    def listen_address(self) -> BackendAddress:
        return BackendAddress.parse(self.addr)

    @property
    def backend_address(self) -> BackendAddress:
        return BackendAddress.parse(self.proxy_addr)

    @property
    def bind_host(self) -> str:
        """Host to bind; an empty host in ``addr`` means every interface."""
        return self.listen_address.host or "0.0.0.0"

    @property
    def websocket_path(self) -> str:
        return f"{self.base_path}/ws"
