from .forwarder import ProxyForwarder, ProxyTarget, prepare_headers
from .router import RequestRouter
from .websocket_relay import relay_websocket

__all__ = [
    "ProxyForwarder",
    "ProxyTarget",
    "RequestRouter",
    "prepare_headers",
    "relay_websocket",
]
