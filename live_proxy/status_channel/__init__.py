"""
Status Channel: a WebSocket per landing-page visitor that reports whether the
backend accepts connections yet.

The browser side is the landing page; it opens ``<base>/ws`` through the htmx
WebSocket extension and swaps the received fragments in place by element id.
"""

from .endpoint import HandshakeRejected, serve_status_channel
from .liveness_handler import LivenessStatusHandler
from .payloads import REACHABLE_PAYLOAD, UNREACHABLE_PAYLOAD, status_payload
from .session import SessionCancelled, SessionContext, SessionHandler, StatusConnection
from .session_manager import ConnectionRegistry

__all__ = [
    "ConnectionRegistry",
    "HandshakeRejected",
    "LivenessStatusHandler",
    "REACHABLE_PAYLOAD",
    "UNREACHABLE_PAYLOAD",
    "SessionCancelled",
    "SessionContext",
    "SessionHandler",
    "StatusConnection",
    "serve_status_channel",
    "status_payload",
]
