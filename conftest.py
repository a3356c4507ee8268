# Ensure tests import the package from this checkout first, even when an
# installed copy of live_proxy is present.
import os
import socket
import sys

import pytest

SERVICE_ROOT = os.path.dirname(__file__)
if SERVICE_ROOT not in sys.path:
    sys.path.insert(0, SERVICE_ROOT)

from live_proxy.utils_tests.stub_backend import StubBackendServer, unused_port  # noqa: E402


@pytest.fixture
def closed_port():
    """A localhost port nothing listens on; connections are refused."""
    return unused_port()


@pytest.fixture
def listening_socket():
    """A bare listening TCP socket; connects succeed without any accept()."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(16)
    yield sock
    sock.close()


@pytest.fixture
def stub_backend():
    """Address of a real HTTP/WebSocket backend on localhost."""
    server = StubBackendServer().start()
    yield server.address
    server.stop()
