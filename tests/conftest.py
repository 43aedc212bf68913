import socket

import pytest

from resp_server import AsyncRESPServer


@pytest.fixture
def server():
    server = AsyncRESPServer()
    server.start()
    yield server
    server.stop()


@pytest.fixture
def unused_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]
