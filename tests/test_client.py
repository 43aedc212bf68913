import os
import time
import socket

import pytest
from respclient import connection as connection_module
from respclient.client import RedisClient
from respclient.connection import ConnectionConfig
from respclient.data import Result


def wait_for(predicate, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def opened_sockets(monkeypatch):
    """Record every socket the client opens"""
    sockets = []
    create_connection = socket.create_connection

    def recording_create_connection(*args, **kwargs):
        sock = create_connection(*args, **kwargs)
        sockets.append(sock)
        return sock

    monkeypatch.setattr(connection_module.socket, "create_connection", recording_create_connection)
    return sockets


@pytest.fixture
def client(server):
    client = RedisClient(host=server.host, port=server.port)
    yield client
    client.close()


@pytest.fixture
def keep_alive_client(server):
    client = RedisClient(host=server.host, port=server.port, keep_alive=True)
    yield client
    client.close()


def test_send_command(client):
    assert client.send_command("PING") == Result(True, "PONG")
    assert client.send_command('SET greeting "hello world"') == Result(True, "OK")
    assert client.send_command("GET greeting") == Result(True, "hello world")
    assert client.send_command("GET missing") == Result(True, None)


def test_send_command_list_reply(client):
    client.send_command("RPUSH letters a")
    client.send_command("RPUSH letters b")
    assert client.send_command("LRANGE letters 0 -1") == Result(True, ["a", "b"])
    assert client.send_command("LLEN letters") == Result(True, 2)


def test_send_command_non_ascii(client):
    assert client.send_command('SET city "Zürich Süd"').status is True
    assert client.send_command("GET city") == Result(True, "Zürich Süd")


def test_server_error(client):
    result = client.send_command("FLY away")
    assert result == Result(False, "ERR unknown command 'fly'")


def test_encode_failure_does_not_connect(client, opened_sockets):
    result = client.send_command('SET foo "bar')
    assert result.status is False
    assert "encoding" in result.value
    assert opened_sockets == []


def test_transient_closes_socket_after_success(client, opened_sockets, server):
    assert client.send_command("PING").status is True
    assert client.send_command("FLY").status is False

    assert len(opened_sockets) == 2
    assert all(sock.fileno() == -1 for sock in opened_sockets)
    assert client.connected is False
    assert wait_for(lambda: not server.clients)


def test_transient_closes_socket_after_timeout(server, opened_sockets):
    client = RedisClient(host=server.host, port=server.port, recv_timeout_ms=200)
    result = client.send_command("NOREPLY")

    assert result.status is False
    assert "Timed out" in result.value
    assert len(opened_sockets) == 1
    assert opened_sockets[0].fileno() == -1


def test_transient_connection_refused(unused_port):
    client = RedisClient(host="127.0.0.1", port=unused_port)
    result = client.send_command("PING")
    assert result.status is False
    assert result.value
    assert client.connected is False


def test_keep_alive_reuses_connection(keep_alive_client, server):
    for _ in range(3):
        assert keep_alive_client.send_command("PING") == Result(True, "PONG")

    assert server.connections_accepted == 1
    assert keep_alive_client.connected is True


def test_keep_alive_reconnects_after_server_drop(keep_alive_client, server):
    assert keep_alive_client.send_command("QUIT") == Result(True, "OK")
    assert wait_for(lambda: not keep_alive_client.connected)

    assert keep_alive_client.send_command("PING") == Result(True, "PONG")
    assert server.connections_accepted == 2
    assert keep_alive_client.connected is True


def test_keep_alive_reconnect_fails_when_server_gone(keep_alive_client, server):
    assert keep_alive_client.send_command("QUIT").status is True
    assert wait_for(lambda: not keep_alive_client.connected)
    server.stop()

    result = keep_alive_client.send_command("PING")
    assert result.status is False
    assert keep_alive_client.connected is False


def test_close_releases_socket(keep_alive_client):
    assert keep_alive_client.send_command("PING").status is True
    assert keep_alive_client.connected is True

    keep_alive_client.close()
    assert keep_alive_client.connected is False
    keep_alive_client.close()


def test_context_manager_closes(server):
    with RedisClient(host=server.host, port=server.port, keep_alive=True) as client:
        assert client.send_command("PING").status is True
        assert client.connected is True
    assert client.connected is False


def test_from_config(server):
    config = ConnectionConfig(host=server.host, port=server.port, keep_alive=True, recv_timeout_ms=500)
    with RedisClient.from_config(config) as client:
        assert client.config == config
        assert client.send_command("ECHO hi") == Result(True, "hi")


@pytest.mark.parametrize("command", [None, b"PING"])
def test_non_str_command_is_rejected(client, opened_sockets, command):
    result = client.send_command(command)
    assert result.status is False
    assert "encoding" in result.value
    assert opened_sockets == []


@pytest.fixture
def many_open_files():
    """Push new descriptors past FD_SETSIZE (1024)"""
    resource = pytest.importorskip("resource")
    soft, hard = resource.getrlimit(resource.RLIMIT_NOFILE)
    wanted = 1200
    if hard != resource.RLIM_INFINITY and hard < wanted:
        pytest.skip(f"RLIMIT_NOFILE hard limit {hard} is too low")
    if soft != resource.RLIM_INFINITY and soft < wanted:
        resource.setrlimit(resource.RLIMIT_NOFILE, (wanted, hard))

    fillers = [open(os.devnull, "rb") for _ in range(1100)]
    yield fillers
    for f in fillers:
        f.close()
    resource.setrlimit(resource.RLIMIT_NOFILE, (soft, hard))


def test_keep_alive_reuses_high_numbered_socket(server, many_open_files):
    with RedisClient(host=server.host, port=server.port, keep_alive=True) as client:
        for _ in range(3):
            assert client.send_command("PING") == Result(True, "PONG")

        assert client.connection._Connection__sock.fileno() >= 1024
        assert client.connected is True
    assert server.connections_accepted == 1
