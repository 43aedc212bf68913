import socket
import logging
from enum import StrEnum
from dataclasses import dataclass
from typing import Optional

from respclient.data import RedisConnectionError

logger = logging.getLogger(__name__)

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 6379
DEFAULT_TIMEOUT_MS = 3000
DEFAULT_RECV_BUFFER_SIZE = 65536


class ConnectionMode(StrEnum):
    TRANSIENT = "transient"
    KEEP_ALIVE = "keep_alive"


class ConnectionState(StrEnum):
    IDLE = "idle"
    CONNECTING = "connecting"
    READY = "ready"
    CLOSED = "closed"
    FAILED = "failed"


@dataclass
class ConnectionConfig:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    keep_alive: bool = False
    connect_timeout_ms: int = DEFAULT_TIMEOUT_MS
    send_timeout_ms: int = DEFAULT_TIMEOUT_MS
    recv_timeout_ms: int = DEFAULT_TIMEOUT_MS
    recv_buffer_size: int = DEFAULT_RECV_BUFFER_SIZE

    @property
    def mode(self) -> ConnectionMode:
        return ConnectionMode.KEEP_ALIVE if self.keep_alive else ConnectionMode.TRANSIENT

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"


def socket_alive(sock: socket.socket) -> bool:
    """
    Check an idle socket without blocking. A peer that has closed its side makes
    a non-blocking peek return nothing; a live idle socket has nothing to read yet.
    """
    if sock.fileno() == -1:
        return False

    timeout = sock.gettimeout()
    try:
        sock.setblocking(False)
        return sock.recv(1, socket.MSG_PEEK) != b""
    except BlockingIOError:
        return True
    except OSError:
        return False
    finally:
        sock.settimeout(timeout)


class Connection:
    """
    Owns the TCP socket used by one client.

    In transient mode every acquire() opens a new socket and release() always
    closes it. In keep-alive mode the socket is retained between calls and
    reopened once, lazily, when it is found disconnected.

    A keep-alive socket is also closed when a write or read on it fails, not
    only on close(): after a timeout the stream may still hold part of a reply,
    so the next command starts on a fresh connection instead.
    """

    def __init__(self, config: ConnectionConfig):
        self.config = config
        self.state = ConnectionState.IDLE
        self.__sock: Optional[socket.socket] = None

    @property
    def mode(self) -> ConnectionMode:
        return self.config.mode

    @property
    def connected(self) -> bool:
        if self.mode == ConnectionMode.TRANSIENT or self.__sock is None:
            return False
        return socket_alive(self.__sock)

    def __open(self) -> socket.socket:
        self.state = ConnectionState.CONNECTING
        logger.debug(f"Connecting to {self.config.address}")
        try:
            sock = socket.create_connection(
                (self.config.host, self.config.port),
                timeout=self.config.connect_timeout_ms / 1000,
            )
        except OSError as e:
            self.state = ConnectionState.FAILED
            logger.warning(f"Failed to connect to {self.config.address}: {e}")
            raise RedisConnectionError(str(e) or type(e).__name__) from e

        self.state = ConnectionState.READY
        return sock

    def acquire(self) -> socket.socket:
        """
        Return a socket ready for one request.
        :raises RedisConnectionError: if no connection could be established
        """
        if self.mode == ConnectionMode.TRANSIENT:
            return self.__open()

        if self.__sock is not None:
            if socket_alive(self.__sock):
                return self.__sock
            logger.debug(f"Connection to {self.config.address} lost, reconnecting")
            self.__discard()

        self.__sock = self.__open()
        return self.__sock

    def exchange(self, sock: socket.socket, payload: bytes) -> bytes:
        """
        Write the request and return whatever a single read yields.
        :raises RedisConnectionError: on write/read failure, timeout or EOF
        """
        try:
            sock.settimeout(self.config.send_timeout_ms / 1000)
            logger.debug(f"Sending bytes: {payload!r}")
            sock.sendall(payload)

            sock.settimeout(self.config.recv_timeout_ms / 1000)
            data = sock.recv(self.config.recv_buffer_size)
        except socket.timeout as e:
            raise RedisConnectionError(f"Timed out talking to {self.config.address}") from e
        except OSError as e:
            raise RedisConnectionError(str(e) or type(e).__name__) from e

        if not data:
            raise RedisConnectionError("Connection closed by server")
        logger.debug(f"Received bytes: {data!r}")
        return data

    def release(self, sock: socket.socket, ok: bool = True):
        if self.mode == ConnectionMode.TRANSIENT:
            self.__close_socket(sock)
            self.state = ConnectionState.IDLE
            return

        # a failed exchange may leave unread reply bytes behind
        if not ok and sock is self.__sock:
            self.__discard()

    def close(self):
        self.__discard()
        self.state = ConnectionState.CLOSED

    def __discard(self):
        sock, self.__sock = self.__sock, None
        if sock is not None:
            self.__close_socket(sock)
        self.state = ConnectionState.IDLE

    @staticmethod
    def __close_socket(sock: socket.socket):
        try:
            sock.close()
        except OSError as e:
            logger.debug(f"Error while closing connection: {e}")
