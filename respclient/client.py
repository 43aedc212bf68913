import logging

from respclient.commands import StandardCommands
from respclient.connection import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    Connection,
    ConnectionConfig,
)
from respclient.data import RedisConnectionError, Result
from respclient.resp import decode, encode

logger = logging.getLogger(__name__)


class RedisClient:
    """
    Sends redis-cli style commands to a RESP server and returns a Result.

    With keep_alive=False a socket is opened and closed around every command.
    With keep_alive=True one socket is kept open until close() is called; a
    dropped connection is reopened once before the next command.

    Not safe for concurrent use: give each thread its own client or serialize
    calls externally.
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        keep_alive: bool = False,
        **options,
    ):
        self.config = ConnectionConfig(host=host, port=port, keep_alive=keep_alive, **options)
        self.__connection = Connection(self.config)
        self.commands = StandardCommands(self)

    @classmethod
    def from_config(cls, config: ConnectionConfig) -> "RedisClient":
        return cls(
            host=config.host,
            port=config.port,
            keep_alive=config.keep_alive,
            connect_timeout_ms=config.connect_timeout_ms,
            send_timeout_ms=config.send_timeout_ms,
            recv_timeout_ms=config.recv_timeout_ms,
            recv_buffer_size=config.recv_buffer_size,
        )

    @property
    def connection(self) -> Connection:
        return self.__connection

    @property
    def connected(self) -> bool:
        return self.__connection.connected

    def send_command(self, command: str) -> Result:
        """
        Send one command and decode its reply.
        :param command: command text, e.g. 'SET greeting "hello world"'
        :return: Result; status is False on connection, protocol or server errors
        """
        try:
            request = encode(command)
        except (TypeError, ValueError) as e:
            # UnicodeEncodeError is a ValueError
            logger.warning(f"Could not encode command {command!r}: {e}")
            return Result.failure(f"Error encoding command: {e}")

        try:
            sock = self.__connection.acquire()
        except RedisConnectionError as e:
            return Result.failure(e)

        ok = False
        try:
            data = self.__connection.exchange(sock, request)
            ok = True
        except RedisConnectionError as e:
            logger.warning(f"Command failed on {self.config.address}: {e}")
            return Result.failure(e)
        finally:
            self.__connection.release(sock, ok)

        return decode(data)

    def close(self):
        self.__connection.close()

    def __enter__(self) -> "RedisClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
