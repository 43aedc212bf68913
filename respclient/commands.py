from typing import Optional, Protocol

from respclient.data import RedisCommand, Result, Scalar, parse_int, to_text


class CommandSender(Protocol):
    def send_command(self, command: str) -> Result:
        ...


def quote_value(value: Scalar) -> str:
    """
    Wrap a key or value in double quotes so it travels as a single token.
    Embedded double quotes cannot be expressed and raise ValueError.
    """
    text = to_text(value)
    if '"' in text:
        raise ValueError(f"Value must not contain double quotes: {text!r}")
    return f'"{text}"'


class StandardCommands:
    """
    Typed shortcuts for common commands.

    Every method narrows the Result of the underlying command: a failed
    command and a missing key both come back as None (or False / 0).
    For a FIFO queue push with queue_lpush and pop with queue_rpop.
    """

    def __init__(self, client: CommandSender):
        self.client = client

    def __send(self, command: RedisCommand, *args: Scalar) -> Result:
        return self.client.send_command(" ".join([command, *(quote_value(arg) for arg in args)]))

    def __send_for_string(self, command: RedisCommand, *args: Scalar) -> Optional[str]:
        result = self.__send(command, *args)
        if not result.status or result.value is None:
            return None
        return str(result.value)

    def __send_for_int(self, command: RedisCommand, *args: Scalar) -> int:
        result = self.__send(command, *args)
        if not result.status:
            return 0
        return parse_int(result.value)

    def set_key(self, key: Scalar, value: Scalar) -> Result:
        return self.__send(RedisCommand.SET, key, value)

    def get_key(self, key: Scalar) -> Optional[str]:
        return self.__send_for_string(RedisCommand.GET, key)

    def key_exists(self, key: Scalar) -> bool:
        return self.__send_for_int(RedisCommand.EXISTS, key) > 0

    def del_key(self, key: Scalar) -> bool:
        return self.__send_for_int(RedisCommand.DEL, key) > 0

    def queue_len(self, key: Scalar) -> int:
        return self.__send_for_int(RedisCommand.LLEN, key)

    def queue_lpush(self, key: Scalar, value: Scalar) -> int:
        return self.__send_for_int(RedisCommand.LPUSH, key, value)

    def queue_rpush(self, key: Scalar, value: Scalar) -> int:
        return self.__send_for_int(RedisCommand.RPUSH, key, value)

    def queue_lpop(self, key: Scalar) -> Optional[str]:
        return self.__send_for_string(RedisCommand.LPOP, key)

    def queue_rpop(self, key: Scalar) -> Optional[str]:
        return self.__send_for_string(RedisCommand.RPOP, key)
