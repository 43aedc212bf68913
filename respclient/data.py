from enum import StrEnum
from dataclasses import dataclass
from typing import Any, List, Optional, Union


class RedisCommand(StrEnum):
    SET = "SET"
    GET = "GET"
    EXISTS = "EXISTS"
    DEL = "DEL"
    LLEN = "LLEN"
    LPUSH = "LPUSH"
    RPUSH = "RPUSH"
    LPOP = "LPOP"
    RPOP = "RPOP"


RedisString = str
RedisInteger = int
RedisList = List[str]
RedisNone = None

Scalar = Union[str, bytes, int, float]

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


class RedisError(Exception):
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)

    def __str__(self):
        return self.message


class RedisConnectionError(RedisError):
    """TCP connect, write or read failure, including timeouts."""


class RedisProtocolError(RedisError):
    """A reply that could not be parsed."""


class RedisServerError(RedisError):
    """An error reply (``-``) sent by the server."""


@dataclass
class Result:
    """
    Outcome of a single command.

    ``status`` is False when ``value`` holds an error message. A successful
    result with ``value`` set to None means the server answered with a RESP null.
    """
    status: bool
    value: Union[RedisString, RedisInteger, RedisList, RedisNone]

    @classmethod
    def success(cls, value: Any = None) -> "Result":
        return cls(status=True, value=value)

    @classmethod
    def failure(cls, error: Union[str, Exception]) -> "Result":
        return cls(status=False, value=str(error))


def to_text(value: Scalar) -> str:
    """
    Convert a convenience-layer argument to the text sent on the wire.
    :param value: str, UTF-8 bytes, int or float
    :return: the textual form of the value
    """
    # bool is an int subclass but "True" is never what a caller means to store
    if isinstance(value, bool) or not isinstance(value, (str, bytes, int, float)):
        raise TypeError(f"Unsupported value type: {type(value).__name__}")
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


def parse_int(value: Optional[Any], default: int = 0) -> int:
    try:
        return int(str(value))
    except (TypeError, ValueError):
        return default
