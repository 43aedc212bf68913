import shlex
import logging
from enum import StrEnum
from dataclasses import dataclass
from typing import Optional, Any, List
from abc import ABC, abstractmethod

from respclient.data import (
    INT64_MAX,
    INT64_MIN,
    RedisProtocolError,
    RedisServerError,
    Result,
)

logger = logging.getLogger(__name__)

CRLF = "\r\n"


class RESPObjectType(StrEnum):
    SIMPLE_STRING = "+"
    SIMPLE_ERROR = "-"
    INTEGER = ":"
    BULK_STRING = "$"
    ARRAY = "*"


@dataclass
class RESPObject(ABC):
    type: RESPObjectType
    value: Optional[Any]

    def __init__(self, type: RESPObjectType, value: Any):
        self.type = type
        self.value = value

    @abstractmethod
    def serialize(self) -> bytes:
        """Convert the object to RESP wire format"""
        pass


@dataclass
class RESPBulkString(RESPObject):
    def __init__(self, **kwargs):
        super().__init__(type=RESPObjectType.BULK_STRING, **kwargs)

    def serialize(self) -> bytes:
        if self.value is None:
            return b"$-1\r\n"
        # the length prefix counts encoded bytes, not characters
        payload = self.value.encode("utf-8")
        return b"$%d\r\n" % len(payload) + payload + b"\r\n"


@dataclass
class RESPArray(RESPObject):
    def __init__(self, **kwargs):
        super().__init__(type=RESPObjectType.ARRAY, **kwargs)

    def serialize(self) -> bytes:
        if self.value is None:
            return b"*-1\r\n"
        if not self.value:
            return b"*0\r\n"
        parts = [f"*{len(self.value)}\r\n".encode()]
        for item in self.value:
            parts.append(item.serialize())
        return b"".join(parts)


def tokenize(command: str) -> List[str]:
    """
    Split a command the way redis-cli does: whitespace separates tokens and a
    double-quoted phrase is kept as a single token.
    Raises ValueError on an unterminated quote.
    """
    # shlex reads sys.stdin when given None
    if not isinstance(command, str):
        raise TypeError(f"Command must be str, not {type(command).__name__}")
    lexer = shlex.shlex(command, posix=True)
    lexer.whitespace_split = True
    lexer.quotes = '"'
    lexer.escape = ""
    lexer.commenters = ""
    return list(lexer)


def encode(command: str) -> bytes:
    """
    Encode a redis-cli style command string as a RESP array of bulk strings.
    :param command: e.g. 'SET foo "bar baz"'
    :return: the request bytes
    """
    tokens = tokenize(command)
    return RESPArray(value=[RESPBulkString(value=token) for token in tokens]).serialize()


class RESPReplyDecoder:
    """
    Decode one reply into a Result.

    The buffer must hold the whole reply as returned by a single read; replies
    split across several reads are not reassembled. Arrays are read with a
    fixed stride and only support flat arrays of single-line bulk strings.
    """

    def decode(self, data: bytes) -> Result:
        lines = data.decode("utf-8", errors="replace").split(CRLF)
        head = lines[0]

        try:
            resp_type = RESPObjectType(head[0:1])
        except ValueError:
            logger.warning(f"Unrecognized reply: {head!r}")
            return Result.failure(head)

        try:
            if resp_type == RESPObjectType.SIMPLE_STRING:
                return Result.success(head[1:])

            elif resp_type == RESPObjectType.SIMPLE_ERROR:
                return Result.failure(RedisServerError(head[1:]))

            elif resp_type == RESPObjectType.INTEGER:
                return Result.success(self._parse_integer(head[1:]))

            elif resp_type == RESPObjectType.BULK_STRING:
                return Result.success(self._parse_bulk_string(lines))

            elif resp_type == RESPObjectType.ARRAY:
                return Result.success(self._parse_array(lines))

        except RedisProtocolError as e:
            logger.warning(f"Malformed reply {data!r}: {e}")
            return Result.failure(e)

        return Result.failure(RedisProtocolError(f"Unsupported reply type: {resp_type}"))

    @staticmethod
    def _parse_length(field: str, stage: str) -> int:
        try:
            return int(field)
        except ValueError as e:
            raise RedisProtocolError(f"Error parsing {stage}: {e}") from e

    def _parse_integer(self, field: str) -> int:
        value = self._parse_length(field, "integer reply")
        if not INT64_MIN <= value <= INT64_MAX:
            raise RedisProtocolError(f"Error parsing integer reply: {field} is out of 64-bit range")
        return value

    def _parse_bulk_string(self, lines: List[str]) -> Optional[str]:
        length = self._parse_length(lines[0][1:], "bulk string length")
        if length < 0:
            return None
        if length == 0:
            return ""
        try:
            return self._payload_line(lines, 1)
        except IndexError as e:
            raise RedisProtocolError("Error parsing bulk string: payload line is missing") from e

    def _parse_array(self, lines: List[str]) -> Optional[List[str]]:
        count = self._parse_length(lines[0][1:], "array length")
        if count < 0:
            return None
        elements = []
        # each element takes two lines: its $<len> header and its payload
        for index in range(count):
            try:
                elements.append(self._payload_line(lines, 2 + 2 * index))
            except IndexError as e:
                raise RedisProtocolError(
                    f"Error parsing array element {index}: reply holds fewer than {count} elements"
                ) from e
        return elements

    @staticmethod
    def _payload_line(lines: List[str], index: int) -> str:
        # the text after the last CRLF is not a line, it is an unterminated remainder
        if index >= len(lines) - 1:
            raise IndexError(index)
        return lines[index]


_decoder = RESPReplyDecoder()


def decode(data: bytes) -> Result:
    return _decoder.decode(data)
