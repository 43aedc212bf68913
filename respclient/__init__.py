from .data import Result, RedisError, RedisConnectionError, RedisProtocolError, RedisServerError, RedisCommand, Scalar
from .resp import encode, decode, tokenize
from .connection import Connection, ConnectionConfig, ConnectionMode, ConnectionState
from .commands import StandardCommands, quote_value
from .client import RedisClient
