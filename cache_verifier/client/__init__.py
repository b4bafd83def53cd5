"""Client for the remote cache endpoint."""

from .codec import decode_token, encode_token
from .commands import Command, CommandType, Response, ResponseStatus
from .connection import Connection, ConnectionConfig
from .parser import ProtocolParser
from .session import RemoteCache, RemoteSession, connect

__all__ = [
    "Command",
    "CommandType",
    "Connection",
    "ConnectionConfig",
    "ProtocolParser",
    "RemoteCache",
    "RemoteSession",
    "Response",
    "ResponseStatus",
    "connect",
    "decode_token",
    "encode_token",
]
