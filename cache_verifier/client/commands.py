"""
Protocol Command and Response Definitions

This module defines the data structures for requests sent to a cache endpoint
and the responses it returns.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Optional


class CommandType(Enum):
    """Enumeration of supported command types."""
    AUTH = auto()
    PUT = auto()
    GET = auto()
    REMOVE = auto()
    TOPOLOGY = auto()


class ResponseStatus(Enum):
    """Enumeration of response statuses."""
    OK = "OK"
    ERROR = "ERROR"


@dataclass
class Command:
    """
    Represents a request to the cache endpoint.

    Attributes:
        type: The type of command
        cache: Name of the target cache ("" = default cache)
        key: The key for the operation (None for AUTH and TOPOLOGY)
        value: The value for PUT operations
        args: Positional arguments for AUTH (mechanism, qop, realm, user, password)
    """
    type: CommandType
    cache: str = ""
    key: Any = None
    value: Any = None
    args: tuple = ()

    @property
    def is_valid(self) -> bool:
        """Check if the command carries what its type needs."""
        if self.type == CommandType.AUTH:
            return len(self.args) == 5 and all(self.args)
        if self.type == CommandType.TOPOLOGY:
            return True
        if self.type in (CommandType.GET, CommandType.REMOVE):
            return self.key is not None
        if self.type == CommandType.PUT:
            return self.key is not None and self.value is not None
        return False


@dataclass
class Response:
    """
    Represents a protocol response.

    Attributes:
        status: OK or ERROR
        message: Response message or error description
        value: The decoded value returned (for GET operations)
    """
    status: ResponseStatus
    message: str = ""
    value: Optional[Any] = None

    @property
    def ok(self) -> bool:
        return self.status == ResponseStatus.OK

    @property
    def is_auth_failure(self) -> bool:
        """True when the endpoint refused the request for lack of credentials."""
        return self.status == ResponseStatus.ERROR and self.message in (
            "unauthorized", "auth failed",
        )

    @property
    def is_not_found(self) -> bool:
        return self.status == ResponseStatus.ERROR and self.message == "key not found"

    @classmethod
    def success(cls, message: str = "", value: Optional[Any] = None) -> "Response":
        """Create a successful response."""
        return cls(status=ResponseStatus.OK, message=message, value=value)

    @classmethod
    def error(cls, message: str) -> "Response":
        """Create an error response."""
        return cls(status=ResponseStatus.ERROR, message=message)
