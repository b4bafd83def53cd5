"""
Remote Session Module

A RemoteSession is one authenticated connection to a cache cluster endpoint.
Cache handles obtained from it are only usable while it stays open.
"""

import logging
from typing import Any, Dict, Optional, Set

from ..errors import (
    CacheOperationError,
    SessionClosedError,
    SessionError,
    SessionErrorKind,
)
from .commands import Command, CommandType, Response
from .connection import Connection, ConnectionConfig

logger = logging.getLogger(__name__)


class RemoteCache:
    """
    Handle on one named (or the default) cache of a session.

    Usage:
        cache = session.cache()          # default cache
        await cache.put("key", "value")
        value = await cache.get("key")   # None if absent
        await cache.remove("key")
    """

    def __init__(self, session: "RemoteSession", name: str = ""):
        self.session = session
        self.name = name

    async def put(self, key: Any, value: Any) -> None:
        """Store value under key, replacing any previous value."""
        await self.session.execute(
            Command(type=CommandType.PUT, cache=self.name, key=key, value=value)
        )

    async def get(self, key: Any) -> Optional[Any]:
        """Return the value stored under key, or None if absent."""
        response = await self.session.execute(
            Command(type=CommandType.GET, cache=self.name, key=key),
            allow_not_found=True,
        )
        return None if response.is_not_found else response.value

    async def remove(self, key: Any) -> bool:
        """Remove key. Returns True if it was present."""
        response = await self.session.execute(
            Command(type=CommandType.REMOVE, cache=self.name, key=key),
            allow_not_found=True,
        )
        return response.ok

    async def topology(self) -> Dict[str, Set[int]]:
        """Snapshot of member address -> owned segments for this cache."""
        return await self.session.topology(self.name)

    def __repr__(self) -> str:
        return f"RemoteCache(name={self.name!r})"


class RemoteSession:
    """
    An open session to a cache endpoint.

    Prefer `async with` so the connection is released even when a check fails:

        async with await connect(config) as session:
            cache = session.cache("sessions")
    """

    def __init__(self, config: ConnectionConfig, connection: Optional[Connection] = None):
        self.config = config
        self.connection = connection if connection is not None else Connection(config)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def cache(self, name: str = "") -> RemoteCache:
        """Get a handle on the named cache ("" = default cache)."""
        self._ensure_open()
        return RemoteCache(self, name)

    async def topology(self, cache_name: str = "") -> Dict[str, Set[int]]:
        """Return a point-in-time member address -> segment ids mapping."""
        response = await self.execute(Command(type=CommandType.TOPOLOGY, cache=cache_name))
        return response.value

    async def authenticate(self) -> None:
        """
        Present the configured credentials.

        Raises:
            SessionError: AUTH if the endpoint rejects them
        """
        cfg = self.config
        command = Command(
            type=CommandType.AUTH,
            args=(cfg.sasl_mechanism, cfg.sasl_qop, cfg.realm, cfg.username, cfg.password),
        )
        await self.execute(command)
        logger.debug(f"Authenticated as {cfg.username} ({cfg.sasl_mechanism}/{cfg.sasl_qop})")

    async def execute(self, command: Command, allow_not_found: bool = False) -> Response:
        """
        Send a command and turn error replies into exceptions.

        Raises:
            SessionClosedError: If the session was closed
            SessionError: AUTH if the endpoint refused the credentials (or their absence)
            CacheOperationError: For any other error reply
        """
        self._ensure_open()
        response = await self.connection.send(command)

        if response.ok:
            return response
        if response.is_auth_failure:
            raise SessionError(SessionErrorKind.AUTH, f"{command.type.name} rejected: {response.message}")
        if response.is_not_found and allow_not_found:
            return response
        raise CacheOperationError(f"{command.type.name} failed: {response.message}")

    async def close(self) -> None:
        """Release the connection. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        await self.connection.close()
        logger.debug(f"Session to {self.config.host}:{self.config.port} closed")

    def _ensure_open(self) -> None:
        if self._closed:
            raise SessionClosedError()

    async def __aenter__(self) -> "RemoteSession":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


async def connect(config: ConnectionConfig) -> RemoteSession:
    """
    Open a session to the endpoint described by config.

    Authenticates when config.auth_enabled is set. On any failure the
    half-open connection is closed before the error propagates.

    Raises:
        ConfigurationError: If the trust store cannot be loaded
        SessionError: NETWORK, TLS or AUTH
    """
    session = RemoteSession(config)
    try:
        await session.connection.open()
        if config.auth_enabled:
            await session.authenticate()
    except BaseException:
        await session.close()
        raise

    logger.info(f"Session opened to {config.host}:{config.port}")
    return session
