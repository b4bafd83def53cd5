"""
Session Factory Module

Builds ready-to-use sessions to a cache endpoint from a target URL and a
directory of per-service trust material. Transport encryption is always on;
authentication uses the fixed test credentials from settings.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Awaitable, Callable, Tuple, Union
from urllib.parse import urlsplit

from ..client.connection import ConnectionConfig
from ..client.session import RemoteSession, connect
from ..config.settings import Settings, settings as default_settings
from ..errors import ConfigurationError
from .truststore import find_trust_store

logger = logging.getLogger(__name__)

Connector = Callable[[ConnectionConfig], Awaitable[RemoteSession]]


def parse_url(url: str) -> Tuple[str, int]:
    """
    Extract (host, port) from a target URL.

    Accepts "scheme://host:port[/path]" and bare "host:port". IPv6 hosts
    must be bracketed.

    Raises:
        ConfigurationError: If host or port is missing or invalid
    """
    if not url or not isinstance(url, str):
        raise ConfigurationError(f"malformed target URL: {url!r}")

    parts = urlsplit(url if "://" in url else f"//{url}")
    try:
        host, port = parts.hostname, parts.port
    except ValueError as e:
        raise ConfigurationError(f"malformed target URL {url!r}: {e}") from e

    if not host:
        raise ConfigurationError(f"target URL has no host: {url!r}")
    if port is None:
        raise ConfigurationError(f"target URL has no port: {url!r}")
    return host, port


class SessionFactory:
    """
    Creates sessions to one logical cache service.

    The service name is both the expected TLS server identity and the key
    used to find the service's trust store.

    Usage:
        factory = SessionFactory("datagrid-service", "/var/run/trust")
        async with factory.session("hotrod://10.0.0.5:11222") as session:
            cache = session.cache()

    Attributes:
        service_name: Logical service name
        trust_store_path: Resolved trust store file
    """

    def __init__(
            self,
            service_name: str,
            trust_store_dir: Union[str, Path],
            settings: Settings = None,
            connector: Connector = None,
    ):
        """
        Initialize the factory and resolve the service's trust store.

        Args:
            service_name: Logical service name
            trust_store_dir: Directory containing trust material
            settings: Credential and timeout settings (default: global settings)
            connector: Coroutine function opening a session from a config
                (default: client.connect)

        Raises:
            ConfigurationError: If no trust store exists for the service
        """
        self.service_name = service_name
        self.trust_store_path = find_trust_store(trust_store_dir, service_name)
        self.settings = settings if settings is not None else default_settings
        self.connector = connector if connector is not None else connect

    def build_config(self, url: str, authenticate: bool = True) -> ConnectionConfig:
        """
        Build the connection configuration for a single-server target.

        Raises:
            ConfigurationError: If the URL is malformed
        """
        host, port = parse_url(url)
        s = self.settings
        return ConnectionConfig(
            host=host,
            port=port,
            ssl_enabled=True,
            trust_store_path=self.trust_store_path,
            server_name=self.service_name,
            auth_enabled=authenticate,
            username=s.USERNAME,
            password=s.PASSWORD,
            realm=s.REALM,
            sasl_mechanism=s.SASL_MECHANISM,
            sasl_qop=s.SASL_QOP,
            connect_timeout=s.CONNECT_TIMEOUT,
            request_timeout=s.REQUEST_TIMEOUT,
            read_buffer_size=s.READ_BUFFER_SIZE,
        )

    async def open(self, url: str, authenticate: bool = True) -> RemoteSession:
        """
        Open a session. The caller owns it and must close it.

        Raises:
            ConfigurationError: If the URL or trust material is invalid
            SessionError: NETWORK, TLS or AUTH
        """
        config = self.build_config(url, authenticate)
        logger.debug(f"Opening session to {self.service_name} at {config.host}:{config.port}")
        return await self.connector(config)

    @asynccontextmanager
    async def session(self, url: str, authenticate: bool = True) -> AsyncIterator[RemoteSession]:
        """Open a session that is closed when the block exits."""
        session = await self.open(url, authenticate)
        try:
            yield session
        finally:
            await session.close()
