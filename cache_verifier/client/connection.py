"""
Endpoint Connection Module

Owns the single stream connection a session talks over, including TLS setup
and the mapping of low-level failures onto SessionError kinds.
"""

import asyncio
import logging
import ssl
from dataclasses import dataclass
from typing import Optional

from ..errors import ConfigurationError, SessionError, SessionErrorKind
from .commands import Command, Response
from .parser import ProtocolParser

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConnectionConfig:
    """
    Everything needed to open an authenticated session to one endpoint.

    Attributes:
        host, port: Target endpoint
        ssl_enabled: Wrap the connection in TLS
        trust_store_path: PEM bundle of trusted CAs (None = system defaults)
        server_name: Expected TLS peer identity (defaults to host)
        auth_enabled: Send credentials after connecting
        username, password, realm: Credential triple
        sasl_mechanism, sasl_qop: Negotiation parameters
    """
    host: str
    port: int
    ssl_enabled: bool = True
    trust_store_path: Optional[str] = None
    server_name: Optional[str] = None
    auth_enabled: bool = True
    username: str = ""
    password: str = ""
    realm: str = ""
    sasl_mechanism: str = ""
    sasl_qop: str = ""
    connect_timeout: float = 5.0
    request_timeout: float = 5.0
    read_buffer_size: int = 64 * 1024

    def __repr__(self) -> str:
        return (f"ConnectionConfig(host={self.host!r}, port={self.port}, "
                f"ssl_enabled={self.ssl_enabled}, server_name={self.server_name!r}, "
                f"auth_enabled={self.auth_enabled}, username={self.username!r})")


def build_ssl_context(config: ConnectionConfig) -> ssl.SSLContext:
    """
    Create a client TLS context trusting the configured trust store.

    Raises:
        ConfigurationError: If the trust store cannot be loaded
    """
    try:
        return ssl.create_default_context(cafile=config.trust_store_path)
    except (OSError, ssl.SSLError) as e:
        raise ConfigurationError(
            f"cannot load trust store {config.trust_store_path}: {e}"
        ) from e


class Connection:
    """
    A request/response stream to a cache endpoint.

    One request is in flight at a time; concurrent callers queue on a lock.

    Usage:
        conn = Connection(config)
        await conn.open()
        response = await conn.send(Command(type=CommandType.GET, key="k"))
        await conn.close()
    """

    def __init__(self, config: ConnectionConfig):
        self.config = config
        self.parser = ProtocolParser()
        self.reader: Optional[asyncio.StreamReader] = None
        self.writer: Optional[asyncio.StreamWriter] = None
        self._lock = asyncio.Lock()

    @property
    def is_open(self) -> bool:
        return self.writer is not None

    async def open(self) -> None:
        """
        Establish the connection, performing the TLS handshake if enabled.

        Raises:
            ConfigurationError: If the trust store cannot be loaded
            SessionError: NETWORK if unreachable, TLS if the handshake fails
        """
        cfg = self.config
        ssl_context = build_ssl_context(cfg) if cfg.ssl_enabled else None
        server_hostname = (cfg.server_name or cfg.host) if ssl_context else None

        logger.debug(f"Connecting to {cfg.host}:{cfg.port} (tls={cfg.ssl_enabled})")
        try:
            self.reader, self.writer = await asyncio.wait_for(
                asyncio.open_connection(
                    cfg.host,
                    cfg.port,
                    ssl=ssl_context,
                    server_hostname=server_hostname,
                    limit=cfg.read_buffer_size,
                ),
                timeout=cfg.connect_timeout,
            )
        except ssl.SSLError as e:
            raise SessionError(SessionErrorKind.TLS, f"handshake with {cfg.host}:{cfg.port} failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise SessionError(SessionErrorKind.NETWORK, f"timeout connecting to {cfg.host}:{cfg.port}") from e
        except OSError as e:
            raise SessionError(SessionErrorKind.NETWORK, f"cannot reach {cfg.host}:{cfg.port}: {e}") from e

    async def send(self, command: Command) -> Response:
        """
        Send a command and wait for its response line.

        A failed or cancelled exchange drops the connection, so every later
        send raises SessionError(NETWORK).

        Raises:
            SessionError: NETWORK on timeout or disconnect, TLS on a TLS error
        """
        request = self.parser.format_request(command)
        timeout = self.config.request_timeout

        async with self._lock:
            if not self.is_open:
                raise SessionError(SessionErrorKind.NETWORK, "connection is not open")
            try:
                self.writer.write(request.encode("utf-8"))
                await asyncio.wait_for(self.writer.drain(), timeout=timeout)
                data = await asyncio.wait_for(self.reader.readline(), timeout=timeout)
            except ssl.SSLError as e:
                self._abort()
                raise SessionError(SessionErrorKind.TLS, str(e)) from e
            except asyncio.TimeoutError as e:
                self._abort()
                raise SessionError(SessionErrorKind.NETWORK, f"{command.type.name} timed out") from e
            except (OSError, ValueError) as e:
                self._abort()
                raise SessionError(SessionErrorKind.NETWORK, f"{command.type.name} failed: {e}") from e
            except asyncio.CancelledError:
                self._abort()
                raise

        if not data:
            self._abort()
            raise SessionError(SessionErrorKind.NETWORK, "connection closed by server")

        try:
            return self.parser.parse_response(data.decode("utf-8"), command.type)
        except (UnicodeDecodeError, ValueError) as e:
            self._abort()
            raise SessionError(SessionErrorKind.NETWORK, f"unreadable response: {e}") from e

    def _abort(self) -> None:
        # A reply may still be in flight; later requests must not read it.
        if self.writer is not None:
            self.writer.close()
        self.reader, self.writer = None, None

    async def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        if self.writer is None:
            return

        writer, self.writer, self.reader = self.writer, None, None
        writer.close()
        try:
            await writer.wait_closed()
        except (OSError, ssl.SSLError) as e:
            logger.debug(f"Error while closing connection: {e}")
