"""
Pytest Configuration and Fixtures

This module provides shared fixtures and configuration for all tests:

- InMemoryCluster: a cache cluster double handed to SessionFactory as its
  connector, with configurable capacity, eviction order and auth enforcement
- StubEndpoint: an asyncio server speaking the client's line protocol, for
  exercising the real client over a socket
"""

import asyncio
import socket
from collections import OrderedDict
from contextlib import closing
from typing import Any, Dict, List, Optional, Set, Tuple

import pytest
import pytest_asyncio

from cache_verifier.client.codec import decode_token
from cache_verifier.client.connection import ConnectionConfig
from cache_verifier.config.settings import Settings
from cache_verifier.errors import SessionClosedError, SessionError, SessionErrorKind
from cache_verifier.session.factory import SessionFactory
from cache_verifier.verifier.endpoint import EndpointVerifier

SERVICE_NAME = "datagrid-service"
SERVICE_URL = "hotrod://10.0.0.1:11222"

DEFAULT_MEMBERS = {
    "10.0.0.1:11222": {0, 1, 2},
    "10.0.0.2:11222": {3, 4, 5},
    "10.0.0.3:11222": {6, 7, 8},
}


def find_free_port() -> int:
    """Find an available port for testing."""
    with closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(('', 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


# ============================================================================
# In-memory cluster double
# ============================================================================

class InMemoryCluster:
    """
    Cache cluster double shared by every session opened against it.

    Eviction orders (when capacity is set):
        fifo   - evict the oldest written entry; reads do not reorder
        lru    - evict the least recently used entry; reads refresh
        reject - drop new entries once full
    """

    def __init__(
            self,
            capacity: Optional[int] = None,
            eviction: str = "fifo",
            require_auth: bool = False,
            members: Optional[Dict[str, Set[int]]] = None,
            drop_removes: bool = False,
            unreachable: bool = False,
    ):
        self.capacity = capacity
        self.eviction = eviction
        self.require_auth = require_auth
        self.members = dict(DEFAULT_MEMBERS if members is None else members)
        self.drop_removes = drop_removes
        self.unreachable = unreachable

        self.caches: Dict[str, "OrderedDict[Any, Any]"] = {}
        self.log: List[Tuple[str, str, Any, Any]] = []
        self.configs: List[ConnectionConfig] = []
        self.sessions: List["FakeSession"] = []

    async def connect(self, config: ConnectionConfig) -> "FakeSession":
        self.configs.append(config)
        if self.unreachable:
            raise SessionError(SessionErrorKind.NETWORK, f"cannot reach {config.host}:{config.port}")
        session = FakeSession(self, config)
        self.sessions.append(session)
        return session

    def _store(self, name: str) -> "OrderedDict[Any, Any]":
        return self.caches.setdefault(name, OrderedDict())

    def put(self, name: str, key: Any, value: Any) -> None:
        self.log.append(("put", name, key, value))
        store = self._store(name)

        if key in store:
            store[key] = value
            store.move_to_end(key)
            return

        if self.capacity is not None and len(store) >= self.capacity:
            if self.eviction == "reject":
                return
            store.popitem(last=False)

        store[key] = value

    def get(self, name: str, key: Any) -> Optional[Any]:
        self.log.append(("get", name, key, None))
        store = self._store(name)
        if key not in store:
            return None
        if self.eviction == "lru":
            store.move_to_end(key)
        return store[key]

    def remove(self, name: str, key: Any) -> bool:
        self.log.append(("remove", name, key, None))
        if self.drop_removes:
            return True
        return self._store(name).pop(key, None) is not None


class FakeCache:
    """Cache handle double bound to a FakeSession."""

    def __init__(self, session: "FakeSession", name: str):
        self.session = session
        self.name = name

    async def put(self, key: Any, value: Any) -> None:
        self.session.check()
        self.session.cluster.put(self.name, key, value)

    async def get(self, key: Any) -> Optional[Any]:
        self.session.check()
        return self.session.cluster.get(self.name, key)

    async def remove(self, key: Any) -> bool:
        self.session.check()
        return self.session.cluster.remove(self.name, key)

    async def topology(self) -> Dict[str, Set[int]]:
        return await self.session.topology(self.name)


class FakeSession:
    """Session double; enforces auth and use-after-close like the real one."""

    def __init__(self, cluster: InMemoryCluster, config: ConnectionConfig):
        self.cluster = cluster
        self.config = config
        self.closed = False
        self.handles: List[FakeCache] = []

    def check(self) -> None:
        if self.closed:
            raise SessionClosedError()
        if self.cluster.require_auth and not self.config.auth_enabled:
            raise SessionError(SessionErrorKind.AUTH, "unauthorized")

    def cache(self, name: str = "") -> FakeCache:
        if self.closed:
            raise SessionClosedError()
        handle = FakeCache(self, name)
        self.handles.append(handle)
        return handle

    async def topology(self, cache_name: str = "") -> Dict[str, Set[int]]:
        self.check()
        return {address: set(segments) for address, segments in self.cluster.members.items()}

    async def close(self) -> None:
        self.closed = True


# ============================================================================
# Factory / Verifier Fixtures
# ============================================================================

@pytest.fixture
def server_port() -> int:
    """Get a free port with nothing listening on it."""
    return find_free_port()


@pytest.fixture
def service_name() -> str:
    return SERVICE_NAME


@pytest.fixture
def service_url() -> str:
    return SERVICE_URL


@pytest.fixture
def trust_dir(tmp_path):
    """A trust store directory holding a PEM file for SERVICE_NAME."""
    (tmp_path / f"{SERVICE_NAME}.pem").write_text("placeholder\n")
    return tmp_path


@pytest.fixture
def test_settings() -> Settings:
    """Settings with a small eviction bound."""
    return Settings(EVICTION_MAX_ITERATIONS=50)


@pytest.fixture
def cluster() -> InMemoryCluster:
    """An unbounded, open cluster with three members."""
    return InMemoryCluster()


@pytest.fixture
def factory(trust_dir, cluster, test_settings) -> SessionFactory:
    """SessionFactory whose sessions come from the `cluster` fixture."""
    return SessionFactory(SERVICE_NAME, trust_dir, settings=test_settings, connector=cluster.connect)


@pytest.fixture
def verifier(factory, test_settings) -> EndpointVerifier:
    """EndpointVerifier against the `cluster` fixture."""
    return EndpointVerifier(factory, settings=test_settings)


@pytest.fixture
def verifier_for(trust_dir, test_settings):
    """
    Factory fixture building a verifier over a custom cluster.

    Usage:
        def test_something(verifier_for):
            verifier, cluster = verifier_for(capacity=5)
    """
    def build(**cluster_kwargs) -> Tuple[EndpointVerifier, InMemoryCluster]:
        custom = InMemoryCluster(**cluster_kwargs)
        factory = SessionFactory(
            SERVICE_NAME, trust_dir, settings=test_settings, connector=custom.connect
        )
        return EndpointVerifier(factory, settings=test_settings), custom
    return build


# ============================================================================
# Stub Endpoint
# ============================================================================

class StubEndpoint:
    """
    Minimal asyncio endpoint speaking the client's line protocol.

    Values are stored as their wire tokens, so whatever the client sends is
    returned byte for byte. Entries are evicted oldest-first past `capacity`.
    With `first_reply_delay` the first non-AUTH reply is held back that long.
    """

    def __init__(
            self,
            require_auth: bool = False,
            username: str = "test",
            password: str = "test",
            members: Optional[Dict[str, Set[int]]] = None,
            capacity: Optional[int] = None,
            plaintext_banner: bool = False,
            fail_with: Optional[str] = None,
            first_reply_delay: float = 0.0,
    ):
        self.require_auth = require_auth
        self.username = username
        self.password = password
        self.members = dict(DEFAULT_MEMBERS if members is None else members)
        self.capacity = capacity
        self.plaintext_banner = plaintext_banner
        self.fail_with = fail_with
        self.first_reply_delay = first_reply_delay

        self.host = '127.0.0.1'
        self.port: Optional[int] = None
        self.store: "OrderedDict[Tuple[str, str], str]" = OrderedDict()
        self.auth_requests: List[List[str]] = []
        self._server: Optional[asyncio.Server] = None
        self._writers: Set[asyncio.StreamWriter] = set()

    async def start(self) -> None:
        self._server = await asyncio.start_server(self.handle_client, self.host, 0)
        self.port = self._server.sockets[0].getsockname()[1]

    async def stop(self) -> None:
        if self._server is None:
            return
        self._server.close()
        for writer in list(self._writers):
            writer.close()
        await self._server.wait_closed()
        self._server = None

    async def handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self._writers.add(writer)
        try:
            if self.plaintext_banner:
                writer.write(b"ERROR not tls\n" * 4)
                await writer.drain()
                return

            authenticated = False
            while True:
                data = await reader.readline()
                if not data:
                    break

                parts = data.decode().split()
                if parts and parts[0] == "AUTH":
                    authenticated = self._authenticate(parts)
                    reply = "OK authenticated" if authenticated else "ERROR auth failed"
                elif self.require_auth and not authenticated:
                    reply = "ERROR unauthorized"
                elif self.fail_with:
                    reply = f"ERROR {self.fail_with}"
                else:
                    reply = self._execute(parts)

                if self.first_reply_delay and parts and parts[0] != "AUTH":
                    delay, self.first_reply_delay = self.first_reply_delay, 0.0
                    await asyncio.sleep(delay)

                writer.write(f"{reply}\n".encode())
                await writer.drain()
        except ConnectionError:
            pass
        finally:
            self._writers.discard(writer)
            writer.close()

    def _authenticate(self, parts: List[str]) -> bool:
        if len(parts) != 6:
            self.auth_requests.append(parts[1:])
            return False
        fields = [decode_token(part) for part in parts[1:]]
        self.auth_requests.append(fields)
        return fields[3] == self.username and fields[4] == self.password

    def _execute(self, parts: List[str]) -> str:
        if not parts:
            return "ERROR invalid command"
        name, args = parts[0], parts[1:]

        if name == "PUT" and len(args) == 3:
            cache, key, value = args
            if (cache, key) not in self.store and self.capacity and len(self.store) >= self.capacity:
                self.store.popitem(last=False)
            self.store[(cache, key)] = value
            return "OK stored"
        if name == "GET" and len(args) == 2:
            value = self.store.get((args[0], args[1]))
            return f"OK {value}" if value is not None else "ERROR key not found"
        if name == "REMOVE" and len(args) == 2:
            if self.store.pop((args[0], args[1]), None) is None:
                return "ERROR key not found"
            return "OK removed"
        if name == "TOPOLOGY" and len(args) == 1:
            entries = " ".join(
                f"{address}={','.join(str(s) for s in sorted(segments))}"
                for address, segments in self.members.items()
            )
            return f"OK {entries}"
        return "ERROR invalid command"


@pytest_asyncio.fixture
async def stub_factory():
    """
    Factory fixture starting StubEndpoints that are stopped after the test.

    Usage:
        async def test_something(stub_factory):
            endpoint = await stub_factory(require_auth=True)
    """
    started: List[StubEndpoint] = []

    async def factory(**kwargs) -> StubEndpoint:
        endpoint = StubEndpoint(**kwargs)
        await endpoint.start()
        started.append(endpoint)
        return endpoint

    yield factory

    for endpoint in started:
        await endpoint.stop()


@pytest.fixture
def plain_config():
    """
    Build a plaintext ConnectionConfig for a StubEndpoint.

    Usage:
        config = plain_config(endpoint, auth_enabled=False)
    """
    def build(endpoint: StubEndpoint, **overrides) -> ConnectionConfig:
        values = dict(
            host=endpoint.host,
            port=endpoint.port,
            ssl_enabled=False,
            auth_enabled=True,
            username="test",
            password="test",
            realm="ApplicationRealm",
            sasl_mechanism="DIGEST-MD5",
            sasl_qop="auth-conf",
            connect_timeout=2.0,
            request_timeout=2.0,
        )
        values.update(overrides)
        return ConnectionConfig(**values)
    return build


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
