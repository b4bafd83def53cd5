"""
Endpoint Verifier Module

Verification checks run against a live cache endpoint: basic read/write,
anonymous-access rejection, value type coverage, sustained writes, topology
membership and eviction boundary.

Every check opens its own session through the SessionFactory and closes it
before returning, whatever the outcome.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, List, Optional, Sequence

from ..client.session import RemoteCache
from ..config.settings import Settings, settings as default_settings
from ..errors import (
    OperationCancelled,
    SessionError,
    SessionErrorKind,
    VerificationFailure,
)
from ..payload.generator import constant_bytes, random_string
from ..session.factory import SessionFactory
from .base import EndpointTester
from .eviction import EvictionProbe, EvictionReport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProbeKeys:
    """Keys written by the checks."""
    basic: str = "should_default_cache_be_accessible"
    type_coverage: str = "verifier_key"
    eviction: str = "key"


@dataclass
class ThroughputReport:
    """Outcome of a sustained write run."""
    writes: int
    elapsed_seconds: float

    @property
    def writes_per_second(self) -> float:
        return self.writes / self.elapsed_seconds if self.elapsed_seconds > 0 else 0.0


def member_host(address: str) -> str:
    """
    Strip the port from a member address.

    IPv6 hosts carrying a port must be bracketed; an unbracketed address
    with more than one colon is taken as a bare IPv6 host.

    Examples:
        >>> member_host("10.0.0.1:11222")
        '10.0.0.1'
        >>> member_host("[fd00::1]:11222")
        'fd00::1'
        >>> member_host("fd00::1")
        'fd00::1'
    """
    if address.startswith("["):
        return address[1:address.index("]")]
    if address.count(":") > 1:
        return address
    host, sep, _ = address.rpartition(":")
    return host if sep else address


def _expect_equal(check: str, expected, actual) -> None:
    if actual != expected:
        raise VerificationFailure(check, expected, actual)


class EndpointVerifier(EndpointTester):
    """
    Verifies a cache endpoint reachable through a SessionFactory.

    Usage:
        verifier = EndpointVerifier(SessionFactory("datagrid", "/trust"))
        await verifier.basic_capability("hotrod://10.0.0.5:11222")
        nodes = await verifier.node_count("hotrod://10.0.0.5:11222")

    Attributes:
        factory: Source of sessions
        keys: Fixed keys the checks write
        settings: Payload sizes and iteration bounds
    """

    def __init__(
            self,
            factory: SessionFactory,
            keys: ProbeKeys = None,
            settings: Settings = None,
    ):
        self.factory = factory
        self.keys = keys if keys is not None else ProbeKeys()
        self.settings = settings if settings is not None else default_settings

    # ------------------------------------------------------------------
    # Read/write checks
    # ------------------------------------------------------------------

    async def basic_capability(self, url: str, authenticate: bool = True) -> None:
        """
        Put a string on the default cache and read it back.

        Raises:
            SessionError: AUTH when anonymous access is refused
            VerificationFailure: If the value does not read back
        """
        async with self.factory.session(url, authenticate) as session:
            cache = session.cache()
            await cache.put(self.keys.basic, "test")
            actual = await cache.get(self.keys.basic)

        _expect_equal("basic put/get", "test", actual)
        logger.info(f"Basic capability verified on {url}")

    async def verify_endpoint_protected(self, url: str) -> None:
        """
        Prove the endpoint refuses anonymous access.

        Raises:
            VerificationFailure: If the anonymous put/get succeeded
            SessionError: NETWORK or TLS failures are not proof of protection
        """
        try:
            await self.basic_capability(url, authenticate=False)
        except SessionError as e:
            if e.kind != SessionErrorKind.AUTH:
                raise
            logger.info(f"Anonymous access rejected by {url}")
            return

        raise VerificationFailure("anonymous access", "rejected", "accepted")

    async def type_coverage(self, url: str) -> None:
        """
        Run the value type checks in order, stopping at the first failure.

        Each check gets its own handle on the default cache of one session.
        """
        checks = (
            self._string_put_get,
            self._string_update_get,
            self._string_remove,
            self._int_put_get,
            self._bytes_put_get,
        )
        async with self.factory.session(url) as session:
            for check in checks:
                await check(session.cache())
                logger.debug(f"{check.__name__.lstrip('_')} passed")

        logger.info(f"Type coverage verified on {url}")

    async def _string_put_get(self, cache: RemoteCache) -> None:
        await cache.put(self.keys.type_coverage, "value")
        _expect_equal("string put/get", "value", await cache.get(self.keys.type_coverage))

    async def _string_update_get(self, cache: RemoteCache) -> None:
        await cache.put(self.keys.type_coverage, "value")
        await cache.put(self.keys.type_coverage, "newValue")
        _expect_equal("string update/get", "newValue", await cache.get(self.keys.type_coverage))

    async def _string_remove(self, cache: RemoteCache) -> None:
        await cache.put(self.keys.type_coverage, "value")
        await cache.remove(self.keys.type_coverage)
        _expect_equal("string remove/get", None, await cache.get(self.keys.type_coverage))

    async def _int_put_get(self, cache: RemoteCache) -> None:
        await cache.put(self.keys.type_coverage, 5)
        actual = await cache.get(self.keys.type_coverage)
        if not isinstance(actual, int) or isinstance(actual, bool) or actual != 5:
            raise VerificationFailure("int put/get", 5, actual)

    async def _bytes_put_get(self, cache: RemoteCache) -> None:
        value = constant_bytes(self.settings.PAYLOAD_SIZE)
        await cache.put(self.keys.type_coverage, value)
        actual = await cache.get(self.keys.type_coverage)
        if not isinstance(actual, bytes) or actual != value:
            raise VerificationFailure("byte array put/get", value, actual)

    # ------------------------------------------------------------------
    # Load checks
    # ------------------------------------------------------------------

    async def sustained_write(
            self,
            url: str,
            duration: float,
            cancel_event: Optional[asyncio.Event] = None,
    ) -> ThroughputReport:
        """
        Write random 1000-character keys and values until `duration` seconds pass.

        Success means no error before the deadline; values are not read back.

        Raises:
            OperationCancelled: If cancel_event is set before the deadline
        """
        length = self.settings.SUSTAINED_KEY_LENGTH
        writes = 0

        async with self.factory.session(url) as session:
            cache = session.cache()
            started = time.monotonic()
            deadline = started + duration

            while True:
                now = time.monotonic()
                if now >= deadline:
                    break
                if cancel_event is not None and cancel_event.is_set():
                    raise OperationCancelled(f"sustained write cancelled after {writes} writes")

                await cache.put(random_string(length), random_string(length))
                writes += 1

        report = ThroughputReport(writes=writes, elapsed_seconds=now - started)
        logger.info(f"Sustained write on {url}: {report.writes} writes "
                    f"in {report.elapsed_seconds:.2f}s ({report.writes_per_second:.1f}/s)")
        return report

    async def eviction_boundary(
            self,
            url: str,
            max_iterations: int = None,
            cancel_event: Optional[asyncio.Event] = None,
    ) -> EvictionReport:
        """
        Fill the default cache until the seed entry is evicted.

        Raises:
            EvictionNotObserved: If the bound ran out first
            VerificationFailure: If a newer entry was evicted before the seed
        """
        bound = max_iterations if max_iterations is not None else self.settings.EVICTION_MAX_ITERATIONS

        async with self.factory.session(url) as session:
            probe = EvictionProbe(
                session.cache(),
                key=self.keys.eviction,
                max_iterations=bound,
                payload_size=self.settings.PAYLOAD_SIZE,
                cancel_event=cancel_event,
            )
            return await probe.run()

    # ------------------------------------------------------------------
    # Topology checks
    # ------------------------------------------------------------------

    async def member_hosts(self, url: str) -> List[str]:
        """Sorted host addresses of the cluster members, one per member."""
        async with self.factory.session(url) as session:
            topology = await session.cache().topology()
        return sorted(member_host(address) for address in topology)

    async def topology_membership(self, url: str, expected_addresses: Sequence[str]) -> None:
        """
        Check the cluster members are exactly the expected hosts.

        Order does not matter; counts do, so duplicates are kept on both sides.

        Raises:
            VerificationFailure: If the sorted lists differ
        """
        observed = await self.member_hosts(url)
        _expect_equal("topology membership", sorted(expected_addresses), observed)
        logger.info(f"Topology of {url} matches {len(observed)} expected members")

    async def node_count(self, url: str) -> int:
        """Number of members in the cluster's topology."""
        async with self.factory.session(url) as session:
            topology = await session.cache().topology()
        return len(topology)

    # ------------------------------------------------------------------
    # Handles
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def named_cache(self, url: str, cache_name: str) -> AsyncIterator[RemoteCache]:
        """Yield a handle on a named cache; its session closes on exit."""
        async with self.factory.session(url) as session:
            yield session.cache(cache_name)
