"""
Eviction Boundary Probe

Fills a cache with fixed-size entries until the first one written is evicted.

State machine:
    INIT -> SEEDED -> PROBING -> EVICTED
                              -> BOUND_EXCEEDED (EvictionNotObserved)

While probing, every freshly written entry must read back intact; a miss on
the newest entry means the cache evicted live data before the oldest entry.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

from ..client.session import RemoteCache
from ..errors import (
    EvictionNotObserved,
    InvalidArgumentError,
    OperationCancelled,
    VerificationFailure,
)
from ..payload.generator import constant_bytes

logger = logging.getLogger(__name__)


class EvictionState(Enum):
    """Progress of an eviction probe."""
    INIT = auto()
    SEEDED = auto()
    PROBING = auto()
    EVICTED = auto()
    BOUND_EXCEEDED = auto()


@dataclass
class EvictionReport:
    """Outcome of a probe that observed eviction."""
    key: str
    writes: int
    elapsed_seconds: float


class EvictionProbe:
    """
    Runs one eviction probe against a cache handle.

    Usage:
        probe = EvictionProbe(cache, key="key", max_iterations=10000)
        report = await probe.run()

    Attributes:
        state: Current EvictionState
        writes: Entries written after the seed entry
    """

    def __init__(
            self,
            cache: RemoteCache,
            key: str,
            max_iterations: int,
            payload_size: int = 4096,
            cancel_event: Optional[asyncio.Event] = None,
    ):
        if max_iterations <= 0:
            raise InvalidArgumentError(f"max_iterations must be positive, got {max_iterations}")
        self.cache = cache
        self.key = key
        self.max_iterations = max_iterations
        self.payload_size = payload_size
        self.cancel_event = cancel_event
        self.state = EvictionState.INIT
        self.writes = 0

    async def run(self) -> EvictionReport:
        """
        Seed, then probe until the seed entry disappears.

        Raises:
            VerificationFailure: If the seed or the newest entry does not read back
            EvictionNotObserved: If max_iterations writes did not evict the seed
            OperationCancelled: If the cancel event is set
        """
        started = time.monotonic()
        await self._seed()

        self.state = EvictionState.PROBING
        while self.writes < self.max_iterations:
            self._check_cancelled()
            if await self.cache.get(self.key) is None:
                return self._evicted(started)
            await self._write_next()

        if await self.cache.get(self.key) is None:
            return self._evicted(started)

        self.state = EvictionState.BOUND_EXCEEDED
        logger.warning(f"Seed entry {self.key!r} still present after {self.writes} writes")
        raise EvictionNotObserved(self.writes)

    async def _seed(self) -> None:
        value = constant_bytes(self.payload_size)
        await self.cache.put(self.key, value)
        actual = await self.cache.get(self.key)
        if actual != value:
            raise VerificationFailure("eviction seed entry", value, actual)
        self.state = EvictionState.SEEDED
        logger.debug(f"Seeded {self.key!r} with {self.payload_size} bytes")

    async def _write_next(self) -> None:
        key = f"{self.key}{self.writes}"
        value = constant_bytes(self.payload_size)
        await self.cache.put(key, value)
        self.writes += 1

        actual = await self.cache.get(key)
        if actual != value:
            raise VerificationFailure(f"latest entry {key!r} evicted prematurely", value, actual)

    def _evicted(self, started: float) -> EvictionReport:
        self.state = EvictionState.EVICTED
        elapsed = time.monotonic() - started
        logger.info(f"Seed entry {self.key!r} evicted after {self.writes} writes")
        return EvictionReport(key=self.key, writes=self.writes, elapsed_seconds=elapsed)

    def _check_cancelled(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise OperationCancelled(f"eviction probe cancelled after {self.writes} writes")
