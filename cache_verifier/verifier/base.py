"""Common interface of endpoint testers."""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Optional


class EndpointTester(ABC):
    """
    Checks every cache endpoint flavor must pass.

    Implementations raise a CacheVerifierError subclass on failure and
    return normally on success.
    """

    @abstractmethod
    async def basic_capability(self, url: str, authenticate: bool = True) -> None:
        """Put and read back a value on the default cache."""

    @abstractmethod
    async def verify_endpoint_protected(self, url: str) -> None:
        """Prove the endpoint rejects anonymous access."""

    @abstractmethod
    async def sustained_write(
            self,
            url: str,
            duration: float,
            cancel_event: Optional[asyncio.Event] = None,
    ) -> Any:
        """Write random entries for `duration` seconds."""
