"""
Error Taxonomy

Every failure raised by the verifier derives from CacheVerifierError so a
test runner can tell verifier failures apart from its own bugs.
"""

import reprlib
from enum import Enum
from typing import Any


class CacheVerifierError(Exception):
    """Base class for all verifier errors."""


class ConfigurationError(CacheVerifierError):
    """Missing or invalid trust material, or a malformed target URL."""


class SessionErrorKind(Enum):
    """Why a session could not be established or used."""
    NETWORK = "network"
    TLS = "tls"
    AUTH = "auth"


class SessionError(CacheVerifierError):
    """
    Connection establishment or use failed.

    Attributes:
        kind: NETWORK, TLS or AUTH
    """

    def __init__(self, kind: SessionErrorKind, message: str = ""):
        self.kind = kind
        super().__init__(f"{kind.value}: {message}" if message else kind.value)


class SessionClosedError(SessionError):
    """A session or one of its cache handles was used after close()."""

    def __init__(self, message: str = "session is closed"):
        super().__init__(SessionErrorKind.NETWORK, message)


class CacheOperationError(CacheVerifierError):
    """The endpoint rejected a request for a reason other than authentication."""


class VerificationFailure(CacheVerifierError):
    """
    An expectation about the endpoint did not hold.

    Attributes:
        check: Name of the check that failed
        expected: The value the check expected
        actual: The value the endpoint produced
    """

    def __init__(self, check: str, expected: Any, actual: Any):
        self.check = check
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{check}: expected {reprlib.repr(expected)}, got {reprlib.repr(actual)}"
        )


class EvictionNotObserved(CacheVerifierError):
    """The iteration bound ran out before the seeded entry was evicted."""

    def __init__(self, iterations: int):
        self.iterations = iterations
        super().__init__(f"no eviction observed after {iterations} writes")


class InvalidArgumentError(CacheVerifierError, ValueError):
    """Malformed input to payload generation or an eviction probe."""


class OperationCancelled(CacheVerifierError):
    """A looping check was aborted through its cancel event."""
