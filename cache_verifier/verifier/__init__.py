"""Verification checks against a cache endpoint."""

from .base import EndpointTester
from .endpoint import EndpointVerifier, ProbeKeys, ThroughputReport, member_host
from .eviction import EvictionProbe, EvictionReport, EvictionState

__all__ = [
    "EndpointTester",
    "EndpointVerifier",
    "EvictionProbe",
    "EvictionReport",
    "EvictionState",
    "ProbeKeys",
    "ThroughputReport",
    "member_host",
]
