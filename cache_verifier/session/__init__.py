"""Session creation for the cache verifier."""

from .factory import SessionFactory, parse_url
from .truststore import find_trust_store

__all__ = ["SessionFactory", "find_trust_store", "parse_url"]
