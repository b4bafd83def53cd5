"""Payload generation for capacity and load checks."""

from .generator import CHARSET, constant_bytes, random_string

__all__ = ["CHARSET", "constant_bytes", "random_string"]
