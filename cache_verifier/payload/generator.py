"""
Test Payload Generator

Produces keys and values of an exact size for the load and capacity checks.

- random_string(): a fresh alphanumeric+symbol string on every call
- constant_bytes(): a byte sequence filled with a single value, so repeated
  writes carry identical content and equality checks only catch corruption
"""

import random
import string

from ..errors import InvalidArgumentError

# No whitespace: generated strings double as keys
CHARSET = string.ascii_letters + string.digits + "!#$%&()*+,-./:;<=>?@[]^_{|}~"


def _check_length(length: int) -> None:
    if isinstance(length, bool) or not isinstance(length, int):
        raise InvalidArgumentError(f"length must be an int, got {type(length).__name__}")
    if length <= 0:
        raise InvalidArgumentError(f"length must be positive, got {length}")


def random_string(length: int) -> str:
    """
    Generate a random string of exactly `length` characters.

    Not cryptographically secure and not reproducible across calls.

    Raises:
        InvalidArgumentError: If length is not a positive int
    """
    _check_length(length)
    return "".join(random.choices(CHARSET, k=length))


def constant_bytes(length: int, fill: int = 0x00) -> bytes:
    """
    Generate `length` bytes, every one set to `fill`.

    Raises:
        InvalidArgumentError: If length is not a positive int or fill is not a byte
    """
    _check_length(length)
    if not 0 <= fill <= 0xFF:
        raise InvalidArgumentError(f"fill must be a byte value, got {fill}")
    return bytes([fill]) * length
