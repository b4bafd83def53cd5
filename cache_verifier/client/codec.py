"""
Value Codec

Keys, values and cache names travel as single whitespace-free tokens that
keep their Python type:

    s:<base64>   str (UTF-8)
    i:<int>      int
    b:<base64>   bytes
"""

import base64
import binascii
from typing import Any


def encode_token(obj: Any) -> str:
    """
    Encode a str, int or bytes object as a wire token.

    Raises:
        TypeError: For any other type (bool included)
    """
    if isinstance(obj, bool):
        raise TypeError("bool values are not supported")
    if isinstance(obj, str):
        return "s:" + base64.b64encode(obj.encode("utf-8")).decode("ascii")
    if isinstance(obj, int):
        return f"i:{obj}"
    if isinstance(obj, (bytes, bytearray)):
        return "b:" + base64.b64encode(bytes(obj)).decode("ascii")
    raise TypeError(f"unsupported type: {type(obj).__name__}")


def decode_token(token: str) -> Any:
    """
    Decode a wire token back into the object it was built from.

    Raises:
        ValueError: If the token is malformed
    """
    tag, sep, body = token.partition(":")
    if not sep:
        raise ValueError(f"malformed token: {token!r}")

    try:
        if tag == "s":
            return base64.b64decode(body, validate=True).decode("utf-8")
        if tag == "i":
            return int(body)
        if tag == "b":
            return base64.b64decode(body, validate=True)
    except (binascii.Error, UnicodeDecodeError) as e:
        raise ValueError(f"malformed token body: {token!r}") from e

    raise ValueError(f"unknown token type: {tag!r}")
