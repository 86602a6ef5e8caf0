"""Byte-level helpers for JWT compact serialization.

Base64url without padding (RFC 7515 section 2) and exact byte concatenation
of the segments that make up the signing input.
"""

import base64
import binascii
import re
from typing import Union

PERIOD = b"."

_B64URL_ALPHABET = re.compile(rb"[A-Za-z0-9_-]*")


class DecodeError(ValueError):
    """Raised when a segment is not valid base64url."""


def utf8_encode(value: str) -> bytes:
    return value.encode("utf-8")


def utf8_decode(value: bytes) -> str:
    try:
        return value.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(f"invalid utf-8: {e}") from e


def b64url_encode(value: bytes) -> bytes:
    """Encode bytes as unpadded base64url."""
    return base64.urlsafe_b64encode(value).rstrip(b"=")


def b64url_decode(value: Union[bytes, str]) -> bytes:
    """Decode unpadded (or correctly padded) base64url.

    Raises:
        DecodeError: On characters outside the url-safe alphabet or a length
            that no base64 encoding can produce.
    """
    if isinstance(value, str):
        try:
            value = value.encode("ascii")
        except UnicodeEncodeError as e:
            raise DecodeError("non-ascii character in base64url segment") from e

    stripped = value.rstrip(b"=")
    padding = len(value) - len(stripped)
    if padding and (len(value) % 4 != 0 or padding > 2):
        raise DecodeError("invalid base64url padding")
    if not _B64URL_ALPHABET.fullmatch(stripped):
        raise DecodeError("invalid base64url character")
    if len(stripped) % 4 == 1:
        raise DecodeError("invalid base64url length")

    try:
        return base64.urlsafe_b64decode(stripped + b"=" * (-len(stripped) % 4))
    except binascii.Error as e:
        raise DecodeError(str(e)) from e


def concat(*segments: bytes) -> bytes:
    return b"".join(segments)
