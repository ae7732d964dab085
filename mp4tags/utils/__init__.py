"""Utility modules for string decoding."""

from .strings import DecodedString, decode_string

__all__ = [
    "DecodedString",
    "decode_string",
]
