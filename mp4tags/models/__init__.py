"""Data models for byte ranges, callbacks and decoded tags."""

from .tags import Comment, Picture, TagResult
from .types import ByteRange, LoadCallbacks, ReadCallbacks

__all__ = [
    "ByteRange",
    "LoadCallbacks",
    "ReadCallbacks",
    "Comment",
    "Picture",
    "TagResult",
]
