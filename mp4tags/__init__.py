"""Read iTunes-style metadata from MP4/M4A files, loading only the atoms it needs."""

from .errors import (
    LoadError,
    ParseError,
    RangeNotLoadedError,
    TagFormatError,
    TagReaderError,
)
from .models import ByteRange, Comment, LoadCallbacks, Picture, ReadCallbacks, TagResult
from .reader import Reader, read, read_tags

__version__ = "0.1.0"

__all__ = [
    "ByteRange",
    "Comment",
    "LoadCallbacks",
    "LoadError",
    "ParseError",
    "Picture",
    "RangeNotLoadedError",
    "ReadCallbacks",
    "Reader",
    "TagFormatError",
    "TagReaderError",
    "TagResult",
    "read",
    "read_tags",
]
