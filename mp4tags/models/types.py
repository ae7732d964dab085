"""Byte ranges and callback containers."""

from dataclasses import dataclass
from typing import Any, Callable

from ..errors import TagReaderError


@dataclass(frozen=True)
class ByteRange:
    """Inclusive range of byte offsets, [start, end]."""

    start: int
    end: int

    @property
    def length(self) -> int:
        return max(0, self.end - self.start + 1)

    def clamp(self, size: int) -> "ByteRange":
        """Restrict the range to a file of `size` bytes."""
        return ByteRange(max(0, self.start), min(self.end, size - 1))


@dataclass
class LoadCallbacks:
    """Completion callbacks for an asynchronous load."""

    on_success: Callable[[], None]
    on_error: Callable[[TagReaderError], None]


@dataclass
class ReadCallbacks:
    """Completion callbacks for a full tag read."""

    on_success: Callable[[Any], None]
    on_error: Callable[[TagReaderError], None]
