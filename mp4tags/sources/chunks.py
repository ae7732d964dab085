"""Bookkeeping for the byte ranges of a file that have been loaded."""

import bisect
from dataclasses import dataclass

from ..errors import RangeNotLoadedError


@dataclass
class _Chunk:
    offset: int
    data: bytearray

    @property
    def end(self) -> int:
        """Exclusive end offset."""
        return self.offset + len(self.data)


class ChunkedFileData:
    """Sparse view of a file made of the chunks loaded so far.

    Chunks are kept sorted by offset. Overlapping or adjacent chunks are
    merged on insertion, newer data winning where they overlap.
    """

    def __init__(self) -> None:
        self._chunks: list[_Chunk] = []

    def __len__(self) -> int:
        return len(self._chunks)

    @property
    def chunks(self) -> list[tuple[int, int]]:
        """Loaded spans as (offset, length) pairs."""
        return [(c.offset, len(c.data)) for c in self._chunks]

    def add_data(self, offset: int, data: bytes) -> None:
        """Store `data` at `offset`."""
        if not data:
            return
        end = offset + len(data)

        before = [c for c in self._chunks if c.end < offset]
        after = [c for c in self._chunks if c.offset > end]
        touching = [c for c in self._chunks if c.end >= offset and c.offset <= end]

        if touching:
            start = min(offset, touching[0].offset)
            stop = max(end, touching[-1].end)
            merged = bytearray(stop - start)
            for chunk in touching:
                merged[chunk.offset - start:chunk.end - start] = chunk.data
            merged[offset - start:end - start] = data
            chunk = _Chunk(start, merged)
        else:
            chunk = _Chunk(offset, bytearray(data))

        self._chunks = before + [chunk] + after

    def _find_chunk(self, offset: int) -> _Chunk | None:
        index = bisect.bisect_right([c.offset for c in self._chunks], offset) - 1
        if index < 0:
            return None
        chunk = self._chunks[index]
        return chunk if offset < chunk.end else None

    def has_data_range(self, start: int, end: int) -> bool:
        """Check whether every byte in the inclusive range [start, end] is loaded."""
        chunk = self._find_chunk(start)
        return chunk is not None and end < chunk.end

    def get_byte_at(self, offset: int) -> int:
        chunk = self._find_chunk(offset)
        if chunk is None:
            raise RangeNotLoadedError(offset)
        return chunk.data[offset - chunk.offset]

    def get_bytes_at(self, offset: int, length: int) -> bytes:
        if length <= 0:
            return b""
        chunk = self._find_chunk(offset)
        if chunk is None:
            raise RangeNotLoadedError(offset)
        if offset + length > chunk.end:
            raise RangeNotLoadedError(chunk.end)
        return bytes(chunk.data[offset - chunk.offset:offset - chunk.offset + length])
