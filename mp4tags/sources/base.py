"""Byte-addressable data sources with incremental range loading."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ..errors import LoadError, RangeNotLoadedError
from ..models.types import ByteRange, LoadCallbacks
from ..utils.strings import DecodedString, decode_string
from .chunks import ChunkedFileData

if TYPE_CHECKING:
    from ..config import Config

logger = logging.getLogger(__name__)


class MediaFileReader:
    """Random access to a media file whose bytes are loaded on demand.

    Subclasses provide the size discovery (`_init`), range loading
    (`load_range`) and single-byte access (`get_byte_at`). Everything else
    is built on top of `get_byte_at`/`get_bytes_at`.

    Callers must load a range before reading from it. Completion of `init`
    and `load_range` is reported through `LoadCallbacks`; a failure is
    delivered to `on_error` as a `LoadError` and never raised.
    """

    def __init__(self, location: Any, config: Config | None = None) -> None:
        self._location = location
        self._config = config
        self._size = 0
        self._is_initialized = False

    @classmethod
    def can_read_file(cls, location: Any) -> bool:
        """Check whether this reader handles the given location."""
        raise NotImplementedError

    @property
    def location(self) -> Any:
        return self._location

    def init(self, callbacks: LoadCallbacks) -> None:
        """Discover the file size. Calling it again is a no-op."""
        if self._is_initialized:
            callbacks.on_success()
            return

        def on_success() -> None:
            self._is_initialized = True
            callbacks.on_success()

        self._init(LoadCallbacks(on_success=on_success, on_error=callbacks.on_error))

    def _init(self, callbacks: LoadCallbacks) -> None:
        raise NotImplementedError

    def load_range(self, byte_range: ByteRange, callbacks: LoadCallbacks) -> None:
        """Make the inclusive `byte_range` readable."""
        raise NotImplementedError

    def get_size(self) -> int:
        if not self._is_initialized:
            raise LoadError("init() must be called first to get the file size")
        return self._size

    def get_byte_at(self, offset: int) -> int:
        raise NotImplementedError

    def get_bytes_at(self, offset: int, length: int) -> bytes:
        return bytes(self.get_byte_at(offset + i) for i in range(length))

    def _get_int_at(self, offset: int, length: int, big_endian: bool) -> int:
        return int.from_bytes(self.get_bytes_at(offset, length), "big" if big_endian else "little")

    def get_short_at(self, offset: int, big_endian: bool) -> int:
        return self._get_int_at(offset, 2, big_endian)

    def get_integer24_at(self, offset: int, big_endian: bool) -> int:
        return self._get_int_at(offset, 3, big_endian)

    def get_long_at(self, offset: int, big_endian: bool) -> int:
        return self._get_int_at(offset, 4, big_endian)

    def get_string_at(self, offset: int, length: int) -> str:
        """Read `length` bytes as one character per byte."""
        return self.get_bytes_at(offset, length).decode("iso-8859-1")

    def get_string_with_charset_at(self, offset: int, length: int, charset: str) -> DecodedString:
        return decode_string(self.get_bytes_at(offset, length), charset)


class ArrayFileReader(MediaFileReader):
    """Reader over bytes already held in memory."""

    def __init__(self, location: bytes | bytearray | memoryview, config: Config | None = None) -> None:
        super().__init__(location, config)
        self._data = bytes(location)

    @classmethod
    def can_read_file(cls, location: Any) -> bool:
        return isinstance(location, (bytes, bytearray, memoryview))

    def _init(self, callbacks: LoadCallbacks) -> None:
        self._size = len(self._data)
        callbacks.on_success()

    def load_range(self, byte_range: ByteRange, callbacks: LoadCallbacks) -> None:
        # All data is in memory already
        callbacks.on_success()

    def get_byte_at(self, offset: int) -> int:
        if not 0 <= offset < len(self._data):
            raise RangeNotLoadedError(offset)
        return self._data[offset]

    def get_bytes_at(self, offset: int, length: int) -> bytes:
        if length <= 0:
            return b""
        if offset < 0 or offset + length > len(self._data):
            raise RangeNotLoadedError(max(offset, len(self._data)))
        return self._data[offset:offset + length]


class ChunkedFileReader(MediaFileReader):
    """Reader that fetches ranges from a backend and caches them as chunks.

    Subclasses implement `_fetch_size` and `_fetch_range`, raising
    `LoadError` on failure. Requested ranges are clamped to the file, and a
    range that is already loaded completes without touching the backend.
    """

    def __init__(self, location: Any, config: Config | None = None) -> None:
        super().__init__(location, config)
        self._file_data = ChunkedFileData()

    def _init(self, callbacks: LoadCallbacks) -> None:
        try:
            self._size = self._fetch_size()
        except LoadError as e:
            callbacks.on_error(e)
            return
        logger.debug(f"{self._location}: {self._size} bytes")
        callbacks.on_success()

    def load_range(self, byte_range: ByteRange, callbacks: LoadCallbacks) -> None:
        requested = byte_range.clamp(self._size)
        if requested.length == 0 or self._file_data.has_data_range(requested.start, requested.end):
            callbacks.on_success()
            return

        fetch = self._expand_range(requested).clamp(self._size)
        try:
            data = self._fetch_range(fetch)
        except LoadError as e:
            callbacks.on_error(e)
            return

        logger.debug(f"{self._location}: loaded bytes {fetch.start}-{fetch.end}")
        self._file_data.add_data(fetch.start, data)
        callbacks.on_success()

    def _expand_range(self, byte_range: ByteRange) -> ByteRange:
        """Hook for backends that prefer larger requests."""
        return byte_range

    def _fetch_size(self) -> int:
        raise NotImplementedError

    def _fetch_range(self, byte_range: ByteRange) -> bytes:
        raise NotImplementedError

    def get_byte_at(self, offset: int) -> int:
        return self._file_data.get_byte_at(offset)

    def get_bytes_at(self, offset: int, length: int) -> bytes:
        return self._file_data.get_bytes_at(offset, length)
