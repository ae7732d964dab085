"""Entry point tying a data source to the tag reader for its format."""

from __future__ import annotations

import logging
import threading
from typing import Any

from .config import Config
from .errors import TagFormatError, TagReaderError
from .models.tags import TagResult
from .models.types import ByteRange, LoadCallbacks, ReadCallbacks
from .readers import TAG_READERS, MediaTagReader
from .sources import FILE_READERS, MediaFileReader

logger = logging.getLogger(__name__)


class Reader:
    """Reads the tags of the media file at `location`.

    `location` can be bytes, a local path, an http(s) URL or an s3:// URL.
    The file reader and tag reader are picked automatically unless set.
    """

    def __init__(self, location: Any, config: Config | None = None) -> None:
        self._location = location
        self._config = config
        self._tags_to_read: list[str] | None = None
        self._file_reader: type[MediaFileReader] | None = None
        self._tag_reader: type[MediaTagReader] | None = None

    def set_tags_to_read(self, tags: list[str] | None) -> "Reader":
        self._tags_to_read = tags
        return self

    def set_file_reader(self, file_reader: type[MediaFileReader]) -> "Reader":
        self._file_reader = file_reader
        return self

    def set_tag_reader(self, tag_reader: type[MediaTagReader]) -> "Reader":
        self._tag_reader = tag_reader
        return self

    def read(self, callbacks: ReadCallbacks) -> None:
        try:
            file_reader = self._create_file_reader()
        except TagFormatError as e:
            callbacks.on_error(e)
            return

        def on_tag_reader(tag_reader_class: type[MediaTagReader]) -> None:
            logger.debug(f"Reading {self._describe()} with {tag_reader_class.__name__}")
            tag_reader = tag_reader_class(file_reader)
            tag_reader.set_tags_to_read(self._tags_to_read)
            tag_reader.read(callbacks)

        def on_init() -> None:
            if self._tag_reader is not None:
                on_tag_reader(self._tag_reader)
            else:
                self._find_tag_reader(file_reader, on_tag_reader, callbacks.on_error)

        file_reader.init(LoadCallbacks(on_success=on_init, on_error=callbacks.on_error))

    def _describe(self) -> str:
        if isinstance(self._location, (bytes, bytearray, memoryview)):
            return f"<{len(self._location)} bytes>"
        return str(self._location)

    def _create_file_reader(self) -> MediaFileReader:
        file_reader_class = self._file_reader
        if file_reader_class is None:
            for candidate in FILE_READERS:
                if candidate.can_read_file(self._location):
                    file_reader_class = candidate
                    break
        if file_reader_class is None:
            raise TagFormatError(
                f"No suitable file reader found for {self._describe()}",
                details={"location": self._location},
            )

        try:
            return file_reader_class(self._location, self._config)
        except ValueError as e:
            raise TagFormatError(str(e), details={"location": self._location}) from e

    def _find_tag_reader(self, file_reader: MediaFileReader, on_found, on_error) -> None:
        ranges = [reader.get_tag_identifier_byte_range() for reader in TAG_READERS]
        union = ByteRange(min(r.start for r in ranges), max(r.end for r in ranges))

        def on_loaded() -> None:
            available = union.clamp(file_reader.get_size())
            identifier = file_reader.get_bytes_at(available.start, available.length)

            for reader_class, byte_range in zip(TAG_READERS, ranges):
                start = byte_range.start - union.start
                tag_identifier = identifier[start:start + byte_range.length]
                if reader_class.can_read_tag_format(tag_identifier):
                    on_found(reader_class)
                    return

            on_error(TagFormatError(f"No suitable tag reader found for {self._describe()}"))

        file_reader.load_range(union, LoadCallbacks(on_success=on_loaded, on_error=on_error))


def read(location: Any, callbacks: ReadCallbacks, config: Config | None = None) -> None:
    """Read tags from `location`, reporting through `callbacks`."""
    Reader(location, config).read(callbacks)


def read_tags(
    location: Any,
    tags: list[str] | None = None,
    config: Config | None = None,
    timeout: float | None = None,
) -> TagResult:
    """Read tags from `location` and wait for the result.

    Raises the TagReaderError reported by the read.
    """
    done = threading.Event()
    outcome: dict[str, Any] = {}

    def on_success(result: TagResult) -> None:
        outcome["result"] = result
        done.set()

    def on_error(error: TagReaderError) -> None:
        outcome["error"] = error
        done.set()

    Reader(location, config).set_tags_to_read(tags).read(
        ReadCallbacks(on_success=on_success, on_error=on_error)
    )

    if not done.wait(timeout):
        raise TagReaderError(f"Timed out reading tags from {location}")
    if "error" in outcome:
        raise outcome["error"]
    return outcome["result"]
