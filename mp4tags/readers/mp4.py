"""iTunes-style MP4/M4A tag reader.

MP4 metadata has no fixed location. The file is a chain of atoms (boxes),
each starting with its size and a four character name. Container atoms hold
a child chain of their own and no data; the other atoms hold data (audio,
video, metadata). Tags are the items of the "ilst" atom found under
"moov.udta.meta".

See:
    http://atomicparsley.sourceforge.net/mpeg-4files.html
    https://developer.apple.com/documentation/quicktime-file-format/metadata_atoms_and_types
"""

import logging
import threading
from dataclasses import dataclass
from functools import partial
from typing import Any, Callable

from ..errors import ParseError, RangeNotLoadedError
from ..models.tags import Comment, Picture
from ..models.types import ByteRange, LoadCallbacks
from ..sources.base import MediaFileReader
from .atoms import (
    ATOM_HEADER_SIZE,
    ATOMS,
    COMMENT_ATOM,
    DATA_PAYLOAD_OFFSET,
    DATA_TYPE_CLASS_OFFSET,
    TRACK_ATOM,
    TRACK_COUNT_KEY,
    TRACK_COUNT_OFFSET,
    TRACK_NUMBER_OFFSET,
    TYPES,
    AtomHeader,
    DataType,
    can_read_atom,
    child_path,
    is_metadata_path,
    read_atom_header,
)
from .base import MediaTagReader

logger = logging.getLogger(__name__)

FILE_TYPE_SIGNATURE = "ftypM4A"


@dataclass(frozen=True)
class _Frame:
    """A container the loader is currently inside."""

    name: str
    end: int


class _AtomLoader:
    """Loads the atom chain one header at a time.

    Each step reads the header primed by the previous request, then asks the
    source for the next range: the first child's header for a container,
    the next sibling's header for anything else (plus the atom itself when
    it is a metadata item). Only one request is outstanding at any time.

    Steps run from a trampoline so that sources completing synchronously
    don't nest a stack frame per atom, while sources completing later (from
    another thread) simply resume the loop.
    """

    def __init__(self, reader: MediaFileReader, callbacks: LoadCallbacks) -> None:
        self._reader = reader
        self._callbacks = callbacks
        self._lock = threading.Lock()
        self._pending: Callable[[], None] | None = None
        self._running = False

    def start(self) -> None:
        # The identifier check already loaded [0, 10]; this is a no-op then
        first_header = ByteRange(0, ATOM_HEADER_SIZE - 1)
        self._schedule(partial(self._request, first_header, partial(self._load_atom, 0, ())))

    def _schedule(self, step: Callable[[], None]) -> None:
        with self._lock:
            self._pending = step
            if self._running:
                return
            self._running = True

        while True:
            with self._lock:
                step, self._pending = self._pending, None
                if step is None:
                    self._running = False
                    return
            step()

    def _request(self, byte_range: ByteRange, next_step: Callable[[], None]) -> None:
        self._reader.load_range(
            byte_range,
            LoadCallbacks(
                on_success=partial(self._schedule, next_step),
                on_error=self._callbacks.on_error,
            ),
        )

    def _load_atom(self, offset: int, frames: tuple[_Frame, ...]) -> None:
        # Past the end of a container: the atom belongs to an ancestor
        while frames and offset >= frames[-1].end:
            frames = frames[:-1]

        if offset >= self._reader.get_size():
            self._callbacks.on_success()
            return

        try:
            header = read_atom_header(self._reader, offset)
        except RangeNotLoadedError:
            header = None
        if header is None:
            self._callbacks.on_success()
            return

        parent_path = ".".join(frame.name for frame in frames)

        if header.is_container:
            child = header.children_offset
            frames = frames + (_Frame(header.name, header.end),)
            self._request(
                ByteRange(child, child + ATOM_HEADER_SIZE),
                partial(self._load_atom, child, frames),
            )
        else:
            # Payloads outside the item list are skipped, only the next header is needed
            start = header.offset if is_metadata_path(parent_path) else header.end
            self._request(
                ByteRange(start, header.end + ATOM_HEADER_SIZE),
                partial(self._load_atom, header.end, frames),
            )


class MP4TagReader(MediaTagReader):
    """Reads the iTunes item list ("ilst") of M4A files."""

    tag_type = "MP4"

    @classmethod
    def get_tag_identifier_byte_range(cls) -> ByteRange:
        # The identifier sits at [4, 11) but the first atom header is needed
        # anyway, so load it in the same request.
        return ByteRange(0, 10)

    @classmethod
    def can_read_tag_format(cls, tag_identifier: bytes) -> bool:
        return bytes(tag_identifier[4:11]).decode("iso-8859-1") == FILE_TYPE_SIGNATURE

    @classmethod
    def get_shortcuts(cls) -> dict[str, list[str]]:
        shortcuts: dict[str, list[str]] = {}
        for name, field_name in ATOMS.items():
            shortcuts.setdefault(field_name, []).append(name)
        return shortcuts

    def _is_companion(self, raw_id: str, wanted: list[str]) -> bool:
        return raw_id == TRACK_COUNT_KEY and TRACK_ATOM in wanted

    def _load_data(self, media_file_reader: MediaFileReader, callbacks: LoadCallbacks) -> None:
        _AtomLoader(media_file_reader, callbacks).start()

    def _parse_data(self, data: MediaFileReader, tags: list[str] | None) -> dict[str, Any]:
        tag: dict[str, Any] = {}
        self._read_atom(tag, data, 0, data.get_size())
        return tag

    def _read_atom(
        self,
        tag: dict[str, Any],
        data: MediaFileReader,
        offset: int,
        length: int,
        parent_path: str = "",
    ) -> None:
        seek = offset
        while seek < offset + length:
            header = read_atom_header(data, seek)
            if header is None:
                return

            if header.is_container:
                child = header.children_offset
                self._read_atom(
                    tag, data, child, header.end - child, child_path(parent_path, header.name)
                )
                # Siblings after the first container are not visited
                return

            if is_metadata_path(parent_path) and can_read_atom(header.name) and header.name in ATOMS:
                self._read_item(tag, data, header)
            seek = header.end

    def _read_item(self, tag: dict[str, Any], data: MediaFileReader, header: AtomHeader) -> None:
        if header.name == TRACK_ATOM:
            tag[TRACK_ATOM] = data.get_byte_at(header.offset + TRACK_NUMBER_OFFSET)
            tag[TRACK_COUNT_KEY] = data.get_byte_at(header.offset + TRACK_COUNT_OFFSET)
            return

        type_class = data.get_integer24_at(header.offset + DATA_TYPE_CLASS_OFFSET, True)
        data_type = TYPES.get(type_class)
        if data_type is None:
            logger.debug(f"Skipping '{header.name}': unknown data type class {type_class}")
            return

        value = self._decode_value(
            data,
            data_type,
            header.offset + DATA_PAYLOAD_OFFSET,
            header.size - DATA_PAYLOAD_OFFSET,
        )
        if header.name == COMMENT_ATOM:
            tag[header.name] = Comment(text=value)
        else:
            tag[header.name] = value

    def _decode_value(self, data: MediaFileReader, data_type: DataType, start: int, length: int) -> Any:
        if data_type is DataType.TEXT:
            return str(data.get_string_with_charset_at(start, length, "utf-8"))
        if data_type is DataType.UINT8:
            if length >= 2:
                return data.get_short_at(start, True)
            # Flags such as cpil carry a single byte
            return int.from_bytes(data.get_bytes_at(start, length), "big")
        if data_type in (DataType.JPEG, DataType.PNG):
            return Picture(format=f"image/{data_type.value}", data=data.get_bytes_at(start, length))
        raise ParseError(f"No decoder for data type {data_type}")
