"""Shared fixtures: synthetic M4A files and instrumented data sources."""

import os
import struct
import sys
from pathlib import Path

import pytest

# Add parent dir to path so mp4tags is importable as a package
sys.path.insert(0, str(Path(__file__).parent.parent))

from mp4tags.errors import LoadError
from mp4tags.models.types import ByteRange, LoadCallbacks
from mp4tags.sources.base import ChunkedFileReader


def atom(name: str, payload: bytes = b"") -> bytes:
    """Build an atom: big-endian size, FourCC, payload."""
    return struct.pack(">I", 8 + len(payload)) + name.encode("iso-8859-1") + payload


def container(name: str, *children: bytes) -> bytes:
    """Build a container atom; "meta" gets its 4-byte next_item_id."""
    payload = b"".join(children)
    if name == "meta":
        payload = b"\x00\x00\x00\x00" + payload
    return atom(name, payload)


def data_atom(type_class: int, value: bytes) -> bytes:
    """Build the "data" atom of an item: version, type class, locale, value."""
    return atom("data", b"\x00" + type_class.to_bytes(3, "big") + b"\x00\x00\x00\x00" + value)


def item(name: str, type_class: int, value: bytes) -> bytes:
    return atom(name, data_atom(type_class, value))


def text_item(name: str, text: str) -> bytes:
    return item(name, 1, text.encode("utf-8"))


def track_item(track: int, count: int) -> bytes:
    return item("trkn", 0, struct.pack(">HHHH", 0, track, count, 0))


def ftyp(brand: bytes = b"M4A ") -> bytes:
    return atom("ftyp", brand + b"\x00\x00\x02\x00" + b"M4A mp42isom")


def m4a_file(*items: bytes, trailing: bytes | None = None, brand: bytes = b"M4A ") -> bytes:
    """A fast-start style file: ftyp, moov (with the item list), then mdat."""
    moov = container(
        "moov",
        atom("mvhd", b"\x00" * 100),
        atom("trak", b"\x11" * 300),
        container(
            "udta",
            container(
                "meta",
                atom("hdlr", b"\x00" * 8 + b"mdirappl" + b"\x00" * 9),
                container("ilst", *items),
            ),
        ),
    )
    if trailing is None:
        trailing = atom("mdat", b"\xaa" * 4096)
    return ftyp(brand) + moov + trailing


def find_atom(data: bytes, name: str, start: int = 0) -> int:
    """Offset of the first atom called `name` at or after `start`."""
    return data.index(name.encode("iso-8859-1"), start + 4) - 4


class RecordingFileReader(ChunkedFileReader):
    """In-memory source that only exposes bytes it was asked to load."""

    def __init__(self, location: bytes, config=None) -> None:
        super().__init__(location, config)
        self.requested: list[ByteRange] = []
        self.fetched: list[ByteRange] = []

    @classmethod
    def can_read_file(cls, location) -> bool:
        return isinstance(location, bytes)

    def load_range(self, byte_range: ByteRange, callbacks: LoadCallbacks) -> None:
        self.requested.append(byte_range)
        super().load_range(byte_range, callbacks)

    def _fetch_size(self) -> int:
        return len(self._location)

    def _fetch_range(self, byte_range: ByteRange) -> bytes:
        self.fetched.append(byte_range)
        return self._location[byte_range.start:byte_range.end + 1]

    def is_loaded(self, offset: int) -> bool:
        return self._file_data.has_data_range(offset, offset)


class FailingFileReader(RecordingFileReader):
    """Source whose fetches start failing after `fail_after` successful ones."""

    def __init__(self, location: bytes, fail_after: int) -> None:
        super().__init__(location)
        self._fail_after = fail_after

    def _fetch_range(self, byte_range: ByteRange) -> bytes:
        if len(self.fetched) >= self._fail_after:
            raise LoadError(f"connection reset while loading {byte_range.start}-{byte_range.end}")
        return super()._fetch_range(byte_range)


class CallbackRecorder:
    """Collects callback invocations."""

    def __init__(self) -> None:
        self.successes: list = []
        self.errors: list = []

    def on_success(self, *args) -> None:
        self.successes.append(args[0] if args else None)

    def on_error(self, error) -> None:
        self.errors.append(error)

    @property
    def load_callbacks(self) -> LoadCallbacks:
        return LoadCallbacks(on_success=self.on_success, on_error=self.on_error)


def init_reader(reader):
    """Run init() on a synchronous source and return it."""
    recorder = CallbackRecorder()
    reader.init(recorder.load_callbacks)
    assert not recorder.errors
    return reader


@pytest.fixture
def recorder():
    return CallbackRecorder()


@pytest.fixture
def sample_file():
    """An M4A file with a handful of common tags."""
    return m4a_file(
        text_item("©nam", "Song"),
        text_item("©ART", "Artist"),
        text_item("©alb", "Album"),
        track_item(5, 12),
        text_item("©cmt", "hello"),
        item("tmpo", 21, b"\x00\x78"),
        item("covr", 13, b"\xff\xd8\xff\xe0fakejpeg"),
    )


@pytest.fixture
def clean_env(monkeypatch):
    """Hide MP4TAGS_* variables and keep .env loading out of os.environ."""
    environ = {k: v for k, v in os.environ.items() if not k.startswith("MP4TAGS_")}
    monkeypatch.setattr(os, "environ", environ)
    return environ
