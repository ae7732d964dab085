"""Tests for the data sources in mp4tags/sources/."""

import io
import re
from unittest.mock import Mock

import pytest
import requests
from botocore.exceptions import ClientError

from conftest import CallbackRecorder, init_reader, m4a_file, text_item
from mp4tags import read_tags
from mp4tags.config import Config, HttpConfig
from mp4tags.errors import LoadError, RangeNotLoadedError
from mp4tags.models.types import ByteRange
from mp4tags.sources import ArrayFileReader, HttpFileReader, LocalFileReader, S3FileReader
from mp4tags.sources.s3 import parse_s3_location


class TestAccessors:
    """Tests for the integer and string accessors."""

    @pytest.fixture
    def reader(self):
        return init_reader(ArrayFileReader(b"\x01\x02\x03\x04\xff\xfe\x80abc\x00"))

    def test_short(self, reader):
        assert reader.get_short_at(0, True) == 0x0102
        assert reader.get_short_at(0, False) == 0x0201

    def test_integer24(self, reader):
        assert reader.get_integer24_at(0, True) == 0x010203
        assert reader.get_integer24_at(0, False) == 0x030201

    def test_long(self, reader):
        assert reader.get_long_at(0, True) == 0x01020304
        assert reader.get_long_at(0, False) == 0x04030201
        assert reader.get_long_at(3, True) == 0x04FFFE80

    def test_bytes(self, reader):
        assert reader.get_byte_at(6) == 0x80
        assert reader.get_bytes_at(4, 3) == b"\xff\xfe\x80"

    def test_strings(self, reader):
        assert reader.get_string_at(7, 3) == "abc"
        assert str(reader.get_string_with_charset_at(7, 4, "utf-8")) == "abc"

    def test_out_of_range(self, reader):
        with pytest.raises(RangeNotLoadedError):
            reader.get_byte_at(11)

    def test_size_requires_init(self):
        with pytest.raises(LoadError):
            ArrayFileReader(b"abc").get_size()


class TestLocalFileReader:
    """Tests for LocalFileReader."""

    @pytest.fixture
    def path(self, tmp_path):
        path = tmp_path / "data.bin"
        path.write_bytes(bytes(range(256)) * 4)
        return path

    def test_can_read_file(self, path):
        assert LocalFileReader.can_read_file(path)
        assert LocalFileReader.can_read_file("song.m4a")
        assert not LocalFileReader.can_read_file("https://example.com/song.m4a")
        assert not LocalFileReader.can_read_file(b"bytes")

    def test_size(self, path):
        assert init_reader(LocalFileReader(path)).get_size() == 1024

    def test_loads_only_requested_range(self, path):
        reader = init_reader(LocalFileReader(path))
        recorder = CallbackRecorder()
        reader.load_range(ByteRange(10, 19), recorder.load_callbacks)

        assert recorder.successes == [None]
        assert reader.get_bytes_at(10, 10) == bytes(range(10, 20))
        with pytest.raises(RangeNotLoadedError):
            reader.get_byte_at(20)

    def test_range_clamped_to_file(self, path):
        reader = init_reader(LocalFileReader(path))
        recorder = CallbackRecorder()
        reader.load_range(ByteRange(1020, 2000), recorder.load_callbacks)

        assert recorder.errors == []
        assert reader.get_bytes_at(1020, 4) == bytes([252, 253, 254, 255])

    def test_missing_file(self, tmp_path):
        recorder = CallbackRecorder()
        LocalFileReader(tmp_path / "nope.m4a").init(recorder.load_callbacks)

        assert recorder.successes == []
        assert isinstance(recorder.errors[0], LoadError)
        assert "nope.m4a" in recorder.errors[0].details["path"]

    def test_init_is_idempotent(self, path):
        reader = init_reader(LocalFileReader(path))
        path.write_bytes(b"")
        assert init_reader(reader).get_size() == 1024


class FakeHttpServer:
    """Stands in for a requests.Session serving `data`."""

    def __init__(self, data: bytes, honor_ranges: bool = True, content_length: bool = True) -> None:
        self.data = data
        self.honor_ranges = honor_ranges
        self.content_length = content_length
        self.headers: dict = {}
        self.ranges: list[tuple[int, int]] = []
        self.error: Exception | None = None

    def _response(self, status_code: int, content: bytes = b"", headers: dict | None = None):
        response = Mock()
        response.status_code = status_code
        response.content = content
        response.headers = headers or {}
        response.raise_for_status = Mock()
        return response

    def head(self, url, **kwargs):
        headers = {"Content-Length": str(len(self.data))} if self.content_length else {}
        return self._response(200, headers=headers)

    def get(self, url, headers=None, **kwargs):
        if self.error:
            raise self.error
        match = re.match(r"bytes=(\d+)-(\d+)", (headers or {}).get("Range", ""))
        if not match or not self.honor_ranges:
            return self._response(200, self.data)

        start, end = int(match.group(1)), int(match.group(2))
        self.ranges.append((start, end))
        return self._response(
            206,
            self.data[start:end + 1],
            {"Content-Range": f"bytes {start}-{min(end, len(self.data) - 1)}/{len(self.data)}"},
        )


class TestHttpFileReader:
    """Tests for HttpFileReader."""

    URL = "https://example.com/music/song.m4a"

    @pytest.fixture
    def data(self):
        return bytes(range(256)) * 20

    def test_can_read_file(self):
        assert HttpFileReader.can_read_file(self.URL)
        assert HttpFileReader.can_read_file("HTTP://example.com/a.m4a")
        assert not HttpFileReader.can_read_file("s3://bucket/a.m4a")
        assert not HttpFileReader.can_read_file("/tmp/a.m4a")

    def test_size_from_head(self, data):
        reader = init_reader(HttpFileReader(self.URL, session=FakeHttpServer(data)))
        assert reader.get_size() == len(data)

    def test_size_from_content_range(self, data):
        """Without Content-Length the size comes from a one-byte GET."""
        server = FakeHttpServer(data, content_length=False)
        reader = init_reader(HttpFileReader(self.URL, session=server))

        assert reader.get_size() == len(data)
        assert server.ranges == [(0, 0)]

    def test_ranges_rounded_to_chunk_size(self, data):
        server = FakeHttpServer(data)
        config = Config(http=HttpConfig(chunk_size=512))
        reader = init_reader(HttpFileReader(self.URL, config=config, session=server))
        reader.load_range(ByteRange(100, 110), CallbackRecorder().load_callbacks)

        assert server.ranges == [(100, 611)]
        assert reader.get_byte_at(600) == data[600]

    def test_loaded_range_not_requested_again(self, data):
        server = FakeHttpServer(data)
        reader = init_reader(HttpFileReader(self.URL, session=server))
        reader.load_range(ByteRange(0, 10), CallbackRecorder().load_callbacks)
        reader.load_range(ByteRange(5, 500), CallbackRecorder().load_callbacks)

        assert server.ranges == [(0, 1023)]

    def test_server_ignoring_ranges(self, data):
        """A 200 reply stores the whole file."""
        server = FakeHttpServer(data, honor_ranges=False)
        reader = init_reader(HttpFileReader(self.URL, session=server))
        reader.load_range(ByteRange(0, 10), CallbackRecorder().load_callbacks)

        assert reader.get_bytes_at(4000, 10) == data[4000:4010]

    def test_request_error(self, data):
        server = FakeHttpServer(data)
        server.error = requests.ConnectionError("connection refused")
        reader = init_reader(HttpFileReader(self.URL, session=server))
        recorder = CallbackRecorder()
        reader.load_range(ByteRange(0, 10), recorder.load_callbacks)

        assert recorder.successes == []
        assert isinstance(recorder.errors[0], LoadError)
        assert recorder.errors[0].details["url"] == self.URL

    def test_http_error_status(self, data):
        server = FakeHttpServer(data)
        reader = init_reader(HttpFileReader(self.URL, session=server))

        failing = Mock()
        failing.raise_for_status.side_effect = requests.HTTPError("404 Client Error")
        server.get = Mock(return_value=failing)

        recorder = CallbackRecorder()
        reader.load_range(ByteRange(0, 10), recorder.load_callbacks)
        assert isinstance(recorder.errors[0], LoadError)

    def test_read_tags_over_http(self, monkeypatch):
        """Reading a URL fetches the tags without downloading the media data."""
        data = m4a_file(text_item("©nam", "Remote Song"), trailing=b"\x00\x00\x10\x08mdat" + b"\xaa" * 4096)
        server = FakeHttpServer(data)
        monkeypatch.setattr("mp4tags.sources.http.requests.Session", lambda: server)

        result = read_tags(self.URL)

        assert result.tags["title"] == "Remote Song"
        assert server.headers["User-Agent"] == "mp4tags/0.1"
        assert all(end < len(data) - 2048 for _, end in server.ranges)


def fake_s3_client(data: bytes) -> Mock:
    """Mock boto3 S3 client serving `data` for any key."""
    client = Mock()
    client.head_object.return_value = {"ContentLength": len(data)}

    def get_object(Bucket, Key, Range):
        start, end = map(int, re.match(r"bytes=(\d+)-(\d+)", Range).groups())
        return {"Body": io.BytesIO(data[start:end + 1])}

    client.get_object.side_effect = get_object
    return client


class TestS3FileReader:
    """Tests for S3FileReader."""

    LOCATION = "s3://music-bucket/albums/song.m4a"

    @pytest.fixture
    def data(self):
        return bytes(range(256)) * 4

    @pytest.fixture
    def client(self, data):
        return fake_s3_client(data)

    def test_parse_location(self):
        assert parse_s3_location(self.LOCATION) == ("music-bucket", "albums/song.m4a")

    @pytest.mark.parametrize("location", ["s3://bucket", "s3://bucket/", "https://bucket/key"])
    def test_parse_bad_location(self, location):
        with pytest.raises(ValueError):
            parse_s3_location(location)

    def test_can_read_file(self):
        assert S3FileReader.can_read_file(self.LOCATION)
        assert not S3FileReader.can_read_file("https://example.com/a.m4a")

    def test_size_and_range(self, client, data):
        reader = init_reader(S3FileReader(self.LOCATION, client=client))
        reader.load_range(ByteRange(16, 31), CallbackRecorder().load_callbacks)

        assert reader.get_size() == len(data)
        client.head_object.assert_called_once_with(Bucket="music-bucket", Key="albums/song.m4a")
        client.get_object.assert_called_once_with(
            Bucket="music-bucket", Key="albums/song.m4a", Range="bytes=16-31"
        )
        assert reader.get_bytes_at(16, 16) == data[16:32]

    def test_client_error(self, client):
        client.head_object.side_effect = ClientError(
            {"Error": {"Code": "NoSuchKey", "Message": "Not Found"}}, "HeadObject"
        )
        recorder = CallbackRecorder()
        S3FileReader(self.LOCATION, client=client).init(recorder.load_callbacks)

        assert isinstance(recorder.errors[0], LoadError)
        assert recorder.errors[0].details["key"] == "albums/song.m4a"

    def test_short_body(self, client):
        """A body shorter than the requested range is a load error."""
        client.get_object.side_effect = lambda **kwargs: {"Body": io.BytesIO(b"abc")}
        reader = init_reader(S3FileReader(self.LOCATION, client=client))
        recorder = CallbackRecorder()
        reader.load_range(ByteRange(0, 99), recorder.load_callbacks)

        assert isinstance(recorder.errors[0], LoadError)

    def test_read_tags_from_s3(self, monkeypatch):
        client = fake_s3_client(m4a_file(text_item("©alb", "Bucket Album")))
        monkeypatch.setattr("mp4tags.sources.s3.boto3.client", lambda *args, **kwargs: client)

        assert read_tags(self.LOCATION).tags["album"] == "Bucket Album"
