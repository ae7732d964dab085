"""Data sources for local, in-memory and remote media files."""

from .base import ArrayFileReader, ChunkedFileReader, MediaFileReader
from .chunks import ChunkedFileData
from .http import HttpFileReader
from .local import LocalFileReader
from .s3 import S3FileReader

# Checked in order; the first reader accepting a location wins
FILE_READERS: list[type[MediaFileReader]] = [
    ArrayFileReader,
    HttpFileReader,
    S3FileReader,
    LocalFileReader,
]

__all__ = [
    "ArrayFileReader",
    "ChunkedFileData",
    "ChunkedFileReader",
    "FILE_READERS",
    "HttpFileReader",
    "LocalFileReader",
    "MediaFileReader",
    "S3FileReader",
]
