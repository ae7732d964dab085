"""Tag format readers."""

from .base import MediaTagReader
from .mp4 import MP4TagReader

# Checked in order; the first reader recognizing the file wins
TAG_READERS: list[type[MediaTagReader]] = [MP4TagReader]

__all__ = ["MediaTagReader", "MP4TagReader", "TAG_READERS"]
