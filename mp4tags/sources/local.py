"""Local filesystem data source."""

import os
from pathlib import Path
from typing import Any

from ..errors import LoadError
from ..models.types import ByteRange
from .base import ChunkedFileReader


class LocalFileReader(ChunkedFileReader):
    """Reads byte ranges from a file on disk."""

    @classmethod
    def can_read_file(cls, location: Any) -> bool:
        if isinstance(location, Path):
            return True
        return isinstance(location, str) and "://" not in location

    @property
    def path(self) -> Path:
        return Path(self._location)

    def _fetch_size(self) -> int:
        try:
            return os.path.getsize(self.path)
        except OSError as e:
            raise LoadError(
                f"Could not stat {self.path}: {e}",
                details={"path": str(self.path), "original_error": e},
            ) from e

    def _fetch_range(self, byte_range: ByteRange) -> bytes:
        try:
            with open(self.path, "rb") as f:
                f.seek(byte_range.start)
                data = f.read(byte_range.length)
        except OSError as e:
            raise LoadError(
                f"Could not read {self.path}: {e}",
                details={"path": str(self.path), "original_error": e},
            ) from e

        if len(data) < byte_range.length:
            raise LoadError(
                f"Short read from {self.path}: wanted {byte_range.length} bytes "
                f"at {byte_range.start}, got {len(data)}",
                details={"path": str(self.path)},
            )
        return data
