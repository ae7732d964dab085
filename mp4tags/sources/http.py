"""HTTP(S) data source using range requests."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any

import requests

from ..config import HttpConfig
from ..errors import LoadError
from ..models.types import ByteRange
from .base import ChunkedFileReader

if TYPE_CHECKING:
    from ..config import Config

logger = logging.getLogger(__name__)

CONTENT_RANGE_RE = re.compile(r"bytes\s+\d+-\d+/(\d+)")


class HttpFileReader(ChunkedFileReader):
    """Reads byte ranges from a URL.

    The file size comes from a HEAD request, falling back to the total in
    the Content-Range of a one-byte ranged GET when the server omits
    Content-Length. Small requests are rounded up to the configured chunk
    size. A server that ignores Range and answers 200 hands over the whole
    file, which is then kept in full.
    """

    def __init__(
        self,
        location: str,
        config: Config | None = None,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(location, config)
        self._http: HttpConfig = config.http if config else HttpConfig()
        self._session = session

    @classmethod
    def can_read_file(cls, location: Any) -> bool:
        return isinstance(location, str) and location.lower().startswith(("http://", "https://"))

    @property
    def session(self) -> requests.Session:
        """Lazy-initialize the HTTP session."""
        if self._session is None:
            self._session = requests.Session()
            self._session.headers.update(self._http.headers)
        return self._session

    def _fetch_size(self) -> int:
        try:
            response = self.session.head(
                self._location, timeout=self._http.timeout, allow_redirects=True
            )
            response.raise_for_status()
            content_length = response.headers.get("Content-Length")
            if content_length is not None:
                return int(content_length)

            # No Content-Length on HEAD; ask for a single byte instead
            response = self.session.get(
                self._location,
                headers={"Range": "bytes=0-0"},
                timeout=self._http.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise LoadError(
                f"Could not get size of {self._location}: {e}",
                details={"url": self._location, "original_error": e},
            ) from e

        if response.status_code == 200:
            self._file_data.add_data(0, response.content)
            return len(response.content)

        match = CONTENT_RANGE_RE.match(response.headers.get("Content-Range", ""))
        if not match:
            raise LoadError(
                f"Server did not report a size for {self._location}",
                details={"url": self._location},
            )
        return int(match.group(1))

    def _expand_range(self, byte_range: ByteRange) -> ByteRange:
        chunk_size = self._http.chunk_size
        length = -(-byte_range.length // chunk_size) * chunk_size
        return ByteRange(byte_range.start, byte_range.start + length - 1)

    def _fetch_range(self, byte_range: ByteRange) -> bytes:
        try:
            response = self.session.get(
                self._location,
                headers={"Range": f"bytes={byte_range.start}-{byte_range.end}"},
                timeout=self._http.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise LoadError(
                f"Could not load bytes {byte_range.start}-{byte_range.end} of {self._location}: {e}",
                details={"url": self._location, "range": byte_range, "original_error": e},
            ) from e

        if response.status_code == 200:
            logger.debug(f"{self._location}: server ignored Range, got whole file")
            self._file_data.add_data(0, response.content)
            data = response.content[byte_range.start:byte_range.end + 1]
        else:
            data = response.content

        if len(data) < byte_range.length:
            raise LoadError(
                f"Short response for bytes {byte_range.start}-{byte_range.end} of {self._location}",
                details={"url": self._location, "range": byte_range},
            )
        return data
