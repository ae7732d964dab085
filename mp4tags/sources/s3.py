"""S3-compatible object storage data source."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from ..config import S3Config
from ..errors import LoadError
from ..models.types import ByteRange
from .base import ChunkedFileReader

if TYPE_CHECKING:
    from ..config import Config


def parse_s3_location(location: str) -> tuple[str, str]:
    """Split "s3://bucket/some/key.m4a" into ("bucket", "some/key.m4a")."""
    parsed = urlparse(location)
    if parsed.scheme != "s3" or not parsed.netloc:
        raise ValueError(f"Not an S3 location: {location}")
    key = parsed.path.lstrip("/")
    if not key:
        raise ValueError(f"S3 location has no object key: {location}")
    return parsed.netloc, key


class S3FileReader(ChunkedFileReader):
    """Reads byte ranges of an object with ranged GetObject calls."""

    def __init__(self, location: str, config: Config | None = None, client=None) -> None:
        super().__init__(location, config)
        self._s3: S3Config = config.s3 if config else S3Config()
        self._bucket, self._key = parse_s3_location(location)
        self._client = client

    @classmethod
    def can_read_file(cls, location: Any) -> bool:
        return isinstance(location, str) and location.lower().startswith("s3://")

    @property
    def client(self):
        """Lazy-initialize the S3 client."""
        if self._client is None:
            boto_config = BotoConfig(
                connect_timeout=self._s3.connect_timeout,
                read_timeout=self._s3.read_timeout,
                retries={"max_attempts": self._s3.max_attempts, "mode": "adaptive"},
            )
            self._client = boto3.client(
                "s3",
                region_name=self._s3.region,
                endpoint_url=self._s3.endpoint,
                aws_access_key_id=self._s3.key,
                aws_secret_access_key=self._s3.secret,
                config=boto_config,
            )
        return self._client

    def _fetch_size(self) -> int:
        try:
            response = self.client.head_object(Bucket=self._bucket, Key=self._key)
        except (ClientError, BotoCoreError) as e:
            raise LoadError(
                f"Could not get size of {self._location}: {e}",
                details={"bucket": self._bucket, "key": self._key, "original_error": e},
            ) from e
        return int(response["ContentLength"])

    def _fetch_range(self, byte_range: ByteRange) -> bytes:
        try:
            response = self.client.get_object(
                Bucket=self._bucket,
                Key=self._key,
                Range=f"bytes={byte_range.start}-{byte_range.end}",
            )
            data = response["Body"].read()
        except (ClientError, BotoCoreError) as e:
            raise LoadError(
                f"Could not load bytes {byte_range.start}-{byte_range.end} of {self._location}: {e}",
                details={"bucket": self._bucket, "key": self._key, "range": byte_range, "original_error": e},
            ) from e

        if len(data) < byte_range.length:
            raise LoadError(
                f"Short response for bytes {byte_range.start}-{byte_range.end} of {self._location}",
                details={"bucket": self._bucket, "key": self._key, "range": byte_range},
            )
        return data
