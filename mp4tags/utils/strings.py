"""Charset decoding for strings embedded in media files."""

from dataclasses import dataclass

UTF8_BOM = b"\xef\xbb\xbf"


@dataclass
class DecodedString:
    """A decoded string and the number of bytes it consumed."""

    text: str
    bytes_read_count: int

    def __str__(self) -> str:
        return self.text


def read_utf8_string(data: bytes, max_bytes: int | None = None) -> DecodedString:
    """Decode UTF-8 up to a NUL byte, skipping a leading BOM."""
    if max_bytes is None:
        max_bytes = len(data)
    data = bytes(data[:max_bytes])

    offset = len(UTF8_BOM) if data.startswith(UTF8_BOM) else 0
    end = data.find(b"\x00", offset)
    if end == -1:
        return DecodedString(data[offset:].decode("utf-8", errors="replace"), len(data))
    return DecodedString(data[offset:end].decode("utf-8", errors="replace"), end + 1)


def decode_string(data: bytes, charset: str) -> DecodedString:
    """Decode `data` using a charset found in tag payloads.

    MP4 text items are always UTF-8.
    """
    if charset.lower() in ("utf-8", "utf8"):
        return read_utf8_string(data)
    raise ValueError(f"Unsupported charset: {charset}")
