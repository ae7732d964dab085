"""Decoded tag values and read results."""

import base64
from dataclasses import dataclass, field
from typing import Any


@dataclass
class Picture:
    """Embedded artwork (the 'covr' atom)."""

    format: str  # "image/jpeg" or "image/png"
    data: bytes

    def to_dict(self, include_data: bool = False) -> dict:
        """Convert to JSON-serializable dictionary.

        Image bytes are only included (base64) when asked for.
        """
        result = {"format": self.format, "size": len(self.data)}
        if include_data:
            result["data"] = base64.b64encode(self.data).decode("ascii")
        return result


@dataclass
class Comment:
    """Comment tag ('©cmt'), stored wrapped rather than as a bare string."""

    text: str | None

    def to_dict(self) -> dict:
        return {"text": self.text}


@dataclass
class TagResult:
    """Tags read from one media file."""

    type: str
    tags: dict[str, Any] = field(default_factory=dict)  # semantic field -> value
    raw: dict[str, Any] = field(default_factory=dict)  # FourCC -> value

    def to_dict(self, include_pictures: bool = False) -> dict:
        """Convert to JSON-serializable dictionary."""
        return {
            "type": self.type,
            "tags": {k: _serialize(v, include_pictures) for k, v in self.tags.items()},
            "raw": {k: _serialize(v, include_pictures) for k, v in self.raw.items()},
        }


def _serialize(value: Any, include_pictures: bool) -> Any:
    if isinstance(value, Picture):
        return value.to_dict(include_data=include_pictures)
    if isinstance(value, Comment):
        return value.to_dict()
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    return value
