"""
Exception classes for mp4tags.

Exception Hierarchy:
    TagReaderError (base)
        LoadError - a byte range could not be fetched from the source
            RangeNotLoadedError - bytes were read before being loaded
        TagFormatError - no source or tag reader accepts the input
        ParseError - decoding the loaded bytes failed
    ConfigError - invalid configuration (also a ValueError)
"""


class TagReaderError(Exception):
    """
    Base exception for all tag reading errors.

    Attributes:
        type: Short machine-readable error kind ("loadData", "tagFormat", ...).
        message: Human-readable error description.
        details: Optional dictionary with additional context (offsets, URLs,
                 the wrapped exception under 'original_error').
    """

    type = "error"

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class LoadError(TagReaderError):
    """Raised when the data source fails to load a byte range."""

    type = "loadData"


class RangeNotLoadedError(LoadError):
    """Raised when reading an offset whose bytes were never loaded."""

    def __init__(self, offset: int, details: dict | None = None) -> None:
        super().__init__(f"Offset {offset} hasn't been loaded yet", details)
        self.offset = offset


class TagFormatError(TagReaderError):
    """Raised when no file reader or tag reader accepts the input."""

    type = "tagFormat"


class ParseError(TagReaderError):
    """Raised when decoding loaded data fails."""

    type = "parseData"


class ConfigError(ValueError):
    """Raised when configuration values are missing or invalid."""
