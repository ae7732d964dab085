"""Base class for tag format readers."""

import logging
from typing import Any

from ..errors import ParseError
from ..models.tags import TagResult
from ..models.types import ByteRange, LoadCallbacks, ReadCallbacks
from ..sources.base import MediaFileReader

logger = logging.getLogger(__name__)


class MediaTagReader:
    """Reads one tag format from a media file in two phases.

    `_load_data` makes every byte range the format needs readable, then
    `_parse_data` decodes them synchronously into a raw tag mapping.
    `read` runs both and renames raw tag ids to semantic field names.
    """

    tag_type = ""

    def __init__(self, media_file_reader: MediaFileReader) -> None:
        self._media_file_reader = media_file_reader
        self._tags: list[str] | None = None

    @classmethod
    def get_tag_identifier_byte_range(cls) -> ByteRange:
        """The bytes `can_read_tag_format` needs to see."""
        raise NotImplementedError

    @classmethod
    def can_read_tag_format(cls, tag_identifier: bytes) -> bool:
        raise NotImplementedError

    @classmethod
    def get_shortcuts(cls) -> dict[str, list[str]]:
        """Semantic field name -> raw tag ids carrying it."""
        return {}

    def set_tags_to_read(self, tags: list[str] | None) -> "MediaTagReader":
        """Restrict the result to these fields (semantic names or raw ids)."""
        self._tags = list(tags) if tags else None
        return self

    def read(self, callbacks: ReadCallbacks) -> None:
        def on_loaded() -> None:
            try:
                raw = self._parse_data(self._media_file_reader, self._expand_shortcut_tags(self._tags))
            except ParseError as e:
                callbacks.on_error(e)
                return
            except Exception as e:
                logger.debug(f"Could not parse tags of {self._media_file_reader.location}: {e}")
                callbacks.on_error(
                    ParseError(
                        f"Could not parse {self.tag_type} tags: {e}",
                        details={"original_error": e},
                    )
                )
                return
            callbacks.on_success(self._build_result(raw))

        self._load_data(
            self._media_file_reader,
            LoadCallbacks(on_success=on_loaded, on_error=callbacks.on_error),
        )

    def _load_data(self, media_file_reader: MediaFileReader, callbacks: LoadCallbacks) -> None:
        raise NotImplementedError

    def _parse_data(self, data: MediaFileReader, tags: list[str] | None) -> dict[str, Any]:
        raise NotImplementedError

    def _expand_shortcut_tags(self, tags: list[str] | None) -> list[str] | None:
        """Replace semantic field names with the raw ids behind them."""
        if not tags:
            return None

        shortcuts = self.get_shortcuts()
        expanded: list[str] = []
        for tag in tags:
            for raw_id in shortcuts.get(tag, [tag]):
                if raw_id not in expanded:
                    expanded.append(raw_id)
        return expanded

    def _build_result(self, raw: dict[str, Any]) -> TagResult:
        field_names = {
            raw_id: name
            for name, raw_ids in self.get_shortcuts().items()
            for raw_id in raw_ids
        }
        wanted = self._expand_shortcut_tags(self._tags)
        if wanted is not None:
            raw = {k: v for k, v in raw.items() if k in wanted or self._is_companion(k, wanted)}

        tags: dict[str, Any] = {}
        for raw_id, value in raw.items():
            name = field_names.get(raw_id, raw_id)
            # First occurrence in file order wins for shared fields
            if name not in tags:
                tags[name] = value

        return TagResult(type=self.tag_type, tags=tags, raw=raw)

    def _is_companion(self, raw_id: str, wanted: list[str]) -> bool:
        """Raw entries kept alongside a wanted id (e.g. a track total)."""
        return False
