"""Atom-tree shape shared by the MP4 loader and decoder.

Both passes walk the same chain of atoms and must agree on which atoms are
containers, where a container's children start, and which path holds the
iTunes metadata items. Everything they share lives here.
"""

from dataclasses import dataclass
from enum import Enum

from ..sources.base import MediaFileReader

# size (uint32) + name (FourCC)
ATOM_HEADER_SIZE = 8

CONTAINER_ATOMS = frozenset({"moov", "udta", "meta", "ilst"})

# "meta" is a full box: version/flags (next_item_id) precede its children
META_ATOM = "meta"
META_EXTRA_HEADER_SIZE = 4

METADATA_PATH = "moov.udta.meta.ilst"

# Freeform "----" items are recognized but never read
UNSUPPORTED_ATOMS = frozenset({"----"})

TRACK_ATOM = "trkn"
TRACK_COUNT_KEY = "count"
COMMENT_ATOM = "©cmt"

# Offsets inside an item atom, relative to its header:
#   0  item size, 4 item name, 8 "data" size, 12 "data" name,
#   16 version (1 byte), 17 flags / type class (3 bytes), 20 locale (4 bytes)
DATA_TYPE_CLASS_OFFSET = 16 + 1
TRACK_NUMBER_OFFSET = 16 + 11
TRACK_COUNT_OFFSET = 16 + 13
DATA_PAYLOAD_OFFSET = 16 + 4 + 4


class DataType(Enum):
    """How the payload of a "data" atom is encoded."""

    UINT8 = "uint8"
    TEXT = "text"
    JPEG = "jpeg"
    PNG = "png"


# Well-known type class -> payload encoding
TYPES: dict[int, DataType] = {
    0: DataType.UINT8,
    1: DataType.TEXT,
    13: DataType.JPEG,
    14: DataType.PNG,
    21: DataType.UINT8,
}

# Item FourCC -> semantic field name
ATOMS: dict[str, str] = {
    "©alb": "album",
    "©art": "artist",
    "©ART": "artist",
    "aART": "artist",
    "©day": "year",
    "©nam": "title",
    "©gen": "genre",
    "trkn": "track",
    "©wrt": "composer",
    "©too": "encoder",
    "cprt": "copyright",
    "covr": "picture",
    "©grp": "grouping",
    "keyw": "keyword",
    "©lyr": "lyrics",
    "©cmt": "comment",
    "tmpo": "tempo",
    "cpil": "compilation",
    "disk": "disc",
}


@dataclass(frozen=True)
class AtomHeader:
    """Size and name of the atom starting at `offset`."""

    offset: int
    size: int
    name: str

    @property
    def end(self) -> int:
        """Offset of the next sibling."""
        return self.offset + self.size

    @property
    def is_container(self) -> bool:
        return is_container_atom(self.name)

    @property
    def children_offset(self) -> int:
        """Where the first child of a container starts."""
        offset = self.offset + ATOM_HEADER_SIZE
        if self.name == META_ATOM:
            offset += META_EXTRA_HEADER_SIZE
        return offset


def read_atom_header(data: MediaFileReader, offset: int) -> AtomHeader | None:
    """Read the header at `offset`.

    Returns None when there is no usable atom there: not enough bytes left
    for a header, or a size of zero. Either case ends the walk.
    """
    if offset + ATOM_HEADER_SIZE > data.get_size():
        return None
    size = data.get_long_at(offset, True)
    if size == 0:
        return None
    return AtomHeader(offset, size, data.get_string_at(offset + 4, 4))


def is_container_atom(name: str) -> bool:
    return name in CONTAINER_ATOMS


def can_read_atom(name: str) -> bool:
    return name not in UNSUPPORTED_ATOMS


def child_path(parent_path: str, name: str) -> str:
    """Extend a dotted atom path: ("moov.udta", "meta") -> "moov.udta.meta"."""
    return f"{parent_path}.{name}" if parent_path else name


def is_metadata_path(path: str) -> bool:
    return path == METADATA_PATH
