"""Theory library: keys, scales, modes and positions.

Diagrams and projects refer to library items by id. Lookups of unknown ids
return None rather than raising, so a document referring to items from a
different library still loads.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum, unique
from typing import Any, Dict, Iterable, List, Optional

from neckdiagram.pitch import NOTE_NAMES
from neckdiagram.wire import as_mapping, get_list, get_str


@unique
class LibraryItemType(Enum):
    """Kinds of library items."""

    Scale = "scale"
    Mode = "mode"
    Shape = "shape"
    Position = "position"
    Key = "key"

    @staticmethod
    def parse(value: Any) -> Optional[LibraryItemType]:
        """Parse a wire value, None when unknown."""
        for item_type in LibraryItemType:
            if item_type.value == value:
                return item_type
        return None

    @property
    def is_scale_like(self) -> bool:
        """Scales and modes both carry intervals."""
        return self in (LibraryItemType.Scale, LibraryItemType.Mode)


@dataclass(frozen=True)
class LibraryItem:
    """A named piece of theory reference data."""

    id: str
    type: LibraryItemType
    name: str
    intervals: Optional[List[int]] = None
    """Semitone offsets from the root (scales and modes only)."""
    description: Optional[str] = None

    def to_json(self) -> Dict[str, Any]:
        """Serialize to the wire shape."""
        return {
            "id": self.id,
            "type": self.type.value,
            "name": self.name,
            "intervals": self.intervals,
            "description": self.description,
        }

    @staticmethod
    def from_json(raw: Any) -> Optional[LibraryItem]:
        """Read an item, None when the id, type or name is missing."""
        obj = as_mapping(raw)
        if obj is None:
            return None
        item_id = get_str(obj, "id")
        item_type = LibraryItemType.parse(obj.get("type"))
        name = get_str(obj, "name")
        if not item_id or item_type is None or name is None:
            return None
        intervals = get_list(obj, "intervals")
        return LibraryItem(
            id=item_id,
            type=item_type,
            name=name,
            intervals=(
                [i for i in intervals if isinstance(i, int) and not isinstance(i, bool)]
                if intervals is not None
                else None
            ),
            description=get_str(obj, "description"),
        )


def slugify(value: str) -> str:
    """Lower-case a name and join its alphanumeric runs with dashes."""
    return re.sub(r"[^a-z0-9]+", "-", value.strip().lower()).strip("-")


def _seed(item_type: LibraryItemType, name: str, intervals: List[int]) -> LibraryItem:
    return LibraryItem(
        id=f"default:{item_type.value}:{slugify(name.replace('#', ' sharp'))}",
        type=item_type,
        name=name,
        intervals=intervals,
    )


_SCALE = LibraryItemType.Scale
_MODE = LibraryItemType.Mode
_POSITION = LibraryItemType.Position

DEFAULT_LIBRARY: List[LibraryItem] = [
    _seed(_SCALE, "Major (Ionian)", [0, 2, 4, 5, 7, 9, 11]),
    _seed(_SCALE, "Natural Minor", [0, 2, 3, 5, 7, 8, 10]),
    _seed(_SCALE, "Harmonic Minor", [0, 2, 3, 5, 7, 8, 11]),
    _seed(_SCALE, "Melodic Minor", [0, 2, 3, 5, 7, 9, 11]),
    _seed(_SCALE, "Major Pentatonic", [0, 2, 4, 7, 9]),
    _seed(_SCALE, "Minor Pentatonic", [0, 3, 5, 7, 10]),
    _seed(_SCALE, "Blues", [0, 3, 5, 6, 7, 10]),
    _seed(_MODE, "Dorian", [0, 2, 3, 5, 7, 9, 10]),
    _seed(_MODE, "Phrygian", [0, 1, 3, 5, 7, 8, 10]),
    _seed(_MODE, "Lydian", [0, 2, 4, 6, 7, 9, 11]),
    _seed(_MODE, "Mixolydian", [0, 2, 4, 5, 7, 9, 10]),
    _seed(_MODE, "Locrian", [0, 1, 3, 5, 6, 8, 10]),
    _seed(_POSITION, "Position 1", []),
    _seed(_POSITION, "Position 2", []),
    _seed(_POSITION, "Position 3", []),
    _seed(_POSITION, "Position 4", []),
    _seed(_POSITION, "Position 5", []),
    _seed(_POSITION, "1-12", []),
    _seed(_POSITION, "12-24", []),
    _seed(_POSITION, "Whole Neck", []),
    *(_seed(LibraryItemType.Key, name, []) for name in NOTE_NAMES),
]
"""Library seeded into a fresh installation."""


class Library:
    """Index over library items."""

    def __init__(self, items: Iterable[LibraryItem] = DEFAULT_LIBRARY) -> None:
        """Initialize the library.

        Args:
            items: The items to index; later items replace earlier ones with
                the same id.
        """
        self._items: Dict[str, LibraryItem] = {}
        for item in items:
            self._items[item.id] = item

    def __len__(self) -> int:
        return len(self._items)

    def get(self, item_id: Optional[str]) -> Optional[LibraryItem]:
        """Look up an item by id."""
        if item_id is None:
            return None
        return self._items.get(item_id)

    def add(self, item: LibraryItem) -> None:
        """Register an item, e.g. one selected from a remote search."""
        self._items[item.id] = item

    def by_type(self, item_type: LibraryItemType) -> List[LibraryItem]:
        """Items of one type in registration order."""
        return [item for item in self._items.values() if item.type == item_type]

    def search(
        self, query: str = "", item_type: Optional[LibraryItemType] = None
    ) -> List[LibraryItem]:
        """Find items by case-insensitive name substring.

        Args:
            query: Substring to look for; empty matches everything.
            item_type: Restrict to one type.

        Returns:
            Matching items sorted by name.
        """
        needle = query.strip().lower()
        found = [
            item
            for item in self._items.values()
            if (item_type is None or item.type == item_type)
            and needle in item.name.lower()
        ]
        return sorted(found, key=lambda item: item.name)

    def find(self, name_or_id: str, item_type: LibraryItemType) -> Optional[LibraryItem]:
        """Look up an item of a type by id or by exact (case-insensitive) name."""
        item = self.get(name_or_id)
        if item is not None and item.type == item_type:
            return item
        wanted = name_or_id.strip().lower()
        for candidate in self.by_type(item_type):
            if candidate.name.lower() == wanted:
                return candidate
        return None

    def resolve_name(self, item_id: Optional[str]) -> Optional[str]:
        """Name of an item, None for unknown ids."""
        item = self.get(item_id)
        return item.name if item is not None else None

    def resolve_intervals(self, item_id: Optional[str]) -> Optional[List[int]]:
        """Intervals of an item, None for unknown ids or items without intervals."""
        item = self.get(item_id)
        return item.intervals if item is not None else None

    def theory_name(
        self,
        key_id: Optional[str],
        scale_id: Optional[str],
        position_id: Optional[str],
    ) -> str:
        """Display name of a key/scale/position selection, e.g. ``E - Blues``."""
        names = [self.resolve_name(i) for i in (key_id, scale_id, position_id)]
        return " - ".join(name for name in names if name)
