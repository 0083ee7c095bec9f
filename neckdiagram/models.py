"""Document model of a neck diagram project.

A project (``ProjectData``) owns its tabs and diagrams; a diagram owns its
notes and config. All classes are frozen: edits build new values with
``dataclasses.replace`` so a snapshot handed to the persistence layer never
changes underneath it.

Every class reads and writes the camelCase JSON shape of persisted documents.
``from_json`` is tolerant: missing or ill-typed fields get defaults instead of
raising, and structural repairs are left to ``neckdiagram.project``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, unique
from typing import Any, Dict, List, Mapping, Optional

from neckdiagram import constants
from neckdiagram.config import DEFAULT_NECK_CONFIG, NeckConfig, migrate_config
from neckdiagram.wire import (
    as_mapping,
    get_int,
    get_list,
    get_number,
    get_str,
    put_optional,
)


@unique
class LabelMode(Enum):
    """What text is drawn inside a note."""

    Key = "key"  # Note name, e.g. F#
    Interval = "interval"  # Interval above the root, e.g. b3
    Picking = "picking"  # Picking direction, D or U

    @staticmethod
    def parse(value: Any) -> Optional[LabelMode]:
        """Parse a wire value, None when unknown."""
        for mode in LabelMode:
            if mode.value == value:
                return mode
        return None


@unique
class Picking(Enum):
    """Picking direction of a note."""

    Down = "D"
    Up = "U"

    @staticmethod
    def parse(value: Any) -> Optional[Picking]:
        """Parse a wire value, None when unknown."""
        for picking in Picking:
            if picking.value == value:
                return picking
        return None


@unique
class LayoutMode(Enum):
    """Whether a diagram takes part in the tiling grid."""

    Grid = "grid"  # Placed and repaired by the tiler
    Float = "float"  # Placed freely, an obstacle for the tiler

    @staticmethod
    def parse(value: Any) -> Optional[LayoutMode]:
        """Parse a wire value, None when unknown."""
        for mode in LayoutMode:
            if mode.value == value:
                return mode
        return None


@dataclass(frozen=True)
class Note:
    """A toggled cell of a diagram.

    ``fret`` is -1 for the open string and 0..frets-1 for fretted cells,
    where fret value 0 is the first semitone above the open string.
    """

    id: str
    string_index: int
    """Index into the tuning (0 is drawn as the bottom row)."""
    fret: int
    label: Optional[str] = None
    """Free-text label carried through from older documents."""
    label_mode: Optional[LabelMode] = None
    """Per-note override of the diagram label mode."""
    picking: Optional[Picking] = None

    @property
    def key(self) -> tuple[int, int]:
        """The (string_index, fret) identity of the cell."""
        return (self.string_index, self.fret)

    def to_json(self) -> Dict[str, Any]:
        """Serialize to the wire shape."""
        out: Dict[str, Any] = {
            "id": self.id,
            "stringIndex": self.string_index,
            "fret": self.fret,
        }
        put_optional(out, "label", self.label)
        put_optional(
            out, "labelMode", self.label_mode.value if self.label_mode else None
        )
        put_optional(out, "picking", self.picking.value if self.picking else None)
        return out

    @staticmethod
    def from_json(raw: Any) -> Optional[Note]:
        """Read a note, None if it has no usable cell coordinates.

        Args:
            raw: The JSON value.

        Returns:
            The note, or None when ``stringIndex`` or ``fret`` is not an integer.
        """
        obj = as_mapping(raw)
        if obj is None:
            return None
        string_index = get_int(obj, "stringIndex", -1)
        fret = get_int(obj, "fret", -2)
        if string_index < 0 or fret < -1:
            return None
        return Note(
            id=get_str(obj, "id") or "",
            string_index=string_index,
            fret=fret,
            label=get_str(obj, "label"),
            label_mode=LabelMode.parse(obj.get("labelMode")),
            picking=Picking.parse(obj.get("picking")),
        )


def notes_from_json(raw: Any) -> List[Note]:
    """Read a list of notes, dropping entries that are not notes."""
    if not isinstance(raw, list):
        return []
    notes: List[Note] = []
    for item in raw:
        note = Note.from_json(item)
        if note is None:
            logging.debug("dropping malformed note: %r", item)
        else:
            notes.append(note)
    return notes


@dataclass(frozen=True)
class NeckDiagram:
    """One fretboard tile on the canvas."""

    id: str
    name: str
    x: float
    y: float
    width: float
    height: float
    config: NeckConfig
    notes: List[Note] = field(default_factory=list)
    label_mode: LabelMode = LabelMode.Key
    """Default label mode for the diagram's notes."""
    rotation: float = 0
    layout_mode: Optional[LayoutMode] = None
    """None in documents written before layout modes existed."""
    tab_id: Optional[str] = None
    key_id: Optional[str] = None
    scale_id: Optional[str] = None
    position_id: Optional[str] = None

    @property
    def is_grid(self) -> bool:
        """Whether the tiler manages this diagram (anything but float)."""
        return self.layout_mode != LayoutMode.Float

    def to_json(self) -> Dict[str, Any]:
        """Serialize to the wire shape."""
        out: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "rotation": self.rotation,
        }
        put_optional(
            out, "layoutMode", self.layout_mode.value if self.layout_mode else None
        )
        put_optional(out, "tabId", self.tab_id)
        put_optional(out, "keyId", self.key_id)
        put_optional(out, "scaleId", self.scale_id)
        put_optional(out, "positionId", self.position_id)
        out["config"] = self.config.to_json()
        out["notes"] = [note.to_json() for note in self.notes]
        out["labelMode"] = self.label_mode.value
        return out

    @staticmethod
    def from_json(raw: Mapping[str, Any]) -> NeckDiagram:
        """Read a diagram, filling defaults for anything missing.

        The id is left empty when absent; the normalizer assigns one.

        Args:
            raw: The JSON object.

        Returns:
            The diagram.
        """
        config_raw = as_mapping(raw.get("config"))
        return NeckDiagram(
            id=get_str(raw, "id") or "",
            name=get_str(raw, "name") or constants.DEFAULT_DIAGRAM_NAME,
            x=get_number(raw, "x", 0),
            y=get_number(raw, "y", 0),
            width=get_number(raw, "width", constants.DEFAULT_DIAGRAM_WIDTH),
            height=get_number(raw, "height", constants.DEFAULT_DIAGRAM_HEIGHT),
            rotation=get_number(raw, "rotation", 0),
            layout_mode=LayoutMode.parse(raw.get("layoutMode")),
            tab_id=get_str(raw, "tabId"),
            key_id=get_str(raw, "keyId"),
            scale_id=get_str(raw, "scaleId"),
            position_id=get_str(raw, "positionId"),
            config=migrate_config(config_raw, DEFAULT_NECK_CONFIG),
            notes=notes_from_json(raw.get("notes")),
            label_mode=LabelMode.parse(raw.get("labelMode")) or LabelMode.Key,
        )


@dataclass(frozen=True)
class ProjectTab:
    """A named page of diagrams."""

    id: str
    name: str

    def to_json(self) -> Dict[str, Any]:
        """Serialize to the wire shape."""
        return {"id": self.id, "name": self.name}

    @staticmethod
    def from_json(raw: Any) -> Optional[ProjectTab]:
        """Read a tab, None when it has no id."""
        obj = as_mapping(raw)
        if obj is None:
            return None
        tab_id = get_str(obj, "id")
        if not tab_id:
            return None
        return ProjectTab(id=tab_id, name=get_str(obj, "name") or "")


@dataclass(frozen=True)
class ProjectData:
    """The full editable document."""

    diagrams: List[NeckDiagram] = field(default_factory=list)
    tabs: List[ProjectTab] = field(default_factory=list)
    active_tab_id: Optional[str] = None
    selected_diagram_id: Optional[str] = None
    key_id: Optional[str] = None
    scale_id: Optional[str] = None
    position_id: Optional[str] = None
    search_query: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def find_diagram(self, diagram_id: Optional[str]) -> Optional[NeckDiagram]:
        """Look up a diagram by id."""
        for diagram in self.diagrams:
            if diagram.id == diagram_id:
                return diagram
        return None

    def find_tab(self, tab_id: Optional[str]) -> Optional[ProjectTab]:
        """Look up a tab by id."""
        for tab in self.tabs:
            if tab.id == tab_id:
                return tab
        return None

    def diagrams_in_tab(self, tab_id: Optional[str]) -> List[NeckDiagram]:
        """Diagrams that belong to a tab, in document order."""
        return [diagram for diagram in self.diagrams if diagram.tab_id == tab_id]

    def to_json(self) -> Dict[str, Any]:
        """Serialize to the wire shape."""
        out: Dict[str, Any] = {
            "diagrams": [diagram.to_json() for diagram in self.diagrams],
            "tabs": [tab.to_json() for tab in self.tabs],
        }
        put_optional(out, "activeTabId", self.active_tab_id)
        put_optional(out, "selectedDiagramId", self.selected_diagram_id)
        put_optional(out, "keyId", self.key_id)
        put_optional(out, "scaleId", self.scale_id)
        put_optional(out, "positionId", self.position_id)
        put_optional(out, "searchQuery", self.search_query)
        put_optional(out, "createdAt", self.created_at)
        put_optional(out, "updatedAt", self.updated_at)
        return out

    @staticmethod
    def from_json(raw: Mapping[str, Any]) -> ProjectData:
        """Read a project document without repairing it.

        Args:
            raw: The JSON object.

        Returns:
            The project; run it through ``normalize_project_data`` before use.
        """
        diagrams_raw = get_list(raw, "diagrams") or []
        tabs_raw = get_list(raw, "tabs") or []
        tabs = [tab for tab in (ProjectTab.from_json(t) for t in tabs_raw) if tab]
        return ProjectData(
            diagrams=[
                NeckDiagram.from_json(obj)
                for obj in (as_mapping(d) for d in diagrams_raw)
                if obj is not None
            ],
            tabs=tabs,
            active_tab_id=get_str(raw, "activeTabId"),
            selected_diagram_id=get_str(raw, "selectedDiagramId"),
            key_id=get_str(raw, "keyId"),
            scale_id=get_str(raw, "scaleId"),
            position_id=get_str(raw, "positionId"),
            search_query=get_str(raw, "searchQuery"),
            created_at=get_str(raw, "createdAt") or None,
            updated_at=get_str(raw, "updatedAt") or None,
        )


@dataclass(frozen=True)
class ProjectRecord:
    """A project as stored by the persistence layer."""

    id: str
    title: str
    data: ProjectData
    created_at: str
    updated_at: str
    last_opened_at: str

    def to_json(self) -> Dict[str, Any]:
        """Serialize to the wire shape."""
        return {
            "id": self.id,
            "title": self.title,
            "data": self.data.to_json(),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "lastOpenedAt": self.last_opened_at,
        }

    @staticmethod
    def from_json(raw: Any) -> Optional[ProjectRecord]:
        """Read a stored record, None when it has no project data."""
        obj = as_mapping(raw)
        if obj is None:
            return None
        data = as_mapping(obj.get("data"))
        if data is None or get_list(data, "diagrams") is None:
            return None
        created_at = get_str(obj, "createdAt") or ""
        return ProjectRecord(
            id=get_str(obj, "id") or "",
            title=get_str(obj, "title") or constants.DEFAULT_PROJECT_TITLE,
            data=ProjectData.from_json(data),
            created_at=created_at,
            updated_at=get_str(obj, "updatedAt") or created_at,
            last_opened_at=get_str(obj, "lastOpenedAt") or created_at,
        )
