"""Project-level operations and structural repair.

Every function here takes a ``ProjectData`` snapshot and returns a new one;
nothing is mutated in place. ``normalize_project_data`` restores the
document invariants (a valid active tab, valid tab references, unique note
cells, current config fields) and is applied to everything loaded or
imported.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Callable, Dict, List, Mapping, Optional, Set, Union

from neckdiagram import constants
from neckdiagram.base import new_id, now_iso
from neckdiagram.config import (
    DEFAULT_NECK_CONFIG,
    CanvasSize,
    NeckConfig,
    migrate_config,
    patch_config,
)
from neckdiagram.geometry import clamp
from neckdiagram.library import Library, LibraryItem, LibraryItemType
from neckdiagram.models import (
    LabelMode,
    LayoutMode,
    NeckDiagram,
    Note,
    Picking,
    ProjectData,
    ProjectTab,
)
from neckdiagram.notes import build_scale_notes, normalize_notes, toggle_note
from neckdiagram.scale import get_position_preset
from neckdiagram.tiling import (
    DEFAULT_DIAGRAM_SIZE,
    Box,
    floating_position,
    repair_layout,
    suggest_tile,
)

DiagramUpdate = Callable[[NeckDiagram], NeckDiagram]


def create_default_tab(name: str = constants.DEFAULT_TAB_NAME) -> ProjectTab:
    """Create a tab with a fresh id."""
    return ProjectTab(id=new_id(), name=name)


def create_neck_diagram(**overrides: Any) -> NeckDiagram:
    """Create a diagram with default size, config and label mode.

    Args:
        **overrides: Field values replacing the defaults.

    Returns:
        The new diagram, with a fresh id unless one is given.
    """
    base = NeckDiagram(
        id=new_id(),
        name=constants.DEFAULT_DIAGRAM_NAME,
        x=60,
        y=80,
        width=DEFAULT_DIAGRAM_SIZE.width,
        height=DEFAULT_DIAGRAM_SIZE.height,
        rotation=0,
        layout_mode=LayoutMode.Grid,
        config=DEFAULT_NECK_CONFIG,
        notes=[],
        label_mode=LabelMode.Key,
    )
    return replace(base, **overrides)


def create_blank_project() -> ProjectData:
    """A project with one empty tab."""
    tab = create_default_tab()
    now = now_iso()
    return ProjectData(
        diagrams=[], tabs=[tab], active_tab_id=tab.id, created_at=now, updated_at=now
    )


def _notes(*cells: tuple[int, int] | tuple[int, int, Picking]) -> List[Note]:
    notes: List[Note] = []
    for cell in cells:
        picking = cell[2] if len(cell) > 2 else None
        notes.append(
            Note(id=new_id(), string_index=cell[0], fret=cell[1], picking=picking)
        )
    return notes


def create_demo_project() -> ProjectData:
    """A populated project showing the three label modes."""
    tab_id = new_id()
    now = now_iso()
    d, u = Picking.Down, Picking.Up
    diagrams = [
        create_neck_diagram(
            tab_id=tab_id,
            name="E Minor Pentatonic",
            x=120,
            y=120,
            label_mode=LabelMode.Interval,
            config=migrate_config({"strings": 6, "frets": 15, "showFretNumbers": True}),
            notes=_notes(
                (0, 3), (0, 5), (1, 3), (1, 5), (2, 2), (2, 5),
                (3, 2), (3, 4), (4, 3), (4, 5), (5, 3), (5, 5),
            ),
        ),
        create_neck_diagram(
            tab_id=tab_id,
            name="Dorian Flow",
            x=680,
            y=120,
            label_mode=LabelMode.Key,
            config=migrate_config(
                {
                    "strings": 7,
                    "frets": 17,
                    "tuning": list(constants.DEFAULT_TUNING_7),
                    "displayStandardTuning": True,
                    "showFretNumbers": True,
                    "fretNumberStyle": "roman",
                }
            ),
            notes=_notes(
                (0, -1), (1, -1), (2, 2), (2, 4), (3, 2), (3, 5),
                (4, 2), (4, 4), (5, 3), (5, 5), (6, 3), (6, 6),
            ),
        ),
        create_neck_diagram(
            tab_id=tab_id,
            name="Picking Drill",
            x=120,
            y=360,
            width=720,
            height=190,
            label_mode=LabelMode.Picking,
            config=migrate_config({"highlightRoot": False}),
            notes=_notes(
                (0, 0, d), (0, 2, u), (1, 0, d), (1, 3, u), (2, 2, d), (2, 4, u),
                (3, 2, d), (3, 5, u), (4, 3, d), (4, 5, u), (5, 3, d), (5, 6, u),
            ),
        ),
    ]
    return ProjectData(
        diagrams=diagrams,
        tabs=[ProjectTab(id=tab_id, name="Demo")],
        active_tab_id=tab_id,
        key_id="default:key:e",
        scale_id="default:scale:minor-pentatonic",
        position_id="default:position:position-1",
        created_at=now,
        updated_at=now,
    )


def normalize_config(config: NeckConfig) -> NeckConfig:
    """Run a config through the current migration step."""
    return migrate_config(config.to_json(), base=DEFAULT_NECK_CONFIG)


def clamp_diagram_width(width: float) -> float:
    return clamp(width, constants.MIN_DIAGRAM_WIDTH, constants.MAX_DIAGRAM_WIDTH)


def clamp_diagram_height(height: float) -> float:
    return clamp(height, constants.MIN_DIAGRAM_HEIGHT, constants.MAX_DIAGRAM_HEIGHT)


def _ensure_note_ids(notes: List[Note]) -> List[Note]:
    return [note if note.id else replace(note, id=new_id()) for note in notes]


def _needs_theory_migration(data: ProjectData) -> bool:
    if not (data.key_id or data.scale_id or data.position_id):
        return False
    return any(
        d.key_id is None and d.scale_id is None and d.position_id is None
        for d in data.diagrams
    )


def normalize_project_data(
    data: ProjectData,
    now: Optional[str] = None,
    fallback_tab_name: str = constants.DEFAULT_TAB_NAME,
) -> ProjectData:
    """Repair the structural invariants of a project.

    - at least one tab exists and the active tab is one of them;
    - every diagram has a unique id and belongs to an existing tab (the
      active tab otherwise) and has a layout mode (grid by default);
    - diagram sizes stay within the diagram size bounds;
    - configs carry only current fields, notes are unique per cell;
    - diagrams without any theory reference inherit the project's;
    - a selection that no longer resolves is cleared;
    - ``updated_at`` is stamped, ``created_at`` kept or defaulted.

    Args:
        data: The project to repair.
        now: Timestamp to stamp; the current time by default.
        fallback_tab_name: Name of the tab added to a project without tabs.

    Returns:
        The repaired project.
    """
    stamp = now or now_iso()
    tabs = [tab for tab in data.tabs if tab.id]
    if not tabs:
        logging.debug("project has no tabs, adding tab %r", fallback_tab_name)
        tabs = [create_default_tab(fallback_tab_name)]
    tab_ids = {tab.id for tab in tabs}
    active_tab_id = data.active_tab_id if data.active_tab_id in tab_ids else tabs[0].id
    inherit_theory = _needs_theory_migration(data)

    seen_ids: Set[str] = set()
    diagrams: List[NeckDiagram] = []
    for diagram in data.diagrams:
        diagram_id = diagram.id
        if not diagram_id or diagram_id in seen_ids:
            diagram_id = new_id()
        seen_ids.add(diagram_id)
        tab_id = diagram.tab_id if diagram.tab_id in tab_ids else active_tab_id
        if tab_id != diagram.tab_id:
            logging.debug("reassigning diagram %s to tab %s", diagram_id, tab_id)
        repaired = replace(
            diagram,
            id=diagram_id,
            tab_id=tab_id,
            layout_mode=diagram.layout_mode or LayoutMode.Grid,
            width=clamp_diagram_width(diagram.width),
            height=clamp_diagram_height(diagram.height),
            config=normalize_config(diagram.config),
            notes=_ensure_note_ids(normalize_notes(diagram.notes)),
        )
        if inherit_theory:
            repaired = replace(
                repaired,
                key_id=repaired.key_id if repaired.key_id is not None else data.key_id,
                scale_id=(
                    repaired.scale_id if repaired.scale_id is not None else data.scale_id
                ),
                position_id=(
                    repaired.position_id
                    if repaired.position_id is not None
                    else data.position_id
                ),
            )
        diagrams.append(repaired)

    selected = data.selected_diagram_id if data.selected_diagram_id in seen_ids else None
    return replace(
        data,
        diagrams=diagrams,
        tabs=tabs,
        active_tab_id=active_tab_id,
        selected_diagram_id=selected,
        created_at=data.created_at or stamp,
        updated_at=stamp,
    )


def normalize_imported_diagram(
    diagram: Union[NeckDiagram, Mapping[str, Any]],
    target_tab_id: str,
    existing_ids: Set[str],
) -> NeckDiagram:
    """Prepare a diagram from an import for insertion into a project.

    The id is replaced when it is blank or already taken, and the final id is
    added to ``existing_ids``. The diagram is moved to the target tab, gets a
    layout mode, a size within bounds, a config merged over the defaults and
    de-duplicated notes.

    Args:
        diagram: The imported diagram, parsed or as raw JSON.
        target_tab_id: Tab the diagram is imported into.
        existing_ids: Ids in use; updated in place.

    Returns:
        The prepared diagram.
    """
    parsed = diagram if isinstance(diagram, NeckDiagram) else NeckDiagram.from_json(diagram)
    next_id = parsed.id if parsed.id and parsed.id not in existing_ids else new_id()
    if next_id != parsed.id:
        logging.debug("imported diagram id %r taken, using %s", parsed.id, next_id)
    existing_ids.add(next_id)
    return replace(
        parsed,
        id=next_id,
        tab_id=target_tab_id,
        layout_mode=parsed.layout_mode or LayoutMode.Grid,
        width=clamp_diagram_width(parsed.width),
        height=clamp_diagram_height(parsed.height),
        config=normalize_config(parsed.config),
        notes=_ensure_note_ids(normalize_notes(parsed.notes)),
    )


def update_diagram(data: ProjectData, diagram_id: str, fn: DiagramUpdate) -> ProjectData:
    """Apply a function to one diagram."""
    return replace(
        data,
        diagrams=[fn(d) if d.id == diagram_id else d for d in data.diagrams],
    )


def toggle_diagram_note(
    data: ProjectData, diagram_id: str, string_index: int, fret: int
) -> ProjectData:
    """Toggle a cell of a diagram (see ``neckdiagram.notes.toggle_note``)."""
    return update_diagram(
        data,
        diagram_id,
        lambda d: replace(d, notes=toggle_note(d, string_index, fret)),
    )


def patch_diagram_config(
    data: ProjectData, diagram_id: str, patch: Mapping[str, Any]
) -> ProjectData:
    """Apply a partial config change (wire field names) to a diagram."""
    return update_diagram(
        data, diagram_id, lambda d: replace(d, config=patch_config(d.config, patch))
    )


def set_label_mode(data: ProjectData, diagram_id: str, mode: LabelMode) -> ProjectData:
    """Change the default label mode of a diagram."""
    return update_diagram(data, diagram_id, lambda d: replace(d, label_mode=mode))


def rename_diagram(data: ProjectData, diagram_id: str, name: str) -> ProjectData:
    """Rename a diagram; blank names are ignored."""
    trimmed = name.strip()
    if not trimmed:
        return data
    return update_diagram(data, diagram_id, lambda d: replace(d, name=trimmed))


def set_theory(data: ProjectData, item: LibraryItem) -> ProjectData:
    """Select a library item as the project's key, scale or position."""
    if item.type == LibraryItemType.Key:
        return replace(data, key_id=item.id)
    elif item.type.is_scale_like:
        return replace(data, scale_id=item.id)
    elif item.type == LibraryItemType.Position:
        return replace(data, position_id=item.id)
    else:
        return data


def _target_tab(data: ProjectData) -> tuple[List[ProjectTab], str]:
    tabs = list(data.tabs)
    if data.active_tab_id and data.find_tab(data.active_tab_id) is not None:
        return tabs, data.active_tab_id
    elif tabs:
        return tabs, tabs[0].id
    else:
        fallback = create_default_tab()
        return [fallback], fallback.id


def _place_new(
    data: ProjectData, tab_id: str, canvas: CanvasSize, gap: float
) -> tuple[tuple[float, float], LayoutMode]:
    in_tab = data.diagrams_in_tab(tab_id)
    if not in_tab:
        return floating_position(canvas, DEFAULT_DIAGRAM_SIZE, gap), LayoutMode.Float
    boxes = [Box(d.x, d.y, d.width, d.height) for d in in_tab]
    return suggest_tile(boxes, canvas, DEFAULT_DIAGRAM_SIZE, gap), LayoutMode.Grid


def add_diagram(
    data: ProjectData,
    canvas: CanvasSize,
    label_mode: LabelMode = LabelMode.Key,
    gap: float = constants.TILE_GAP,
) -> ProjectData:
    """Add a blank diagram to the active tab and select it.

    The first diagram of a tab floats at the top centre; later ones take the
    next free tile.
    """
    tabs, tab_id = _target_tab(data)
    (x, y), layout_mode = _place_new(data, tab_id, canvas, gap)
    diagram = create_neck_diagram(
        x=x,
        y=y,
        name=f"Neck {len(data.diagrams) + 1}",
        label_mode=label_mode,
        tab_id=tab_id,
        layout_mode=layout_mode,
    )
    return replace(
        data,
        tabs=tabs,
        diagrams=[*data.diagrams, diagram],
        selected_diagram_id=diagram.id,
        active_tab_id=tab_id,
    )


def add_diagram_from_theory(
    data: ProjectData,
    library: Library,
    canvas: CanvasSize,
    label_mode: LabelMode = LabelMode.Key,
    replace_id: Optional[str] = None,
    gap: float = constants.TILE_GAP,
) -> ProjectData:
    """Add (or regenerate) a diagram filled with the selected scale.

    The diagram is named after the project's key, scale and position, gets
    enough frets for the position, and its notes are every cell of the scale
    inside the position window. With ``replace_id`` the existing diagram keeps
    its id, box, tab and layout mode and takes the new name, config and notes.

    Args:
        data: The project.
        library: Library resolving the project's theory ids.
        canvas: Canvas size for tile placement.
        label_mode: Label mode of the new diagram.
        replace_id: Diagram to regenerate instead of adding one.
        gap: Tile margin.

    Returns:
        The project with the diagram added or replaced and selected.
    """
    tabs, tab_id = _target_tab(data)
    existing = data.find_diagram(replace_id) if replace_id else None
    if existing is not None and existing.tab_id:
        tab_id = existing.tab_id
    (x, y), layout_mode = _place_new(data, tab_id, canvas, gap)
    position_name = library.resolve_name(data.position_id)
    preset = get_position_preset(position_name)
    frets = (
        max(DEFAULT_NECK_CONFIG.frets, preset.min_frets)
        if preset is not None
        else DEFAULT_NECK_CONFIG.frets
    )
    diagram = create_neck_diagram(
        x=x,
        y=y,
        name=library.theory_name(data.key_id, data.scale_id, data.position_id)
        or f"Neck {len(data.diagrams) + 1}",
        label_mode=label_mode,
        tab_id=tab_id,
        layout_mode=layout_mode,
        config=replace(DEFAULT_NECK_CONFIG, frets=frets),
        key_id=data.key_id,
        scale_id=data.scale_id,
        position_id=data.position_id,
    )
    notes = build_scale_notes(
        diagram,
        library.resolve_name(data.key_id),
        library.resolve_intervals(data.scale_id),
        position_name,
    )
    if existing is not None:
        regenerated = replace(
            diagram,
            id=existing.id,
            x=existing.x,
            y=existing.y,
            width=existing.width,
            height=existing.height,
            layout_mode=existing.layout_mode or diagram.layout_mode,
            tab_id=existing.tab_id,
            notes=notes,
        )
        diagrams = [regenerated if d.id == existing.id else d for d in data.diagrams]
        selected = existing.id
    else:
        diagrams = [*data.diagrams, replace(diagram, notes=notes)]
        selected = diagram.id
    return replace(
        data,
        tabs=tabs,
        diagrams=diagrams,
        selected_diagram_id=selected,
        active_tab_id=tab_id,
    )


def add_tab(data: ProjectData) -> ProjectData:
    """Append a tab named after its position and activate it."""
    tab = create_default_tab(f"Tab {len(data.tabs) + 1}")
    return replace(data, tabs=[*data.tabs, tab], active_tab_id=tab.id)


def select_tab(data: ProjectData, tab_id: str) -> ProjectData:
    """Activate a tab; unknown ids are ignored."""
    if data.find_tab(tab_id) is None:
        return data
    return replace(data, active_tab_id=tab_id)


def select_diagram(data: ProjectData, diagram_id: Optional[str]) -> ProjectData:
    """Select a diagram (None clears the selection); unknown ids are ignored."""
    if diagram_id is not None and data.find_diagram(diagram_id) is None:
        return data
    return replace(data, selected_diagram_id=diagram_id)


def delete_diagram(data: ProjectData, diagram_id: str) -> ProjectData:
    """Remove a diagram; a removed selection moves to the first remaining diagram."""
    diagrams = [d for d in data.diagrams if d.id != diagram_id]
    selected = data.selected_diagram_id
    if selected == diagram_id:
        selected = diagrams[0].id if diagrams else None
    return replace(data, diagrams=diagrams, selected_diagram_id=selected)


def delete_tab(data: ProjectData, tab_id: str) -> ProjectData:
    """Remove a tab together with its diagrams.

    The last tab is never removed. When the active tab goes, the tab before
    it becomes active; a selection that went with the tab moves to a diagram
    of the new active tab, or any diagram.
    """
    if len(data.tabs) <= 1:
        logging.info("refusing to delete the last tab")
        return data
    tabs = [tab for tab in data.tabs if tab.id != tab_id]
    if len(tabs) == len(data.tabs):
        return data
    removed_index = next(i for i, tab in enumerate(data.tabs) if tab.id == tab_id)
    if data.active_tab_id and any(tab.id == data.active_tab_id for tab in tabs):
        active_tab_id = data.active_tab_id
    else:
        active_tab_id = tabs[max(0, removed_index - 1)].id
    diagrams = [d for d in data.diagrams if d.tab_id != tab_id]
    selected = data.selected_diagram_id
    if not any(d.id == selected for d in diagrams):
        in_active = [d for d in diagrams if d.tab_id == active_tab_id]
        fallback = in_active or diagrams
        selected = fallback[0].id if fallback else None
    return replace(
        data,
        tabs=tabs,
        active_tab_id=active_tab_id,
        diagrams=diagrams,
        selected_diagram_id=selected,
    )


def move_diagram_to_tab(data: ProjectData, diagram_id: str, tab_id: str) -> ProjectData:
    """Move a diagram to another tab, activating the tab and selecting the diagram."""
    if data.find_tab(tab_id) is None:
        return data
    moved = update_diagram(data, diagram_id, lambda d: replace(d, tab_id=tab_id))
    return replace(moved, active_tab_id=tab_id, selected_diagram_id=diagram_id)


def repair_tab_overlaps(
    data: ProjectData,
    tab_id: Optional[str],
    canvas: CanvasSize,
    gap: float = constants.TILE_GAP,
) -> ProjectData:
    """Re-tile the grid diagrams of a tab if any of them overlap.

    Args:
        data: The project.
        tab_id: The tab to repair.
        canvas: Canvas size.
        gap: Tile margin.

    Returns:
        The project, unchanged when nothing overlaps.
    """
    in_tab = data.diagrams_in_tab(tab_id)
    grid: Dict[str, Box] = {
        d.id: Box(d.x, d.y, d.width, d.height) for d in in_tab if d.is_grid
    }
    floating = [Box(d.x, d.y, d.width, d.height) for d in in_tab if not d.is_grid]
    moves = repair_layout(grid, floating, canvas, gap)
    if not moves:
        return data
    logging.debug("re-tiling %d diagrams in tab %s", len(moves), tab_id)
    return replace(
        data,
        diagrams=[
            replace(d, x=moves[d.id][0], y=moves[d.id][1]) if d.id in moves else d
            for d in data.diagrams
        ],
    )
