"""Pointer interaction sessions on the canvas.

A drag starts on pointer-down (``DragSession.begin``), recomputes the dragged
diagram's box from the pointer displacement on every move, and ends on
pointer-up with an outcome: keep the new box, delete the diagram (dropped on
the trash), or move it to another tab (dropped on a tab). Pointer-up without
a session does nothing.

``NoteTap`` separates a click on a note cell from a drag across the diagram.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from enum import Enum, unique
from typing import Optional

from neckdiagram import constants
from neckdiagram.base import MatchException
from neckdiagram.geometry import BoardGeometry, StringPos, round_half_up
from neckdiagram.models import NeckDiagram, ProjectData
from neckdiagram.project import (
    clamp_diagram_height,
    clamp_diagram_width,
    delete_diagram,
    move_diagram_to_tab,
    update_diagram,
)
from neckdiagram.tiling import Box


@unique
class DragMode(Enum):
    """What a drag changes."""

    Move = "move"  # Position
    Resize = "resize"  # Width and height independently
    Scale = "scale"  # Width and height with a fixed aspect ratio


@unique
class DragOutcomeKind(Enum):
    Commit = "commit"
    Delete = "delete"
    MoveToTab = "move-to-tab"


@dataclass(frozen=True)
class DragOutcome:
    """What happens to the dragged diagram on pointer-up."""

    kind: DragOutcomeKind
    diagram_id: str
    tab_id: Optional[str] = None
    """Destination tab of a ``MoveToTab`` outcome."""


@dataclass(frozen=True)
class DropTarget:
    """Where the pointer was released."""

    over_trash: bool = False
    tab_id: Optional[str] = None
    """Tab under the pointer, if any."""


def snap_to_grid(value: float, grid_size: float) -> float:
    """Round a coordinate to the nearest grid line."""
    return round_half_up(value / grid_size) * grid_size


@dataclass(frozen=True)
class DragSession:
    """A drag in progress: the dragged diagram's box and the pointer at the start."""

    diagram_id: str
    mode: DragMode
    origin: Box
    start_x: float
    start_y: float

    @classmethod
    def begin(cls, diagram: NeckDiagram, mode: DragMode, x: float, y: float) -> DragSession:
        """Start a drag at a pointer position (screen pixels)."""
        return cls(
            diagram_id=diagram.id,
            mode=mode,
            origin=Box(diagram.x, diagram.y, diagram.width, diagram.height),
            start_x=x,
            start_y=y,
        )

    def box_at(
        self,
        x: float,
        y: float,
        zoom: float = 1.0,
        snap: bool = False,
        grid_size: float = constants.GRID_SIZE,
    ) -> Box:
        """Box of the dragged diagram for a pointer position.

        Args:
            x: Pointer x in screen pixels.
            y: Pointer y in screen pixels.
            zoom: Canvas zoom; displacement is divided by it.
            snap: Snap a moved diagram to the grid.
            grid_size: Grid spacing for snapping.

        Returns:
            The new box. Sizes are clamped to the diagram size bounds.
        """
        factor = zoom or 1.0
        dx = (x - self.start_x) / factor
        dy = (y - self.start_y) / factor
        origin = self.origin
        if self.mode == DragMode.Move:
            next_x = origin.x + dx
            next_y = origin.y + dy
            if snap:
                next_x = snap_to_grid(next_x, grid_size)
                next_y = snap_to_grid(next_y, grid_size)
            return replace(origin, x=next_x, y=next_y)
        elif self.mode == DragMode.Resize:
            return replace(
                origin,
                width=clamp_diagram_width(origin.width + dx),
                height=clamp_diagram_height(origin.height + dy),
            )
        elif self.mode == DragMode.Scale:
            # Zero-size diagrams scale from the minimum size.
            width = clamp_diagram_width(origin.width)
            height = clamp_diagram_height(origin.height)
            scale = max(
                constants.MIN_SCALE_FACTOR,
                max((width + dx) / width, (height + dy) / height),
            )
            return replace(
                origin,
                width=clamp_diagram_width(width * scale),
                height=clamp_diagram_height(height * scale),
            )
        else:
            raise MatchException(self.mode)

    def update(
        self,
        data: ProjectData,
        x: float,
        y: float,
        zoom: float = 1.0,
        grid_size: float = constants.GRID_SIZE,
    ) -> ProjectData:
        """Apply a pointer move to the project.

        Moves snap to the grid when the diagram's config asks for it.
        """

        def apply(diagram: NeckDiagram) -> NeckDiagram:
            box = self.box_at(x, y, zoom, diagram.config.snap_to_grid, grid_size)
            return replace(diagram, x=box.x, y=box.y, width=box.width, height=box.height)

        return update_diagram(data, self.diagram_id, apply)

    def end(
        self, drop: Optional[DropTarget] = None, active_tab_id: Optional[str] = None
    ) -> DragOutcome:
        """Finish the drag.

        Only moves can be dropped: on the trash the diagram is deleted, on a
        tab other than the active one it moves there.
        """
        if self.mode == DragMode.Move and drop is not None:
            if drop.over_trash:
                return DragOutcome(DragOutcomeKind.Delete, self.diagram_id)
            if drop.tab_id is not None and drop.tab_id != active_tab_id:
                return DragOutcome(DragOutcomeKind.MoveToTab, self.diagram_id, drop.tab_id)
        return DragOutcome(DragOutcomeKind.Commit, self.diagram_id)


def end_drag(
    session: Optional[DragSession],
    drop: Optional[DropTarget] = None,
    active_tab_id: Optional[str] = None,
) -> Optional[DragOutcome]:
    """Pointer-up handler: None when no drag was in progress."""
    if session is None:
        return None
    return session.end(drop, active_tab_id)


def apply_outcome(data: ProjectData, outcome: Optional[DragOutcome]) -> ProjectData:
    """Apply the outcome of a drag to the project."""
    if outcome is None:
        return data
    elif outcome.kind == DragOutcomeKind.Commit:
        return data
    elif outcome.kind == DragOutcomeKind.Delete:
        return delete_diagram(data, outcome.diagram_id)
    elif outcome.kind == DragOutcomeKind.MoveToTab:
        assert outcome.tab_id is not None
        return move_diagram_to_tab(data, outcome.diagram_id, outcome.tab_id)
    else:
        raise MatchException(outcome.kind)


@dataclass
class NoteTap:
    """A press on a diagram that toggles a cell unless the pointer travels.

    Coordinates are in diagram pixels (already divided by the zoom).
    """

    start_x: float
    start_y: float
    moved: bool = False

    def move(self, x: float, y: float) -> None:
        """Track pointer travel; at the threshold the press becomes a drag."""
        if math.hypot(x - self.start_x, y - self.start_y) >= constants.NOTE_TAP_THRESHOLD:
            self.moved = True

    def release(self, diagram: NeckDiagram, x: float, y: float) -> Optional[StringPos]:
        """The tapped cell, or None if the press turned into a drag."""
        if self.moved:
            return None
        return BoardGeometry.for_diagram(diagram).cell_at(x, y)
