"""Tile placement of diagrams on the canvas.

New diagrams are dropped into the first free slot of a column grid, row by
row. Boxes keep a ``gap`` margin between each other; a box much wider than a
column is centred across the whole grid instead of taking one column.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from neckdiagram import constants
from neckdiagram.config import CanvasSize


@dataclass(frozen=True)
class Size:
    """Width and height of a box."""

    width: float
    height: float


DEFAULT_DIAGRAM_SIZE = Size(constants.DEFAULT_DIAGRAM_WIDTH, constants.DEFAULT_DIAGRAM_HEIGHT)
"""Size of a new diagram, which is also the column width of the grid."""


@dataclass(frozen=True)
class Box:
    """An axis-aligned rectangle on the canvas."""

    x: float
    y: float
    width: float
    height: float

    @property
    def pos(self) -> Tuple[float, float]:
        """Top-left corner."""
        return (self.x, self.y)


def overlaps(a: Box, b: Box, gap: float) -> bool:
    """Check if two boxes come closer than ``gap`` on both axes.

    Args:
        a: First box.
        b: Second box.
        gap: Required margin.

    Returns:
        True when the gap-expanded rectangles intersect.
    """
    return not (
        a.x + a.width + gap <= b.x
        or a.x >= b.x + b.width + gap
        or a.y + a.height + gap <= b.y
        or a.y >= b.y + b.height + gap
    )


def clamp_columns(columns: int) -> int:
    """Limit the column count to 2-4, or 1 when not even two fit."""
    if columns <= 1:
        return 1
    return min(constants.MAX_COLUMNS, max(constants.MIN_COLUMNS, columns))


def column_count(canvas_width: float, gap: float) -> int:
    """Number of grid columns a canvas holds."""
    column_width = DEFAULT_DIAGRAM_SIZE.width
    return clamp_columns(int((canvas_width + gap) // (column_width + gap)))


def _candidates(columns: int, size: Size, y: float, gap: float) -> List[Tuple[float, float]]:
    column_width = DEFAULT_DIAGRAM_SIZE.width
    if size.width > column_width * constants.WIDE_TOLERANCE:
        grid_width = columns * column_width + gap * (columns - 1)
        return [(max(gap, gap + (grid_width - size.width) / 2), y)]
    return [(gap + col * (column_width + gap), y) for col in range(columns)]


def suggest_tile(
    existing: Sequence[Box],
    canvas: CanvasSize,
    size: Size = DEFAULT_DIAGRAM_SIZE,
    gap: float = constants.TILE_GAP,
) -> Tuple[float, float]:
    """Find a free slot for a box.

    Rows are ``size.height + gap`` apart starting at ``gap``. The first
    candidate whose box keeps ``gap`` away from every existing box wins.

    Args:
        existing: Boxes already on the canvas.
        canvas: Canvas size, which determines the column count.
        size: Size of the box to place.
        gap: Margin between boxes.

    Returns:
        The top-left corner of the slot, or ``(gap, gap)`` when no slot is
        free within the row bound.
    """
    columns = column_count(canvas.width, gap)
    for row in range(constants.MAX_TILE_ROWS):
        y = gap + row * (size.height + gap)
        for x, cand_y in _candidates(columns, size, y, gap):
            box = Box(x, cand_y, size.width, size.height)
            if not any(overlaps(box, other, gap) for other in existing):
                return (x, cand_y)
    return (gap, gap)


def floating_position(
    canvas: CanvasSize, size: Size = DEFAULT_DIAGRAM_SIZE, gap: float = constants.TILE_GAP
) -> Tuple[float, float]:
    """Position of the first diagram of a tab: centred at the top of the canvas."""
    return (max(gap, canvas.width / 2 - size.width / 2), gap)


def any_overlap(grid: Sequence[Box], floating: Sequence[Box], gap: float) -> bool:
    """Check if grid boxes overlap each other or any floating box."""
    for index, box in enumerate(grid):
        for other in grid[index + 1 :]:
            if overlaps(box, other, gap):
                return True
    return any(overlaps(f, box, gap) for f in floating for box in grid)


def repair_layout[K](
    grid: Dict[K, Box],
    floating: Sequence[Box],
    canvas: CanvasSize,
    gap: float = constants.TILE_GAP,
) -> Dict[K, Tuple[float, float]]:
    """Re-place grid boxes that overlap.

    When nothing overlaps, nothing moves. Otherwise every grid box is placed
    again in (y, x) order, each against the boxes placed before it plus all
    floating boxes.

    Args:
        grid: Grid-mode boxes by key.
        floating: Floating boxes, which never move.
        canvas: Canvas size.
        gap: Margin between boxes.

    Returns:
        New positions of the boxes that moved.
    """
    if not grid or not any_overlap(list(grid.values()), floating, gap):
        return {}
    ordered = sorted(grid.items(), key=lambda item: (item[1].y, item[1].x))
    placed: List[Box] = []
    moves: Dict[K, Tuple[float, float]] = {}
    for key, box in ordered:
        x, y = suggest_tile([*placed, *floating], canvas, Size(box.width, box.height), gap)
        placed.append(Box(x, y, box.width, box.height))
        if (x, y) != box.pos:
            moves[key] = (x, y)
    return moves
