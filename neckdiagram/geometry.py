"""Fretboard geometry: where frets and strings are drawn, and the inverse.

Frets follow equal-tempered spacing, so each fret is closer to the previous
one than the last. Strings are evenly spaced, and the first string of the
tuning is drawn at the bottom. ``BoardGeometry`` adds the paddings of a
rendered diagram and resolves pointer coordinates to cells.
"""

from __future__ import annotations

import math
from bisect import bisect_left
from dataclasses import dataclass
from typing import Generator, List, Sequence, Tuple

from neckdiagram import constants
from neckdiagram.base import MatchException
from neckdiagram.config import FretNumberStyle
from neckdiagram.models import NeckDiagram


@dataclass(frozen=True)
class StringPos:
    """Represents a cell on the fretboard as a string and fret combination."""

    str_index: int
    """Index into the tuning array (0 is the bottom row)."""
    fret: int
    """Fret value, -1 for the open string."""

    def __iter__(self) -> Generator[int, None, None]:
        """Iterate over string index and fret."""
        yield self.str_index
        yield self.fret


def clamp[T: (int, float)](value: T, low: T, high: T) -> T:
    """Clamp a value into [low, high]."""
    return min(high, max(low, value))


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from the lower neighbour."""
    return math.floor(value + 0.5)


def get_fret_positions(fret_count: int, width: float) -> List[float]:
    """X offsets of the nut and every fret.

    Raw offsets follow ``1 - 2^(-n/12)`` and are rescaled so that the last
    fret lands exactly on ``width``.

    Args:
        fret_count: Number of frets.
        width: Board width in pixels.

    Returns:
        ``fret_count + 1`` increasing offsets starting at 0. With a
        non-positive width the unscaled offsets are returned.
    """
    positions: List[float] = [0.0]
    for fret in range(1, fret_count + 1):
        ratio = 1 - 1 / math.pow(2, fret / 12)
        positions.append(ratio * width)
    last = positions[-1]
    if last <= 0:
        return positions
    scale = width / last
    scaled = [value * scale for value in positions]
    scaled[-1] = float(width)
    return scaled


def get_string_positions(string_count: int, height: float) -> List[float]:
    """Y offsets of the strings, evenly spaced from 0 to ``height``.

    Args:
        string_count: Number of strings.
        height: Board height in pixels.

    Returns:
        One offset per string; a single string sits at ``height / 2``.
    """
    if string_count <= 1:
        return [height / 2]
    spacing = height / (string_count - 1)
    return [index * spacing for index in range(string_count)]


def find_fret_at_x(positions: Sequence[float], x: float) -> int:
    """Index of the fret span containing ``x``.

    Args:
        positions: Increasing fret offsets.
        x: The coordinate to look up.

    Returns:
        ``i`` such that ``positions[i] <= x <= positions[i + 1]`` (the lower
        span on an exact boundary), clamped to ``0`` before the board and
        ``len(positions) - 2`` after it.
    """
    last_span = max(len(positions) - 2, 0)
    if len(positions) < 2 or x <= positions[0]:
        return 0
    if x >= positions[-1]:
        return last_span
    return clamp(bisect_left(positions, x) - 1, 0, last_span)


def to_roman(value: int) -> str:
    """Roman numeral of a positive integer, empty for anything else."""
    if value <= 0:
        return ""
    numerals = [
        (1000, "M"),
        (900, "CM"),
        (500, "D"),
        (400, "CD"),
        (100, "C"),
        (90, "XC"),
        (50, "L"),
        (40, "XL"),
        (10, "X"),
        (9, "IX"),
        (5, "V"),
        (4, "IV"),
        (1, "I"),
    ]
    remaining = value
    parts: List[str] = []
    for amount, label in numerals:
        while remaining >= amount:
            parts.append(label)
            remaining -= amount
    return "".join(parts)


@dataclass(frozen=True)
class BoardGeometry:
    """Pixel layout of a rendered diagram.

    Offsets are relative to the diagram's top-left corner. The open-string
    zone lies left of the nut, at ``x < open_string_pad``.
    """

    strings: int
    frets: int
    width: float
    height: float
    note_radius: float
    open_string_pad: float
    right_pad: float
    vertical_pad: float
    board_width: float
    """Width from the nut to the last fret (at least 1)."""
    board_height: float
    """Height from the first to the last string (at least 1)."""

    @classmethod
    def for_diagram(cls, diagram: NeckDiagram) -> BoardGeometry:
        """Compute the layout of a diagram at its current size.

        Args:
            diagram: The diagram.

        Returns:
            The geometry; degenerate sizes are clamped to one pixel.
        """
        config = diagram.config
        note_radius = max(constants.MIN_NOTE_RADIUS, diagram.height / 18)
        edge_pad = note_radius + constants.NOTE_STROKE_WIDTH
        open_string_pad = max(constants.MIN_OPEN_STRING_PAD, note_radius * 2.8)
        right_pad = max(constants.MIN_RIGHT_PAD, edge_pad)
        vertical_pad = max(constants.MIN_VERTICAL_PAD, edge_pad)
        return cls(
            strings=max(config.strings, 1),
            frets=max(config.frets, 1),
            width=diagram.width,
            height=diagram.height,
            note_radius=note_radius,
            open_string_pad=open_string_pad,
            right_pad=right_pad,
            vertical_pad=vertical_pad,
            board_width=max(1, diagram.width - open_string_pad - right_pad),
            board_height=max(1, diagram.height - vertical_pad * 2),
        )

    @property
    def row_spacing(self) -> float:
        """Vertical distance between adjacent strings."""
        if self.strings <= 1:
            return self.board_height
        return self.board_height / (self.strings - 1)

    def fret_positions(self) -> List[float]:
        """Absolute x offsets of the nut and frets."""
        return [
            x + self.open_string_pad
            for x in get_fret_positions(self.frets, self.board_width)
        ]

    def string_positions(self) -> List[float]:
        """Absolute y offsets of the strings in tuning order (first string lowest)."""
        rows = [
            y + self.vertical_pad
            for y in get_string_positions(self.strings, self.board_height)
        ]
        rows.reverse()
        return rows

    def cell_at(self, x: float, y: float) -> StringPos:
        """Resolve a pointer position to a cell.

        Args:
            x: Horizontal offset inside the diagram.
            y: Vertical offset inside the diagram.

        Returns:
            The cell; fret -1 left of the nut, otherwise clamped to the frets.
        """
        if x < self.open_string_pad:
            fret = -1
        else:
            fret = clamp(find_fret_at_x(self.fret_positions(), x), 0, self.frets - 1)
        if self.strings <= 1:
            row = 0
        else:
            row = clamp(
                round_half_up((y - self.vertical_pad) / self.row_spacing),
                0,
                self.strings - 1,
            )
        return StringPos(str_index=self.strings - 1 - row, fret=fret)

    def note_center(self, str_index: int, fret: int) -> Tuple[float, float]:
        """Centre of a cell, where its note is drawn.

        Open notes are centred in the open-string zone; fretted notes between
        their two frets. Cells outside the board fall back to the middle.
        """
        positions = self.fret_positions()
        if fret < 0:
            start, end = 0.0, self.open_string_pad
        elif fret < len(positions):
            start = positions[fret]
            end = (
                positions[fret + 1]
                if fret + 1 < len(positions)
                else (self.width + start) / 2
            )
        else:
            start = end = self.open_string_pad
        rows = self.string_positions()
        y = rows[str_index] if 0 <= str_index < len(rows) else self.height / 2
        return (start + (end - start) / 2, y)

    def inlay_markers(self) -> List[Tuple[float, int]]:
        """Inlay markers as (x centre, dot count) for frets on this board."""
        positions = self.fret_positions()
        markers: List[Tuple[float, int]] = []
        for fret_number in constants.INLAY_FRETS:
            if fret_number >= len(positions):
                continue
            start = positions[fret_number - 1]
            end = positions[fret_number]
            count = 2 if fret_number in constants.DOUBLE_INLAY_FRETS else 1
            markers.append((start + (end - start) / 2, count))
        return markers

    def fret_number_labels(self, style: FretNumberStyle) -> List[Tuple[float, str]]:
        """Fret number labels as (x, text), one per fret."""
        labels: List[Tuple[float, str]] = []
        for index, x in enumerate(self.fret_positions()[1:]):
            number = index + 1
            if style == FretNumberStyle.Arabic:
                labels.append((x, str(number)))
            elif style == FretNumberStyle.Roman:
                labels.append((x, to_roman(number)))
            else:
                raise MatchException(style)
        return labels
