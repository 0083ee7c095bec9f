"""Render-ready description of a diagram's notes.

The renderer draws each note as a circle with a label. ``describe_notes``
computes everything it needs per note: the centre, the fill (through the note
type), the label text and a font size that shrinks for longer labels.
``render_ascii`` draws the same information as text for the command line.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from neckdiagram.base import MatchException
from neckdiagram.geometry import BoardGeometry
from neckdiagram.models import NeckDiagram
from neckdiagram.notes import find_note, note_pitch
from neckdiagram.pitch import note_name_to_index
from neckdiagram.scale import NoteType, ScaleClassifier, resolve_label

MIN_FONT_SIZE = 8
MAX_FONT_SIZE = 18


@dataclass(frozen=True)
class ColorScheme:
    """Fill colors by note type (CSS values)."""

    root: str = "var(--note-root)"
    in_scale: str = "var(--note-in-scale)"
    out_of_scale: str = "var(--note-out-scale)"
    label: str = "var(--note-label)"
    stroke: str = "var(--note-stroke)"

    def fill(self, note_type: NoteType) -> str:
        """Fill color of a note."""
        if note_type == NoteType.Root:
            return self.root
        elif note_type == NoteType.Member:
            return self.in_scale
        elif note_type == NoteType.Other:
            return self.out_of_scale
        else:
            raise MatchException(note_type)


DEFAULT_COLORS = ColorScheme()


@dataclass(frozen=True)
class NoteView:
    """One note as drawn."""

    note_id: str
    x: float
    y: float
    radius: float
    label: str
    note_type: NoteType
    font_size: float
    fill: str


def label_font_size(note_radius: float, label: str) -> float:
    """Font size of a note label: shrinks for two and three character labels."""
    base = max(MIN_FONT_SIZE, min(note_radius * 1.2, MAX_FONT_SIZE))
    if len(label) > 2:
        scale = 0.8
    elif len(label) > 1:
        scale = 0.9
    else:
        scale = 1.0
    return max(MIN_FONT_SIZE, base * scale)


def classifier_for(
    diagram: NeckDiagram, root_key: Optional[str], intervals: Optional[Sequence[int]]
) -> ScaleClassifier:
    """Scale classifier for a diagram under a key and scale selection."""
    root = note_name_to_index(root_key)
    return ScaleClassifier.build(root, intervals, diagram.config.highlight_root)


def describe_notes(
    diagram: NeckDiagram,
    root_key: Optional[str],
    intervals: Optional[Sequence[int]],
    colors: ColorScheme = DEFAULT_COLORS,
) -> List[NoteView]:
    """Describe every note of a diagram for drawing.

    Args:
        diagram: The diagram.
        root_key: Note name of the selected key, if any.
        intervals: Offsets of the selected scale, if any.
        colors: Fill colors.

    Returns:
        One view per note, in note order.
    """
    geometry = BoardGeometry.for_diagram(diagram)
    classifier = classifier_for(diagram, root_key, intervals)
    root = note_name_to_index(root_key)
    views: List[NoteView] = []
    for note in diagram.notes:
        pitch = note_pitch(diagram, note)
        label_mode = note.label_mode or diagram.label_mode
        label = resolve_label(label_mode, pitch, root, note.picking)
        note_type = classifier.classify(pitch)
        x, y = geometry.note_center(note.string_index, note.fret)
        views.append(
            NoteView(
                note_id=note.id,
                x=x,
                y=y,
                radius=geometry.note_radius,
                label=label,
                note_type=note_type,
                font_size=label_font_size(geometry.note_radius, label),
                fill=colors.fill(note_type),
            )
        )
    return views


_ASCII_MARKS: Dict[NoteType, str] = {
    NoteType.Root: "*",
    NoteType.Member: "",
    NoteType.Other: "?",
}


def render_ascii(
    diagram: NeckDiagram,
    root_key: Optional[str],
    intervals: Optional[Sequence[int]],
    cell_width: int = 4,
) -> str:
    """Draw a diagram as text, highest string first.

    Each row starts with the open string name and its open cell, followed by
    one cell per fret. Roots are marked with ``*`` and notes outside the scale
    with ``?``.

    Args:
        diagram: The diagram.
        root_key: Note name of the selected key, if any.
        intervals: Offsets of the selected scale, if any.
        cell_width: Characters per cell.

    Returns:
        The drawing, one line per string plus a fret number line.
    """
    config = diagram.config
    tuning = config.display_tuning
    classifier = classifier_for(diagram, root_key, intervals)
    root = note_name_to_index(root_key)
    name_width = max((len(name) for name in tuning), default=1)
    lines: List[str] = []
    header = (
        " " * (name_width + 1)
        + "0".center(cell_width)
        + " "
        + "".join(str(fret).center(cell_width) for fret in range(1, config.frets + 1))
    )
    lines.append(header.rstrip())
    for string_index in reversed(range(config.strings)):
        cells: List[str] = []
        for fret in range(-1, config.frets):
            note = find_note(diagram.notes, string_index, fret)
            if note is None:
                cells.append("-" * cell_width)
                continue
            pitch = note_pitch(diagram, note)
            label = resolve_label(
                note.label_mode or diagram.label_mode, pitch, root, note.picking
            )
            text = label + _ASCII_MARKS[classifier.classify(pitch)]
            cells.append(text.center(cell_width, "-"))
        name = tuning[string_index] if string_index < len(tuning) else "?"
        lines.append(f"{name.rjust(name_width)} {cells[0]}|{''.join(cells[1:])}|")
    return "\n".join(lines)
