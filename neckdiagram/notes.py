"""Note identity, toggling and pitch computation.

A diagram holds at most one note per (string_index, fret) cell. Every
mutation here ends with ``normalize_notes`` so that two notes for the same
cell (say from a double toggle) collapse into the most recent one.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, List, Optional, Sequence, Tuple

from neckdiagram.base import new_id
from neckdiagram.models import LabelMode, NeckDiagram, Note, Picking
from neckdiagram.pitch import MAX_NOTES, note_name_to_index
from neckdiagram.scale import build_scale_set, get_position_range


def normalize_notes(notes: Sequence[Note]) -> List[Note]:
    """De-duplicate notes by cell.

    Later notes win; each cell keeps the slot of its first occurrence.

    Args:
        notes: Notes in insertion order.

    Returns:
        A new list with at most one note per (string_index, fret).
    """
    by_cell: Dict[Tuple[int, int], Note] = {}
    for note in notes:
        by_cell[note.key] = note
    return list(by_cell.values())


def has_duplicate_cells(notes: Sequence[Note]) -> bool:
    """Check if any cell holds more than one note."""
    return len({note.key for note in notes}) != len(notes)


def find_note(notes: Sequence[Note], string_index: int, fret: int) -> Optional[Note]:
    """First note on a cell, if any."""
    for note in notes:
        if note.string_index == string_index and note.fret == fret:
            return note
    return None


def toggle_note(diagram: NeckDiagram, string_index: int, fret: int) -> List[Note]:
    """Toggle a cell of a diagram.

    In picking mode a cell cycles absent -> D -> U -> absent; in the other
    label modes it cycles absent -> present -> absent. New notes carry a
    picking direction only in picking mode.

    Args:
        diagram: The diagram being edited.
        string_index: String of the cell.
        fret: Fret of the cell (-1 for open).

    Returns:
        The diagram's new note list.
    """
    existing = find_note(diagram.notes, string_index, fret)
    if existing is not None:
        if diagram.label_mode == LabelMode.Picking and existing.picking == Picking.Down:
            return normalize_notes(
                [
                    replace(note, picking=Picking.Up) if note.key == existing.key else note
                    for note in diagram.notes
                ]
            )
        return normalize_notes([note for note in diagram.notes if note.key != existing.key])
    created = Note(
        id=new_id(),
        string_index=string_index,
        fret=fret,
        picking=Picking.Down if diagram.label_mode == LabelMode.Picking else None,
    )
    return normalize_notes([*diagram.notes, created])


def get_note_index(
    tuning: Sequence[str], string_index: int, fret: int, capo: int
) -> Optional[int]:
    """Pitch class of a cell.

    Fret value 0 is one semitone above the open string, so a fretted cell
    adds ``fret + 1`` semitones and an open cell (``fret < 0``) adds none.

    Args:
        tuning: Open-string note names.
        string_index: String of the cell.
        fret: Fret of the cell.
        capo: Capo offset in semitones.

    Returns:
        The pitch class, or None if the string has no parseable tuning.
    """
    if string_index < 0 or string_index >= len(tuning):
        return None
    open_pitch = note_name_to_index(tuning[string_index])
    if open_pitch is None:
        return None
    fret_offset = 0 if fret < 0 else fret + 1
    return (open_pitch + fret_offset + capo) % MAX_NOTES


def note_pitch(diagram: NeckDiagram, note: Note) -> Optional[int]:
    """Pitch class of a note, computed against the diagram's display tuning."""
    config = diagram.config
    return get_note_index(config.display_tuning, note.string_index, note.fret, config.capo)


def build_scale_notes(
    diagram: NeckDiagram,
    root_key: Optional[str],
    intervals: Optional[Sequence[int]],
    position_name: Optional[str] = None,
) -> List[Note]:
    """Notes for every cell of a diagram that lies in a scale.

    Cells run from the open string through ``frets - 1``. When the position
    name is a known preset, only cells inside its fret window are kept (open
    cells count as fret 0). Pitches use the display tuning.

    Args:
        diagram: The diagram to populate.
        root_key: Note name of the key.
        intervals: Semitone offsets of the scale.
        position_name: Optional position name restricting the frets.

    Returns:
        One fresh note per matching cell, empty when the key or scale is missing.
    """
    if not root_key or not intervals:
        return []
    root = note_name_to_index(root_key)
    if root is None:
        return []
    scale_set = build_scale_set(root, intervals)
    config = diagram.config
    tuning = config.display_tuning
    window = get_position_range(position_name, config.frets)
    notes: List[Note] = []
    for string_index in range(config.strings):
        for fret in range(-1, config.frets):
            if window is not None and max(fret, 0) not in window:
                continue
            pitch = get_note_index(tuning, string_index, fret, config.capo)
            if pitch is None or pitch not in scale_set:
                continue
            notes.append(Note(id=new_id(), string_index=string_index, fret=fret))
    return notes
