"""Scale membership, position windows and note labels.

This module classifies pitch classes relative to a root and an interval set,
resolves the text drawn inside a note for each label mode, and maps position
names ("Position 1", "12-24", ...) to fret windows.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto, unique
from typing import Dict, Iterable, Optional, Set

from neckdiagram.base import MatchException
from neckdiagram.models import LabelMode, Picking
from neckdiagram.pitch import add_steps, get_interval_label, note_name


@unique
class NoteType(Enum):
    """Represents the type of a note in relation to the current scale.

    Used to pick the fill color of a drawn note.
    """

    Root = auto()  # Root note of the current key
    Member = auto()  # Note that is a member of the current scale
    Other = auto()  # Note that is not in the current scale


def build_scale_set(root: int, intervals: Iterable[int]) -> Set[int]:
    """Pitch classes of a scale.

    Args:
        root: Pitch class of the root.
        intervals: Semitone offsets from the root.

    Returns:
        The set of ``(root + offset) mod 12`` for every offset.
    """
    return {add_steps(root, offset) for offset in intervals}


class ScaleClassifier:
    """Classifies pitch classes relative to a root and scale.

    Either part may be missing. Without a scale every note counts as a
    member; without a root nothing is highlighted as the root.
    """

    def __init__(
        self,
        root: Optional[int],
        members: Optional[Set[int]],
        highlight_root: bool = True,
    ) -> None:
        """Initialize the classifier.

        Args:
            root: Pitch class of the root, if a key is selected.
            members: Pitch classes of the scale, if a scale is selected.
            highlight_root: Whether the root is reported as ``NoteType.Root``.
        """
        self._root = root
        self._members = members
        self._highlight_root = highlight_root

    @classmethod
    def build(
        cls,
        root: Optional[int],
        intervals: Optional[Iterable[int]],
        highlight_root: bool = True,
    ) -> ScaleClassifier:
        """Create a classifier from a root and interval offsets.

        The scale is only in effect when both a root and intervals are given.
        """
        if root is None or intervals is None:
            return cls(root, None, highlight_root)
        return cls(root, build_scale_set(root, intervals), highlight_root)

    def is_root(self, pitch_class: Optional[int]) -> bool:
        """Check if a pitch class is highlighted as the root."""
        return (
            self._highlight_root
            and self._root is not None
            and pitch_class == self._root
        )

    def is_member(self, pitch_class: Optional[int]) -> bool:
        """Check if a pitch class is in the scale (always true without a scale)."""
        if self._members is None:
            return True
        return pitch_class is not None and pitch_class in self._members

    def classify(self, pitch_class: Optional[int]) -> NoteType:
        """Classify a pitch class.

        Args:
            pitch_class: The pitch class, or None if it could not be computed.

        Returns:
            Root, Member or Other.
        """
        if self.is_root(pitch_class):
            return NoteType.Root
        elif self.is_member(pitch_class):
            return NoteType.Member
        else:
            return NoteType.Other


def resolve_label(
    label_mode: LabelMode,
    note_index: Optional[int],
    root_index: Optional[int],
    picking: Optional[Picking] = None,
) -> str:
    """Text drawn inside a note.

    Args:
        label_mode: The effective label mode of the note.
        note_index: Pitch class of the note, if known.
        root_index: Pitch class of the root, if a key is selected.
        picking: Picking direction of the note.

    Returns:
        The picking symbol (D when unset), the note name, or the interval
        label; empty when the needed pitch classes are unknown.
    """
    if label_mode == LabelMode.Picking:
        return (picking or Picking.Down).value
    elif label_mode == LabelMode.Key:
        return note_name(note_index) if note_index is not None else ""
    elif label_mode == LabelMode.Interval:
        if note_index is None or root_index is None:
            return ""
        return get_interval_label(root_index, note_index)
    else:
        raise MatchException(label_mode)


@dataclass(frozen=True)
class PositionPreset:
    """An inclusive fret window for a named position."""

    min_fret: int
    max_fret: int
    min_frets: int
    """Fret count a new diagram needs to show the whole window."""


POSITION_PRESETS: Dict[str, PositionPreset] = {
    "position 1": PositionPreset(0, 4, 24),
    "position 2": PositionPreset(5, 9, 24),
    "position 3": PositionPreset(10, 14, 24),
    "position 4": PositionPreset(15, 19, 24),
    "position 5": PositionPreset(20, 23, 24),
    "1-12": PositionPreset(0, 11, 12),
    "12-24": PositionPreset(12, 23, 24),
    "whole neck": PositionPreset(0, 23, 24),
}
"""Fret windows keyed by lower-cased position name."""


@dataclass(frozen=True)
class FretRange:
    """Inclusive fret window clamped to a diagram."""

    min_fret: int
    max_fret: int

    def __contains__(self, fret: int) -> bool:
        return self.min_fret <= fret <= self.max_fret


def get_position_preset(position_name: Optional[str]) -> Optional[PositionPreset]:
    """Look up a position by name (trimmed, case-insensitive)."""
    if not position_name:
        return None
    return POSITION_PRESETS.get(position_name.strip().lower())


def get_position_range(
    position_name: Optional[str], frets: int
) -> Optional[FretRange]:
    """Fret window of a named position on a diagram with ``frets`` frets.

    Args:
        position_name: The position name, e.g. ``"Position 2"``.
        frets: Fret count of the diagram.

    Returns:
        The window clamped to ``frets - 1``, or None when the name is not a
        known position or the diagram has no frets.
    """
    preset = get_position_preset(position_name)
    if preset is None or frets <= 0:
        return None
    max_fret = min(preset.max_fret, frets - 1)
    min_fret = min(preset.min_fret, max_fret)
    return FretRange(min_fret, max_fret)
