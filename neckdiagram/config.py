"""Instrument configuration for neck diagrams and application settings.

This module defines the per-diagram ``NeckConfig`` struct, its migration from
persisted documents (older or foreign documents carry fields this code no
longer knows, which are dropped), tuning normalization, and the ``Settings``
the command line builds for the editor.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum, unique
from typing import Any, Dict, List, Mapping, Optional, Tuple

from neckdiagram import constants
from neckdiagram.pitch import normalize_note_name
from neckdiagram.wire import get_bool, get_int, get_list, get_str


@unique
class FretNumberStyle(Enum):
    """How fret numbers are printed under the board."""

    Arabic = "arabic"
    Roman = "roman"

    @staticmethod
    def parse(value: Any, default: FretNumberStyle) -> FretNumberStyle:
        """Parse a wire value, falling back to a default for unknown values."""
        for style in FretNumberStyle:
            if style.value == value:
                return style
        return default


@dataclass(frozen=True)
class NeckConfig:
    """Instrument parameters and display flags of one diagram.

    The tuning always has exactly ``strings`` entries, index 0 being the
    first entry of the tuning (drawn as the bottom row).
    """

    strings: int
    """Number of strings (>= 1)."""
    frets: int
    """Number of fretted cells per string (>= 1)."""
    capo: int
    """Capo position in semitones (0 <= capo < frets)."""
    tuning: List[str]
    """Open-string note names, one per string."""
    display_standard_tuning: bool = False
    """Compute note names against the standard tuning instead of ``tuning``."""
    fret_number_style: FretNumberStyle = FretNumberStyle.Arabic
    show_fret_numbers: bool = False
    highlight_root: bool = True
    """Color the root of the selected key differently."""
    snap_to_grid: bool = False
    """Snap the diagram to the canvas grid while it is moved."""
    show_inlays: bool = True

    def to_json(self) -> Dict[str, Any]:
        """Serialize to the camelCase wire shape.

        Returns:
            A JSON-ready dictionary.
        """
        return {
            "strings": self.strings,
            "frets": self.frets,
            "capo": self.capo,
            "tuning": list(self.tuning),
            "displayStandardTuning": self.display_standard_tuning,
            "fretNumberStyle": self.fret_number_style.value,
            "showFretNumbers": self.show_fret_numbers,
            "highlightRoot": self.highlight_root,
            "snapToGrid": self.snap_to_grid,
            "showInlays": self.show_inlays,
        }

    @property
    def display_tuning(self) -> List[str]:
        """The tuning note names are computed against."""
        if self.display_standard_tuning:
            return get_standard_tuning(self.strings)
        else:
            return self.tuning


KNOWN_CONFIG_FIELDS: Tuple[str, ...] = (
    "strings",
    "frets",
    "capo",
    "tuning",
    "displayStandardTuning",
    "fretNumberStyle",
    "showFretNumbers",
    "highlightRoot",
    "snapToGrid",
    "showInlays",
)
"""Wire fields of the current NeckConfig version. Anything else is dropped."""


def get_standard_tuning(strings: int) -> List[str]:
    """Standard tuning for a string count.

    Uses the 6-, 7- or 8-string base and truncates it, or repeats its last
    entry, to reach the requested count.

    Args:
        strings: The number of strings.

    Returns:
        A fresh list of ``max(strings, 0)`` note names.
    """
    if strings >= 8:
        base = constants.DEFAULT_TUNING_8
    elif strings == 7:
        base = constants.DEFAULT_TUNING_7
    else:
        base = constants.DEFAULT_TUNING_6
    if strings <= len(base):
        return base[: max(strings, 0)]
    tuning = list(base)
    while len(tuning) < strings:
        tuning.append(tuning[-1])
    return tuning


def normalize_tuning(strings: int, tuning: List[str]) -> List[str]:
    """Force a tuning to have exactly one entry per string.

    Entries are cleaned with ``normalize_note_name`` and blanks dropped. An
    empty result falls back to the standard tuning; a short one repeats its
    last entry; a long one is truncated.

    Args:
        strings: The number of strings.
        tuning: The tuning to normalize.

    Returns:
        A new list of length ``strings``.
    """
    cleaned = [normalize_note_name(str(note)) for note in tuning]
    normalized = [note for note in cleaned if note]
    if not normalized:
        normalized = get_standard_tuning(strings)
    if len(normalized) > strings:
        return normalized[:strings]
    while len(normalized) < strings:
        normalized.append(normalized[-1] if normalized else "E")
    return normalized


DEFAULT_NECK_CONFIG = NeckConfig(
    strings=8,
    frets=12,
    capo=0,
    tuning=list(constants.DEFAULT_TUNING_8),
)
"""Configuration of a freshly created diagram."""


def _clamp_capo(capo: int, frets: int) -> int:
    return min(max(capo, 0), max(frets - 1, 0))


def migrate_config(
    raw: Optional[Mapping[str, Any]], base: NeckConfig = DEFAULT_NECK_CONFIG
) -> NeckConfig:
    """Read a persisted config over a base config.

    Missing or ill-typed fields keep the base value. Fields that the current
    version does not know are dropped. Counts are clamped to their valid
    ranges and the tuning is normalized to the string count.

    Args:
        raw: The persisted config object, or None.
        base: The config that supplies defaults.

    Returns:
        A valid NeckConfig.
    """
    if raw is None:
        raw = {}
    dropped = sorted(key for key in raw.keys() if key not in KNOWN_CONFIG_FIELDS)
    if dropped:
        logging.debug("dropping config fields: %s", ", ".join(dropped))
    strings = max(1, get_int(raw, "strings", base.strings))
    frets = max(1, get_int(raw, "frets", base.frets))
    capo = _clamp_capo(get_int(raw, "capo", base.capo), frets)
    raw_tuning = get_list(raw, "tuning")
    tuning_source = (
        [note for note in raw_tuning if isinstance(note, str)]
        if raw_tuning is not None
        else base.tuning
    )
    return NeckConfig(
        strings=strings,
        frets=frets,
        capo=capo,
        tuning=normalize_tuning(strings, tuning_source),
        display_standard_tuning=get_bool(
            raw, "displayStandardTuning", base.display_standard_tuning
        ),
        fret_number_style=FretNumberStyle.parse(
            get_str(raw, "fretNumberStyle"), base.fret_number_style
        ),
        show_fret_numbers=get_bool(raw, "showFretNumbers", base.show_fret_numbers),
        highlight_root=get_bool(raw, "highlightRoot", base.highlight_root),
        snap_to_grid=get_bool(raw, "snapToGrid", base.snap_to_grid),
        show_inlays=get_bool(raw, "showInlays", base.show_inlays),
    )


def patch_config(config: NeckConfig, patch: Mapping[str, Any]) -> NeckConfig:
    """Apply a partial change (wire field names) to a config.

    The tuning is re-normalized against the new string count, so changing
    ``strings`` alone truncates the tuning or repeats its last entry.

    Args:
        config: The current config.
        patch: The fields to change.

    Returns:
        The updated config.
    """
    return migrate_config(patch, base=config)


EIGHT_STRING_PRESETS: List[Tuple[str, List[str]]] = [
    ("F# Standard", list(constants.DEFAULT_TUNING_8)),
    ("Half Step Down", ["F", "A#", "D#", "G#", "C#", "F#", "A#", "D#"]),
    ("Drop E", ["E", "B", "E", "A", "D", "G", "B", "E"]),
    ("E Standard", ["E", "A", "D", "G", "C", "F", "A", "D"]),
]
"""Named tunings offered for eight-string diagrams."""


@dataclass(frozen=True)
class CanvasSize:
    """Visible canvas area the tiler lays diagrams out in."""

    width: float
    height: float


@dataclass(frozen=True)
class Settings:
    """Editor settings collected from the command line."""

    canvas: CanvasSize = field(
        default_factory=lambda: CanvasSize(
            constants.DEFAULT_CANVAS_WIDTH, constants.DEFAULT_CANVAS_HEIGHT
        )
    )
    """Canvas size used for tile suggestions."""
    gap: int = constants.TILE_GAP
    """Margin between tiled diagrams."""
    grid_size: int = constants.GRID_SIZE
    """Snap grid for moved diagrams."""
    save_delay: float = constants.DEFAULT_SAVE_DELAY
    """Debounce window for saves, in seconds."""
    store_path: Optional[str] = None
    """Path of the local project cache, if any."""
    log_level: str = "INFO"

    def with_canvas(self, width: float, height: float) -> Settings:
        """Copy of these settings with a different canvas size."""
        return replace(self, canvas=CanvasSize(width, height))
