"""Pitch classes, note names and interval labels.

Pitch classes are integers 0-11 with C = 0. Note names are parsed leniently
(either accidental spelling, any letter case) and always printed with sharps.
"""

from typing import Dict, List, Optional

MAX_NOTES = 12
"""Number of distinct pitch classes in the chromatic scale."""

NOTE_NAMES: List[str] = [
    "C",
    "C#",
    "D",
    "D#",
    "E",
    "F",
    "F#",
    "G",
    "G#",
    "A",
    "A#",
    "B",
]
"""Canonical (sharp) spelling of each pitch class, indexed by pitch class."""

_NATURALS: Dict[str, int] = {"C": 0, "D": 2, "E": 4, "F": 5, "G": 7, "A": 9, "B": 11}

INTERVAL_LABELS: List[str] = [
    "1",
    "b2",
    "2",
    "b3",
    "3",
    "4",
    "#4",
    "5",
    "b6",
    "6",
    "b7",
    "7",
]
"""Interval label for each semitone distance above the root."""


def _build_note_index() -> Dict[str, int]:
    """Build the lookup from accepted spellings to pitch classes.

    Returns:
        Dictionary mapping ``C``, ``C#``, ``Db`` ... ``B`` to 0-11.
    """
    d: Dict[str, int] = {}
    for letter, value in _NATURALS.items():
        d[letter] = value
        d[f"{letter}#"] = add_steps(value, 1)
        d[f"{letter}b"] = add_steps(value, -1)
    return d


def add_steps(pitch_class: int, steps: int) -> int:
    """Add semitone steps to a pitch class, wrapping around the octave.

    Args:
        pitch_class: Starting pitch class.
        steps: Number of semitones to add (can be negative).

    Returns:
        The resulting pitch class in 0-11.
    """
    return (pitch_class + steps) % MAX_NOTES


NOTE_INDEX = _build_note_index()
"""Lookup from every accepted note spelling to its pitch class."""


def note_name_to_index(name: Optional[str]) -> Optional[int]:
    """Parse a note name into a pitch class.

    The letter is case-insensitive and may be followed by ``#`` or ``b``.
    Anything else, including empty input, yields None.

    Args:
        name: The note name to parse.

    Returns:
        The pitch class (0-11), or None if the name is not recognized.
    """
    if not name:
        return None
    trimmed = name.strip()
    if not trimmed or len(trimmed) > 2:
        return None
    spelled = trimmed[0].upper() + trimmed[1:]
    return NOTE_INDEX.get(spelled)


def note_name(pitch_class: int) -> str:
    """Canonical name of a pitch class."""
    return NOTE_NAMES[pitch_class % MAX_NOTES]


def get_interval_label(root_index: int, note_index: int) -> str:
    """Label the interval from a root to a note.

    Args:
        root_index: Pitch class of the root.
        note_index: Pitch class of the note.

    Returns:
        The interval label, e.g. ``"1"`` for the root or ``"b3"`` for a minor third.
    """
    return INTERVAL_LABELS[(note_index - root_index + MAX_NOTES) % MAX_NOTES]


def normalize_note_name(value: str) -> str:
    """Clean up a tuning entry typed by a user.

    Upper-cases the letter and keeps a ``#`` or ``b`` accidental. Text that
    does not start with a note letter is upper-cased and passed through.

    Args:
        value: Raw tuning entry.

    Returns:
        The cleaned entry, empty if the input was blank.
    """
    trimmed = value.strip()
    if not trimmed:
        return ""
    letter = trimmed[0].upper()
    if letter not in _NATURALS:
        return trimmed.upper()
    accidental = trimmed[1] if len(trimmed) > 1 else ""
    if accidental == "#":
        return f"{letter}#"
    elif accidental in ("b", "B"):
        return f"{letter}b"
    else:
        return letter
