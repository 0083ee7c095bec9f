"""Constants shared across the editor core.

Sizes are in canvas pixels at zoom 1.
"""

from typing import List

EXPORT_VERSION = 1
"""Version stamped on every export envelope."""

CONFIG_VERSION = 1
"""Version of the NeckConfig struct written by this code."""

DEFAULT_TUNING_6: List[str] = ["E", "A", "D", "G", "B", "E"]
"""Standard six-string guitar tuning, lowest string first."""
DEFAULT_TUNING_7: List[str] = ["B", "E", "A", "D", "G", "B", "E"]
"""Standard seven-string tuning."""
DEFAULT_TUNING_8: List[str] = ["F#", "B", "E", "A", "D", "G", "B", "E"]
"""Standard eight-string tuning."""

DEFAULT_DIAGRAM_WIDTH = 520
"""Width of a new diagram, and the standard tiling column width."""
DEFAULT_DIAGRAM_HEIGHT = 160
"""Height of a new diagram."""

MIN_DIAGRAM_WIDTH = 260
MIN_DIAGRAM_HEIGHT = 90
MAX_DIAGRAM_WIDTH = 1200
MAX_DIAGRAM_HEIGHT = 400
MIN_SCALE_FACTOR = 0.2
"""Smallest factor a scale-drag may shrink a diagram by."""

TILE_GAP = 24
"""Margin kept between tiled diagrams and around the canvas edge."""
MAX_TILE_ROWS = 100
"""Hard bound on the rows searched for a free tile."""
WIDE_TOLERANCE = 1.05
"""A box wider than this multiple of the column width is centred across the grid."""
MIN_COLUMNS = 2
MAX_COLUMNS = 4

GRID_SIZE = 32
"""Snap grid for moved diagrams."""
NOTE_TAP_THRESHOLD = 4
"""Pointer travel (pixels) beyond which a note press becomes a drag."""

DEFAULT_CANVAS_WIDTH = 1200
DEFAULT_CANVAS_HEIGHT = 800

MIN_NOTE_RADIUS = 8
NOTE_STROKE_WIDTH = 2
MIN_OPEN_STRING_PAD = 24
MIN_RIGHT_PAD = 12
MIN_VERTICAL_PAD = 8

INLAY_FRETS: List[int] = [3, 5, 7, 9, 12, 15, 17, 19, 21, 24]
"""Fret numbers that carry a position marker."""
DOUBLE_INLAY_FRETS: List[int] = [12, 24]
"""Fret numbers that carry a double marker."""

DEFAULT_TAB_NAME = "Tab 1"
IMPORTED_TAB_NAME = "Imported"
DEFAULT_PROJECT_TITLE = "Untitled Neck Diagram"
IMPORTED_PROJECT_TITLE = "Imported Project"
DEFAULT_DIAGRAM_NAME = "Neck"

DEFAULT_SAVE_DELAY = 0.6
"""Seconds of quiet after the last edit before a save fires."""

DEFAULT_STORE_PATH = "~/.neckdiagram/last-project.json"
"""Local cache of the last opened project."""
