from typing import List, Tuple

import pytest
from hypothesis import given
from hypothesis import strategies as st

from neckdiagram.config import CanvasSize
from neckdiagram.tiling import (
    Box,
    Size,
    any_overlap,
    column_count,
    floating_position,
    overlaps,
    repair_layout,
    suggest_tile,
)
from tests.neckdiagram.hypo import configure_hypo

configure_hypo()

GAP = 24
CANVAS = CanvasSize(1200, 800)


def _box(pos: Tuple[float, float], width: float = 520, height: float = 160) -> Box:
    return Box(pos[0], pos[1], width, height)


@pytest.mark.parametrize(
    "canvas_width, expected",
    [(300, 1), (543, 1), (1088, 2), (1200, 2), (1700, 3), (2200, 4), (5000, 4)],
)
def test_column_count(canvas_width: float, expected: int) -> None:
    assert column_count(canvas_width, GAP) == expected


class TestOverlaps:
    def test_gap_counts(self) -> None:
        a = Box(0, 0, 100, 100)
        assert overlaps(a, Box(110, 0, 100, 100), GAP)
        assert not overlaps(a, Box(124, 0, 100, 100), GAP)

    def test_both_axes(self) -> None:
        a = Box(0, 0, 100, 100)
        assert not overlaps(a, Box(50, 200, 100, 100), GAP)


class TestSuggestTile:
    def test_empty_canvas(self) -> None:
        assert suggest_tile([], CANVAS) == (24, 24)

    def test_fourth_box_in_two_columns(self) -> None:
        existing = [_box((24, 24)), _box((568, 24)), _box((24, 208))]
        position = suggest_tile(existing, CANVAS)
        assert position == (568, 208)
        assert not any(overlaps(_box(position), other, GAP) for other in existing)

    def test_wide_box_is_centred(self) -> None:
        # Grid width for two columns is 2 * 520 + 24 = 1064
        assert suggest_tile([], CANVAS, Size(720, 190)) == (196, 24)

    def test_slightly_wider_box_takes_a_column(self) -> None:
        assert suggest_tile([_box((24, 24))], CANVAS, Size(540, 160)) == (568, 24)

    def test_narrow_canvas_single_column(self) -> None:
        existing = [_box((24, 24))]
        assert suggest_tile(existing, CanvasSize(400, 800)) == (24, 208)

    def test_fallback_when_full(self) -> None:
        blocker = Box(0, 0, 10_000, 100_000)
        assert suggest_tile([blocker], CANVAS) == (GAP, GAP)


@st.composite
def placed_boxes(draw: st.DrawFn) -> List[Box]:
    boxes: List[Box] = []
    for _ in range(draw(st.integers(min_value=0, max_value=8))):
        width = draw(st.sampled_from([260, 520, 700]))
        height = draw(st.sampled_from([90, 160, 300]))
        x, y = suggest_tile(boxes, CANVAS, Size(width, height), GAP)
        boxes.append(Box(x, y, width, height))
    return boxes


@given(
    placed_boxes(),
    st.integers(min_value=260, max_value=1200),
    st.integers(min_value=90, max_value=400),
)
def test_suggestion_never_overlaps(boxes: List[Box], width: int, height: int) -> None:
    x, y = suggest_tile(boxes, CANVAS, Size(width, height), GAP)
    candidate = Box(x, y, width, height)
    assert (x, y) == (GAP, GAP) or not any(overlaps(candidate, b, GAP) for b in boxes)


def test_floating_position() -> None:
    assert floating_position(CANVAS) == (340, 24)
    assert floating_position(CanvasSize(400, 800)) == (24, 24)


class TestRepairLayout:
    def test_nothing_overlaps(self) -> None:
        grid = {"a": _box((24, 24)), "b": _box((568, 24))}
        assert not any_overlap(list(grid.values()), [], GAP)
        assert repair_layout(grid, [], CANVAS) == {}

    def test_overlapping_grid(self) -> None:
        grid = {"b": _box((100, 50)), "a": _box((24, 24))}
        assert repair_layout(grid, [], CANVAS) == {"b": (568, 24)}

    def test_floating_is_an_obstacle(self) -> None:
        floating = [_box((24, 24))]
        grid = {"a": _box((30, 30))}
        assert repair_layout(grid, floating, CANVAS) == {"a": (568, 24)}

    def test_order_is_by_row_then_column(self) -> None:
        grid = {
            "low": _box((24, 300)),
            "right": _box((560, 10)),
            "left": _box((30, 10)),
        }
        moves = repair_layout(grid, [], CANVAS)
        placed = {key: moves.get(key, grid[key].pos) for key in grid}
        assert placed == {"left": (24, 24), "right": (568, 24), "low": (24, 208)}

    def test_repaired_layout_has_no_overlaps(self) -> None:
        grid = {str(i): _box((24 + i * 10, 24 + i * 5)) for i in range(5)}
        moves = repair_layout(grid, [], CANVAS)
        boxes = [_box(moves.get(key, grid[key].pos)) for key in grid]
        assert not any_overlap(boxes, [], GAP)
