from dataclasses import replace

import pytest

from neckdiagram.config import DEFAULT_NECK_CONFIG
from neckdiagram.drag import (
    DragMode,
    DragOutcome,
    DragOutcomeKind,
    DragSession,
    DropTarget,
    NoteTap,
    apply_outcome,
    end_drag,
    snap_to_grid,
)
from neckdiagram.geometry import BoardGeometry, StringPos
from neckdiagram.models import NeckDiagram, ProjectData, ProjectTab
from neckdiagram.project import create_neck_diagram
from neckdiagram.tiling import Box

DIAGRAM = create_neck_diagram(id="d1", tab_id="a", x=100, y=100, width=520, height=160)


def _session(mode: DragMode) -> DragSession:
    return DragSession.begin(DIAGRAM, mode, 10, 10)


@pytest.mark.parametrize(
    "value, expected", [(116, 128), (108, 96), (16, 32), (15.9, 0), (-20, -32)]
)
def test_snap_to_grid(value: float, expected: float) -> None:
    assert snap_to_grid(value, 32) == expected


class TestBoxAt:
    def test_move_divides_by_zoom(self) -> None:
        box = _session(DragMode.Move).box_at(42, 26, zoom=2)
        assert box == Box(116, 108, 520, 160)

    def test_move_snaps(self) -> None:
        box = _session(DragMode.Move).box_at(42, 26, zoom=2, snap=True)
        assert (box.x, box.y) == (128, 96)

    def test_resize_clamps(self) -> None:
        session = _session(DragMode.Resize)
        assert session.box_at(60, 30) == Box(100, 100, 570, 180)
        grown = session.box_at(5000, 5000)
        assert (grown.width, grown.height) == (1200, 400)
        shrunk = session.box_at(-5000, -5000)
        assert (shrunk.width, shrunk.height) == (260, 90)

    def test_scale_keeps_aspect(self) -> None:
        box = _session(DragMode.Scale).box_at(62, 10)
        assert box.width == pytest.approx(572)
        assert box.height == pytest.approx(176)
        assert (box.x, box.y) == (100, 100)

    def test_scale_floor(self) -> None:
        box = _session(DragMode.Scale).box_at(-5000, -5000)
        assert (box.width, box.height) == (260, 90)

    def test_scale_zero_size(self) -> None:
        flat = NeckDiagram.from_json({"id": "z", "width": 0, "height": 0})
        box = DragSession.begin(flat, DragMode.Scale, 0, 0).box_at(10, 10)
        assert box.width == pytest.approx(260 * 100 / 90)
        assert box.height == pytest.approx(100)


class TestUpdate:
    def test_moves_only_dragged_diagram(self) -> None:
        other = create_neck_diagram(id="d2", x=0, y=0)
        data = ProjectData(diagrams=[DIAGRAM, other])
        moved = _session(DragMode.Move).update(data, 20, 30)
        assert (moved.diagrams[0].x, moved.diagrams[0].y) == (110, 120)
        assert moved.diagrams[1] == other

    def test_snap_follows_config(self) -> None:
        snapping = replace(DIAGRAM, config=replace(DEFAULT_NECK_CONFIG, snap_to_grid=True))
        data = ProjectData(diagrams=[snapping])
        session = DragSession.begin(snapping, DragMode.Move, 10, 10)
        moved = session.update(data, 42, 26, zoom=2)
        assert (moved.diagrams[0].x, moved.diagrams[0].y) == (128, 96)


class TestEnd:
    def test_commit(self) -> None:
        outcome = _session(DragMode.Move).end()
        assert outcome == DragOutcome(DragOutcomeKind.Commit, "d1")

    def test_trash_deletes(self) -> None:
        outcome = _session(DragMode.Move).end(DropTarget(over_trash=True), "a")
        assert outcome.kind == DragOutcomeKind.Delete

    def test_other_tab(self) -> None:
        outcome = _session(DragMode.Move).end(DropTarget(tab_id="b"), "a")
        assert outcome == DragOutcome(DragOutcomeKind.MoveToTab, "d1", "b")

    def test_same_tab_commits(self) -> None:
        outcome = _session(DragMode.Move).end(DropTarget(tab_id="a"), "a")
        assert outcome.kind == DragOutcomeKind.Commit

    @pytest.mark.parametrize("mode", [DragMode.Resize, DragMode.Scale])
    def test_only_moves_drop(self, mode: DragMode) -> None:
        outcome = _session(mode).end(DropTarget(over_trash=True, tab_id="b"), "a")
        assert outcome.kind == DragOutcomeKind.Commit

    def test_no_session(self) -> None:
        assert end_drag(None, DropTarget(over_trash=True)) is None


class TestApplyOutcome:
    def _data(self) -> ProjectData:
        return ProjectData(
            diagrams=[DIAGRAM],
            tabs=[ProjectTab("a", "Tab 1"), ProjectTab("b", "Tab 2")],
            active_tab_id="a",
            selected_diagram_id="d1",
        )

    def test_delete(self) -> None:
        data = apply_outcome(self._data(), DragOutcome(DragOutcomeKind.Delete, "d1"))
        assert data.diagrams == []
        assert data.selected_diagram_id is None

    def test_move_to_tab(self) -> None:
        data = apply_outcome(
            self._data(), DragOutcome(DragOutcomeKind.MoveToTab, "d1", "b")
        )
        assert data.diagrams[0].tab_id == "b"
        assert data.active_tab_id == "b"

    def test_commit_and_none(self) -> None:
        data = self._data()
        assert apply_outcome(data, DragOutcome(DragOutcomeKind.Commit, "d1")) is data
        assert apply_outcome(data, None) is data


class TestNoteTap:
    def test_tap_resolves_cell(self) -> None:
        x, y = BoardGeometry.for_diagram(DIAGRAM).note_center(2, 3)
        tap = NoteTap(x, y)
        tap.move(x + 2, y + 2)
        assert not tap.moved
        assert tap.release(DIAGRAM, x, y) == StringPos(2, 3)

    def test_travel_makes_a_drag(self) -> None:
        tap = NoteTap(50, 50)
        tap.move(53, 53)
        assert tap.moved
        tap.move(50, 50)
        assert tap.moved
        assert tap.release(DIAGRAM, 50, 50) is None
