from dataclasses import replace
from typing import List

from hypothesis import given
from hypothesis import strategies as st

from neckdiagram.config import CanvasSize
from neckdiagram.library import Library
from neckdiagram.models import (
    LabelMode,
    LayoutMode,
    NeckDiagram,
    Note,
    ProjectData,
    ProjectTab,
)
from neckdiagram.notes import has_duplicate_cells
from neckdiagram.project import (
    add_diagram,
    add_diagram_from_theory,
    add_tab,
    create_blank_project,
    create_demo_project,
    create_neck_diagram,
    delete_diagram,
    delete_tab,
    move_diagram_to_tab,
    normalize_imported_diagram,
    normalize_project_data,
    patch_diagram_config,
    rename_diagram,
    repair_tab_overlaps,
    select_diagram,
    select_tab,
    set_theory,
    toggle_diagram_note,
)
from tests.neckdiagram.hypo import configure_hypo

configure_hypo()

CANVAS = CanvasSize(1200, 800)
NOW = "2026-02-06T12:00:00.000Z"
TAB_A = ProjectTab("a", "Tab 1")
TAB_B = ProjectTab("b", "Tab 2")


def _project(diagrams: List[NeckDiagram], **kwargs) -> ProjectData:
    fields = dict(tabs=[TAB_A, TAB_B], active_tab_id="a")
    fields.update(kwargs)
    return ProjectData(diagrams=diagrams, **fields)


@st.composite
def raw_diagram(draw: st.DrawFn) -> NeckDiagram:
    notes = [
        Note(
            id=draw(st.sampled_from(["", "n1", "n2"])),
            string_index=draw(st.integers(min_value=0, max_value=2)),
            fret=draw(st.integers(min_value=-1, max_value=2)),
        )
        for _ in range(draw(st.integers(min_value=0, max_value=5)))
    ]
    return create_neck_diagram(
        id=draw(st.sampled_from(["", "d1", "d2", "d3"])),
        tab_id=draw(st.sampled_from([None, "a", "b", "gone"])),
        layout_mode=draw(st.sampled_from([None, LayoutMode.Grid, LayoutMode.Float])),
        notes=notes,
    )


@st.composite
def raw_project(draw: st.DrawFn) -> ProjectData:
    tabs = draw(st.sampled_from([[], [TAB_A], [TAB_A, TAB_B], [ProjectTab("", "x")]]))
    return ProjectData(
        diagrams=draw(st.lists(raw_diagram(), max_size=5)),
        tabs=tabs,
        active_tab_id=draw(st.sampled_from([None, "a", "b", "gone"])),
        selected_diagram_id=draw(st.sampled_from([None, "d1", "gone"])),
        key_id=draw(st.sampled_from([None, "default:key:e"])),
    )


@given(raw_project())
def test_normalize_converges(data: ProjectData) -> None:
    once = normalize_project_data(data, now=NOW)
    assert normalize_project_data(once, now=NOW) == once


@given(raw_project())
def test_normalize_invariants(data: ProjectData) -> None:
    fixed = normalize_project_data(data, now=NOW)
    tab_ids = {tab.id for tab in fixed.tabs}
    assert fixed.tabs
    assert fixed.active_tab_id in tab_ids
    ids = [d.id for d in fixed.diagrams]
    assert all(ids)
    assert len(ids) == len(set(ids))
    for diagram in fixed.diagrams:
        assert diagram.tab_id in tab_ids
        assert diagram.layout_mode is not None
        assert not has_duplicate_cells(diagram.notes)
        assert all(note.id for note in diagram.notes)
    assert fixed.selected_diagram_id is None or fixed.selected_diagram_id in ids
    assert fixed.updated_at == NOW


class TestNormalize:
    def test_adds_tab_and_reassigns(self) -> None:
        data = ProjectData(diagrams=[create_neck_diagram(id="d1", tab_id="gone")])
        fixed = normalize_project_data(data, now=NOW, fallback_tab_name="Imported")
        assert [tab.name for tab in fixed.tabs] == ["Imported"]
        assert fixed.diagrams[0].tab_id == fixed.active_tab_id == fixed.tabs[0].id

    def test_timestamps(self) -> None:
        fixed = normalize_project_data(_project([], created_at="2025-01-01"), now=NOW)
        assert fixed.created_at == "2025-01-01"
        assert fixed.updated_at == NOW
        assert normalize_project_data(_project([]), now=NOW).created_at == NOW

    def test_theory_migration(self) -> None:
        plain = create_neck_diagram(id="d1", tab_id="a")
        tagged = create_neck_diagram(id="d2", tab_id="a", scale_id="default:scale:blues")
        data = _project(
            [plain, tagged],
            key_id="default:key:e",
            scale_id="default:scale:minor-pentatonic",
        )
        fixed = normalize_project_data(data, now=NOW)
        first, second = fixed.diagrams
        assert (first.key_id, first.scale_id) == (
            "default:key:e",
            "default:scale:minor-pentatonic",
        )
        assert (second.key_id, second.scale_id) == ("default:key:e", "default:scale:blues")

    def test_sizes_are_clamped(self) -> None:
        flat = create_neck_diagram(id="d1", tab_id="a", width=0, height=-5)
        huge = create_neck_diagram(id="d2", tab_id="a", width=5000, height=900)
        fixed = normalize_project_data(_project([flat, huge]), now=NOW)
        assert [(d.width, d.height) for d in fixed.diagrams] == [(260, 90), (1200, 400)]

    def test_duplicate_ids(self) -> None:
        data = _project([create_neck_diagram(id="d1"), create_neck_diagram(id="d1")])
        first, second = normalize_project_data(data, now=NOW).diagrams
        assert first.id == "d1"
        assert second.id not in ("", "d1")


class TestImportedDiagram:
    def test_taken_id_is_replaced(self) -> None:
        existing = {"d1"}
        imported = normalize_imported_diagram(create_neck_diagram(id="d1"), "b", existing)
        assert imported.id != "d1"
        assert imported.tab_id == "b"
        assert existing == {"d1", imported.id}

    def test_free_id_is_kept(self) -> None:
        existing = {"d1"}
        raw = {"id": "d9", "config": {"strings": 4, "bogus": 1}, "notes": []}
        imported = normalize_imported_diagram(raw, "a", existing)
        assert imported.id == "d9"
        assert imported.layout_mode == LayoutMode.Grid
        assert imported.config.strings == 4
        assert len(imported.config.tuning) == 4


class TestAddDiagram:
    def test_first_floats_then_tiles(self) -> None:
        data = add_diagram(create_blank_project(), CANVAS)
        first = data.diagrams[0]
        assert (first.x, first.y) == (340, 24)
        assert first.layout_mode == LayoutMode.Float
        assert data.selected_diagram_id == first.id

        data = add_diagram(data, CANVAS)
        second = data.diagrams[1]
        assert second.name == "Neck 2"
        assert second.layout_mode == LayoutMode.Grid
        assert (second.x, second.y) == (24, 208)
        assert second.tab_id == data.active_tab_id

    def test_without_tabs(self) -> None:
        data = add_diagram(ProjectData(), CANVAS, LabelMode.Interval)
        assert len(data.tabs) == 1
        assert data.diagrams[0].tab_id == data.tabs[0].id
        assert data.diagrams[0].label_mode == LabelMode.Interval


class TestAddFromTheory:
    def _data(self) -> ProjectData:
        return replace(
            create_blank_project(),
            key_id="default:key:e",
            scale_id="default:scale:minor-pentatonic",
            position_id="default:position:position-1",
        )

    def test_new_diagram(self) -> None:
        data = add_diagram_from_theory(self._data(), Library(), CANVAS)
        diagram = data.diagrams[0]
        assert diagram.name == "E - Minor Pentatonic - Position 1"
        assert diagram.config.frets == 24
        assert diagram.notes
        assert all(note.fret <= 4 for note in diagram.notes)
        assert diagram.scale_id == "default:scale:minor-pentatonic"

    def test_replace_keeps_identity(self) -> None:
        data = add_diagram(self._data(), CANVAS)
        first = data.diagrams[0]
        moved = replace(data, diagrams=[replace(first, x=500, y=300, width=700)])
        data = add_diagram_from_theory(moved, Library(), CANVAS, replace_id=first.id)
        assert len(data.diagrams) == 1
        regenerated = data.diagrams[0]
        assert regenerated.id == first.id
        assert (regenerated.x, regenerated.y, regenerated.width) == (500, 300, 700)
        assert regenerated.name == "E - Minor Pentatonic - Position 1"
        assert regenerated.notes

    def test_no_theory(self) -> None:
        data = add_diagram_from_theory(create_blank_project(), Library(), CANVAS)
        assert data.diagrams[0].name == "Neck 1"
        assert data.diagrams[0].notes == []


class TestTabs:
    def test_add_and_select(self) -> None:
        data = add_tab(create_blank_project())
        assert [tab.name for tab in data.tabs] == ["Tab 1", "Tab 2"]
        assert data.active_tab_id == data.tabs[1].id
        assert select_tab(data, "nope") is data
        assert select_tab(data, data.tabs[0].id).active_tab_id == data.tabs[0].id

    def test_last_tab_is_kept(self) -> None:
        data = create_blank_project()
        assert delete_tab(data, data.tabs[0].id) is data

    def test_delete_cascades(self) -> None:
        tab_c = ProjectTab("c", "Tab 3")
        diagrams = [
            create_neck_diagram(id="d1", tab_id="a"),
            create_neck_diagram(id="d2", tab_id="b"),
            create_neck_diagram(id="d3", tab_id="c"),
        ]
        data = _project(
            diagrams, tabs=[TAB_A, TAB_B, tab_c], active_tab_id="b", selected_diagram_id="d2"
        )
        after = delete_tab(data, "b")
        assert [tab.id for tab in after.tabs] == ["a", "c"]
        assert after.active_tab_id == "a"
        assert [d.id for d in after.diagrams] == ["d1", "d3"]
        assert after.selected_diagram_id == "d1"

    def test_delete_first_active(self) -> None:
        data = _project([], active_tab_id="a")
        assert delete_tab(data, "a").active_tab_id == "b"

    def test_delete_inactive(self) -> None:
        data = _project([create_neck_diagram(id="d1", tab_id="a")], selected_diagram_id="d1")
        after = delete_tab(data, "b")
        assert after.active_tab_id == "a"
        assert after.selected_diagram_id == "d1"

    def test_move_diagram(self) -> None:
        data = _project([create_neck_diagram(id="d1", tab_id="a")])
        moved = move_diagram_to_tab(data, "d1", "b")
        assert moved.diagrams[0].tab_id == "b"
        assert (moved.active_tab_id, moved.selected_diagram_id) == ("b", "d1")
        assert move_diagram_to_tab(data, "d1", "nope") is data


class TestDiagramEdits:
    def test_delete_moves_selection(self) -> None:
        data = _project(
            [create_neck_diagram(id="d1"), create_neck_diagram(id="d2")],
            selected_diagram_id="d1",
        )
        assert delete_diagram(data, "d1").selected_diagram_id == "d2"
        assert delete_diagram(data, "d2").selected_diagram_id == "d1"
        only = _project([create_neck_diagram(id="d1")], selected_diagram_id="d1")
        assert delete_diagram(only, "d1").selected_diagram_id is None

    def test_select(self) -> None:
        data = _project([create_neck_diagram(id="d1")])
        assert select_diagram(data, "d1").selected_diagram_id == "d1"
        assert select_diagram(data, "nope") is data
        assert select_diagram(data, None).selected_diagram_id is None

    def test_rename(self) -> None:
        data = _project([create_neck_diagram(id="d1")])
        assert rename_diagram(data, "d1", "  Lick ").diagrams[0].name == "Lick"
        assert rename_diagram(data, "d1", "   ") is data

    def test_toggle_and_patch(self) -> None:
        data = _project([create_neck_diagram(id="d1", tab_id="a")])
        data = toggle_diagram_note(data, "d1", 2, 3)
        assert [n.key for n in data.diagrams[0].notes] == [(2, 3)]
        data = patch_diagram_config(data, "d1", {"strings": 6})
        assert data.diagrams[0].config.strings == 6
        assert data.diagrams[0].config.tuning == ["F#", "B", "E", "A", "D", "G"]

    def test_set_theory(self) -> None:
        library = Library()
        data = ProjectData()
        for item_id in (
            "default:key:a",
            "default:mode:dorian",
            "default:position:position-2",
        ):
            item = library.get(item_id)
            assert item is not None
            data = set_theory(data, item)
        assert (data.key_id, data.scale_id, data.position_id) == (
            "default:key:a",
            "default:mode:dorian",
            "default:position:position-2",
        )


class TestRepairOverlaps:
    def test_moves_only_grid(self) -> None:
        floating = create_neck_diagram(
            id="f", tab_id="a", x=24, y=24, layout_mode=LayoutMode.Float
        )
        grid = create_neck_diagram(id="g", tab_id="a", x=30, y=30, layout_mode=LayoutMode.Grid)
        other_tab = create_neck_diagram(id="o", tab_id="b", x=30, y=30)
        data = _project([floating, grid, other_tab])
        fixed = repair_tab_overlaps(data, "a", CANVAS)
        by_id = {d.id: d for d in fixed.diagrams}
        assert (by_id["f"].x, by_id["f"].y) == (24, 24)
        assert (by_id["g"].x, by_id["g"].y) == (568, 24)
        assert (by_id["o"].x, by_id["o"].y) == (30, 30)

    def test_no_overlap_is_identity(self) -> None:
        data = _project([create_neck_diagram(id="g", tab_id="a", x=24, y=24)])
        assert repair_tab_overlaps(data, "a", CANVAS) is data


def test_demo_project() -> None:
    demo = create_demo_project()
    assert [tab.name for tab in demo.tabs] == ["Demo"]
    assert len(demo.diagrams) == 3
    assert {d.label_mode for d in demo.diagrams} == set(LabelMode)
    assert normalize_project_data(demo, now=NOW).diagrams[0].id == demo.diagrams[0].id


def test_blank_project() -> None:
    data = create_blank_project()
    assert data.diagrams == []
    assert data.active_tab_id == data.tabs[0].id
