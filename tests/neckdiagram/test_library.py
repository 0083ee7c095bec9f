from neckdiagram.library import (
    DEFAULT_LIBRARY,
    Library,
    LibraryItem,
    LibraryItemType,
    slugify,
)


def test_default_ids() -> None:
    ids = {item.id for item in DEFAULT_LIBRARY}
    assert len(ids) == len(DEFAULT_LIBRARY)
    assert "default:scale:minor-pentatonic" in ids
    assert "default:scale:major-ionian" in ids
    assert "default:position:position-1" in ids
    assert "default:key:c" in ids
    assert "default:key:f" in ids
    assert "default:key:f-sharp" in ids


def test_slugify() -> None:
    assert slugify("  Major (Ionian) ") == "major-ionian"
    assert slugify("E - Blues - 12-24") == "e-blues-12-24"
    assert slugify("!!!") == ""


class TestLibrary:
    def test_keys(self) -> None:
        keys = Library().by_type(LibraryItemType.Key)
        assert [item.name for item in keys][:3] == ["C", "C#", "D"]
        assert len(keys) == 12

    def test_search_is_sorted_and_case_insensitive(self) -> None:
        names = [item.name for item in Library().search("MINOR")]
        assert names == ["Harmonic Minor", "Melodic Minor", "Minor Pentatonic", "Natural Minor"]

    def test_search_by_type(self) -> None:
        modes = Library().search("", LibraryItemType.Mode)
        assert [item.name for item in modes] == [
            "Dorian",
            "Locrian",
            "Lydian",
            "Mixolydian",
            "Phrygian",
        ]

    def test_resolve(self) -> None:
        library = Library()
        assert library.resolve_name("default:key:e") == "E"
        assert library.resolve_intervals("default:mode:dorian") == [0, 2, 3, 5, 7, 9, 10]
        assert library.resolve_name("remote:scale:42") is None
        assert library.resolve_intervals(None) is None

    def test_theory_name(self) -> None:
        library = Library()
        assert (
            library.theory_name(
                "default:key:e",
                "default:scale:minor-pentatonic",
                "default:position:position-1",
            )
            == "E - Minor Pentatonic - Position 1"
        )
        assert library.theory_name("default:key:a", None, "missing") == "A"
        assert library.theory_name(None, None, None) == ""

    def test_find(self) -> None:
        library = Library()
        dorian = library.find("dorian", LibraryItemType.Mode)
        assert dorian is not None and dorian.id == "default:mode:dorian"
        assert library.find("dorian", LibraryItemType.Scale) is None
        assert library.find("default:key:g", LibraryItemType.Key) is not None

    def test_add(self) -> None:
        library = Library()
        item = LibraryItem(
            id="remote:scale:hirajoshi",
            type=LibraryItemType.Scale,
            name="Hirajoshi",
            intervals=[0, 2, 3, 7, 8],
        )
        library.add(item)
        assert len(library) == len(DEFAULT_LIBRARY) + 1
        assert library.get(item.id) == item


def test_item_from_json() -> None:
    raw = {"id": "x", "type": "mode", "name": "Custom", "intervals": [0, 2, True, "3", 5]}
    item = LibraryItem.from_json(raw)
    assert item is not None
    assert item.type == LibraryItemType.Mode
    assert item.intervals == [0, 2, 5]
    assert LibraryItem.from_json({"id": "x", "type": "chord", "name": "C"}) is None
    assert LibraryItem.from_json(item.to_json()) == item
