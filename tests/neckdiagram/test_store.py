import json
import logging
import threading
from typing import List, Optional

import pytest

from neckdiagram.base import PersistenceError
from neckdiagram.models import ProjectData, ProjectRecord
from neckdiagram.project import create_blank_project, create_neck_diagram
from neckdiagram.store import (
    Debouncer,
    FallbackStore,
    JsonFileStore,
    MemoryStore,
    ProjectStore,
    next_record,
)


class FailingStore(ProjectStore):
    """A primary store whose backend is unreachable."""

    def __init__(self) -> None:
        self.calls = 0

    def load(self) -> Optional[ProjectRecord]:
        self.calls += 1
        raise PersistenceError("server down")

    def save(
        self, data: ProjectData, title: str, last_opened_at: Optional[str] = None
    ) -> ProjectRecord:
        self.calls += 1
        raise PersistenceError("server down")


def _data() -> ProjectData:
    blank = create_blank_project()
    return ProjectData(
        diagrams=[create_neck_diagram(id="d1", tab_id=blank.active_tab_id)],
        tabs=blank.tabs,
        active_tab_id=blank.active_tab_id,
        created_at=blank.created_at,
        updated_at=blank.updated_at,
    )


class TestNextRecord:
    def test_new(self) -> None:
        record = next_record(None, ProjectData(), "  ", now="t1", id_prefix="local-")
        assert record.id.startswith("local-")
        assert record.title == "Untitled Neck Diagram"
        assert (record.created_at, record.updated_at, record.last_opened_at) == (
            "t1",
            "t1",
            "t1",
        )

    def test_keeps_identity(self) -> None:
        first = next_record(None, ProjectData(), "A", now="t1")
        second = next_record(first, ProjectData(), "B", last_opened_at="t0", now="t2")
        assert second.id == first.id
        assert (second.title, second.created_at, second.updated_at) == ("B", "t1", "t2")
        assert second.last_opened_at == "t0"


class TestMemoryStore:
    def test_save_and_load(self) -> None:
        store = MemoryStore()
        assert store.load() is None
        saved = store.save(_data(), "Riffs")
        assert saved.id.startswith("local-")
        assert store.load() == saved
        assert store.save(_data(), "Riffs 2").id == saved.id


class TestJsonFileStore:
    def test_round_trip(self, tmp_path) -> None:
        path = str(tmp_path / "cache" / "project.json")
        store = JsonFileStore(path)
        assert store.load() is None
        saved = store.save(_data(), "Riffs")
        loaded = JsonFileStore(path).load()
        assert loaded == saved
        assert loaded is not None and loaded.data.diagrams[0].id == "d1"

    def test_corrupt_file(self, tmp_path, caplog: pytest.LogCaptureFixture) -> None:
        path = tmp_path / "project.json"
        path.write_text("{not json", encoding="utf-8")
        with caplog.at_level(logging.WARNING):
            assert JsonFileStore(str(path)).load() is None
        assert "unreadable" in caplog.text

    def test_without_project_data(self, tmp_path) -> None:
        path = tmp_path / "project.json"
        path.write_text(json.dumps({"id": "x", "data": {"tabs": []}}), encoding="utf-8")
        assert JsonFileStore(str(path)).load() is None

    def test_unwritable(self, tmp_path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("", encoding="utf-8")
        store = JsonFileStore(str(blocker / "project.json"))
        with pytest.raises(PersistenceError):
            store.save(_data(), "Riffs")


class TestFallbackStore:
    def test_primary_success_is_mirrored(self) -> None:
        primary = MemoryStore()
        local = MemoryStore()
        store = FallbackStore(primary, local)
        saved = store.save(_data(), "Riffs")
        assert local.load() == saved
        assert store.load() == saved
        assert store.using_primary

    def test_failure_switches_to_local(self, caplog: pytest.LogCaptureFixture) -> None:
        primary = FailingStore()
        local = MemoryStore()
        store = FallbackStore(primary, local)
        with caplog.at_level(logging.WARNING):
            saved = store.save(_data(), "Riffs")
        assert "continuing with the local store" in caplog.text
        assert not store.using_primary
        assert local.load() == saved
        store.save(_data(), "Riffs")
        assert store.load() == local.load()
        assert primary.calls == 1

    def test_load_failure(self) -> None:
        local = MemoryStore()
        local.save(_data(), "Cached")
        store = FallbackStore(FailingStore(), local)
        loaded = store.load()
        assert loaded is not None and loaded.title == "Cached"


class TestDebouncer:
    def test_flush_runs_once(self) -> None:
        calls: List[int] = []
        debouncer = Debouncer(60, lambda: calls.append(1))
        debouncer.call()
        debouncer.call()
        assert debouncer.pending
        assert debouncer.flush()
        assert not debouncer.flush()
        assert calls == [1]
        assert not debouncer.pending

    def test_cancel(self) -> None:
        calls: List[int] = []
        debouncer = Debouncer(60, lambda: calls.append(1))
        debouncer.call()
        debouncer.cancel()
        assert not debouncer.pending
        assert not debouncer.flush()
        assert calls == []

    def test_fires_after_delay(self) -> None:
        fired = threading.Event()
        debouncer = Debouncer(0.01, fired.set)
        debouncer.call()
        assert fired.wait(5)
        assert not debouncer.pending
