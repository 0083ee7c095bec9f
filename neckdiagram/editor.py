"""Editing session over one project.

The ``Editor`` owns the current ``ProjectRecord``. Every user action is a
function from ``ProjectData`` to ``ProjectData``; ``apply`` runs it, stamps
the update time and schedules a debounced save. The save writes whatever
snapshot is current when the timer fires, so edits made while a save is in
flight are never blocked or rolled back.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from threading import Lock
from typing import Any, Callable, Dict, Optional

from neckdiagram import constants
from neckdiagram.base import PersistenceError, new_id, now_iso
from neckdiagram.config import Settings
from neckdiagram.drag import (
    DragMode,
    DragOutcome,
    DragSession,
    DropTarget,
    apply_outcome,
    end_drag,
)
from neckdiagram.library import Library
from neckdiagram.models import LabelMode, ProjectData, ProjectRecord
from neckdiagram.project import (
    add_diagram,
    add_diagram_from_theory,
    create_blank_project,
    normalize_project_data,
    repair_tab_overlaps,
)
from neckdiagram.store import Debouncer, ProjectStore
from neckdiagram.transfer import (
    export_page,
    import_diagrams,
    import_page,
    title_from_filename,
)

Action = Callable[[ProjectData], ProjectData]


class Editor:
    """Application state container for one open project."""

    def __init__(
        self,
        store: ProjectStore,
        settings: Optional[Settings] = None,
        library: Optional[Library] = None,
    ) -> None:
        """Initialize the editor.

        Args:
            store: Where the project is loaded from and saved to.
            settings: Canvas and timing settings.
            library: Theory library resolving key, scale and position ids.
        """
        self._store = store
        self._settings = settings if settings is not None else Settings()
        self._library = library if library is not None else Library()
        self._lock = Lock()
        self._record: Optional[ProjectRecord] = None
        self._drag: Optional[DragSession] = None
        self._saver = Debouncer(self._settings.save_delay, self._save)

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def library(self) -> Library:
        return self._library

    @property
    def record(self) -> ProjectRecord:
        """The open project; opens one if needed."""
        with self._lock:
            record = self._record
        return record if record is not None else self.open()

    @property
    def data(self) -> ProjectData:
        return self.record.data

    @property
    def save_pending(self) -> bool:
        return self._saver.pending

    def open(self) -> ProjectRecord:
        """Load the last project from the store, or start a blank one.

        The loaded project is normalized and its last-opened time stamped.
        """
        try:
            loaded = self._store.load()
        except PersistenceError as e:
            logging.warning("cannot load project, starting blank: %s", e)
            loaded = None
        now = now_iso()
        if loaded is None:
            logging.info("starting a blank project")
            record = ProjectRecord(
                id=f"local-{new_id()}",
                title=constants.DEFAULT_PROJECT_TITLE,
                data=create_blank_project(),
                created_at=now,
                updated_at=now,
                last_opened_at=now,
            )
        else:
            logging.info("opened project %s (%s)", loaded.id, loaded.title)
            record = replace(
                loaded, data=normalize_project_data(loaded.data, now), last_opened_at=now
            )
        with self._lock:
            self._record = record
        return record

    def apply(self, action: Action) -> ProjectData:
        """Apply an action to the project and schedule a save.

        Outside a drag, overlapping tiles in the active tab are re-tiled after
        every change.

        Args:
            action: Function from the current data to the new data. Returning
                the same object means nothing changed.

        Returns:
            The current project data.
        """
        current = self.record
        changed = action(current.data)
        if self._drag is None:
            changed = repair_tab_overlaps(
                changed, changed.active_tab_id, self._settings.canvas, self._settings.gap
            )
        if changed is current.data:
            return changed
        now = now_iso()
        with self._lock:
            latest = self._record if self._record is not None else current
            self._record = replace(
                latest, data=replace(changed, updated_at=now), updated_at=now
            )
            data = self._record.data
        self._saver.call()
        return data

    def rename(self, title: str) -> None:
        """Change the project title; blank titles are ignored."""
        trimmed = title.strip()
        if not trimmed:
            return
        with self._lock:
            if self._record is None:
                return
            self._record = replace(self._record, title=trimmed, updated_at=now_iso())
        self._saver.call()

    def _save(self) -> None:
        with self._lock:
            record = self._record
        if record is None:
            return
        try:
            saved = self._store.save(record.data, record.title, record.last_opened_at)
        except PersistenceError as e:
            logging.error("saving project %s failed: %s", record.id, e)
            return
        logging.debug("saved project %s", saved.id)
        with self._lock:
            if self._record is not None and self._record.id != saved.id:
                self._record = replace(self._record, id=saved.id)

    def flush(self) -> bool:
        """Run a pending save now."""
        return self._saver.flush()

    def close(self) -> None:
        """Write any pending save and stop the timer."""
        self._saver.flush()
        self._saver.cancel()

    def add_diagram(self, label_mode: LabelMode = LabelMode.Key) -> ProjectData:
        """Add a blank diagram to the active tab."""
        return self.apply(
            lambda data: add_diagram(
                data, self._settings.canvas, label_mode, self._settings.gap
            )
        )

    def add_diagram_from_theory(
        self, label_mode: LabelMode = LabelMode.Key, replace_id: Optional[str] = None
    ) -> ProjectData:
        """Add or regenerate a diagram from the selected key, scale and position."""
        return self.apply(
            lambda data: add_diagram_from_theory(
                data,
                self._library,
                self._settings.canvas,
                label_mode,
                replace_id,
                self._settings.gap,
            )
        )

    def repair_overlaps(self) -> ProjectData:
        """Re-tile the active tab if its diagrams overlap."""
        return self.apply(
            lambda data: repair_tab_overlaps(
                data, data.active_tab_id, self._settings.canvas, self._settings.gap
            )
        )

    def import_page(self, text: str, filename: str) -> ProjectData:
        """Import a page export; the project takes the imported title.

        Raises:
            ImportRejected: If the document holds no project.
        """
        result = import_page(self.data, text, title_from_filename(filename))
        data = self.apply(lambda _: result.data)
        self.rename(result.title)
        return data

    def import_diagrams(self, text: str) -> ProjectData:
        """Import diagrams into the active tab.

        Raises:
            ImportRejected: If the document holds no diagram.
        """
        imported = import_diagrams(self.data, text)
        return self.apply(lambda _: imported)

    def export_page(
        self, title: Optional[str] = None, exported_at: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """Export the active tab.

        Raises:
            ExportError: If the active tab has no diagrams.
        """
        return export_page(self.data, title or self.record.title, exported_at)

    def begin_drag(self, diagram_id: str, mode: DragMode, x: float, y: float) -> bool:
        """Start dragging a diagram; False if it does not exist."""
        diagram = self.data.find_diagram(diagram_id)
        if diagram is None:
            return False
        self._drag = DragSession.begin(diagram, mode, x, y)
        return True

    def drag_to(self, x: float, y: float, zoom: float = 1.0) -> ProjectData:
        """Move the pointer during a drag; does nothing without one."""
        session = self._drag
        if session is None:
            return self.data
        return self.apply(
            lambda data: session.update(data, x, y, zoom, self._settings.grid_size)
        )

    def end_drag(self, drop: Optional[DropTarget] = None) -> Optional[DragOutcome]:
        """Release the pointer, applying a drop on the trash or a tab."""
        session, self._drag = self._drag, None
        outcome = end_drag(session, drop, self.data.active_tab_id)
        if outcome is not None:
            self.apply(lambda data: apply_outcome(data, outcome))
        return outcome
