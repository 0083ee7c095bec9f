"""Import and export of diagrams and pages as JSON documents.

Two versioned envelopes are written:

- a diagram export ``{"diagram": ..., "exportedAt": ..., "version": 1}``;
- a page export ``{"title": ..., "data": <project>, "metadata": {...},
  "version": 1}`` holding the diagrams of one tab.

Imports accept both envelopes and a bare project document. Structural damage
is repaired by the normalizer; only documents without any diagrams are
rejected, with an ``ImportRejected`` carrying the message shown to the user.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set

from neckdiagram import constants
from neckdiagram.base import ExportError, ImportRejected, new_id, now_iso, to_iso
from neckdiagram.library import Library, slugify
from neckdiagram.models import NeckDiagram, ProjectData, ProjectTab
from neckdiagram.project import (
    create_default_tab,
    normalize_imported_diagram,
    normalize_project_data,
)
from neckdiagram.wire import as_mapping, get_list, get_str

INVALID_JSON = "Invalid JSON file."
INVALID_PROJECT = "JSON does not contain a valid neck diagram project."
INVALID_DIAGRAM = "JSON does not contain a valid diagram."
NOTHING_TO_EXPORT = "Add a neck diagram before exporting."

_AUTO_TAB_NAME = re.compile(r"^Tab\s+\d+$", re.IGNORECASE)


@dataclass(frozen=True)
class ParseResult:
    """Outcome of parsing a JSON text."""

    ok: bool
    value: Any


@dataclass(frozen=True)
class ProjectPayload:
    """A project found in an imported document."""

    title: Optional[str]
    """Trimmed title of a page export, if it had one."""
    data: Optional[ProjectData]
    """The normalized project, None when the document holds none."""


@dataclass(frozen=True)
class PageImport:
    """Result of importing a page: the project title and the merged data."""

    title: str
    data: ProjectData


def safe_json_parse(text: str) -> ParseResult:
    """Parse JSON without raising.

    Args:
        text: The document text.

    Returns:
        ``ParseResult(True, value)`` or ``ParseResult(False, None)``.
    """
    try:
        return ParseResult(True, json.loads(text))
    except ValueError:
        return ParseResult(False, None)


def dump_payload(payload: Mapping[str, Any]) -> str:
    """Serialize an export envelope the way it is written to disk."""
    return json.dumps(payload, indent=2)


def parse_project_payload(parsed: Any) -> ProjectPayload:
    """Find a project in a parsed document.

    Both a page export (``{"title", "data": {"diagrams": [...]}}``) and a bare
    project (``{"diagrams": [...]}``) are accepted. The project is
    normalized; a missing tab list becomes one ``Imported`` tab.

    Args:
        parsed: The parsed JSON value.

    Returns:
        The payload; ``data`` is None when there is no ``diagrams`` array.
    """
    record = as_mapping(parsed)
    if record is None:
        return ProjectPayload(None, None)
    raw_title = get_str(record, "title")
    title = raw_title.strip() if raw_title is not None else None
    wrapped = as_mapping(record.get("data"))
    if wrapped is not None and get_list(wrapped, "diagrams") is not None:
        source = wrapped
    elif get_list(record, "diagrams") is not None:
        source = record
    else:
        return ProjectPayload(title, None)
    data = normalize_project_data(
        ProjectData.from_json(source), fallback_tab_name=constants.IMPORTED_TAB_NAME
    )
    return ProjectPayload(title, data)


def title_from_filename(filename: str) -> str:
    """Project title for an imported file without a title of its own."""
    stem = re.sub(r"\.json$", "", filename, flags=re.IGNORECASE).strip()
    return stem or constants.IMPORTED_PROJECT_TITLE


def _unique_tab_name(base: str, taken: Set[str]) -> str:
    name = base
    suffix = 2
    while name.lower() in taken:
        name = f"{base} {suffix}"
        suffix += 1
    taken.add(name.lower())
    return name


def merge_project(current: ProjectData, imported: ProjectData) -> ProjectData:
    """Append the tabs and diagrams of an imported project.

    Imported tabs get fresh ids and names that do not collide
    (case-insensitively) with existing ones; unnamed tabs are called
    ``Imported N``. Each diagram follows its tab, and diagram ids that are
    already taken are replaced. The first imported tab becomes active and the
    first imported diagram selected.

    Args:
        current: The open project.
        imported: The normalized imported project.

    Returns:
        The merged project.
    """
    taken = {tab.name.lower() for tab in current.tabs}
    source_tabs = imported.tabs or [create_default_tab(constants.IMPORTED_TAB_NAME)]
    tab_id_map: Dict[str, str] = {}
    merged_tabs: List[ProjectTab] = []
    for index, tab in enumerate(source_tabs):
        base = tab.name.strip() or f"{constants.IMPORTED_TAB_NAME} {index + 1}"
        merged = ProjectTab(id=new_id(), name=_unique_tab_name(base, taken))
        tab_id_map[tab.id] = merged.id
        merged_tabs.append(merged)

    existing_ids = {diagram.id for diagram in current.diagrams}
    imported_diagrams: List[NeckDiagram] = []
    for diagram in imported.diagrams:
        source_tab_id = diagram.tab_id or imported.active_tab_id or source_tabs[0].id
        target_tab_id = tab_id_map.get(source_tab_id, merged_tabs[0].id)
        imported_diagrams.append(
            normalize_imported_diagram(diagram, target_tab_id, existing_ids)
        )
    logging.info(
        "imported %d tabs and %d diagrams", len(merged_tabs), len(imported_diagrams)
    )
    return replace(
        current,
        tabs=[*current.tabs, *merged_tabs],
        diagrams=[*current.diagrams, *imported_diagrams],
        active_tab_id=merged_tabs[0].id,
        selected_diagram_id=(
            imported_diagrams[0].id if imported_diagrams else current.selected_diagram_id
        ),
    )


def import_page(current: ProjectData, text: str, fallback_title: str) -> PageImport:
    """Import a page export (or bare project) into the open project.

    A project without diagrams is replaced by the imported one; otherwise the
    import is merged with ``merge_project``.

    Args:
        current: The open project.
        text: The document text.
        fallback_title: Title used when the document has none.

    Returns:
        The new title and project data.

    Raises:
        ImportRejected: If the text is not JSON or holds no project.
    """
    parsed = safe_json_parse(text)
    if not parsed.ok:
        raise ImportRejected(INVALID_JSON)
    payload = parse_project_payload(parsed.value)
    if payload.data is None:
        raise ImportRejected(INVALID_PROJECT)
    title = payload.title or fallback_title
    if not current.diagrams:
        logging.info("replacing empty project with import %r", title)
        return PageImport(title, payload.data)
    return PageImport(title, merge_project(current, payload.data))


def find_imported_diagrams(parsed: Any) -> List[Mapping[str, Any]]:
    """Collect the raw diagrams of a parsed document.

    The first matching shape wins: a ``diagram`` object, a ``diagrams``
    array, a ``data`` project, or the document itself when it has a
    ``config``.
    """
    record = as_mapping(parsed)
    if record is None:
        return []
    single = as_mapping(record.get("diagram"))
    if single is not None:
        return [single]
    many = get_list(record, "diagrams")
    if many is not None:
        return [d for d in (as_mapping(item) for item in many) if d is not None]
    if as_mapping(record.get("data")) is not None:
        payload = parse_project_payload(record)
        if payload.data is None:
            return []
        return [diagram.to_json() for diagram in payload.data.diagrams]
    if as_mapping(record.get("config")) is not None:
        return [record]
    return []


def import_diagrams(current: ProjectData, text: str) -> ProjectData:
    """Import one or more diagrams into the active tab.

    Args:
        current: The open project.
        text: The document text.

    Returns:
        The project with the diagrams appended and the first one selected.

    Raises:
        ImportRejected: If the text is not JSON or holds no diagram.
    """
    parsed = safe_json_parse(text)
    if not parsed.ok:
        raise ImportRejected(INVALID_JSON)
    raw_diagrams = find_imported_diagrams(parsed.value)
    if not raw_diagrams:
        raise ImportRejected(INVALID_DIAGRAM)
    tabs = current.tabs or [create_default_tab()]
    active = current.active_tab_id or tabs[0].id
    existing_ids = {diagram.id for diagram in current.diagrams}
    imported = [
        normalize_imported_diagram(raw, active, existing_ids) for raw in raw_diagrams
    ]
    logging.info("imported %d diagrams into tab %s", len(imported), active)
    return replace(
        current,
        tabs=tabs,
        active_tab_id=active,
        diagrams=[*current.diagrams, *imported],
        selected_diagram_id=imported[0].id,
    )


def format_export_date(moment: datetime) -> str:
    """Human-readable export date, e.g. ``Friday, Feb 6, 2026``."""
    return f"{moment:%A}, {moment:%b} {moment.day}, {moment.year}"


def tab_display_name(tab: ProjectTab, index: int) -> str:
    """Name a tab is shown with: automatic names follow the tab's position."""
    trimmed = tab.name.strip()
    if not trimmed or _AUTO_TAB_NAME.match(trimmed):
        return f"Tab {index + 1}"
    return trimmed


def build_diagram_export_payload(
    diagram: NeckDiagram, exported_at: str
) -> Dict[str, Any]:
    """Envelope of a single-diagram export."""
    return {
        "diagram": diagram.to_json(),
        "exportedAt": exported_at,
        "version": constants.EXPORT_VERSION,
    }


def build_page_export_payload(
    title: str,
    tab_name: str,
    diagrams: Sequence[NeckDiagram],
    created_at: Optional[str],
    exported_at: datetime,
    key_id: Optional[str] = None,
    scale_id: Optional[str] = None,
    position_id: Optional[str] = None,
    search_query: Optional[str] = None,
) -> Dict[str, Any]:
    """Envelope of a page export.

    The diagrams are copied into a single fresh tab, which is active, and the
    first diagram is selected.

    Args:
        title: Title of the export.
        tab_name: Name of the exported tab.
        diagrams: The tab's diagrams.
        created_at: Creation time of the source project.
        exported_at: Export time.
        key_id: Selected key of the source project.
        scale_id: Selected scale of the source project.
        position_id: Selected position of the source project.
        search_query: Library search of the source project.

    Returns:
        The JSON-ready envelope.

    Raises:
        ExportError: If there are no diagrams.
    """
    if not diagrams:
        raise ExportError(NOTHING_TO_EXPORT)
    exported_iso = to_iso(exported_at)
    tab_id = new_id()
    data = ProjectData(
        diagrams=[replace(diagram, tab_id=tab_id) for diagram in diagrams],
        tabs=[ProjectTab(id=tab_id, name=tab_name)],
        active_tab_id=tab_id,
        selected_diagram_id=diagrams[0].id,
        key_id=key_id,
        scale_id=scale_id,
        position_id=position_id,
        search_query=search_query,
        created_at=created_at,
        updated_at=exported_iso,
    )
    return {
        "title": title,
        "data": data.to_json(),
        "metadata": {
            "exportedAt": exported_iso,
            "exportedOn": format_export_date(exported_at),
        },
        "version": constants.EXPORT_VERSION,
    }


def export_page(
    data: ProjectData, title: str, exported_at: Optional[datetime] = None
) -> Dict[str, Any]:
    """Export the active tab of a project as a page.

    Raises:
        ExportError: If the active tab has no diagrams.
    """
    moment = exported_at or datetime.now(timezone.utc)
    index = next(
        (i for i, tab in enumerate(data.tabs) if tab.id == data.active_tab_id), None
    )
    tab_name = tab_display_name(data.tabs[index], index) if index is not None else "Page"
    return build_page_export_payload(
        title=title,
        tab_name=tab_name,
        diagrams=data.diagrams_in_tab(data.active_tab_id),
        created_at=data.created_at,
        exported_at=moment,
        key_id=data.key_id,
        scale_id=data.scale_id,
        position_id=data.position_id,
        search_query=data.search_query,
    )


def export_diagram(diagram: NeckDiagram) -> Dict[str, Any]:
    """Export one diagram, stamped with the current time."""
    return build_diagram_export_payload(diagram, now_iso())


def export_filename(base: str, fallback: str) -> str:
    """File name of an export: the slug of ``base``, or ``fallback`` when it is empty."""
    return f"{slugify(base) or fallback}.json"


def diagram_export_filename(diagram: NeckDiagram, library: Library) -> str:
    """File name of a diagram export, after its theory selection or its name."""
    theory = library.theory_name(diagram.key_id, diagram.scale_id, diagram.position_id)
    return export_filename(theory or diagram.name or "diagram", "diagram")
