"""Command line entry point for Neck Diagram Studio.

Sub-commands work on project JSON files and the local project cache:

- ``normalize``: repair a project document and write it back out;
- ``import-page``: merge a page export into the cached project;
- ``scale``: print a fretboard with a key, scale and position;
- ``tile``: print the slot a new diagram would take in a project tab.
"""

import json
import logging
import os
import sys
from argparse import ArgumentParser, Namespace
from dataclasses import replace
from typing import Any, Optional

from neckdiagram import constants
from neckdiagram.base import NeckDiagramError
from neckdiagram.config import Settings, get_standard_tuning, migrate_config
from neckdiagram.editor import Editor
from neckdiagram.library import Library, LibraryItem, LibraryItemType
from neckdiagram.models import LabelMode, ProjectData
from neckdiagram.notes import build_scale_notes
from neckdiagram.project import create_neck_diagram
from neckdiagram.store import JsonFileStore
from neckdiagram.tiling import Box, Size, suggest_tile
from neckdiagram.transfer import parse_project_payload, safe_json_parse
from neckdiagram.view import render_ascii


def make_parser() -> ArgumentParser:
    """Create the command-line argument parser.

    Returns:
        An ArgumentParser with the global options and one sub-parser per
        command.
    """
    parser = ArgumentParser(prog="neckdiagram")
    parser.add_argument("--log-level", default="INFO")
    parser.add_argument(
        "--canvas-width", type=float, default=constants.DEFAULT_CANVAS_WIDTH
    )
    parser.add_argument(
        "--canvas-height", type=float, default=constants.DEFAULT_CANVAS_HEIGHT
    )
    parser.add_argument("--gap", type=int, default=constants.TILE_GAP)
    parser.add_argument("--store", default=constants.DEFAULT_STORE_PATH)
    commands = parser.add_subparsers(dest="command", required=True)

    normalize = commands.add_parser("normalize", help="repair a project document")
    normalize.add_argument("input")
    normalize.add_argument("-o", "--output")

    import_page = commands.add_parser(
        "import-page", help="merge a page export into the cached project"
    )
    import_page.add_argument("input")

    scale = commands.add_parser("scale", help="print a scale on a fretboard")
    scale.add_argument("--key", default="E")
    scale.add_argument("--scale", default="Minor Pentatonic")
    scale.add_argument("--position")
    scale.add_argument("--strings", type=int, default=6)
    scale.add_argument("--frets", type=int, default=12)
    scale.add_argument("--tuning", nargs="+")
    scale.add_argument(
        "--label-mode",
        choices=[mode.value for mode in LabelMode],
        default=LabelMode.Key.value,
    )

    tile = commands.add_parser("tile", help="suggest a slot for a new diagram")
    tile.add_argument("input")
    tile.add_argument("--tab")
    tile.add_argument("--width", type=float, default=constants.DEFAULT_DIAGRAM_WIDTH)
    tile.add_argument("--height", type=float, default=constants.DEFAULT_DIAGRAM_HEIGHT)
    return parser


def configure_logging(log_level: str) -> None:
    """Configure the logging system with the specified log level.

    Args:
        log_level: The logging level (e.g., 'DEBUG', 'INFO', 'WARNING').
    """
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(filename)s:%(lineno)d -- %(message)s",
        level=log_level,
    )


def settings_from_args(args: Namespace) -> Settings:
    """Settings for the global command-line options."""
    return Settings(
        gap=args.gap, store_path=os.path.expanduser(args.store), log_level=args.log_level
    ).with_canvas(args.canvas_width, args.canvas_height)


def _read_text(path: str) -> str:
    with open(path, "r", encoding="utf-8") as handle:
        return handle.read()


def _load_project(path: str) -> ProjectData:
    parsed = safe_json_parse(_read_text(path))
    if not parsed.ok:
        raise NeckDiagramError(f"{path} is not valid JSON")
    # Stored records wrap the project the same way page exports do
    payload = parse_project_payload(parsed.value)
    if payload.data is None:
        raise NeckDiagramError(f"{path} does not contain a neck diagram project")
    return payload.data


def run_normalize(args: Namespace) -> None:
    data = _load_project(args.input)
    text = json.dumps(data.to_json(), indent=2)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as handle:
            handle.write(text + "\n")
        logging.info("wrote %s", args.output)
    else:
        print(text)


def run_import_page(args: Namespace, settings: Settings) -> None:
    assert settings.store_path is not None
    editor = Editor(JsonFileStore(settings.store_path), settings)
    editor.open()
    try:
        data = editor.import_page(_read_text(args.input), os.path.basename(args.input))
    finally:
        editor.close()
    print(f"{editor.record.title}: {len(data.tabs)} tabs, {len(data.diagrams)} diagrams")


def _find_scale(library: Library, name: str) -> Optional[LibraryItem]:
    return library.find(name, LibraryItemType.Scale) or library.find(
        name, LibraryItemType.Mode
    )


def run_scale(args: Namespace) -> None:
    library = Library()
    scale = _find_scale(library, args.scale)
    if scale is None:
        raise NeckDiagramError(f"unknown scale: {args.scale}")
    raw_config: dict[str, Any] = {
        "strings": args.strings,
        "frets": args.frets,
        "tuning": args.tuning or get_standard_tuning(args.strings),
    }
    diagram = create_neck_diagram(
        config=migrate_config(raw_config),
        label_mode=LabelMode(args.label_mode),
    )
    notes = build_scale_notes(diagram, args.key, scale.intervals, args.position)
    name = " - ".join(part for part in (args.key, scale.name, args.position) if part)
    print(name)
    print(render_ascii(replace(diagram, notes=notes), args.key, scale.intervals))


def run_tile(args: Namespace, settings: Settings) -> None:
    data = _load_project(args.input)
    tab_id = args.tab or data.active_tab_id
    if data.find_tab(tab_id) is None:
        raise NeckDiagramError(f"unknown tab: {tab_id}")
    boxes = [Box(d.x, d.y, d.width, d.height) for d in data.diagrams_in_tab(tab_id)]
    x, y = suggest_tile(boxes, settings.canvas, Size(args.width, args.height), settings.gap)
    print(f"{x:g} {y:g}")


def main() -> None:
    """Main entry point for the neckdiagram command.

    Parses command-line arguments, configures logging and runs the chosen
    sub-command. User-facing errors end the process with status 1.
    """
    parser = make_parser()
    args = parser.parse_args()
    configure_logging(args.log_level)
    settings = settings_from_args(args)
    try:
        if args.command == "normalize":
            run_normalize(args)
        elif args.command == "import-page":
            run_import_page(args, settings)
        elif args.command == "scale":
            run_scale(args)
        elif args.command == "tile":
            run_tile(args, settings)
        else:
            parser.error(f"unknown command: {args.command}")
    except (NeckDiagramError, OSError) as e:
        logging.error("%s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
