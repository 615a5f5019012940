#!/usr/bin/env python3
"""
Edit Flight Plan Script

Applies simple batch edits to a waypoint CSV without a map editor: select a
range of waypoints (all by default), move, rotate or batch-edit them, optionally
reverse the flight path, and write a CSV with the original column layout.
The edited plan can also be saved by name in the flight plan library.

Usage:
    python edit_flight_plan.py --input IN.csv --output OUT.csv --lat COL --lon COL [options]

Examples:
    python edit_flight_plan.py --input plan.csv --output moved.csv --lat latitude --lon longitude \\
        --alt altitude --translate 0 0 10
    python edit_flight_plan.py --input plan.csv --output turned.csv --lat lat --lon lon \\
        --range 5 12 --rotate 30 --pivot 20.91 52.28
    python edit_flight_plan.py --input plan.csv --output fixed.csv --lat lat --lon lon \\
        --set gimbalpitchangle=-90 --reverse --save-as "north field"
"""

import argparse
import logging
import sys
from pathlib import Path

import rich.console
import rich.logging

from waypoint_composer.errors import ValidationError
from waypoint_composer.flight_plan import ColumnMapping, SelectionMode
from waypoint_composer.session import EditingSession
from waypoint_composer.store import FlightPlanLibrary
from waypoint_composer.utils import summarize_flight_plan

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    log_format = r"\[[bold]%(name)s[/bold]] %(message)s"
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=log_format,
        datefmt="[%X]",
        handlers=[
            rich.logging.RichHandler(
                console=rich.console.Console(color_system="auto"),
                show_level=True,
                show_path=False,
                enable_link_path=False,
                rich_tracebacks=True,
                tracebacks_show_locals=False,
                markup=True,
            )
        ],
    )


def parse_assignments(assignments: list[str]) -> dict[str, str]:
    """Turn ``["name=value", ...]`` into a dict.

    Raises:
        ValidationError: An assignment has no ``=``.
    """
    changes = {}
    for assignment in assignments:
        field, sep, value = assignment.partition("=")
        if not sep or not field:
            raise ValidationError(f"Expected FIELD=VALUE, got {assignment!r}")
        changes[field.strip()] = value
    return changes


def edit_flight_plan(session: EditingSession, args: argparse.Namespace) -> None:
    """Apply the edits requested on the command line to a loaded session."""
    if args.range:
        count = session.select_range(*args.range)
        logger.info(f"Selected {count} points in range {args.range[0]}–{args.range[1]}")
    else:
        session.select_all(True)

    if args.translate:
        d_lat, d_lon, d_alt = args.translate
        session.set_selection_mode(SelectionMode.TRANSLATE)
        session.translate_selected_points(d_lat=d_lat, d_lon=d_lon, d_alt=d_alt)
        session.apply_translation()

    if args.rotate is not None:
        if not args.pivot:
            raise ValidationError("--rotate requires --pivot LON LAT")
        if not session.set_selection_mode(SelectionMode.ROTATE):
            raise ValidationError("Rotation needs at least two selected points")
        session.set_rotation_center(*args.pivot)
        session.begin_rotation()
        session.rotate_selected_points(args.rotate)
        session.apply_rotation()

    if args.set:
        session.update_selected_points(parse_assignments(args.set))

    if args.reverse:
        session.reverse_flight_points()


def main():
    """Main function."""
    parser = argparse.ArgumentParser(
        description="Batch-edit a waypoint CSV and export it with the original layout"
    )
    parser.add_argument("--input", type=Path, required=True, help="Source CSV file")
    parser.add_argument("--output", type=Path, required=True, help="Destination CSV file")
    parser.add_argument("--lat", required=True, help="Latitude column")
    parser.add_argument("--lon", required=True, help="Longitude column")
    parser.add_argument("--alt", help="Altitude column")
    parser.add_argument("--heading", help="Heading column")
    parser.add_argument("--gimbal-pitch", help="Gimbal pitch column")
    parser.add_argument(
        "--range",
        type=int,
        nargs=2,
        metavar=("MIN", "MAX"),
        help="Edit only waypoints MIN..MAX (1-based, inclusive); default is all",
    )
    parser.add_argument(
        "--translate",
        type=float,
        nargs=3,
        metavar=("DLAT", "DLON", "DALT"),
        help="Move the selection by degrees / degrees / metres",
    )
    parser.add_argument("--rotate", type=float, metavar="ANGLE", help="Rotate the selection (degrees, counter-clockwise)")
    parser.add_argument("--pivot", type=float, nargs=2, metavar=("LON", "LAT"), help="Rotation pivot")
    parser.add_argument(
        "--set",
        action="append",
        metavar="FIELD=VALUE",
        help="Set a field on every selected waypoint (repeatable)",
    )
    parser.add_argument("--reverse", action="store_true", help="Reverse the flight path order")
    parser.add_argument("--save-as", metavar="NAME", help="Also save the edited plan in the library")
    parser.add_argument("--store", metavar="URL", help="Library database URL (default: config STORE_URL)")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")

    args = parser.parse_args()
    setup_logging(args.verbose)

    mapping = ColumnMapping(
        lat=args.lat,
        lon=args.lon,
        alt=args.alt,
        heading=args.heading,
        gimbal_pitch=args.gimbal_pitch,
    )

    session = EditingSession()
    try:
        with open(args.input, "rb") as f:
            session.load_csv(f, mapping)
        edit_flight_plan(session, args)
    except ValidationError as e:
        logger.error(f"{args.input.name}: {e}")
        return 1

    logger.info(summarize_flight_plan(session.state))

    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_text(session.export_csv(), encoding="utf-8")
    logger.info(f"Wrote {args.output}")

    if args.save_as:
        FlightPlanLibrary(url=args.store).save(session.to_flight_plan(args.save_as))
    return 0


if __name__ == "__main__":
    sys.exit(main())
