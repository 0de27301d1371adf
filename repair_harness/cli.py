#!/usr/bin/env python3
"""
Repair Harness CLI.

Run predefined test pages against the reference inpainting engine, list
their cases, or run one custom-page repair on an image.

Usage:
    python -m repair_harness run --page index
    python -m repair_harness run --page shape --shape 2 --assets ./assets
    python -m repair_harness run --catalog thin.yaml --selector smoothed --output reports/
    python -m repair_harness list --page shape --shape 4
    python -m repair_harness custom --image shape4.png --point 120 40 --hole 30 30

Exit code is 1 when any case failed or the inputs were invalid, else 0.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from repair_harness import __version__
from repair_harness.bitmap import PillowBitmapLoader
from repair_harness.catalog import TestCatalog, index_catalog, shape_catalog, shape_count
from repair_harness.catalog_schema import load_catalog_file
from repair_harness.config import HarnessConfig, load_config
from repair_harness.engine import InpaintEngine
from repair_harness.errors import CatalogError, ConfigError, ImageLoadError
from repair_harness.geometry import Point
from repair_harness.interactive import CustomTestSession
from repair_harness.invoker import RepairInvoker
from repair_harness.logging_config import setup_logging
from repair_harness.options import DisplayOption, DisplaySelector
from repair_harness.page import TestPage
from repair_harness.reporter import StatusReporter
from repair_harness.status import RunStatus
from repair_harness.surface import SurfaceRegistry

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def _add_page_args(parser: argparse.ArgumentParser) -> None:
    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--page",
        choices=["index", "shape"],
        default="index",
        help="Built-in page (default: index)",
    )
    source.add_argument(
        "--catalog",
        type=Path,
        help="YAML catalog file instead of a built-in page",
    )
    parser.add_argument(
        "--shape",
        type=int,
        default=1,
        help=f"Shape page number for --page shape (1..{shape_count()})",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repair-harness",
        description="Visual regression harness for region-repair engines",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=None,
        help="Harness YAML config (default: built-in defaults)",
    )
    parser.add_argument("--log-level", default=None, help="Override logging.level")
    parser.add_argument("--log-file", default=None, help="Override logging.file")
    parser.add_argument("--json-logs", action="store_true", help="JSON log lines")
    parser.add_argument(
        "--assets",
        type=Path,
        default=None,
        help="Assets directory (default: assets.dir from config)",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run a test page")
    _add_page_args(run)
    run.add_argument(
        "--selector",
        choices=[s.value for s in DisplaySelector],
        default=None,
        help="Curve overlay (default: display.selector from config)",
    )
    run.add_argument("--show-tangents", action="store_true", help="Overlay tangents")
    run.add_argument("--show-control-points", action="store_true", help="Overlay control points")
    run.add_argument("--output", "-o", type=Path, default=None, help="Report directory")
    run.add_argument("--case", action="append", default=None, help="Run only this case id (repeatable)")

    lst = sub.add_parser("list", help="List the cases of a page")
    _add_page_args(lst)

    custom = sub.add_parser("custom", help="One custom-page repair on an image")
    custom.add_argument("--image", required=True, help="Image file")
    custom.add_argument(
        "--point",
        nargs=2,
        type=float,
        metavar=("X", "Y"),
        default=None,
        help="Hole center in image pixels (default: image center)",
    )
    custom.add_argument(
        "--hole",
        nargs=2,
        metavar=("W", "H"),
        default=None,
        help="Hole size (default: 30%% of the image)",
    )
    custom.add_argument(
        "--selector",
        choices=[s.value for s in DisplaySelector],
        default=None,
    )
    custom.add_argument("--output", "-o", type=Path, default=None, help="Snapshot directory")
    return parser


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def resolve_catalog(args: argparse.Namespace, config: HarnessConfig) -> tuple[str, TestCatalog]:
    """Page name and catalog selected by the page arguments."""
    if args.catalog is not None:
        catalog = load_catalog_file(args.catalog)
        return catalog.name, catalog
    if args.page == "shape":
        catalog = shape_catalog(args.shape, config.assets.shape_pattern)
        return catalog.name, catalog
    return "index", index_catalog()


def _assets_dir(args: argparse.Namespace, config: HarnessConfig) -> Path:
    return args.assets if args.assets is not None else Path(config.assets.dir)


def cmd_list(args: argparse.Namespace, config: HarnessConfig) -> int:
    name, catalog = resolve_catalog(args, config)
    print(f"{name}: {len(catalog)} cases")
    for case in catalog:
        rect = case.hole_rect
        origin = f" [{case.source}]" if case.source else ""
        print(f"  {case.case_id:<48} x={rect.x:<4} y={rect.y:<4} w={rect.w:<4} h={rect.h:<4}{origin}")
    return 0


def cmd_run(args: argparse.Namespace, config: HarnessConfig) -> int:
    name, catalog = resolve_catalog(args, config)
    if args.case:
        catalog = catalog.filter(args.case)

    registry = SurfaceRegistry()
    engine = InpaintEngine(registry, config.engine.method, config.engine.radius)
    reporter = StatusReporter()
    page = TestPage(
        name,
        catalog,
        registry,
        RepairInvoker(engine, config.engine.tuning),
        reporter,
        PillowBitmapLoader(_assets_dir(args, config)),
        config,
    )
    if args.selector is not None:
        page.set_option(DisplayOption.SELECTOR, args.selector)
    if args.show_tangents:
        page.set_option(DisplayOption.SHOW_TANGENTS, True)
    if args.show_control_points:
        page.set_option(DisplayOption.SHOW_CONTROL_POINTS, True)

    def on_status(status: RunStatus) -> None:
        mark = "PASS" if status.success else "FAIL"
        print(f"{mark} {status.case_id}")

    statuses = asyncio.run(page.run_all(on_status))

    output_dir = args.output or (
        Path(config.report.output_dir) if config.report.output_dir else None
    )
    if output_dir is not None:
        surfaces = page.surfaces if config.report.snapshots else []
        report_path = reporter.write_report(output_dir, surfaces)
        print(f"Report written to: {report_path}")

    for line in reporter.summary_lines():
        print(line)
    failed = sum(1 for s in statuses if not s.success)
    print(f"{len(statuses) - failed}/{len(statuses)} passed")
    return 1 if failed else 0


async def _run_custom(args: argparse.Namespace, config: HarnessConfig) -> tuple[RunStatus, CustomTestSession]:
    registry = SurfaceRegistry()
    engine = InpaintEngine(registry, config.engine.method, config.engine.radius)
    session = CustomTestSession(
        registry,
        RepairInvoker(engine, config.engine.tuning),
        PillowBitmapLoader(_assets_dir(args, config)),
        config,
    )
    if args.selector is not None:
        session.options = session.options.with_option(DisplayOption.SELECTOR, args.selector)
    await session.load(args.image)
    if args.hole is not None:
        session.set_hole_size(*args.hole)
    point = Point(*args.point) if args.point is not None else Point.unset()
    status = await session.run_at(point)
    return status, session


def cmd_custom(args: argparse.Namespace, config: HarnessConfig) -> int:
    try:
        status, session = asyncio.run(_run_custom(args, config))
    except ImageLoadError as e:
        print(f"Error: {e}")
        return 1

    rect = session.surface.hole_rect
    print(f"{'PASS' if status.success else 'FAIL'} hole={rect.as_tuple() if rect else None}")
    if args.output is not None:
        reporter = StatusReporter()
        reporter.start_run("custom", session.options)
        reporter.record(status, session.test_input())
        report_path = reporter.write_report(args.output, [session.surface])
        print(f"Report written to: {report_path}")
    return 0 if status.success else 1


_COMMANDS = {
    "run": cmd_run,
    "list": cmd_list,
    "custom": cmd_custom,
}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except (ConfigError, FileNotFoundError) as e:
        print(f"Error loading config: {e}")
        return 1

    setup_logging(
        args.log_level or config.logging.level,
        args.log_file or config.logging.file,
        json=args.json_logs or config.logging.json,
    )

    try:
        return _COMMANDS[args.command](args, config)
    except CatalogError as e:
        print(f"Error: {e}")
        return 1
    except KeyboardInterrupt:
        print("\nRun interrupted.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
