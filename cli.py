# === cli.py ===

import dataclasses
import sys
import click
import logging

from event_inspect.card_renderer import DEFAULT_MAX_WIDTH, render_cards
from event_inspect.errors import InspectionAborted
from event_inspect.file_discovery import read_asset_files
from event_inspect.glyphs import ACTIVE_GLYPHS
from event_inspect.graph_builder import DEFAULT_WALK_DEPTH
from event_inspect.inspector import inspect_files
from event_inspect.report_generator import (
    format_error_report,
    generate_graph_output,
    generate_markdown_report
)

EXIT_OK = 0
EXIT_PARTIAL = 1
EXIT_FATAL = 2


@click.command()
@click.argument("root_dir", type=click.Path(file_okay=False))
@click.option("--max-width", "-w", default=DEFAULT_MAX_WIDTH, show_default=True,
              type=click.IntRange(min=20),
              help="Wrap card text at this many columns")
@click.option("--start", "-s", default=None,
              help="Only show records reachable from this AssetId or display name")
@click.option("--depth", "-d", default=DEFAULT_WALK_DEPTH, show_default=True,
              type=click.IntRange(min=0),
              help="How many reference hops to follow from --start")
@click.option("--graph-json", type=click.Path(dir_okay=False), default=None,
              help="Also write the reference graph as JSON to this path")
@click.option("--md-report", type=click.Path(dir_okay=False), default=None,
              help="Also write a Markdown report to this path")
@click.option("--errors-only", is_flag=True, default=False,
              help="Skip the cards; only list failures")
@click.option("--verbose", "-v", is_flag=True, default=False,
              help="Enable verbose (DEBUG) logging")
def inspect_events(root_dir, max_width, start, depth, graph_json, md_report, errors_only, verbose):
    """
    Reads every .asset/.asset.meta pair under ROOT_DIR (Unity serialized NPC,
    Event and Choice records), links their cross-file references and prints
    one card per record. Failures are listed separately on stderr:
      - exit 0: every file inspected cleanly
      - exit 1: some files failed (the rest are still shown)
      - exit 2: ROOT_DIR itself could not be read
    The border style is fixed at startup by EVENT_INSPECT_DISPLAY_COMPAT.
    """
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s: %(message)s",
        datefmt="%H:%M:%S"
    )
    logger = logging.getLogger(__name__)
    logger.info(f"Inspecting `{root_dir}` (glyphs={ACTIVE_GLYPHS.name}, verbose={verbose})")

    # 1) Read all asset + meta files
    try:
        files, read_errors = read_asset_files(root_dir)
    except InspectionAborted as e:
        logger.error(f"{e}. Exiting.")
        sys.exit(EXIT_FATAL)
    if not files:
        logger.warning("No .asset or .meta files found under root.")

    # 2) Parse, map and link everything in one batch
    result = inspect_files(files, unreadable=[e.source for e in read_errors if e.source])
    result = dataclasses.replace(result, errors=tuple(read_errors) + result.errors)
    errors = result.errors
    graph = result.graph

    # 3) Pick the records to show
    records = graph.sorted_records()
    if start is not None:
        origin = graph.find(start)
        if origin is None:
            logger.error(f"--start `{start}` matches no record (or more than one by name).")
            sys.exit(EXIT_PARTIAL)
        records = graph.walk(origin.asset_id, max_depth=depth)
        logger.info(f"  → {len(records)} record(s) within {depth} hop(s) of '{origin.name}'")

    # 4) Cards to stdout
    if not errors_only and records:
        click.echo(render_cards(records, ACTIVE_GLYPHS, max_width))

    # 5) Optional reports
    if graph_json:
        logger.info(f"Writing reference graph JSON to `{graph_json}` …")
        generate_graph_output(graph, graph_json)
    if md_report:
        logger.info(f"Writing Markdown report to `{md_report}` …")
        generate_markdown_report(result, md_report)

    # 6) Failures to stderr
    if errors:
        click.echo(f"{len(errors)} file(s) could not be inspected:", err=True)
        for line in format_error_report(errors):
            click.echo(line, err=True)
        sys.exit(EXIT_PARTIAL)

    logger.info(f"Inspection complete: {len(graph)} record(s), {len(graph.dangling)} dangling reference(s).")
    sys.exit(EXIT_OK)


if __name__ == "__main__":
    inspect_events()
