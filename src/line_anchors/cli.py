"""CLI entry point for the anchor engine."""

import json
import os
import sys
from pathlib import Path

import click
from pydantic import ValidationError

from line_anchors.anchors import AnchorEngine
from line_anchors.config import EngineConfig, EngineSettings, load_config
from line_anchors.log import get_logger, init_logger
from line_anchors.models import Anchor
from line_anchors.storage import read_source, sync_file

# Exit code for a completed run that left anchors unresolved
EXIT_ORPHANED = 3


def resolve_config(
    file_path: Path,
    config_path: Path | None,
    threshold: float | None = None,
    radius: int | None = None,
    context_lines: int | None = None,
) -> EngineConfig:
    """Pick the config profile for a file and apply command-line overrides.

    Raises:
        FileNotFoundError: If config_path does not exist
        ValueError: If the config file or an override is invalid
    """
    settings = load_config(config_path) if config_path else EngineSettings()
    base = settings.for_file(file_path)

    overrides = {
        "similarity_threshold": threshold,
        "search_radius": radius,
        "context_lines": context_lines,
    }
    merged = {**base.model_dump(), **{k: v for k, v in overrides.items() if v is not None}}
    return EngineConfig.model_validate(merged)


def _format_count(label: str, count: int, color: str) -> str:
    """Colour a non-zero count unless NO_COLOR is set."""
    if count > 0 and not os.environ.get("NO_COLOR"):
        return f"{label}: {click.style(str(count), fg=color)}"
    return f"{label}: {count}"


def config_options(fn):
    """Shared tuning options for commands that build an engine."""
    fn = click.option(
        "--context-lines", type=int, default=None, help="Context lines per side (default: 2)"
    )(fn)
    fn = click.option(
        "--radius", type=int, default=None, help="Local search radius in lines (default: 20)"
    )(fn)
    fn = click.option(
        "--threshold",
        type=float,
        default=None,
        help="Minimum context similarity to accept a match (0-1, default: 0.6)",
    )(fn)
    fn = click.option(
        "--config",
        "config_path",
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        default=None,
        help="JSON config file with default and per-suffix profiles",
    )(fn)
    return fn


@click.group()
@click.version_option(version="0.1.0", prog_name="line-anchors")
@click.option("-v", "--verbose", is_flag=True, help="Print debug output to stderr")
def cli(verbose: bool):
    """Keep line comments attached to the right place as files change."""
    init_logger(verbose=verbose, use_colors=not os.environ.get("NO_COLOR"))


@cli.command()
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("line", type=click.IntRange(min=1))
@click.option("--end-line", type=click.IntRange(min=1), default=None, help="Last line of a range")
@config_options
def anchor(
    file_path: Path,
    line: int,
    end_line: int | None,
    config_path: Path | None,
    threshold: float | None,
    radius: int | None,
    context_lines: int | None,
) -> None:
    """Print the anchor JSON for LINE (or LINE..--end-line) of FILE_PATH.

    Examples:
        line-anchors anchor docs/plan.md 12
        line-anchors anchor src/app.py 40 --end-line 44
    """
    try:
        config = resolve_config(file_path, config_path, threshold, radius, context_lines)
        content = read_source(file_path)
        result = AnchorEngine(config).create_anchor(content, line, end_line)
    except FileNotFoundError as e:
        get_logger().error(str(e))
        sys.exit(2)
    except ValueError as e:
        get_logger().error(str(e))
        sys.exit(1)

    click.echo(result.model_dump_json(indent=2, exclude_none=True))


@cli.command()
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--anchor", "anchor_json", required=True, help="Stored anchor as a JSON object")
@config_options
def locate(
    file_path: Path,
    anchor_json: str,
    config_path: Path | None,
    threshold: float | None,
    radius: int | None,
    context_lines: int | None,
) -> None:
    """Relocate one stored anchor against the current FILE_PATH.

    Prints the relocation result as JSON. Exits 3 when the anchor cannot be found.
    """
    try:
        stored = Anchor.model_validate_json(anchor_json)
    except ValidationError as e:
        get_logger().error(f"Invalid anchor: {e}")
        sys.exit(1)

    try:
        config = resolve_config(file_path, config_path, threshold, radius, context_lines)
        content = read_source(file_path)
    except FileNotFoundError as e:
        get_logger().error(str(e))
        sys.exit(2)
    except ValueError as e:
        get_logger().error(str(e))
        sys.exit(1)

    result = AnchorEngine(config).relocate(stored, content)
    click.echo(result.model_dump_json(indent=2, exclude_none=True))
    if not result.found:
        sys.exit(EXIT_ORPHANED)


@cli.command()
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--dry-run", is_flag=True, help="Report without writing the annotation file")
@click.option("--json", "json_output", is_flag=True, help="Output results as JSON")
@config_options
def sync(
    file_path: Path,
    dry_run: bool,
    json_output: bool,
    config_path: Path | None,
    threshold: float | None,
    radius: int | None,
    context_lines: int | None,
) -> None:
    """Move FILE_PATH's annotations to where their lines are now.

    Annotations that can no longer be found are reported as orphaned and
    keep their previous anchor. Exits 3 when any annotation is orphaned.

    Examples:
        line-anchors sync docs/plan.md
        line-anchors sync docs/plan.md --json --threshold 0.7
    """
    logger = get_logger()
    try:
        config = resolve_config(file_path, config_path, threshold, radius, context_lines)
        report = sync_file(file_path, AnchorEngine(config), dry_run=dry_run)
    except FileNotFoundError as e:
        logger.error(str(e), suggestion="Annotate the file before syncing it")
        sys.exit(2)
    except ValueError as e:
        logger.error(str(e))
        sys.exit(1)
    except OSError as e:
        logger.exception("Failed to sync annotations", e)
        sys.exit(2)

    if json_output:
        click.echo(json.dumps(report.model_dump(mode="json"), indent=2))
    elif report.skipped and not report.orphaned_count:
        click.echo(f"{report.file}: unchanged, {report.total} annotation(s) already in place")
    else:
        suffix = " (dry run)" if dry_run else ""
        click.echo(f"Synced {report.file}{suffix}:")
        click.echo(f"  Total: {report.total}")
        click.echo(f"  {_format_count('Relocated', report.synced_count, 'green')}")
        click.echo(f"  {_format_count('Content changed', report.content_changed_count, 'yellow')}")
        click.echo(f"  {_format_count('Orphaned', report.orphaned_count, 'red')}")
        for annotation_id in report.orphaned_ids:
            click.echo(f"    - {annotation_id}")

    if report.orphaned_count:
        sys.exit(EXIT_ORPHANED)


if __name__ == "__main__":
    cli()
