"""Command line interface for cc-tree."""

import json
import sys
from pathlib import Path
from typing import Iterator, Optional

import click

from .config import Config
from .log import setup_logging
from .parser import iter_jsonl_lines
from .renderer import render_classification_table, render_session_header, render_tree_text
from .session import SessionProcessor, SessionSnapshot


def read_lines(source: str) -> Iterator[str]:
    """Lines from a file path, or from stdin when the path is ``-``."""
    if source == "-":
        for line in sys.stdin:
            yield line.rstrip("\n")
        return
    yield from iter_jsonl_lines(Path(source))


def load_snapshot(ctx: click.Context, source: str) -> SessionSnapshot:
    cfg: Config = ctx.obj["config"]
    snapshot = SessionProcessor.process_lines(read_lines(source), config=cfg)
    if snapshot.errors:
        click.echo(f"Warning: {snapshot.error_count} lines could not be parsed", err=True)
    return snapshot


@click.group()
@click.version_option(package_name="cc-tree")
@click.option(
    "--config",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to config file",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx, config: Optional[Path], verbose: bool):
    """Browse Claude Code conversation transcripts as a tree."""
    ctx.ensure_object(dict)
    ctx.obj["config"] = Config.load(config)
    ctx.obj["config_path"] = config
    setup_logging("DEBUG" if verbose else "WARNING")


@main.command()
@click.argument("source", type=click.Path(exists=True, dir_okay=False, allow_dash=True))
@click.option("--expand-all", is_flag=True, help="Show every node, not only expanded ones")
@click.option("--max-depth", type=int, default=None, help="Stop descending below this depth")
@click.option("--json", "as_json", is_flag=True, help="Print the tree as JSON")
@click.pass_context
def tree(ctx, source: str, expand_all: bool, max_depth: Optional[int], as_json: bool):
    """Print the conversation tree of SOURCE (a JSONL file or -)."""
    snapshot = load_snapshot(ctx, source)

    if as_json:
        click.echo(json.dumps(snapshot.root.to_dict(), indent=2, ensure_ascii=False))
        return

    click.echo(render_tree_text(snapshot.root, expand_all=expand_all, max_depth=max_depth))


@main.command()
@click.argument("source", type=click.Path(exists=True, dir_okay=False, allow_dash=True))
@click.pass_context
def info(ctx, source: str):
    """Show session metadata for SOURCE."""
    snapshot = load_snapshot(ctx, source)
    click.echo(render_session_header(snapshot.session_info, snapshot.result_info))
    click.echo(f"Parse errors: {snapshot.error_count}")
    if snapshot.link_mismatches:
        click.echo(f"Unlinked tool results: {len(snapshot.link_mismatches)}")


@main.command()
@click.argument("source", type=click.Path(exists=True, dir_okay=False, allow_dash=True))
@click.option("--json", "as_json", is_flag=True, help="Print classifications as JSON")
@click.pass_context
def classify(ctx, source: str, as_json: bool):
    """Show how each tool result in SOURCE would be displayed."""
    snapshot = load_snapshot(ctx, source)

    if as_json:
        data = {node_id: result.to_dict() for node_id, result in snapshot.classifications.items()}
        click.echo(json.dumps(data, indent=2, ensure_ascii=False))
        return

    click.echo(render_classification_table(snapshot.classifications))


@main.command()
@click.option(
    "--every",
    type=int,
    default=None,
    help="Refresh after this many lines (overrides config)",
)
@click.pass_context
def stream(ctx, every: Optional[int]):
    """Read stream-json events from stdin and print a summary per refresh."""
    cfg: Config = ctx.obj["config"]
    if every is not None:
        cfg.refresh_interval = every

    def report(snapshot: SessionSnapshot):
        state = "complete" if snapshot.complete else "streaming"
        click.echo(
            f"[{state}] {len(snapshot.messages)} messages, "
            f"{len(snapshot.classifications)} tool results, "
            f"{snapshot.error_count} errors"
        )

    processor = SessionProcessor(config=cfg, on_refresh=report)
    try:
        for line in sys.stdin:
            processor.on_line(line.rstrip("\n"))
    except KeyboardInterrupt:
        processor.cancel()
        click.echo("Cancelled; showing what was received.")
        snapshot = processor.refresh()
    else:
        processor.on_complete()
        snapshot = processor.last_snapshot

    click.echo(render_tree_text(snapshot.root))


@main.command()
@click.option("--show", is_flag=True, help="Show current configuration")
@click.option("--rich-lines", type=int, default=None, help="Inline display line limit")
@click.option("--rich-chars", type=int, default=None, help="Inline display character limit")
@click.option("--refresh-interval", type=int, default=None, help="Lines between stream refreshes")
@click.pass_context
def config(
    ctx,
    show: bool,
    rich_lines: Optional[int],
    rich_chars: Optional[int],
    refresh_interval: Optional[int],
):
    """Configure display thresholds."""
    cfg: Config = ctx.obj["config"]

    if show or (rich_lines is None and rich_chars is None and refresh_interval is None):
        click.echo("Current configuration:")
        click.echo(json.dumps(cfg.to_dict(), indent=2))
        return

    if rich_lines is not None:
        cfg.thresholds["rich_display_lines"] = rich_lines
    if rich_chars is not None:
        cfg.thresholds["rich_display_chars"] = rich_chars
    if refresh_interval is not None:
        cfg.refresh_interval = refresh_interval

    cfg.save(ctx.obj["config_path"])
    click.echo("Configuration saved.")


if __name__ == "__main__":
    main()
