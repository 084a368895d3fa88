import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError
import typer
import yaml

from . import __version__
from .config import PortownOptions, SortBy, StateFilter, TreeOptions, load_settings
from .errors import ToolboxerError
from .models import Protocol
from . import portown as portown_command
from .tree import render_tree


app = typer.Typer(help="Toolboxer: developer command-line toolkit")


@app.callback()
def version_callback(
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug details to stderr."),
):
    if version:
        typer.echo(__version__)
        raise typer.Exit(0)
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


@app.command()
def portown(
    tcp_only: bool = typer.Option(False, "--tcp-only", help="Only show TCP connections."),
    udp_only: bool = typer.Option(False, "--udp-only", help="Only show UDP connections."),
    listen: bool = typer.Option(False, "--listen", "-l", help="Only show listening ports."),
    established: bool = typer.Option(False, "--established", "-e", help="Only show established connections."),
    depth: Optional[int] = typer.Option(None, "--depth", "-d", min=0, help="Maximum number of rows to show."),
    config: Optional[Path] = typer.Option(None, "--config", help="YAML settings file."),
    color: Optional[bool] = typer.Option(None, "--color/--no-color", help="Force or disable ANSI colors (default from settings)."),
):
    """Show which process owns each open TCP/UDP port."""
    if tcp_only and udp_only:
        typer.echo("--tcp-only and --udp-only cannot be combined.", err=True)
        raise typer.Exit(2)
    if listen and established:
        typer.echo("--listen and --established cannot be combined.", err=True)
        raise typer.Exit(2)

    protocol = None
    if tcp_only:
        protocol = Protocol.TCP
    elif udp_only:
        protocol = Protocol.UDP

    state = StateFilter.ANY
    if listen:
        state = StateFilter.LISTENING
    elif established:
        state = StateFilter.ESTABLISHED

    try:
        settings = load_settings(config)
    except (ValidationError, yaml.YAMLError) as e:
        typer.echo(f"Invalid settings file {config}: {e}", err=True)
        raise typer.Exit(2)
    if color is not None:
        settings = settings.model_copy(update={"color": color})

    options = PortownOptions(protocol=protocol, state=state, depth=depth)
    try:
        portown_command.execute(options, settings)
    except ToolboxerError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def tree(
    path: Path = typer.Argument(Path("."), help="Root directory of the tree."),
    max_depth: Optional[int] = typer.Option(None, "--max-depth", "-m", min=0, help="Maximum depth to display."),
    all_entries: bool = typer.Option(False, "--all", "-a", help="Include hidden files."),
    permissions: bool = typer.Option(False, "--permissions", "-p", help="Show file permissions."),
    human_size: bool = typer.Option(False, "--human-size", help="Show human-readable sizes."),
    modified: bool = typer.Option(False, "--modified", help="Show last modified date."),
    sort_type: bool = typer.Option(False, "--sort-type", help="Sort directories first."),
    sort_size: bool = typer.Option(False, "--sort-size", help="Sort by size."),
    sort_date: bool = typer.Option(False, "--sort-date", help="Sort by modification date."),
    pattern: Optional[str] = typer.Option(None, "--filter", "-f", help="Only show files whose name contains PATTERN."),
    dirs_only: bool = typer.Option(False, "--dirs-only", help="Only show directories."),
    color: bool = typer.Option(True, "--color/--no-color", help="Colorize output."),
):
    """Display a directory structure as a tree."""
    # Priority: type > size > date > name
    if sort_type:
        sort_by = SortBy.TYPE
    elif sort_size:
        sort_by = SortBy.SIZE
    elif sort_date:
        sort_by = SortBy.DATE
    else:
        sort_by = SortBy.NAME

    options = TreeOptions(
        root=path,
        max_depth=max_depth,
        show_hidden=all_entries,
        show_permissions=permissions,
        show_size=human_size,
        show_date=modified,
        sort_by=sort_by,
        pattern=pattern,
        directories_only=dirs_only,
    )
    try:
        render_tree(options, color=color)
    except ToolboxerError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def main():
    app()


if __name__ == "__main__":
    main()
