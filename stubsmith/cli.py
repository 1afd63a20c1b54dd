"""stubsmith CLI — the main entry point."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from stubsmith import __version__
from stubsmith.errors import StubsmithError
from stubsmith.ir.nodes import Namespace, Node, PlainNamespace

console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger(__name__)


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


debug_option = click.option(
    "--debug",
    is_flag=True,
    envvar="STUBSMITH_DEBUG",
    help="Log every declaration parsed and every merge made",
)


@click.group()
@click.version_option(version=__version__, prog_name="stubsmith")
def main():
    """stubsmith — build RBI and RBS stubs from Sorbet-annotated Ruby.

    Parses sig annotations from a project's Ruby files, merges duplicate
    declarations, runs plugins, and writes RBI and/or RBS output.
    """


# ── Generate ─────────────────────────────────────────────────────────


@main.command()
@click.option("--config", "config_path", default=None, help="Path to the YAML config file")
@click.option("--rbi", "rbi_path", default=None, help="Write RBI output to this path")
@click.option("--rbs", "rbs_path", default=None, help="Write RBS output to this path")
@debug_option
def generate(config_path: str | None, rbi_path: str | None, rbs_path: str | None, debug: bool):
    """Generate stubs for the project described by the config file."""
    from stubsmith.config import load_config
    from stubsmith.conflict_resolver import ConflictResolver
    from stubsmith.loader import load_project
    from stubsmith.plugins import load_plugins, require_files, run_plugins

    _configure_logging(debug)

    try:
        config = load_config(config_path)
        rbi_path = rbi_path or config.rbi_output
        rbs_path = rbs_path or config.rbs_output
        if not rbi_path and not rbs_path:
            raise click.UsageError("no output file given; pass --rbi/--rbs or set output_file in the config")

        require_files(config.relative_requires, config.base_dir)
        plugins = load_plugins(config.plugins)

        if config.parser is not None:
            parser = config.parser
            console.print(f"\n[bold blue]stubsmith[/] — Loading sources from {parser.root}\n")
            root = load_project(
                config.base_dir / parser.root,
                parser.included_paths,
                parser.excluded_paths,
                unknown_node_errors=parser.unknown_node_errors,
            )
        else:
            root = PlainNamespace()

        run_plugins(plugins, root)

        interactive = sys.stdin.isatty()
        ConflictResolver().resolve_conflicts(root, _prompt_resolver if interactive else _drop_resolver)

        options = config.style.to_options()
        if rbi_path:
            strictness = next((p.strictness for p in plugins if p.strictness), "strong")
            _write_rbi(root, rbi_path, options, strictness)
        if rbs_path:
            _write_rbs(root, rbs_path, options)
    except StubsmithError as e:
        raise click.ClickException(str(e)) from e


def _write_rbi(root: Namespace, path: str, options, strictness: str) -> None:
    from stubsmith.generators.rbi import RbiGenerator

    _write(path, RbiGenerator(options).generate(root, strictness))
    console.print(f"[green]Wrote RBI[/] to {path}")


def _write_rbs(root: Namespace, path: str, options) -> None:
    from stubsmith.conversion.rbi_to_rbs import RbiToRbs
    from stubsmith.generators.rbs import RbsGenerator

    converter = RbiToRbs()
    rbs_root = converter.convert_all(root)
    _print_warnings(converter.warnings)
    _write(path, RbsGenerator(options).generate(rbs_root))
    console.print(f"[green]Wrote RBS[/] to {path}")


def _write(path: str, text: str) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(text)


# ── Parse ────────────────────────────────────────────────────────────


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--rbs", "as_rbs", is_flag=True, help="Print RBS instead of RBI")
@debug_option
def parse(file: str, as_rbs: bool, debug: bool):
    """Print the stub for a single Ruby FILE."""
    from stubsmith.conflict_resolver import ConflictResolver
    from stubsmith.conversion.rbi_to_rbs import RbiToRbs
    from stubsmith.generators.rbi import RbiGenerator
    from stubsmith.generators.rbs import RbsGenerator
    from stubsmith.loader import load_file

    _configure_logging(debug)

    try:
        root = load_file(file, unknown_node_errors=False)
    except StubsmithError as e:
        raise click.ClickException(str(e)) from e

    ConflictResolver().resolve_conflicts(root, _drop_resolver)

    # Stub text goes through click.echo: rich would read T::Array[String] as markup
    if as_rbs:
        converter = RbiToRbs()
        rbs_root = converter.convert_all(root)
        _print_warnings(converter.warnings)
        click.echo(RbsGenerator().generate(rbs_root), nl=False)
    else:
        click.echo(RbiGenerator().generate(root), nl=False)


# ── Conflict resolution ──────────────────────────────────────────────


def _prompt_resolver(description: str, candidates: list[Node]) -> Node | None:
    """Ask the user which of several conflicting definitions to keep."""
    err_console.print(f"\n[yellow]Conflict:[/] {escape(description)}")
    table = Table(show_header=True)
    table.add_column("#", style="dim", width=3)
    table.add_column("Definition", style="cyan")
    for i, candidate in enumerate(candidates):
        table.add_row(str(i + 1), escape(candidate.describe()))
    err_console.print(table)

    choice = click.prompt(
        "Keep which definition? (0 to remove all)",
        type=click.IntRange(0, len(candidates)),
        default=0,
        err=True,
    )
    return candidates[choice - 1] if choice else None


def _drop_resolver(description: str, candidates: list[Node]) -> Node | None:
    logger.warning("%s: dropping %s (%d definitions)", description, candidates[0].name, len(candidates))
    return None


def _print_warnings(warnings: list[tuple[str, Node]]) -> None:
    if not warnings:
        return
    table = Table(title=f"Conversion Warnings ({len(warnings)})")
    table.add_column("Node", style="cyan")
    table.add_column("Warning", style="yellow")
    for message, node in warnings:
        table.add_row(escape(node.describe()), escape(message))
    err_console.print(table)


if __name__ == "__main__":
    main()
