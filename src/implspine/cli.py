"""
CLI for implementor fragments.

Loads the fragment scripts of a generated docs tree through the deferred
registry, then reports on or renders what was registered.

Usage:
    implspine stats --docs-root target/doc
    implspine render core::ops::Drop --docs-root target/doc --format markdown
    implspine extract target/doc/implementors/core/ops/trait.Drop.js
"""

from __future__ import annotations

import json
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from implspine import __version__
from implspine.core.errors import ImplspineError
from implspine.core.logging import configure_logging
from implspine.core.settings import ImplspineSettings
from implspine.fragment import ImplementorFragment
from implspine.index import ImplementorIndex
from implspine.loader import FragmentLoader, LoadReport
from implspine.registry import ImplementorRegistry
from implspine.renderer import ImplementorsRenderer

console = Console()


def _build_index(docs_root: Path) -> tuple[ImplementorIndex, LoadReport]:
    """Load every fragment before initializing, then drain into an index."""
    index = ImplementorIndex()
    registry = ImplementorRegistry(sink=index)
    report = FragmentLoader(docs_root).load_all(registry)
    registry.initialize()
    report.failed += len(registry.failures)
    return index, report


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config", "-c", "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="YAML settings file.",
)
@click.option("--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR).")
@click.option("--json-logs/--console-logs", default=None, help="Force JSON or console log output.")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, log_level: str | None, json_logs: bool | None):
    """Implementor fragment tools.

    Collect per-crate implementor tables and render trait implementor lists.
    """
    overrides = {"log_level": log_level, "json_logs": json_logs}
    try:
        if config_path:
            settings = ImplspineSettings.from_yaml(config_path, **overrides)
        else:
            settings = ImplspineSettings(**{key: value for key, value in overrides.items() if value is not None})
    except ImplspineError as e:
        raise click.ClickException(e.message)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--log-level")

    configure_logging(level=settings.log_level, json_format=settings.json_logs, service=settings.service_name)
    ctx.obj = settings


def _docs_root(settings: ImplspineSettings, docs_root: str | None) -> Path:
    return Path(docs_root) if docs_root else settings.docs_root


docs_root_option = click.option(
    "--docs-root", "-d",
    type=click.Path(exists=True, file_okay=False),
    help="Generated docs root holding implementors/ (defaults to settings).",
)


@cli.command()
@docs_root_option
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_obj
def stats(settings: ImplspineSettings, docs_root: str | None, as_json: bool):
    """Show traits, crates and implementor counts."""
    index, report = _build_index(_docs_root(settings, docs_root))
    index_stats = index.stats()

    if as_json:
        click.echo(json.dumps({"index": index_stats, "load": report.to_dict()}, indent=2))
        return

    table = Table(title="Implementors")
    table.add_column("Trait", style="cyan")
    table.add_column("Crates", justify="right")
    table.add_column("Implementors", justify="right")
    for trait, counts in index_stats["traits"].items():
        table.add_row(trait, str(counts["crates"]), str(counts["implementors"]))
    console.print(table)

    console.print(f"[bold]Fragments loaded:[/bold] {len(report.loaded)}")
    console.print(f"[bold]Total implementors:[/bold] {index_stats['total_implementors']}")
    if report.skipped:
        console.print(f"[bold yellow]Skipped ({len(report.skipped)}):[/bold yellow]")
        for path, error in report.skipped.items():
            console.print(f"  {path}: {error}")


@cli.command()
@click.argument("trait")
@docs_root_option
@click.option(
    "--format", "-f", "fmt",
    type=click.Choice(sorted(ImplementorsRenderer.TEMPLATES)),
    default="html",
    show_default=True,
)
@click.option("--current-crate", help="Crate documented by the page; its implementors are skipped.")
@click.option("--root-path", help="Prefix for relative links in the markup.")
@click.option(
    "--output-dir", "-o",
    type=click.Path(file_okay=False),
    help="Write the result here instead of printing it.",
)
@click.option(
    "--write", "-w", is_flag=True,
    help="Write the result to the configured output_dir instead of printing it.",
)
@click.pass_obj
def render(
    settings: ImplspineSettings,
    trait: str,
    docs_root: str | None,
    fmt: str,
    current_crate: str | None,
    root_path: str | None,
    output_dir: str | None,
    write: bool,
):
    """Render the implementors list of TRAIT (e.g. core::ops::Drop)."""
    index, _ = _build_index(_docs_root(settings, docs_root))
    renderer = ImplementorsRenderer(
        index,
        template_dir=settings.template_dir,
        root_path=root_path if root_path is not None else settings.root_path,
        current_crate=current_crate or settings.current_crate,
    )
    try:
        if output_dir or write:
            target = Path(output_dir) if output_dir else settings.output_dir
            path = renderer.write(trait, target, fmt=fmt)
            console.print(f"✅ Wrote {path}")
        else:
            click.echo(renderer.render(trait, fmt=fmt), nl=False)
    except ImplspineError as e:
        raise click.ClickException(e.message)


@cli.command()
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--trait", "trait_path", help="Trait path, if the file name does not give it.")
def extract(file_path: str, trait_path: str | None):
    """Show the descriptors parsed from a single fragment script."""
    try:
        fragment = ImplementorFragment.from_file(Path(file_path), trait_path=trait_path)
    except ImplspineError as e:
        raise click.ClickException(e.message)

    table = fragment.table
    console.print(f"\n[bold blue]{table.trait_path}[/bold blue] ({table.implementor_count} implementors)\n")
    for crate, descriptors in table.items():
        console.print(f"[bold cyan]{crate}[/bold cyan]")
        for descriptor in descriptors:
            console.print(f"  {descriptor.signature}", markup=False, highlight=False)
        console.print()


def main():
    """Entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
