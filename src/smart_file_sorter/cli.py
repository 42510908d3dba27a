"""Command line interface for smart file sorter."""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn
from rich.table import Table

from . import __version__
from .core.auto_sorter import AutoSorter
from .core.rule_matcher import RuleMatcher
from .core.rule_schema import validate_settings_file
from .core.sorter import BatchResult, MoveStatus, Sorter
from .events.event_bus import EventBus
from .exceptions import SmartFileSorterError
from .models.config import SorterSettings, create_default_settings, load_settings
from .models.sorting_rule import SortingRule
from .notifications import ConsoleNotifier
from .storage.base import VaultFile
from .storage.local import LocalVault
from .watcher import VaultWatcher

console = Console()

SETTINGS_FILENAME = ".smart-file-sorter.json"


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load(vault: Path, config: Optional[Path], verbose: bool) -> Tuple[LocalVault, SorterSettings]:
    """Open the vault and load its settings (defaults if there is no file)."""
    storage = LocalVault(vault)
    config = config or vault / SETTINGS_FILENAME
    settings = load_settings(config) if config.exists() else SorterSettings()
    if verbose:
        settings.verbose_logging = True
    return storage, settings


def _describe_condition(rule: SortingRule) -> str:
    sensitivity = "" if rule.case_sensitive else " (ignore case)"
    if rule.use_tags and rule.tag_value:
        return f"tag {rule.match_type.value} '{rule.tag_value}'{sensitivity}"
    return f"{rule.property_name} {rule.match_type.value} '{rule.property_value}'{sensitivity}"


def _print_summary(title: str, result: BatchResult) -> None:
    table = Table(title=title)
    table.add_column("Outcome", style="cyan")
    table.add_column("Count", justify="right")
    table.add_row("Moved", str(result.moved))
    table.add_row("Skipped", str(result.skipped))
    table.add_row("Errors", str(result.errors), style="red" if result.errors else None)
    console.print(table)


@click.group()
@click.version_option(__version__)
@click.option('--verbose', is_flag=True, help='Verbose output')
@click.pass_context
def cli(ctx: click.Context, verbose: bool):
    """Move notes into folders based on their frontmatter properties and tags."""
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose
    _configure_logging(verbose)


vault_argument = click.argument('vault', type=click.Path(exists=True, file_okay=False, path_type=Path))
config_option = click.option(
    '--config',
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help=f'Settings file (default: VAULT/{SETTINGS_FILENAME})'
)


@cli.command('sort-all')
@vault_argument
@config_option
@click.pass_context
def sort_all(ctx: click.Context, vault: Path, config: Optional[Path]):
    """Sort every note in VAULT."""
    try:
        storage, settings = _load(vault, config, ctx.obj['verbose'])
        auto_sorter = AutoSorter(storage, settings, notifier=ConsoleNotifier(console))

        with Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            console=console,
            transient=True,
        ) as progress:
            task = progress.add_task("Sorting notes...", total=None)

            def on_progress(current: int, total: int) -> None:
                progress.update(task, completed=current, total=total)

            result = asyncio.run(auto_sorter.sort_all(on_progress))

        _print_summary("Sort all", result)
    except SmartFileSorterError as e:
        console.print(f"\n[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)


@cli.command('sort-folder')
@vault_argument
@click.argument('folder')
@click.option('--recursive', is_flag=True, help='Include subfolders')
@config_option
@click.pass_context
def sort_folder(ctx: click.Context, vault: Path, folder: str, recursive: bool,
                config: Optional[Path]):
    """Sort the notes in FOLDER (a path inside VAULT)."""
    try:
        storage, settings = _load(vault, config, ctx.obj['verbose'])
        auto_sorter = AutoSorter(storage, settings, notifier=ConsoleNotifier(console))
        result = asyncio.run(auto_sorter.sort_folder(folder, recursive))
        _print_summary(f"Sort {folder}", result)
    except SmartFileSorterError as e:
        console.print(f"\n[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)


@cli.command('sort-file')
@vault_argument
@click.argument('path')
@config_option
@click.pass_context
def sort_file(ctx: click.Context, vault: Path, path: str, config: Optional[Path]):
    """Sort a single note; PATH is relative to VAULT."""
    try:
        storage, settings = _load(vault, config, ctx.obj['verbose'])
        auto_sorter = AutoSorter(storage, settings, notifier=ConsoleNotifier(console))
        result = asyncio.run(auto_sorter.sort_file(path))
    except SmartFileSorterError as e:
        console.print(f"\n[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)

    if result is not None and result.status in (MoveStatus.CONFLICT, MoveStatus.FAILED):
        sys.exit(1)


@cli.command('match')
@vault_argument
@click.argument('path')
@config_option
@click.pass_context
def match(ctx: click.Context, vault: Path, path: str, config: Optional[Path]):
    """Show which rule applies to PATH and where it would go, without moving it."""
    try:
        storage, settings = _load(vault, config, ctx.obj['verbose'])
        sorter = Sorter(storage)

        async def _match():
            entry = await storage.get_entry(path)
            if not isinstance(entry, VaultFile):
                return None, None, None
            snapshot = await storage.get_metadata(entry)
            rule = sorter.matcher.find_first_match(snapshot, settings.rules)
            destination = sorter.resolve_destination(entry, rule, snapshot) if rule else None
            return entry, rule, destination

        entry, rule, destination = asyncio.run(_match())
    except SmartFileSorterError as e:
        console.print(f"\n[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)

    if entry is None:
        console.print(f"[red]No such file: {escape(path)}[/red]")
        sys.exit(1)
    if rule is None:
        console.print("[yellow]No matching rule[/yellow]")
        return

    console.print(f"Rule: [bold]{escape(rule.name)}[/bold] ({escape(_describe_condition(rule))})")
    if destination == entry.path:
        console.print(f"Already in place: {escape(destination)}")
    else:
        console.print(f"Destination: [green]{escape(destination)}[/green]")


@cli.command('watch')
@vault_argument
@config_option
@click.pass_context
def watch(ctx: click.Context, vault: Path, config: Optional[Path]):
    """Watch VAULT and sort notes as they are created or edited."""
    try:
        storage, settings = _load(vault, config, ctx.obj['verbose'])
    except SmartFileSorterError as e:
        console.print(f"\n[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)

    settings.enable_auto_sort = True

    async def _watch():
        event_bus = EventBus()
        auto_sorter = AutoSorter(storage, settings, notifier=ConsoleNotifier(console))
        auto_sorter.subscribe(event_bus)
        watcher = VaultWatcher(vault, event_bus, asyncio.get_running_loop())
        watcher.start()
        try:
            await asyncio.Event().wait()
        finally:
            watcher.stop()

    console.print(f"[bold cyan]Watching {escape(str(vault))}[/bold cyan] (Ctrl+C to stop)")
    try:
        asyncio.run(_watch())
    except KeyboardInterrupt:
        console.print("[yellow]Stopped[/yellow]")


@cli.group()
def rules():
    """Manage sorting rules."""
    pass


@rules.command('list')
@vault_argument
@config_option
@click.option('--enabled-only', is_flag=True, help='Show only enabled rules')
def list_rules(vault: Path, config: Optional[Path], enabled_only: bool):
    """List the rules of VAULT in precedence order."""
    try:
        _, settings = _load(vault, config, False)
    except SmartFileSorterError as e:
        console.print(f"\n[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)

    table = Table(title="Sorting rules")
    table.add_column("#", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("Enabled")
    table.add_column("Condition")
    table.add_column("Destination", style="green")

    for index, rule in enumerate(settings.rules, start=1):
        if enabled_only and not rule.enabled:
            continue
        destination = rule.destination_folder
        if rule.create_subfolders and rule.subfolder_property:
            destination += f"/{{{rule.subfolder_property}}}"
        table.add_row(str(index), escape(rule.name), "yes" if rule.enabled else "no",
                      escape(_describe_condition(rule)), escape(destination))

    console.print(table)
    if settings.excluded_folders:
        console.print(f"Excluded folders: {escape(', '.join(settings.excluded_folders))}")


@rules.command('validate')
@click.argument('file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
def validate_rules(file: Path):
    """Validate a settings FILE."""
    errors = validate_settings_file(file)
    if not errors:
        matcher = RuleMatcher()
        settings = load_settings(file)
        for rule in settings.rules:
            errors.extend(matcher.validate_rule(rule))

    if errors:
        console.print(f"[red]{len(errors)} problem(s) found:[/red]")
        for error in errors:
            console.print(f"  • {escape(error)}")
        sys.exit(1)
    console.print("[green]Settings are valid[/green]")


@rules.command('init')
@click.option('--output', type=click.Path(dir_okay=False, path_type=Path),
              default=Path(SETTINGS_FILENAME), show_default=True, help='Output file path')
@click.option('--force', is_flag=True, help='Overwrite an existing file')
def init_rules(output: Path, force: bool):
    """Create a settings file with an example rule."""
    if output.exists() and not force:
        console.print(f"[red]{escape(str(output))} already exists (use --force to overwrite)[/red]")
        sys.exit(1)
    create_default_settings(output)
    console.print(f"[green]Created {escape(str(output))}[/green]")


def main():
    """Main entry point."""
    cli(obj={})


if __name__ == '__main__':
    main()
