"""ctxkit command-line interface."""

from __future__ import annotations

import json
import logging
import re
import sys
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import CONFIG_DIR_NAME, CONFIG_FILE_NAME, CONFIG_TEMPLATE, resolve_settings
from .exceptions import CtxKitError
from .models import Bundle, BundleContext, BundleStatus
from .monitor import ThresholdMonitor
from .store import BundleStore

app = typer.Typer(
    name="ctx",
    help="ctxkit: context window budgeting and session handoff for AI coding agents",
    add_completion=False,
)
console = Console()

STATUS_STYLES = {
    BundleStatus.ACTIVE: "green",
    BundleStatus.COMPLETED: "yellow",
    BundleStatus.ARCHIVED: "dim",
}

CONFIG_OPTION_HELP = "Config file (defaults to the nearest .ctxkit/config.yaml)"


def _get_version_string() -> str:
    """Get version string from package metadata or pyproject.toml."""
    try:
        return get_version("ctxkit")
    except PackageNotFoundError:
        pass

    # Try to read version from pyproject.toml for development installs
    pyproject_path = Path(__file__).parent.parent.parent / "pyproject.toml"
    if pyproject_path.exists():
        content = pyproject_path.read_text()
        match = re.search(r'version\s*=\s*["\']([^"\']+)["\']', content)
        if match:
            return f"{match.group(1)} (development)"

    return "unknown"


def version_callback(value: bool) -> None:
    """Callback for --version flag."""
    if value:
        console.print(f"ctxkit version {_get_version_string()}")
        raise typer.Exit


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging",
    ),
) -> None:
    """ctxkit: context window budgeting and session handoff for AI coding agents."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )


def _open_store(config_path: Path | None) -> tuple[BundleStore, ThresholdMonitor]:
    config, bundles_dir = resolve_settings(config_path)
    return BundleStore(bundles_dir, config.status), ThresholdMonitor(config.thresholds)


@app.command()
def init(
    path: Path = typer.Option(
        Path.cwd(),
        "--path",
        "-p",
        help="Directory in which to create .ctxkit/",
    ),
) -> None:
    """Create a starter .ctxkit/config.yaml and bundle directory."""
    config_dir = path / CONFIG_DIR_NAME
    config_file = config_dir / CONFIG_FILE_NAME

    if config_file.exists():
        console.print(f"[yellow]Warning:[/yellow] Config exists at {escape(str(config_file))}")
        if not typer.confirm("Overwrite existing config?"):
            console.print("Initialization cancelled")
            return

    try:
        (config_dir / "bundles").mkdir(parents=True, exist_ok=True)
        config_file.write_text(CONFIG_TEMPLATE, encoding="utf-8")
    except OSError as e:
        console.print(f"[red]Error:[/red] Failed to initialize {escape(str(config_dir))}: {escape(str(e))}")
        raise typer.Exit(1) from e

    console.print(f"[green]✓[/green] Initialized {escape(str(config_dir))}")
    console.print("Created files:")
    console.print("  • config.yaml (thresholds and status windows)")
    console.print("  • bundles/ (saved context bundles)")
    console.print("\nNext steps:")
    console.print("  1. Run 'ctx check <tokens>' to see where a session stands")
    console.print("  2. Run 'ctx save <name> --task ... --tokens ...' before handing off")


@app.command()
def check(
    tokens: int = typer.Argument(..., help="Current context window usage in tokens"),
    as_json: bool = typer.Option(False, "--json", help="Print the classification as JSON"),
    config_path: Path | None = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
) -> None:
    """Classify a token count and print a one-line status."""
    try:
        _, monitor = _open_store(config_path)
        result = monitor.classify(tokens)
    except CtxKitError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from e

    if as_json:
        console.print_json(result.model_dump_json())
    else:
        console.print(result.message, markup=False, highlight=False, soft_wrap=True)


@app.command()
def save(
    name: str = typer.Argument(..., help="Bundle name"),
    task: str = typer.Option(..., "--task", "-t", help="What the session was working on"),
    tokens: int = typer.Option(..., "--tokens", "-n", help="Token count at save time"),
    files: list[str] = typer.Option(
        [],
        "--file",
        "-f",
        help="Modified file path (can be repeated)",
    ),
    decisions: list[str] = typer.Option(
        [],
        "--decision",
        "-d",
        help="Decision made during the session (can be repeated)",
    ),
    progress: str = typer.Option("", "--progress", help="Progress summary"),
    next_agent: str | None = typer.Option(None, "--next-agent", help="Agent to hand off to"),
    next_task: str | None = typer.Option(None, "--next-task", help="Task for the next agent"),
    config_path: Path | None = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
) -> None:
    """Save a context bundle, replacing any bundle with the same name."""
    try:
        bundle = Bundle(
            name=name,
            context=BundleContext(
                task=task,
                files_modified=files,
                decisions=decisions,
                progress=progress,
            ),
            tokens=tokens,
            next_agent=next_agent,
            next_task=next_task,
        )
    except ValidationError as e:
        console.print(f"[red]Error:[/red] Invalid bundle: {escape(str(e))}")
        raise typer.Exit(1) from e

    try:
        store, monitor = _open_store(config_path)
        replaced = store.exists(name)
        store.save(bundle)
        stage = monitor.classify(bundle.tokens)
    except CtxKitError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from e

    verb = "Replaced" if replaced else "Saved"
    console.print(f"[green]✓[/green] {verb} bundle '{escape(name)}' in {escape(str(store.root))}")
    console.print(f"  {stage.badge} at {bundle.tokens} tokens", highlight=False)
    if next_agent or next_task:
        console.print(f"  Next: {escape(next_agent or '-')} → {escape(next_task or '-')}")


@app.command()
def load(
    name: str = typer.Argument(..., help="Bundle name"),
    as_json: bool = typer.Option(False, "--json", help="Print the stored JSON document"),
    config_path: Path | None = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
) -> None:
    """Show a saved context bundle."""
    try:
        store, _ = _open_store(config_path)
        bundle = store.load(name)
    except CtxKitError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from e

    if as_json:
        console.print_json(json.dumps(bundle.to_document(), ensure_ascii=False))
        return

    console.print(f"[bold]Bundle:[/bold] {escape(bundle.name)}")
    console.print(f"  Created: {bundle.created.isoformat()}")
    console.print(f"  Tokens: {bundle.tokens}")
    console.print(f"  Task: {escape(bundle.task)}")
    if bundle.progress:
        console.print(f"  Progress: {escape(bundle.progress)}")
    if bundle.files_modified:
        console.print("\n[bold]Files modified:[/bold]")
        for path in bundle.files_modified:
            console.print(f"  • {escape(path)}")
    if bundle.decisions:
        console.print("\n[bold]Decisions:[/bold]")
        for decision in bundle.decisions:
            console.print(f"  • {escape(decision)}")
    if bundle.next_agent or bundle.next_task:
        console.print("\n[bold]Handoff:[/bold]")
        console.print(f"  Next agent: {escape(bundle.next_agent or '-')}")
        console.print(f"  Next task: {escape(bundle.next_task or '-')}")


@app.command("list")
def list_bundles(
    config_path: Path | None = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
) -> None:
    """List saved context bundles, newest first."""
    try:
        store, _ = _open_store(config_path)
        summaries = store.list()
    except CtxKitError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from e

    if not summaries:
        console.print(f"No bundles saved in {escape(str(store.root))}")
        return

    table = Table(title="Context Bundles")
    table.add_column("Name", style="cyan")
    table.add_column("Created")
    table.add_column("Tokens", justify="right")
    table.add_column("Status")
    table.add_column("Task")

    for summary in summaries:
        style = STATUS_STYLES[summary.status]
        table.add_row(
            escape(summary.name),
            summary.created.strftime("%Y-%m-%d %H:%M"),
            str(summary.tokens),
            f"[{style}]{summary.status.value.title()}[/{style}]",
            escape(summary.task),
        )

    console.print(table)


@app.command()
def version() -> None:
    """Show ctxkit version information."""
    console.print(f"ctxkit version {_get_version_string()}")


def main() -> None:
    """Entry point for the CLI."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()
