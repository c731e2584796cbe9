# distkit/commands/install.py

"""
distkit install command.

Thin wrapper around ``InstallerOrchestrator.install``: turns command-line
options into an install request and renders the outcome.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from distkit.core.console import ConsoleAware
from distkit.core.global_config import get_default_source, get_max_workers
from distkit.core.models import InstallResult
from distkit.core.orchestrator import create_installer_orchestrator

# ==============================================================
# COMMAND WRAPPER
# ==============================================================

def print_install_summary(console_awr: ConsoleAware, result: InstallResult):
    """Render the per-component change counts of a successful install."""
    if not result.report or not result.report.components:
        return

    table = Table(title="Installation Summary", show_header=True, header_style="bold cyan")
    table.add_column("Component", style="dim")
    table.add_column("Added", justify="right")
    table.add_column("Updated", justify="right")
    table.add_column("Removed", justify="right")
    table.add_column("Unchanged", justify="right")
    table.add_column("Mode", justify="center")

    for component in result.report.components:
        table.add_row(
            component.component,
            str(component.added),
            str(component.modified),
            str(component.deleted),
            str(component.unchanged),
            "[yellow]full copy[/]" if component.used_fallback else "[green]incremental[/]",
        )
    console_awr.print(table)

    if result.report.backup_path:
        console_awr.print(f"💾 Backup: [cyan]{result.report.backup_path}[/cyan]")

def install_command(
    directory: Path,
    source_dir: Path,
    packs: List[str],
    integrations: List[str],
    expansion_only: bool,
    no_core: bool,
    workers: int,
    verbose: bool
) -> InstallResult:
    """Command wrapper for InstallerOrchestrator.install."""
    console = Console(log_path=verbose)
    console_awr = ConsoleAware(console=console, verbose=verbose)
    orchestrator = create_installer_orchestrator(console=console, verbose=verbose)

    result = orchestrator.install({
        "directory": directory,
        "source_dir": source_dir,
        "include_core": not no_core,
        "expansion_only": expansion_only,
        "expansion_packs": packs,
        "integrations": integrations,
        "max_workers": workers,
    })
    if result.success:
        print_install_summary(console_awr, result)
    return result

# ==============================================================
# CLI REGISTRATION
# ==============================================================

def register(app):
    @app.command()
    def install(
        directory: Optional[Path] = typer.Option(
            None,
            "--directory",
            "-d",
            help="Installation directory (default: current directory)"
        ),
        source: Optional[Path] = typer.Option(
            None,
            "--source",
            "-s",
            help="Source distribution (default: DISTKIT_SOURCE or the global config)"
        ),
        packs: Optional[List[str]] = typer.Option(
            None,
            "--pack",
            "-p",
            help="Expansion pack to install (repeatable)"
        ),
        integrations: Optional[List[str]] = typer.Option(
            None,
            "--integration",
            "-i",
            help="Integration bundle to install (repeatable)"
        ),
        expansion_only: bool = typer.Option(
            False,
            "--expansion-only",
            help="Only install the requested expansion packs"
        ),
        no_core: bool = typer.Option(
            False,
            "--no-core",
            help="Do not install the core component"
        ),
        workers: Optional[int] = typer.Option(
            None,
            "--workers",
            help="Number of parallel file workers"
        ),
        verbose: bool = typer.Option(
            False,
            "--verbose",
            help="Show detailed output"
        )
    ):
        """Install, update or repair a distribution in a directory."""
        console = Console(log_path=False)
        console_awr = ConsoleAware(console=console, verbose=verbose)

        directory = Path(directory).resolve() if directory else Path.cwd()
        source_dir = source or get_default_source()
        if source_dir is None:
            console_awr.print(
                "[bold red]❌ No source distribution:[/bold red] pass --source, set DISTKIT_SOURCE "
                "or run 'distkit globalconfig --source <dir>'"
            )
            raise typer.Exit(code=1)

        try:
            console_awr.print("")
            result = install_command(
                directory,
                Path(source_dir),
                packs or [],
                integrations or [],
                expansion_only,
                no_core,
                workers or get_max_workers(),
                verbose
            )
            console_awr.print("")
        except KeyboardInterrupt:
            console_awr.print("\n[bold yellow]⚠️  Installation cancelled by user.[/bold yellow]")
            console_awr.print("")
            raise typer.Exit(code=1)

        except Exception as e:
            console_awr.print(f"\n[bold red]❌ Unexpected error:[/bold red] {e}")
            console_awr.print("")
            raise typer.Exit(code=1)

        if not result.success:
            raise typer.Exit(code=1)
