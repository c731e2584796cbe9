# distkit/commands/find.py

from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console

from distkit.core.console import ConsoleAware
from distkit.core.orchestrator import create_installer_orchestrator, default_search_locations

# ==============================================================
# COMMAND WRAPPER
# ==============================================================

def find_command(console_awr: ConsoleAware, candidates: Optional[List[Path]], verbose: bool) -> Optional[Path]:
    """Command wrapper for find command."""
    orchestrator = create_installer_orchestrator(console=console_awr.console, verbose=verbose)
    locations = candidates or default_search_locations()
    console_awr.log(f"Searching: {', '.join(str(p) for p in locations)}")

    found = orchestrator.find_installation(locations)
    if found is None:
        console_awr.print("[yellow]No installation found.[/yellow]")
    else:
        console_awr.print(f"📁 [bold green]Installation found[/bold green] → [cyan]{found}[/cyan]")
    return found


def register(app):

    @app.command()
    def find(
        paths: Optional[List[Path]] = typer.Argument(
            None,
            help="Directories to probe instead of the conventional locations"
        ),
        verbose: bool = typer.Option(
            False,
            "--verbose",
            help="Show detailed output"
        )
    ):
        """Locate an existing installation."""
        console = Console(log_path=False)
        console_awr = ConsoleAware(console=console, verbose=verbose)
        try:
            console_awr.print("")
            found = find_command(console_awr, paths, verbose)
            console_awr.print("")
        except KeyboardInterrupt:
            console_awr.print("\n[bold yellow]⚠️  Search cancelled by user.[/bold yellow]")
            console_awr.print("")
            raise typer.Exit(code=1)

        if found is None:
            raise typer.Exit(code=1)
