# distkit/commands/status.py

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from distkit.core.console import ConsoleAware
from distkit.core.exceptions import DistKitError
from distkit.core.models import StateType
from distkit.core.orchestrator import create_installer_orchestrator

# ==============================================================
# COMMAND WRAPPER
# ==============================================================

_STATE_LABELS = {
    StateType.FRESH: "[dim]not installed[/dim]",
    StateType.CURRENT_EXISTING: "[green]installed[/green]",
    StateType.LEGACY_EXISTING: "[yellow]legacy installation[/yellow]",
    StateType.UNKNOWN_EXISTING: "[yellow]unrecognized content[/yellow]",
}

def status_command(console_awr: ConsoleAware, directory: Path, verbose: bool):
    """Command wrapper for status command."""
    orchestrator = create_installer_orchestrator(console=console_awr.console, verbose=verbose)
    status = orchestrator.get_installation_status(directory)

    console_awr.print(f"🔍 [bold cyan]Installation Status[/bold cyan] → [cyan]{directory}[/cyan]\n")
    console_awr.print(f"  State: {_STATE_LABELS[status.state]}")
    if not status.exists:
        return

    console_awr.print(f"  Version: [cyan]{status.version}[/cyan]")
    if status.installed_at:
        console_awr.print(f"  Installed: [cyan]{status.installed_at.isoformat(timespec='seconds')}[/cyan]")
    integrity = "[green]✓ valid[/green]" if status.integrity_valid else "[red]✗ needs repair[/red]"
    console_awr.print(f"  Integrity: {integrity}")

    if status.expansion_packs:
        console_awr.print("  Expansion packs:")
        for pack_id, version in sorted(status.expansion_packs.items()):
            console_awr.print(f"    → [magenta]{pack_id}[/magenta] [cyan]{version}[/cyan]")
    else:
        console_awr.print("  Expansion packs: [cyan]None[/cyan]")


def register(app):
    """Register the status command with the Typer app."""

    @app.command()
    def status(
        directory: Optional[Path] = typer.Option(
            None,
            "--directory",
            "-d",
            help="Installation directory (default: current directory)"
        ),
        verbose: bool = typer.Option(
            False,
            "--verbose",
            help="Show detailed output"
        )
    ):
        """Show what is installed in a directory and whether it is intact."""
        console = Console(log_path=False)
        console_awr = ConsoleAware(console=console, verbose=verbose)
        try:
            console_awr.print("")
            status_command(console_awr, Path(directory).resolve() if directory else Path.cwd(), verbose)
            console_awr.print("")

        except KeyboardInterrupt:
            console_awr.print("\n[bold yellow]⚠️  Status check cancelled by user.[/bold yellow]")
            console_awr.print("")
            raise typer.Exit(code=1)

        except DistKitError as e:
            console_awr.print(f"\n[bold red]❌ Status check failed:[/bold red] {e}")
            console_awr.print("")
            raise typer.Exit(code=1)

        except Exception as e:
            console_awr.print(f"\n[bold red]❌ Unexpected error:[/bold red] {e}")
            console_awr.print("")
            raise typer.Exit(code=1)
