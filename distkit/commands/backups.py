# distkit/commands/backups.py

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from distkit.core.backup import BackupManager, backups_root
from distkit.core.console import ConsoleAware

# ==============================================================
# COMMAND WRAPPER
# ==============================================================

def backups_command(console_awr: ConsoleAware, directory: Path):
    """Command wrapper for BackupManager.list_backups."""
    manager = BackupManager(console=console_awr.console)
    backups = manager.list_backups(directory)

    if not backups:
        console_awr.print(f"No backups of [cyan]{directory}[/cyan].")
        return

    console_awr.print(f"💾 [bold cyan]Backups[/bold cyan] → [cyan]{backups_root(directory)}[/cyan]")
    for backup in backups:
        console_awr.print(f"   → {backup.name}")


def register(app):

    @app.command()
    def backups(
        directory: Optional[Path] = typer.Option(
            None,
            "--directory",
            "-d",
            help="Installation directory (default: current directory)"
        )
    ):
        """List backups taken before updates and repairs (newest first)."""
        console = Console(log_path=False)
        console_awr = ConsoleAware(console=console, verbose=False)
        try:
            console_awr.print("")
            backups_command(console_awr, Path(directory).resolve() if directory else Path.cwd())
            console_awr.print("")
        except OSError as e:
            console_awr.print(f"\n[bold red]❌ Could not list backups:[/bold red] {e}")
            console_awr.print("")
            raise typer.Exit(code=1)
