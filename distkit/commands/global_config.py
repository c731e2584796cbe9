# distkit/commands/global_config.py

from typing import Optional
from pathlib import Path
import typer
from rich.console import Console

from distkit.core.console import ConsoleAware
from distkit.core.global_config import (
    get_default_source,
    get_max_workers,
    global_config_path,
    set_global_max_workers,
    set_global_source,
)

# ==============================================================
# COMMAND WRAPPER
# ==============================================================

def globalconfig_command(
        source: Optional[Path],
        max_workers: Optional[int],
        console: Console
    ):
    """Command wrapper for globalconfig command."""
    console_awr = ConsoleAware(console=console, verbose=False)

    if source:
        set_global_source(str(source))
        console_awr.print(f"⚙️ [bold green]Default source set[/bold green] → [cyan]{source}[/cyan]")

    if max_workers:
        set_global_max_workers(max_workers)
        console_awr.print(f"🔧 [green]Max workers set[/green] → [cyan]{max_workers}[/cyan]")

    console_awr.print("")
    console_awr.print(f"📋 [bold cyan]Config file[/bold cyan] → [cyan]{global_config_path()}[/cyan]")
    current_source = get_default_source()
    console_awr.print(f"   → Default source: [cyan]{current_source or 'Not set'}[/cyan]")
    console_awr.print(f"   → Max workers: [cyan]{get_max_workers()}[/cyan]")


def register(app: typer.Typer):

    @app.command()
    def globalconfig(
        source: Optional[Path] = typer.Option(
            None,
            "--source",
            help="Set the default source distribution directory"
        ),
        max_workers: Optional[int] = typer.Option(
            None,
            "--max-workers",
            min=1,
            max=64,
            help="Set the default number of parallel file workers"
        )
    ):
        """Configure distkit defaults."""
        console = Console(log_path=False)

        console_awr = ConsoleAware(console=console, verbose=False)

        try:
            console_awr.print("")
            globalconfig_command(source, max_workers, console)
            console_awr.print("")
        except KeyboardInterrupt:
            console_awr.print("\n[bold yellow]⚠️  Global config setting cancelled by user.[/bold yellow]")
            console_awr.print("")
            raise typer.Exit(code=1)

        except Exception as e:
            console_awr.print(f"\n[bold red]❌ Unexpected error:[/bold red] {e}")
            console_awr.print("")
            raise typer.Exit(code=1)
