# distkit/commands/verify.py

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from distkit.core.console import ConsoleAware
from distkit.core.exceptions import DistKitError
from distkit.core.integrity import IntegrityChecker
from distkit.core.manifest_file import ManifestFile
from distkit.core.models import IntegrityReport

# ==============================================================
# COMMAND WRAPPER
# ==============================================================

def verify_command(console_awr: ConsoleAware, directory: Path, verbose: bool) -> IntegrityReport:
    """Command wrapper for IntegrityChecker.check."""
    checker = IntegrityChecker(console=console_awr.console, verbose=verbose)
    manifest = ManifestFile(directory).load_optional()
    report = checker.check(directory, manifest)

    if not report.baseline_available:
        console_awr.print(f"[yellow]⚠️  No readable manifest in {directory}; integrity cannot be verified.[/yellow]")
        return report

    for path in report.missing:
        console_awr.print(f"  [red]missing[/red]   {path}")
    for path in report.modified:
        console_awr.print(f"  [yellow]modified[/yellow]  {path}")

    if report.is_valid():
        console_awr.print(f"[bold green]✓ All {len(manifest.files)} file(s) intact[/bold green]")
    else:
        console_awr.print(
            f"[bold red]✗ {len(report.missing)} missing, {len(report.modified)} modified[/bold red] "
            f"(run 'distkit install' to repair)"
        )
    return report


def register(app):

    @app.command()
    def verify(
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
        """Check installed files against the installation manifest."""
        console = Console(log_path=False)
        console_awr = ConsoleAware(console=console, verbose=verbose)
        try:
            console_awr.print("")
            report = verify_command(console_awr, Path(directory).resolve() if directory else Path.cwd(), verbose)
            console_awr.print("")
        except KeyboardInterrupt:
            console_awr.print("\n[bold yellow]⚠️  Verification cancelled by user.[/bold yellow]")
            console_awr.print("")
            raise typer.Exit(code=1)

        except DistKitError as e:
            console_awr.print(f"\n[bold red]❌ Verification failed:[/bold red] {e}")
            console_awr.print("")
            raise typer.Exit(code=1)

        if not report.is_valid():
            raise typer.Exit(code=1)
