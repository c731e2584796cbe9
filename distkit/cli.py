# distkit/cli.py
"""
Main CLI entry point for distkit.

This module sets up the Typer application and registers all commands.
"""
import typer
from rich.console import Console

from distkit.commands import (
    install,
    status,
    find,
    verify,
    backups,
    global_config,
)

import importlib.metadata
import pathlib
import sys
import tomllib

app = typer.Typer(
    name="distkit",
    help="distkit - install, update and repair file distributions incrementally",
    add_completion=False,
    no_args_is_help=True,
)

# Register commands
install.register(app)
status.register(app)
find.register(app)
verify.register(app)
backups.register(app)
global_config.register(app)

# Auxiliary function to get the version of the package
def get_package_version():
    package_name = "distkit" # The name of the package as per pyproject.toml

    # 1. Try to get the version from an installed package
    try:
        return importlib.metadata.version(package_name)
    except importlib.metadata.PackageNotFoundError:
        pass # The package is not installed, try reading from pyproject.toml

    # 2. If not installed, read pyproject.toml at the project root
    project_root = pathlib.Path(__file__).parent.parent
    pyproject_path = project_root / "pyproject.toml"

    if pyproject_path.exists():
        try:
            with open(pyproject_path, "rb") as f: # "rb" for tomllib
                pyproject_data = tomllib.load(f)
            return pyproject_data.get("project", {}).get("version", "unknown")
        except (OSError, tomllib.TOMLDecodeError) as e:
            print(f"Warning: Could not read version from pyproject.toml: {e}", file=sys.stderr)
            return "unknown"

    return "unknown" # Final fallback if nothing works

@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show the version of distkit and exit.",
        callback=lambda value: _version_callback(value),
        is_eager=True,
    )
):
    """
    distkit CLI.
    """
    pass

def _version_callback(value: bool):
    if value:
        console = Console(log_path=False)
        current_version = get_package_version()
        console.print(f"[bold green]distkit[/] version [cyan]{current_version}[/]")
        raise typer.Exit()

if __name__ == "__main__":
    app()
