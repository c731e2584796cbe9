# distkit/handlers/fresh.py

from pathlib import Path

from distkit.core.exceptions import FileSystemError
from distkit.core.models import InstallReport, InstallType, StateType
from distkit.handlers.base import ComponentInstallHandler, InstallationContext

class FreshInstallHandler(ComponentInstallHandler):
    """First installation into an empty (or absent) target directory."""
    install_type = InstallType.FRESH

    def can_handle(self, context: InstallationContext) -> bool:
        return (
            context.resolved_type == InstallType.FRESH
            and context.state.type == StateType.FRESH
        )

    def handle(self, context: InstallationContext) -> InstallReport:
        target_dir = Path(context.target_dir)
        self.print(f"[bold]Fresh install[/] → [cyan]{target_dir}[/]")
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FileSystemError("create directory", target_dir, e)

        # Nothing was installed before: every source file is added
        return self.install_components(context, use_baseline=False)
