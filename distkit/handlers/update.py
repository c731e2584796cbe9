# distkit/handlers/update.py

from distkit.core.components import ComponentKind, component_version
from distkit.core.models import InstallReport, InstallType, StateType
from distkit.core.version_handling import compare_versions, describe_version_change
from distkit.handlers.base import ComponentInstallHandler, InstallationContext

class UpdateInstallHandler(ComponentInstallHandler):
    """
    Incremental update of an intact current installation.

    The target is backed up first; a failed backup aborts before anything is
    touched. Each component is then diffed against its recorded baseline.
    """
    install_type = InstallType.UPDATE

    def can_handle(self, context: InstallationContext) -> bool:
        return (
            context.resolved_type == InstallType.UPDATE
            and context.state.type == StateType.CURRENT_EXISTING
            and (context.integrity is None or not context.integrity.has_issues())
        )

    def handle(self, context: InstallationContext) -> InstallReport:
        self.print(f"[bold]Update[/] → [cyan]{context.target_dir}[/]")
        self._report_versions(context)

        backup_path = self.backups.create_backup(context.target_dir)

        report = self.install_components(context)
        report.backup_path = backup_path
        return report

    def _report_versions(self, context: InstallationContext) -> None:
        installed = context.state.manifest.distribution_version if context.state.manifest else None
        for component in self.components_for(context):
            if component.kind != ComponentKind.CORE:
                continue
            available = component_version(component.source_dir)
            self.print(f"  core: {describe_version_change(installed, available)}")
            if installed and available and compare_versions(available, installed) < 0:
                self.warn(f"Source version {available} is older than installed {installed}")
