# distkit/handlers/repair.py

from typing import Set

from distkit.core.components import Component
from distkit.core.models import InstallReport, InstallType, Manifest, StateType
from distkit.handlers.base import ComponentInstallHandler, InstallationContext

class RepairInstallHandler(ComponentInstallHandler):
    """
    Repair of a damaged, legacy or unrecognized installation.

    Works like an update, but the recorded baseline is not trusted: every file
    the integrity check flagged, and every file whose on-disk content differs
    from the source, is rewritten even if the baseline calls it unchanged.
    """
    install_type = InstallType.REPAIR

    def can_handle(self, context: InstallationContext) -> bool:
        return (
            context.resolved_type == InstallType.REPAIR
            and context.state.type != StateType.FRESH
        )

    def handle(self, context: InstallationContext) -> InstallReport:
        self.print(f"[bold]Repair[/] → [cyan]{context.target_dir}[/] ({context.state.type.value})")
        if context.integrity is not None and context.integrity.has_issues():
            self.print(
                f"  {len(context.integrity.missing)} missing, "
                f"{len(context.integrity.modified)} modified file(s) will be restored"
            )

        backup_path = self.backups.create_backup(context.target_dir)

        # With no baseline (unknown state) every source file diffs as added
        report = self.install_components(context)
        report.backup_path = backup_path
        return report

    def forced_paths(self, context: InstallationContext, component: Component, source_manifest: Manifest) -> Set[str]:
        forced = self.flagged_for(context, component)
        if component.target_dir.is_dir():
            forced |= self.checker.check(component.target_dir, source_manifest).flagged()
        return forced
