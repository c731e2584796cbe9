# distkit/handlers/base.py

"""
Installation handler contract and the shared component-install routine.

A handler decides with ``can_handle(context)`` whether it applies to an
installation attempt and performs it with ``handle(context)``. Handlers keep
no state between calls; everything they need travels in the context.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Set

from distkit.core.backup import BackupManager
from distkit.core.change_applier import ChangeApplier
from distkit.core.change_calculator import changes_size, diff_manifests
from distkit.core.components import (
    Component,
    ComponentKind,
    component_version,
    resolve_components,
)
from distkit.core.console import Console, ConsoleAware
from distkit.core.integrity import IntegrityChecker
from distkit.core.manifest_builder import ManifestBuilder
from distkit.core.manifest_file import ManifestFile
from distkit.core.models import (
    ComponentReport,
    InstallConfig,
    InstallationState,
    InstallReport,
    InstallType,
    IntegrityReport,
    Manifest,
)

# ==============================================================
# TYPE DEFINITIONS
# ==============================================================

@dataclass
class InstallationContext:
    """
    Everything one installation attempt knows.

    Attributes:
        config: Validated install request
        target_dir: Absolute target directory
        state: What the detector found
        resolved_type: Strategy picked by the orchestrator
        integrity: Integrity of the current installation, when it was checked
        components: Components this attempt installs
        installed: Source manifest of every component applied, by label
    """
    config: InstallConfig
    target_dir: Path
    state: InstallationState
    resolved_type: InstallType
    integrity: Optional[IntegrityReport] = None
    components: List[Component] = field(default_factory=list)
    installed: Dict[str, Manifest] = field(default_factory=dict)

class InstallHandler(Protocol):
    """Contract every installation strategy implements."""
    install_type: InstallType

    def can_handle(self, context: InstallationContext) -> bool:
        ...

    def handle(self, context: InstallationContext) -> InstallReport:
        ...

def scope_paths(paths: Iterable[str], component: Component) -> Set[str]:
    """Re-root target-relative ``paths`` at ``component``'s subtree."""
    cut = len(component.scope) + 1 if component.scope else 0
    return {p[cut:] for p in paths if component.owns(p)}

# ==============================================================
# COMPONENT INSTALL HANDLER BASE CLASS
# ==============================================================

class ComponentInstallHandler(ConsoleAware):
    """
    Shared machinery for the fresh, update and repair strategies.

    For each selected component: build the source manifest, diff it against
    the component's baseline, apply the change set (falling back to a full
    copy on failure) and save the pack sub-manifest.
    """
    install_type: InstallType

    def __init__(
        self,
        builder: ManifestBuilder,
        applier: ChangeApplier,
        checker: Optional[IntegrityChecker] = None,
        backups: Optional[BackupManager] = None,
        console: Optional[Console] = None,
        verbose: bool = False
    ):
        super().__init__(console, verbose)
        self.builder = builder
        self.applier = applier
        self.checker = checker or IntegrityChecker(console=console, verbose=verbose)
        self.backups = backups or BackupManager(console=console, verbose=verbose)

    def can_handle(self, context: InstallationContext) -> bool:
        return context.resolved_type == self.install_type

    def handle(self, context: InstallationContext) -> InstallReport:
        raise NotImplementedError

    # ==============================================================
    # HELPERS
    # ==============================================================

    def components_for(self, context: InstallationContext) -> List[Component]:
        if not context.components:
            context.components = resolve_components(context.config, context.target_dir)
        return context.components

    def baseline_for(self, context: InstallationContext, component: Component) -> Optional[Manifest]:
        """Previous manifest of ``component`` in the target, if any."""
        baseline = component.baseline(context.state.manifest)
        if component.kind == ComponentKind.EXPANSION_PACK:
            pack_manifest = context.state.expansion_packs.get(component.name)
            if (baseline is None or not baseline.files) and pack_manifest is not None:
                return pack_manifest
        return baseline

    def forced_paths(self, context: InstallationContext, component: Component, source_manifest: Manifest) -> Set[str]:
        """Paths to rewrite even when the baseline calls them unchanged."""
        return set()

    def install_components(self, context: InstallationContext, use_baseline: bool = True) -> InstallReport:
        report = InstallReport()
        for component in self.components_for(context):
            report.components.append(self.install_component(context, component, use_baseline))
            if component.kind == ComponentKind.INTEGRATION:
                report.integrations.append(component.name)
        return report

    def install_component(
        self,
        context: InstallationContext,
        component: Component,
        use_baseline: bool = True
    ) -> ComponentReport:
        version = component_version(component.source_dir)
        manifest = self.builder.build(component.source_dir, distribution_version=version)

        old = self.baseline_for(context, component) if use_baseline else None
        changes = diff_manifests(old, manifest)
        forced = self.forced_paths(context, component, manifest)
        if forced:
            changes = changes.with_forced(forced)

        self.log(f"[dim]{component.label}[/] {changes.summary()}")

        used_fallback = False
        if changes.is_empty() and component.target_dir.is_dir():
            self.print(f"[green]✔[/] {component.label} is up to date")
        else:
            used_fallback = self.applier.apply_with_fallback(
                component.source_dir, component.target_dir, changes, manifest
            )
            self.print(
                f"[green]✔[/] {component.label}: {len(changes.added)} added, "
                f"{len(changes.modified)} updated, {len(changes.deleted)} removed"
                + (" [yellow](full copy)[/]" if used_fallback else "")
            )

        if component.has_own_manifest:
            ManifestFile(component.target_dir).save(manifest)
        context.installed[component.label] = manifest

        return ComponentReport(
            component=component.label,
            added=len(changes.added),
            modified=len(changes.modified),
            deleted=len(changes.deleted),
            unchanged=len(changes.unchanged),
            bytes_copied=manifest.total_size if used_fallback else changes_size(manifest, changes),
            used_fallback=used_fallback,
        )

    def flagged_for(self, context: InstallationContext, component: Component) -> Set[str]:
        if context.integrity is None:
            return set()
        return scope_paths(context.integrity.flagged(), component)
