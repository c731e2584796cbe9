# distkit/core/orchestrator.py

"""
Installation orchestrator.

Top-level state machine of one installation attempt:

    config -> detect -> resolve -> handle -> persist

``install()`` never raises. Whatever goes wrong is returned as a failed
``InstallResult`` naming the phase that failed.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Set

from distkit.core.backup import BackupManager
from distkit.core.change_applier import ChangeApplier
from distkit.core.components import (
    ComponentKind,
    component_version,
    installed_expansion_packs,
    resolve_components,
)
from distkit.core.console import Console, ConsoleAware
from distkit.core.constants import EXPANSION_PACKS_DIR
from distkit.core.exceptions import DistKitError, NoHandlerError
from distkit.core.global_config import get_default_source, get_home_dir
from distkit.core.integrity import IntegrityChecker
from distkit.core.manifest_builder import ManifestBuilder
from distkit.core.manifest_file import ManifestFile
from distkit.core.models import (
    InstallConfig,
    InstallReport,
    InstallResult,
    InstallType,
    InstallationState,
    InstallationStatus,
    IntegrityReport,
    Manifest,
    StateType,
)
from distkit.core.state_detector import InstallationStateDetector
from distkit.handlers import (
    FreshInstallHandler,
    InstallationContext,
    InstallHandler,
    RepairInstallHandler,
    UpdateInstallHandler,
)

INSTALL_DIR_NAME = "distkit"

def resolve_install_type(state: InstallationState, integrity: Optional[IntegrityReport]) -> InstallType:
    """Map a detected state (and its integrity) to an installation strategy."""
    if state.type == StateType.FRESH:
        return InstallType.FRESH
    if state.type == StateType.CURRENT_EXISTING:
        if integrity is not None and not integrity.is_valid():
            return InstallType.REPAIR
        return InstallType.UPDATE
    return InstallType.REPAIR

def default_search_locations() -> List[Path]:
    """Conventional installation directories, probed in order."""
    cwd = Path.cwd()
    candidates = [cwd, cwd / INSTALL_DIR_NAME, cwd.parent / INSTALL_DIR_NAME]
    home = get_home_dir()
    if home is not None:
        candidates.append(home)
    candidates.append(Path.home() / f".{INSTALL_DIR_NAME}")
    return candidates

# ==============================================================
# INSTALLER ORCHESTRATOR CLASS
# ==============================================================

class InstallerOrchestrator(ConsoleAware):
    """
    Drives installation attempts.

    Collaborators that are not injected are created per attempt, sized from
    the attempt's ``InstallConfig`` (worker count, cache entry limit).

    Attributes:
        detector: Installation state detector
        checker: Integrity checker used for resolution and status
        backups: Backup manager handed to update and repair
    """

    def __init__(
        self,
        detector: Optional[InstallationStateDetector] = None,
        builder: Optional[ManifestBuilder] = None,
        applier: Optional[ChangeApplier] = None,
        checker: Optional[IntegrityChecker] = None,
        backups: Optional[BackupManager] = None,
        handlers: Optional[Sequence[InstallHandler]] = None,
        console: Optional[Console] = None,
        verbose: bool = False
    ):
        super().__init__(console, verbose)
        self.detector = detector or InstallationStateDetector(console=console, verbose=verbose)
        self.checker = checker or IntegrityChecker(console=console, verbose=verbose)
        self.backups = backups or BackupManager(console=console, verbose=verbose)
        self._builder = builder
        self._applier = applier
        self._handlers = list(handlers) if handlers is not None else None

    # ==============================================================
    # INSTALL
    # ==============================================================

    def install(self, config: Any) -> InstallResult:
        """
        Run one installation attempt.

        Args:
            config: An ``InstallConfig`` or a mapping validated into one.

        Returns:
            InstallResult with ``success`` and, on failure, ``phase`` and ``error``.
        """
        phase = "config"
        install_type: Optional[InstallType] = None
        target_dir: Optional[Path] = None
        try:
            config = InstallConfig.parse(config)
            target_dir = Path(config.directory).expanduser().resolve()
            builder, handlers = self._collaborators(config)

            phase = "detect"
            state = self.detector.detect(target_dir)

            phase = "resolve"
            integrity = None
            if state.type == StateType.CURRENT_EXISTING:
                integrity = self.checker.check(target_dir, state.manifest)
            install_type = resolve_install_type(state, integrity)
            context = InstallationContext(
                config=config,
                target_dir=target_dir,
                state=state,
                resolved_type=install_type,
                integrity=integrity,
                components=resolve_components(config, target_dir),
            )
            self.log(f"[dim]resolved[/] {state.type.value} → {install_type.value}")

            phase = "handle"
            handler = self.select_handler(context, handlers)
            report = handler.handle(context)

            phase = "persist"
            self.persist(context, report, builder)

        except (DistKitError, OSError) as e:
            return self._failure(phase, e, install_type, target_dir)
        except Exception as e:
            # install() must not raise; unexpected errors are reported with their type
            return self._failure(phase, e, install_type, target_dir, unexpected=True)

        self.print(f"[bold green]✔ Installation complete[/] ({install_type.value}) → [cyan]{target_dir}[/]")
        return InstallResult(
            success=True,
            install_type=install_type,
            target_dir=target_dir,
            report=report,
        )

    def select_handler(
        self,
        context: InstallationContext,
        handlers: Optional[Sequence[InstallHandler]] = None
    ) -> InstallHandler:
        """First handler (in order) whose ``can_handle`` accepts the context."""
        if handlers is None:
            handlers = self._handlers or []
        for handler in handlers:
            if handler.can_handle(context):
                self.log(f"[dim]handler[/] {type(handler).__name__}")
                return handler
        raise NoHandlerError(context.resolved_type.value)

    def persist(self, context: InstallationContext, report: InstallReport, builder: ManifestBuilder) -> Manifest:
        """
        Regenerate and save the root manifest of the target.

        The manifest covers the files of every component applied in this
        attempt plus what the previous manifest recorded for components that
        were not touched. Files the user added to the target are not tracked.
        """
        previous = context.state.manifest
        owned: Set[str] = set()
        if previous is not None:
            owned.update(p for p in previous.files if not any(c.owns(p) for c in context.components))

        distribution_version = previous.distribution_version if previous else None
        for component in context.components:
            installed = context.installed.get(component.label)
            if installed is None:
                continue
            owned.update(component.target_path(p) for p in installed.files)
            if component.kind == ComponentKind.CORE and installed.distribution_version:
                distribution_version = installed.distribution_version

        integrations = set(previous.integrations) if previous else set()
        integrations.update(report.integrations)

        manifest = builder.build_paths(
            context.target_dir,
            owned,
            distribution_version=distribution_version,
            integrations=sorted(integrations),
        )
        ManifestFile(context.target_dir).save(manifest)
        self.log(f"[dim]persisted[/] {len(manifest.files)} file(s) → {ManifestFile(context.target_dir).path}")
        return manifest

    # ==============================================================
    # STATUS / DISCOVERY
    # ==============================================================

    def get_installation_status(self, directory: Path) -> InstallationStatus:
        directory = Path(directory).expanduser()
        state = self.detector.detect(directory)
        manifest = state.manifest

        integrity_valid = False
        if state.type == StateType.CURRENT_EXISTING:
            integrity_valid = self.checker.check(directory, manifest).is_valid()

        packs: Dict[str, str] = {}
        for pack_id, pack_manifest in state.expansion_packs.items():
            version = pack_manifest.distribution_version if pack_manifest else None
            if version is None:
                version = component_version(directory / EXPANSION_PACKS_DIR / pack_id)
            packs[pack_id] = version or "unknown"

        return InstallationStatus(
            exists=state.type != StateType.FRESH,
            state=state.type,
            version=(manifest.distribution_version if manifest else None) or "unknown",
            installed_at=manifest.generated_at if manifest and not manifest.legacy else None,
            integrity_valid=integrity_valid,
            expansion_packs=packs,
        )

    def find_installation(self, candidates: Optional[Sequence[Path]] = None) -> Optional[Path]:
        """Return the first candidate directory that holds an installation."""
        for candidate in candidates if candidates is not None else default_search_locations():
            candidate = Path(candidate).expanduser()
            if not candidate.is_dir():
                continue
            state = self.detector.detect(candidate)
            if state.type in (StateType.CURRENT_EXISTING, StateType.LEGACY_EXISTING):
                self.log(f"[dim]found installation[/] {candidate}")
                return candidate.resolve()
        return None

    def update(self, directory: Optional[Path] = None, **options: Any) -> InstallResult:
        """
        Re-install into an existing installation.

        The directory defaults to ``find_installation()``, the source to the
        configured default source, and the expansion packs and integrations to
        the ones already installed there.
        """
        if directory is None:
            directory = self.find_installation()
        if directory is None:
            self.print("[bold red]✗ No installation found[/]")
            return InstallResult(success=False, phase="detect", error="No installation found")

        directory = Path(directory)
        config: Dict[str, Any] = {"directory": directory, **options}
        if "source_dir" not in config:
            source = get_default_source()
            if source is None:
                return self._failure("config", DistKitError(
                    "No source distribution given (set DISTKIT_SOURCE or 'distkit globalconfig --source')"
                ), None, directory)
            config["source_dir"] = source

        if "expansion_packs" not in config:
            config["expansion_packs"] = installed_expansion_packs(directory)
        if "integrations" not in config:
            previous = ManifestFile(directory).load_optional()
            config["integrations"] = list(previous.integrations) if previous else []

        return self.install(config)

    # ==============================================================
    # HELPERS
    # ==============================================================

    def _collaborators(self, config: InstallConfig):
        builder = self._builder or ManifestBuilder(
            max_workers=config.max_workers, console=self.console, verbose=self.verbose
        )
        if self._handlers is not None:
            return builder, self._handlers

        applier = self._applier or ChangeApplier(
            builder=builder,
            max_workers=config.max_workers,
            cache_max_entry_bytes=config.cache_max_entry_bytes,
            console=self.console,
            verbose=self.verbose,
        )
        return builder, default_handlers(
            builder, applier, self.checker, self.backups, self.console, self.verbose
        )

    def _failure(
        self,
        phase: str,
        error: BaseException,
        install_type: Optional[InstallType],
        target_dir: Optional[Path],
        unexpected: bool = False
    ) -> InstallResult:
        message = f"{type(error).__name__}: {error}" if unexpected else str(error)
        self.print(f"[bold red]✗ Installation failed during {phase}:[/] {message}")
        return InstallResult(
            success=False,
            install_type=install_type,
            error=message,
            phase=phase,
            target_dir=target_dir,
        )

def default_handlers(
    builder: ManifestBuilder,
    applier: ChangeApplier,
    checker: IntegrityChecker,
    backups: BackupManager,
    console: Optional[Console] = None,
    verbose: bool = False
) -> List[InstallHandler]:
    """The fresh, update and repair handlers, in dispatch order."""
    kwargs = dict(checker=checker, backups=backups, console=console, verbose=verbose)
    return [
        FreshInstallHandler(builder, applier, **kwargs),
        UpdateInstallHandler(builder, applier, **kwargs),
        RepairInstallHandler(builder, applier, **kwargs),
    ]

def create_installer_orchestrator(
    console: Optional[Console] = None,
    verbose: bool = False,
    **overrides: Any
) -> InstallerOrchestrator:
    """Build an orchestrator; any collaborator can be passed in ``overrides``."""
    return InstallerOrchestrator(console=console, verbose=verbose, **overrides)
