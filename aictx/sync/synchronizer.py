"""
Context Synchronizer
====================

Brings a sync root (the home directory or a project directory) to the
layout its mode calls for: one canonical AGENTS.md, reconciled against
the remote template, plus the aliases every agent looks for.

Each call is independent; the only state carried between runs is what
sits on disk.
"""

import contextlib
import difflib
import os
import shutil
from pathlib import Path

from loguru import logger

from aictx.environment import ContextSyncError, DivergencePolicy, Settings
from aictx.sync.fetcher import HttpTemplateSource, RemoteSource
from aictx.sync.linker import AliasCreator, CopyAliasCreator, SymlinkAliasCreator, creator_for
from aictx.sync.models import (
    AliasAction,
    AliasFailure,
    AliasOutcome,
    InstallationState,
    ReconciliationResult,
    SyncReport,
    SyncStatus,
    UninstallReport,
    ValidationFailure,
    WriteFailure,
)
from aictx.sync.repository import RepositoryMirror
from aictx.utils.file_ops import safe_read_file, safe_write_file
from aictx.utils.paths import DEFAULT_STORE_NAME, ContextLayout, LinkMapping, SyncMode, detect_mode


def render_diff(current: bytes, template: bytes) -> str:
    """Unified diff from the local document to the template."""
    lines = difflib.unified_diff(
        current.decode("utf-8", errors="replace").splitlines(keepends=True),
        template.decode("utf-8", errors="replace").splitlines(keepends=True),
        fromfile="Your current AGENTS.md",
        tofile="Latest template",
    )
    return "".join(lines)


class Synchronizer:
    """Reconciles the canonical context document and its aliases under a root."""

    def __init__(
        self,
        source: RemoteSource,
        creator: AliasCreator | None = None,
        policy: DivergencePolicy = DivergencePolicy.always_replace,
        mirror: RepositoryMirror | None = None,
        store_name: str = DEFAULT_STORE_NAME,
        home: Path | None = None,
    ):
        """Initialize the Synchronizer.

        Args:
            source: Where the template comes from
            creator: Alias strategy, symlinks by default
            policy: What to do with a local document that differs from the template
            mirror: Repository mirrored into the global store, if any
            store_name: Name of the global store directory under the home directory
            home: Home directory used for mode detection, ``Path.home()`` by default
        """
        self.source = source
        self.creator = creator or SymlinkAliasCreator()
        self.policy = policy
        self.mirror = mirror
        self.store_name = store_name
        self.home = home

    @classmethod
    def from_settings(cls, settings: Settings, **overrides) -> "Synchronizer":
        """Wire a synchronizer from configuration; keyword overrides win."""
        options = {
            "source": HttpTemplateSource.from_settings(settings),
            "creator": creator_for(settings.link_strategy),
            "policy": settings.divergence_policy,
            "mirror": RepositoryMirror(
                settings.repository_url,
                attempts=settings.fetch_attempts,
                backoff=settings.fetch_backoff,
            ) if settings.mirror_repository else None,
            "store_name": settings.store_dir,
        }
        options.update(overrides)
        return cls(**options)

    def layout_for(self, root: Path, mode: SyncMode | None = None) -> ContextLayout:
        """Resolve the layout for ``root``; the mode is detected when not given."""
        root = Path(root).expanduser().absolute()
        mode = mode if mode is not None else detect_mode(root, self.home)
        return ContextLayout.for_mode(mode, root, self.store_name)

    def synchronize(self, root: Path, mode: SyncMode | None = None, force: bool = False) -> SyncReport:
        """Run one sync of ``root``.

        Args:
            root: Directory to set up
            mode: Override the detected mode
            force: Reinstall even when the global store already exists

        Returns:
            SyncReport: Document result, per-alias outcomes and overall status
        """
        layout = self.layout_for(root, mode)
        state_before = InstallationState.read(layout)
        report = SyncReport(mode=layout.mode, root=layout.root, status=SyncStatus.success, state_before=state_before)
        logger.debug(f"Synchronizing {layout.mode.label.lower()} context at {layout.root}")

        if not layout.root.is_dir():
            return self._abort(report, f"{layout.root} does not exist or is not a directory")
        if not os.access(layout.root, os.W_OK):
            return self._abort(report, f"{layout.root} is not writable")

        if layout.mode.uses_store and state_before.exists and not force:
            logger.debug(f"Global context already exists at {layout.store_dir}")
            report.status = SyncStatus.already_installed
            report.state_after = state_before
            return report

        try:
            template = self.source.fetch(layout.mode)
            with self._checkout(layout) as checkout:
                self._reconcile(layout, template, report)
                if checkout is not None:
                    self._install_mirror(checkout, layout)
        except ContextSyncError as error:
            # Fetch and document write failures leave nothing to link against
            return self._abort(report, str(error), layout)

        report.aliases = self._link(layout)
        if report.failed_aliases:
            report.status = SyncStatus.partial_failure
        report.state_after = InstallationState.read(layout)
        logger.debug(report.message)
        return report

    def _abort(self, report: SyncReport, reason: str, layout: ContextLayout | None = None) -> SyncReport:
        logger.error(reason)
        report.status = SyncStatus.aborted
        report.error = reason
        if layout is not None:
            report.state_after = InstallationState.read(layout)
        return report

    def _checkout(self, layout: ContextLayout):
        if self.mirror is None or not layout.mode.uses_store:
            return contextlib.nullcontext(None)
        return self.mirror.checkout()

    def _install_mirror(self, checkout: Path, layout: ContextLayout) -> None:
        try:
            self.mirror.install(checkout, layout.store_dir)
        except OSError as error:
            raise WriteFailure(layout.store_dir, error.strerror or str(error)) from error

    def _reconcile(self, layout: ContextLayout, template: bytes, report: SyncReport) -> None:
        """Compare the local document with ``template`` and update it per the policy.

        Raises:
            WriteFailure: If the document or its backup cannot be written
        """
        document = layout.document
        try:
            if document.is_dir():
                raise WriteFailure(document, "is a directory")
            if not document.exists():
                safe_write_file(document, template)
                logger.debug(f"Created {document} from template")
                report.document = ReconciliationResult.fetched
                return

            current = safe_read_file(document)
            if current == template:
                logger.debug(f"{document} matches the latest template - no changes needed")
                report.document = ReconciliationResult.identical
                return

            report.diff = render_diff(current, template)
            if self.policy == DivergencePolicy.preserve_if_larger and len(current) > len(template):
                logger.warning(f"{document} differs from the template and looks customized; keeping it")
                report.document = ReconciliationResult.preserved
                return

            safe_write_file(layout.backup, current)
            safe_write_file(document, template)
            logger.warning(f"{document} differed from the template; previous version saved to {layout.backup}")
            report.backup = layout.backup
            report.document = ReconciliationResult.replaced
        except OSError as error:
            raise WriteFailure(document, error.strerror or str(error)) from error

    def _link(self, layout: ContextLayout) -> list[AliasOutcome]:
        """Create then validate every alias; one failure never stops the rest."""
        outcomes = []
        for mapping in layout.aliases:
            outcome = AliasOutcome(alias=mapping.alias, target=mapping.target, action=AliasAction.failed)
            try:
                outcome.action = self.creator.create(layout, mapping)
                self.creator.validate(layout, mapping)
                outcome.valid = True
            except (AliasFailure, ValidationFailure) as error:
                logger.error(str(error))
                outcome.error = str(error)
            outcomes.append(outcome)
        return outcomes

    def inspect(self, root: Path, mode: SyncMode | None = None) -> tuple[ContextLayout, InstallationState, list[tuple[LinkMapping, str | None]]]:
        """Read-only view of ``root``: installation state and whether each alias resolves."""
        layout = self.layout_for(root, mode)
        aliases = []
        for mapping in layout.aliases:
            try:
                self.creator.validate(layout, mapping)
                aliases.append((mapping, None))
            except ValidationFailure as error:
                aliases.append((mapping, error.reason))
        return layout, InstallationState.read(layout), aliases

    def uninstall(self, root: Path, mode: SyncMode | None = None) -> UninstallReport:
        """Remove the document, its backup, its aliases and the global store.

        Missing paths count as already removed, so this is safe on a root
        that was never set up.
        """
        layout = self.layout_for(root, mode)
        report = UninstallReport(mode=layout.mode, root=layout.root, status=SyncStatus.success)

        def remove(path: Path, tree: bool = False) -> None:
            try:
                if path.is_symlink() or path.is_file():
                    path.unlink()
                elif tree and path.is_dir():
                    shutil.rmtree(path)
                else:
                    return
            except OSError as error:
                failure = WriteFailure(path, error.strerror or str(error))
                logger.error(str(failure))
                report.errors.append(str(failure))
                return
            logger.debug(f"Removed {path}")
            report.removed.append(path)

        for mapping in layout.aliases:
            alias = layout.alias_path(mapping)
            if mapping.is_dir and alias.is_dir() and not alias.is_symlink():
                if isinstance(self.creator, CopyAliasCreator):
                    self._remove_copied_files(alias, layout.target_path(mapping), remove, report)
                continue
            remove(alias)
        remove(layout.backup)
        remove(layout.document)
        if layout.store_dir is not None:
            remove(layout.store_dir, tree=True)

        for directory in layout.alias_dirs():
            if not directory.is_dir() or directory.is_symlink():
                continue
            try:
                directory.rmdir()
                report.removed.append(directory)
            except OSError:
                logger.info(f"Leaving {directory} in place, it holds other files")

        if report.errors:
            report.status = SyncStatus.partial_failure
        logger.debug(f"Removed {len(report.removed)} paths from {layout.root}")
        return report

    @staticmethod
    def _remove_copied_files(alias: Path, target: Path, remove, report: UninstallReport) -> None:
        """Remove the files under ``alias`` that have a counterpart in ``target``, then any emptied directories."""
        # Reverse order visits children before their parent directories
        for path in sorted(alias.rglob("*"), reverse=True):
            if path.is_dir() and not path.is_symlink():
                with contextlib.suppress(OSError):
                    path.rmdir()
            elif os.path.lexists(target / path.relative_to(alias)):
                remove(path)
        try:
            alias.rmdir()
            report.removed.append(alias)
        except OSError:
            logger.info(f"Leaving {alias} in place, it holds other files")
