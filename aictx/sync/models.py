"""
Sync Models
===========

Result types and errors produced by the Context Synchronizer.
"""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from aictx.environment import ContextSyncError
from aictx.utils.file_ops import file_digest
from aictx.utils.paths import ContextLayout, SyncMode


class FetchFailure(ContextSyncError):
    """The remote template (or repository) could not be retrieved."""

    pass


class WriteFailure(ContextSyncError):
    """A managed path could not be written or removed."""

    def __init__(self, path: Path, reason: str):
        super().__init__(f"Cannot write {path}: {reason}")
        self.path = path
        self.reason = reason


class AliasFailure(ContextSyncError):
    """An alias could not be created."""

    def __init__(self, alias: Path, reason: str):
        super().__init__(f"Failed to create alias {alias}: {reason}")
        self.alias = alias
        self.reason = reason


class ValidationFailure(ContextSyncError):
    """An alias exists but does not resolve to the canonical document."""

    def __init__(self, alias: Path, reason: str):
        super().__init__(f"Alias {alias} does not resolve: {reason}")
        self.alias = alias
        self.reason = reason


class ReconciliationResult(str, Enum):
    """Outcome of comparing the local document against the fetched template."""

    fetched = "Fetched"
    identical = "IdenticalNoChange"
    replaced = "DivergedReplaced"
    preserved = "DivergedPreserved"


class SyncStatus(str, Enum):
    """Overall outcome of one invocation."""

    success = "Success"
    partial_failure = "PartialFailure"
    aborted = "Aborted"
    already_installed = "AlreadyInstalled"

    @property
    def exit_code(self) -> int:
        return 0 if self in (SyncStatus.success, SyncStatus.already_installed) else 1


class AliasAction(str, Enum):
    created = "created"
    updated = "updated"
    unchanged = "unchanged"
    failed = "failed"


class AliasOutcome(BaseModel):
    """Creation and validation result for a single alias."""

    alias: Path
    target: Path
    action: AliasAction
    valid: bool = False
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.action != AliasAction.failed and self.valid


class InstallationState(BaseModel):
    """Snapshot of the canonical document at one point of a run."""

    exists: bool
    document_exists: bool
    digest: str | None = None

    @classmethod
    def read(cls, layout: ContextLayout) -> "InstallationState":
        """Inspect the filesystem for ``layout``."""
        return cls(
            exists=layout.installed_marker.exists(),
            document_exists=layout.document.is_file(),
            digest=file_digest(layout.document),
        )


class SyncReport(BaseModel):
    """Structured summary of a ``synchronize`` call."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    mode: SyncMode
    root: Path
    status: SyncStatus
    document: ReconciliationResult | None = None
    aliases: list[AliasOutcome] = Field(default_factory=list)
    backup: Path | None = None
    diff: str | None = None
    error: str | None = None
    state_before: InstallationState | None = None
    state_after: InstallationState | None = None

    @property
    def exit_code(self) -> int:
        return self.status.exit_code

    @property
    def failed_aliases(self) -> list[AliasOutcome]:
        return [outcome for outcome in self.aliases if not outcome.ok]

    @property
    def message(self) -> str:
        """One human-readable line describing the outcome."""
        if self.status == SyncStatus.already_installed:
            return f"Global context already installed under {self.root}"
        if self.status == SyncStatus.aborted:
            return f"{self.mode.label} context setup aborted: {self.error}"
        if self.status == SyncStatus.partial_failure:
            names = ", ".join(str(outcome.alias) for outcome in self.failed_aliases)
            return f"{self.mode.label} context set up with failures ({names})"
        return f"{self.mode.label} context ready at {self.root} ({self.document.value})"


class UninstallReport(BaseModel):
    """Summary of an ``uninstall`` call."""

    mode: SyncMode
    root: Path
    status: SyncStatus
    removed: list[Path] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    @property
    def exit_code(self) -> int:
        return self.status.exit_code
