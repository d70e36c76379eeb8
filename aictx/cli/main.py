"""
Main CLI entry point for aictx.
"""

# Standard library imports
import importlib.metadata
from pathlib import Path
from typing import Optional

# Third-party imports
import typer

# Local imports
from aictx.environment import ConfigurationError, DivergencePolicy, LinkStrategy, Settings, configure_logging, get_settings
from aictx.sync.models import ReconciliationResult, SyncReport, SyncStatus
from aictx.sync.notifier import SlackNotifier
from aictx.sync.synchronizer import Synchronizer
from aictx.sync.linker import creator_for
from aictx.utils.paths import DOCUMENT_NAME
from aictx.utils.rich_console import get_console_logger, print_panel, print_syntax, print_table


logger = get_console_logger()


app = typer.Typer(
    help="AI context setup - one AGENTS.md, linked for every coding assistant.\n\n"
    "Run from your home directory for the global setup, or from a project directory for a project setup.",
)


ROOT_OPTION = typer.Option(None, "--root", help="Directory to set up (defaults to the current directory)")
FORCE_OPTION = typer.Option(False, "--force", help="Force reinstall (global mode only)")
POLICY_OPTION = typer.Option(None, "--policy", help="What to do when AGENTS.md differs from the template")
COPY_OPTION = typer.Option(False, "--copy", help="Write copies instead of symlinks")
NO_MIRROR_OPTION = typer.Option(False, "--no-mirror", help="Skip mirroring the standards repository into the global store")
DIFF_OPTION = typer.Option(True, "--show-diff/--no-show-diff", help="Print the diff when AGENTS.md diverged")

OPTION_DEFAULTS = {"root": None, "force": False, "policy": None, "copy": False, "no_mirror": False, "show_diff": True}


def load_settings() -> Settings:
    """Read settings and configure logging, exiting on bad configuration."""
    try:
        settings = get_settings()
    except ConfigurationError as error:
        logger.error(str(error))
        raise typer.Exit(1)
    configure_logging(settings)
    # The console logger was built before .env was read
    logger.set_level(settings.effective_log_level)
    return settings


def inherit_options(ctx: typer.Context, **options):
    """Fill options left at their defaults from the ones given before the subcommand."""
    parent = ctx.obj or {}
    return {
        name: parent.get(name, value) if value == OPTION_DEFAULTS[name] else value
        for name, value in options.items()
    }


def build_synchronizer(
    settings: Settings,
    policy: Optional[DivergencePolicy] = None,
    copy: bool = False,
    no_mirror: bool = False,
) -> Synchronizer:
    overrides = {}
    if policy is not None:
        overrides["policy"] = policy
    if copy:
        overrides["creator"] = creator_for(LinkStrategy.copy)
    if no_mirror:
        overrides["mirror"] = None
    return Synchronizer.from_settings(settings, **overrides)


def report_document(report: SyncReport, show_diff: bool) -> None:
    """Explain what happened to AGENTS.md."""
    if report.document == ReconciliationResult.fetched:
        logger.success(f"Downloaded {DOCUMENT_NAME} template")
    elif report.document == ReconciliationResult.identical:
        logger.success(f"Your {DOCUMENT_NAME} matches the latest template - no changes needed")
    elif report.document in (ReconciliationResult.replaced, ReconciliationResult.preserved):
        logger.warning(f"IMPORTANT: Your {DOCUMENT_NAME} differs from the latest template!")
        if report.backup is not None:
            logger.success(f"Backed up your version to {report.backup.name}")
        if show_diff and report.diff:
            logger.info("Here's what changed:")
            print_syntax(report.diff, "diff", title=f"{DOCUMENT_NAME} diff")
        if report.document == ReconciliationResult.replaced:
            logger.success("Updated to latest template")
            print_panel(
                "1. Review the diff above\n"
                f"2. Edit {DOCUMENT_NAME} to add back your customizations\n"
                f"3. Compare with backup: diff {report.backup.name} {DOCUMENT_NAME}",
                title="Next Steps",
                style="yellow",
            )
        else:
            logger.info(f"Kept your {DOCUMENT_NAME}; it is larger than the template and looks customized")


def report_aliases(report: SyncReport) -> None:
    rows = [
        [str(outcome.alias), str(outcome.target), outcome.action.value, "ok" if outcome.ok else outcome.error]
        for outcome in report.aliases
    ]
    print_table(["Alias", "Target", "Action", "Status"], rows, title="Agent Links")


def run_sync(
    root: Optional[Path],
    force: bool,
    policy: Optional[DivergencePolicy],
    copy: bool,
    no_mirror: bool,
    show_diff: bool,
) -> None:
    settings = load_settings()
    synchronizer = build_synchronizer(settings, policy=policy, copy=copy, no_mirror=no_mirror)
    notifier = SlackNotifier(settings.SLACK_WEBHOOK_URL, settings.slack_channel)

    layout = synchronizer.layout_for(root or Path.cwd())
    logger.info(f"Setting up {layout.mode.label.lower()} context...")

    report = synchronizer.synchronize(layout.root, layout.mode, force=force)

    if report.status == SyncStatus.already_installed:
        logger.warning(f"Global context already exists at {layout.store_dir}")
        logger.info("Use --force to reinstall or 'aictx uninstall' to remove")
        return

    if report.status == SyncStatus.aborted:
        logger.error(report.error)
    else:
        report_document(report, show_diff)
        report_aliases(report)
        if report.status == SyncStatus.success:
            if layout.store_dir is not None:
                logger.success(f"Global context ready at {layout.store_dir}/")
            else:
                logger.success(f"Project context created - edit ./{DOCUMENT_NAME} to customize")
        else:
            logger.error(report.message)

    notifier.notify(report)
    notifier.wait()
    if report.exit_code:
        raise typer.Exit(report.exit_code)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    root: Optional[Path] = ROOT_OPTION,
    force: bool = FORCE_OPTION,
    policy: Optional[DivergencePolicy] = POLICY_OPTION,
    copy: bool = COPY_OPTION,
    no_mirror: bool = NO_MIRROR_OPTION,
    show_diff: bool = DIFF_OPTION,
):
    """
    Set up AI context; runs `sync` when no subcommand is given.
    """
    ctx.obj = dict(root=root, force=force, policy=policy, copy=copy, no_mirror=no_mirror, show_diff=show_diff)
    if ctx.invoked_subcommand is None:
        run_sync(root, force, policy, copy, no_mirror, show_diff)
    elif ctx.invoked_subcommand != "sync":
        sync_only = [name for name in ["force", "policy", "no_mirror", "show_diff"] if ctx.obj[name] != OPTION_DEFAULTS[name]]
        if sync_only:
            ctx.fail(f"--{sync_only[0].replace('_', '-')} only applies to sync")


@app.command()
def sync(
    ctx: typer.Context,
    root: Optional[Path] = ROOT_OPTION,
    force: bool = FORCE_OPTION,
    policy: Optional[DivergencePolicy] = POLICY_OPTION,
    copy: bool = COPY_OPTION,
    no_mirror: bool = NO_MIRROR_OPTION,
    show_diff: bool = DIFF_OPTION,
):
    """Fetch the AGENTS.md template, reconcile it and (re)create the agent links."""
    options = inherit_options(ctx, root=root, force=force, policy=policy, copy=copy, no_mirror=no_mirror, show_diff=show_diff)
    run_sync(**options)


@app.command()
def uninstall(
    ctx: typer.Context,
    root: Optional[Path] = ROOT_OPTION,
    copy: bool = COPY_OPTION,
):
    """Remove the AI context setup."""
    options = inherit_options(ctx, root=root, copy=copy)
    settings = load_settings()
    synchronizer = build_synchronizer(settings, copy=options["copy"], no_mirror=True)
    logger.info("Removing AI context setup...")

    report = synchronizer.uninstall(options["root"] or Path.cwd())
    for path in report.removed:
        logger.success(f"Removed {path}")
    for error in report.errors:
        logger.error(error)

    if report.status == SyncStatus.success:
        logger.success("AI context setup removed successfully")
    else:
        raise typer.Exit(report.exit_code)


@app.command()
def status(ctx: typer.Context, root: Optional[Path] = ROOT_OPTION):
    """Show the detected mode, the installed document and where each link points."""
    options = inherit_options(ctx, root=root, copy=False)
    settings = load_settings()
    synchronizer = build_synchronizer(settings, copy=options["copy"], no_mirror=True)
    layout, state, aliases = synchronizer.inspect(options["root"] or Path.cwd())

    print_table(
        ["Status", "Value"],
        [
            ["Mode", layout.mode.label],
            ["Root", layout.root],
            ["Document", layout.document],
            ["Installed", "yes" if state.exists else "no"],
            ["SHA-256", state.digest or "(none)"],
            ["Backup", layout.backup if layout.backup.exists() else "(none)"],
        ],
        title="AI Context Status",
    )
    print_table(
        ["Alias", "Target", "Resolves"],
        [[str(mapping.alias), str(mapping.target), "yes" if error is None else error] for mapping, error in aliases],
        title="Agent Links",
    )


@app.command()
def version():
    """Show the installed version."""
    typer.echo(f"aictx version: {importlib.metadata.version('ai-context-setup')}")


if __name__ == "__main__":
    app()
