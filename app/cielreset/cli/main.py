"""Main CLI application entry point.

Defines the ``ciel-factory-reset`` command: stop and mount an instance,
plan the removal of every untracked path, confirm, delete, record.
"""

import json
import logging
import os
from pathlib import Path
from typing import Annotated

import typer

from cielreset import __version__
from cielreset.cli.display import (
    create_plan_table,
    create_summary_table,
    format_removal,
    print_results_summary,
)
from cielreset.core.config import ResetConfig, load_config
from cielreset.core.history import ResetHistory, create_reset_record
from cielreset.core.planner import RemovalPlan, build_plan
from cielreset.errors import ResetError
from cielreset.filesystem.models import RemovalResult
from cielreset.filesystem.operator import BulkRemover
from cielreset.instance.ciel import CielController, is_ciel_workspace
from cielreset.packages.dpkg import DpkgDatabase
from cielreset.utils.formatting import (
    console,
    format_count,
    print_error,
    print_info,
    print_success,
    print_warning,
)

logger = logging.getLogger(__name__)

INSTANCE_ENVVAR = "CIEL_INST"

app = typer.Typer(
    name="ciel-factory-reset",
    help="Reset a ciel instance to its package-manager-consistent state.",
    rich_markup_mode="rich",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"ciel-factory-reset version {__version__}")
        raise typer.Exit()


def is_root() -> bool:
    """Check if the process runs with an effective UID of 0."""
    return os.geteuid() == 0


@app.command()
def reset(
    instance: Annotated[
        str | None,
        typer.Argument(
            envvar=INSTANCE_ENVVAR,
            help=f"Instance to reset (default: ${INSTANCE_ENVVAR}).",
            show_default=False,
        ),
    ] = None,
    directory: Annotated[
        Path,
        typer.Option("--directory", "-C", help="ciel workspace directory."),
    ] = Path("."),
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Show what would be removed."),
    ] = False,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
    export_path: Annotated[
        Path | None,
        typer.Option("--export", "-e", help="Export the removal plan to a JSON file."),
    ] = None,
    limit: Annotated[
        int | None,
        typer.Option("--limit", "-l", help="Limit number of planned paths shown."),
    ] = 50,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose output."),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Do not print every removed path."),
    ] = False,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
) -> None:
    """Remove every path not owned by a package and not protected."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not instance:
        print_error("No instance specified!")
        raise typer.Exit(code=1)

    if not is_root():
        print_error("Please run me as root!")
        raise typer.Exit(code=1)

    workspace = directory.resolve()
    if not is_ciel_workspace(workspace):
        print_error(f"{workspace} does not look like a ciel workspace")
        raise typer.Exit(code=1)

    try:
        config = load_config()
        controller = CielController(
            workspace,
            command=config.ciel_command,
            bind_mounts=config.bind_mounts,
        )
        print_info(f"Taking over instance {instance}...")
        with controller.mounted(instance) as root:
            _reset_root(
                instance,
                root,
                config,
                dry_run=dry_run,
                yes=yes,
                export_path=export_path,
                limit=limit,
                quiet=quiet,
            )
    except ResetError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e


def _reset_root(
    instance: str,
    root: Path,
    config: ResetConfig,
    *,
    dry_run: bool,
    yes: bool,
    export_path: Path | None,
    limit: int | None,
    quiet: bool,
) -> None:
    """Plan and apply the reset of a mounted instance root."""
    print_info(f"Scanning {root}...")
    plan = build_plan(
        root,
        DpkgDatabase(root, command=config.dpkg_query_command),
        parallel=config.parallel,
        strict=config.strict_packages,
    )
    console.print(create_summary_table(plan))

    if plan.retained_paths:
        print_info(
            f"{format_count(len(plan.retained_paths))} unowned director(ies) are kept "
            "because they contain protected or package-owned paths."
        )

    if plan.failed_packages:
        print_warning(
            "File lists could not be read for: "
            + ", ".join(plan.failed_packages)
            + ". Files only they own will be removed."
        )

    if export_path is not None:
        _export_plan(plan, export_path)

    if plan.is_empty:
        print_success("Instance is already pristine. Nothing to remove.")
        return

    paths = plan.sorted_paths()
    console.print(create_plan_table(paths, limit))

    if not dry_run and not yes:
        confirmed = typer.confirm(
            f"\nProceed with removing {len(paths)} path(s) from {instance}?",
            default=False,
        )
        if not confirmed:
            print_info("Aborted.")
            raise typer.Exit(code=0)

    remover = BulkRemover(
        root,
        batch_size=config.batch_size,
        dry_run=dry_run,
        keep=plan.kept_paths,
    )
    results: list[RemovalResult] = []
    for result in remover.remove(paths):
        results.append(result)
        if not quiet or result.failed:
            console.print(format_removal(result), highlight=False)

    print_results_summary(results)

    if not dry_run:
        _record_history(instance, root, results, plan.failed_packages)


def _export_plan(plan: RemovalPlan, export_path: Path) -> None:
    """Export the removal plan to a JSON file."""
    export_path = export_path.resolve()
    if export_path.is_dir():
        print_error(f"Export path is a directory: {export_path}")
        raise typer.Exit(code=1)

    try:
        export_path.parent.mkdir(parents=True, exist_ok=True)
        export_path.write_text(json.dumps(plan.to_dict(), indent=2))
        print_info(f"Plan exported to {export_path}")
    except OSError as e:
        print_error(f"Failed to export: {e}")
        raise typer.Exit(code=1) from e


def _record_history(
    instance: str,
    root: Path,
    results: list[RemovalResult],
    failed_packages: tuple[str, ...],
) -> None:
    """Append the outcome of a reset to the audit history."""
    record = create_reset_record(instance, root, results, failed_packages)
    try:
        ResetHistory().record(record)
    except (OSError, RuntimeError) as e:
        print_warning(f"Could not record to history: {e}")


if __name__ == "__main__":
    app()
