"""Rich display functions for removal plans and results."""

from rich.markup import escape
from rich.table import Table

from cielreset.core.planner import RemovalPlan
from cielreset.filesystem.models import RemovalResult
from cielreset.utils.formatting import console, format_count, print_success, print_warning


def create_summary_table(plan: RemovalPlan) -> Table:
    """Create a table with the counts behind a removal plan.

    Args:
        plan: Plan to summarize.

    Returns:
        Rich Table with one row per category.
    """
    table = Table(
        title=f"Reset Plan for {escape(str(plan.root))}",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Category")
    table.add_column("Paths", justify="right")

    table.add_row("Enumerated", format_count(plan.total_paths))
    table.add_row("[protected]Protected[/]", format_count(len(plan.protected_paths)))
    table.add_row(
        f"[owned]Package-owned[/] [muted]({format_count(plan.package_count)} packages)[/]",
        format_count(plan.owned_count),
    )
    if plan.retained_paths:
        table.add_row(
            "[muted]Kept directories (hold kept paths)[/]",
            format_count(len(plan.retained_paths)),
        )
    to_remove = len(plan.removal_set) - len(plan.retained_paths)
    table.add_row("[removed]To remove[/]", f"[removed]{format_count(to_remove)}[/]")
    return table


def create_plan_table(paths: list[str], limit: int | None = None) -> Table:
    """Create a table listing planned removals.

    Args:
        paths: Sorted removal paths.
        limit: Maximum number of rows; None shows everything.

    Returns:
        Rich Table with one row per path.
    """
    shown = paths[:limit] if limit else paths
    title = "Planned Removals"
    if len(shown) < len(paths):
        title = f"Planned Removals (showing {len(shown)} of {format_count(len(paths))})"

    table = Table(title=title, show_header=True, header_style="bold_header", border_style="border")
    table.add_column("Path", style="removed", overflow="fold")
    for path in shown:
        table.add_row(escape(path))
    return table


def format_removal(result: RemovalResult) -> str:
    """Format one removal result as a single markup line."""
    path = escape(result.path)
    if result.dry_run:
        return f"[info]would remove[/] {path}"
    if result.failed:
        return f"[error]failed[/] {path} [muted]({escape(result.error or 'unknown error')})[/]"
    if result.retained:
        return f"[muted]kept[/] {path}"
    if result.already_absent:
        return f"[muted]gone[/] {path}"
    return f"[removed]removed[/] {path}"


def create_failures_table(results: list[RemovalResult]) -> Table:
    """Create a table of the removals that failed."""
    table = Table(
        title="Removal Failures",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Path", style="bold", overflow="fold")
    table.add_column("Error", style="muted")
    for result in results:
        if result.failed:
            table.add_row(escape(result.path), escape(result.error or "Unknown error"))
    return table


def print_results_summary(results: list[RemovalResult]) -> None:
    """Print a summary of removal results.

    Failures are listed in a table but do not make the reset fail.

    Args:
        results: Results yielded by BulkRemover.remove.
    """
    would_remove = sum(1 for r in results if r.dry_run)
    if would_remove:
        console.print(f"\n[info]Dry-run: {format_count(would_remove)} path(s) would be removed.[/]")
        return

    removed = sum(1 for r in results if r.success and not (r.already_absent or r.retained))
    absent = sum(1 for r in results if r.already_absent)
    failures = [r for r in results if r.failed]

    if not failures:
        print_success(
            f"Removed {format_count(removed)} path(s)"
            + (f", {format_count(absent)} already gone." if absent else ".")
        )
        return

    console.print(create_failures_table(failures))
    print_warning(
        f"{format_count(removed)} removed, {format_count(absent)} already gone, "
        f"{format_count(len(failures))} failed"
    )
