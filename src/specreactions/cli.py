"""Command-line interface for specreactions."""

import asyncio
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from specreactions.collector import collect_all
from specreactions.config import get_settings
from specreactions.registry import RegistryError, load_registry, resolve_repositories
from specreactions.storage import IssuesStorage

console = Console()


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Issue reaction harvester for web-standards repositories."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


@main.command()
@click.option("--output", "-o", type=click.Path(path_type=Path), help="Output JSON file")
@click.option("--registry", help="Registry file or URL")
@click.option("--repo", "-r", multiple=True, help="Specific repo(s) to collect")
@click.option(
    "--state",
    type=click.Choice(["open", "closed", "all"]),
    help="Issue state to collect",
)
@click.option("--dry-run", is_flag=True, help="Show what would be collected")
@click.pass_context
def collect(
    ctx: click.Context,
    output: Path | None,
    registry: str | None,
    repo: tuple[str, ...],
    state: str | None,
    dry_run: bool,
) -> None:
    """Collect issues and reactions from GitHub.

    Examples:
        specreactions collect                     # All repos
        specreactions collect -r csswg-drafts     # Single repo
        specreactions collect --dry-run           # Preview only
    """
    settings = get_settings()
    if output:
        settings.output_path = output
    if registry:
        settings.registry_source = registry
    if state:
        settings.issue_state = state

    try:
        repos = resolve_repositories(
            load_registry(settings.registry_source, timeout=settings.request_timeout)
        )
    except RegistryError as e:
        raise click.ClickException(str(e)) from e

    if repo:
        # Filter to specific repos
        repos = [r for r in repos if r.name in repo or r.full_name in repo]
        if not repos:
            console.print(f"[red]No matching repos found for: {repo}[/red]")
            return

    try:
        result = asyncio.run(collect_all(settings, repos=repos, dry_run=dry_run))
    except OSError as e:
        raise click.ClickException(f"Could not write {settings.output_path}: {e}") from e

    if dry_run:
        return

    if result.output_path is None:
        ctx.exit(1)

    console.print(
        f"Collected {len(result.records)} issues from {len(result.repositories)} repositories"
    )
    if result.failed:
        console.print(
            f"[yellow]{len(result.failed)} repositories failed: "
            f"{escape(', '.join(result.failed))}[/yellow]"
        )


@main.command("list")
@click.option("--registry", help="Registry file or URL")
@click.pass_context
def list_repos(ctx: click.Context, registry: str | None) -> None:
    """List repositories resolved from the registry."""
    settings = get_settings()
    source = registry or settings.registry_source

    try:
        repos = resolve_repositories(load_registry(source, timeout=settings.request_timeout))
    except RegistryError as e:
        raise click.ClickException(str(e)) from e

    if not repos:
        console.print("[yellow]No GitHub repositories found in the registry[/yellow]")
        return

    table = Table(title="Resolved Repositories")
    table.add_column("Owner", style="cyan")
    table.add_column("Repository", style="green")

    for repo in repos:
        table.add_row(repo.owner, repo.name)

    console.print(table)


@main.command()
@click.option("--input", "-i", "input_path", type=click.Path(path_type=Path), help="Dataset file")
@click.option("--limit", "-n", default=20, help="Number of issues to show")
@click.pass_context
def show(ctx: click.Context, input_path: Path | None, limit: int) -> None:
    """Display the most recently active issues in terminal.

    Examples:
        specreactions show                    # Top 20 issues
        specreactions show -n 50              # Top 50 issues
    """
    settings = get_settings()
    storage = IssuesStorage(input_path or settings.output_path)

    issues = storage.read()

    if not issues:
        console.print("[yellow]No data found. Run 'specreactions collect' first.[/yellow]")
        return

    ranked = sorted(
        issues,
        key=lambda i: (i.get("recent_reaction_count", 0), i["total_reactions"]["total_count"]),
        reverse=True,
    )

    table = Table(title=f"Top {min(limit, len(ranked))} issues by recent reactions")
    table.add_column("Issue", style="cyan")
    table.add_column("Title")
    table.add_column("Recent", justify="right")
    table.add_column("Total", justify="right")

    for issue in ranked[:limit]:
        table.add_row(
            escape(issue["url"]),
            escape(issue["title"]),
            str(issue.get("recent_reaction_count", "-")),
            str(issue["total_reactions"]["total_count"]),
        )

    console.print(table)


if __name__ == "__main__":
    main()
