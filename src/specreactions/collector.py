"""Issue collection orchestration."""

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from specreactions.config import Settings
from specreactions.github_client import GitHubAPIError, GitHubClient
from specreactions.models import MIN_REACTION_COUNT, Issue, IssueRecord, RepositoryRef
from specreactions.registry import load_registry, resolve_repositories
from specreactions.storage import IssuesStorage

console = Console()


@dataclass
class CollectionResult:
    """Outcome of a collection run.

    Attributes:
        records: Collected issue records in dataset order.
        repositories: Repositories that were attempted.
        failed: Full names of repositories that failed part way or entirely.
        output_path: Where the dataset was written, None if nothing was written.
    """

    records: list[IssueRecord] = field(default_factory=list)
    repositories: list[RepositoryRef] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    output_path: Path | None = None


async def count_recent_reactions(
    client: GitHubClient,
    repo: RepositoryRef,
    number: int,
    recent_since: datetime,
) -> int:
    """Count reactions on an issue created strictly after ``recent_since``.

    Args:
        client: Initialized GitHub client.
        repo: Repository of the issue.
        number: Issue number.
        recent_since: Start of the recent window (exclusive).

    Returns:
        Number of reactions inside the window.
    """
    count = 0
    async for reaction in client.iter_reactions(repo.owner, repo.name, number):
        if reaction.created_at > recent_since:
            count += 1
    return count


async def build_issue_record(
    client: GitHubClient,
    repo: RepositoryRef,
    issue: Issue,
    recent_since: datetime,
    min_reaction_count: int = MIN_REACTION_COUNT,
) -> IssueRecord:
    """Build the dataset record for one issue.

    Reactions are only listed for issues with at least ``min_reaction_count``
    reactions in total.
    """
    recent_reaction_count = None
    if issue.reactions.total_count >= min_reaction_count:
        recent_reaction_count = await count_recent_reactions(
            client, repo, issue.number, recent_since
        )

    return IssueRecord(
        total_reactions=issue.reactions,
        url=issue.html_url,
        title=issue.title,
        pull_request=issue.pull_request,
        milestone=issue.milestone,
        labels=list(issue.labels),
        recent_reaction_count=recent_reaction_count,
        min_reaction_count=min_reaction_count,
    )


async def collect_repo_issues(
    client: GitHubClient,
    repo: RepositoryRef,
    recent_since: datetime,
    records: list[IssueRecord],
    state: str = "all",
    min_reaction_count: int = MIN_REACTION_COUNT,
) -> int:
    """Collect every issue of a repository into ``records``.

    Records are appended as they are built, so issues processed before a
    failure stay in ``records`` when an error propagates.

    Args:
        client: Initialized GitHub client.
        repo: Repository to walk.
        recent_since: Start of the recent reaction window.
        records: Dataset to append to.
        state: Issue state filter.
        min_reaction_count: Threshold for counting recent reactions.

    Returns:
        Number of records appended.

    Raises:
        GitHubAPIError: If listing issues or reactions fails.
    """
    count = 0
    async for issue in client.iter_issues(repo.owner, repo.name, state=state):
        record = await build_issue_record(
            client, repo, issue, recent_since, min_reaction_count=min_reaction_count
        )
        # Log the issue URL to make it easier to see if the run is stuck.
        console.print(record.url, markup=False, highlight=False)
        records.append(record)
        count += 1
    return count


async def collect_all(
    settings: Settings,
    repos: list[RepositoryRef] | None = None,
    dry_run: bool = False,
    now: datetime | None = None,
) -> CollectionResult:
    """Collect issues for all resolved repositories and write the dataset.

    A repository that fails is reported and skipped; the dataset is written
    once, after every repository has been attempted.

    Args:
        settings: Application settings.
        repos: Specific repos to collect (default: resolved from the registry).
        dry_run: If True, show what would be collected without fetching.
        now: Run start time (default: current time).

    Returns:
        CollectionResult with the records and per-repository outcome.

    Raises:
        RegistryError: If the registry can't be loaded.
        OSError: If the dataset can't be written.
    """
    result = CollectionResult()

    if repos is None:
        entries = load_registry(settings.registry_source, timeout=settings.request_timeout)
        repos = resolve_repositories(entries)

    if not repos:
        console.print("[yellow]No repositories resolved[/yellow]")
        return result

    console.print(f"\n[bold]Collecting issues for {len(repos)} repositories[/bold]\n")

    if dry_run:
        for repo in repos:
            console.print(f"  Would collect: {repo.full_name}")
        return result

    if not settings.github_token:
        console.print("[red]Error: GITHUB_TOKEN not set[/red]")
        console.print("Set environment variable or create .env file")
        return result

    run_start = now or datetime.now(UTC)
    recent_since = run_start - timedelta(days=settings.recent_reaction_days)

    async with GitHubClient(
        settings.github_token,
        timeout=settings.request_timeout,
        per_page=settings.per_page,
        throttle=settings.throttle_config(),
    ) as client:
        for repo in repos:
            result.repositories.append(repo)
            try:
                await collect_repo_issues(
                    client,
                    repo,
                    recent_since,
                    result.records,
                    state=settings.issue_state,
                    min_reaction_count=settings.min_reaction_count,
                )
            except GitHubAPIError as e:
                result.failed.append(repo.full_name)
                prefix = f"{e.status_code} error" if e.status_code is not None else "Error"
                console.print(
                    f"[red]{prefix} while fetching issues from "
                    f"{escape(repo.full_name)}: {escape(str(e))}[/red]"
                )

    storage = IssuesStorage(settings.output_path)
    count = storage.write(result.records)
    result.output_path = settings.output_path
    console.print(f"\n[green]Stored {count} issues to {settings.output_path}[/green]")
    return result
