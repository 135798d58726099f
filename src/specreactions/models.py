"""Data models for specreactions."""

from dataclasses import dataclass, field
from datetime import datetime

# Minimum number of reactions before recent reactions are counted.
MIN_REACTION_COUNT = 10

# What to consider a recent reaction.
RECENT_REACTION_DAYS = 90

# GitHub reaction content keys, in the order the API returns them.
REACTION_KEYS = ("+1", "-1", "laugh", "hooray", "confused", "heart", "rocket", "eyes")


@dataclass(frozen=True)
class RepositoryRef:
    """A GitHub repository resolved from the registry.

    Attributes:
        owner: Repository owner/organization (e.g., "w3c").
        name: Repository name (e.g., "csswg-drafts").
        url: Registry URL the reference was parsed from.
    """

    owner: str
    name: str
    url: str = ""

    @property
    def full_name(self) -> str:
        """Owner and name joined as ``owner/name``."""
        return f"{self.owner}/{self.name}"


@dataclass
class ReactionSummary:
    """Reaction rollup attached to an issue.

    Attributes:
        total_count: Total number of reactions on the issue.
        url: API URL of the issue's reactions listing.
        counts: Per-content counts keyed by GitHub reaction content ("+1", ...).
    """

    total_count: int
    url: str = ""
    counts: dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: dict | None) -> "ReactionSummary":
        data = data or {}
        return cls(
            total_count=data.get("total_count", 0),
            url=data.get("url", ""),
            counts={key: data.get(key, 0) for key in REACTION_KEYS},
        )

    def to_dict(self) -> dict:
        """Convert to the API's key layout.

        Returns:
            Dictionary with url, total_count and one entry per reaction content.
        """
        result: dict = {"url": self.url, "total_count": self.total_count}
        for key in REACTION_KEYS:
            result[key] = self.counts.get(key, 0)
        return result


@dataclass(frozen=True)
class PullRequestInfo:
    """Pull request flags for an issue that is a PR."""

    draft: bool = False


@dataclass
class Issue:
    """Issue (or pull request) from the issues listing.

    Attributes:
        number: Issue number within the repository.
        title: Issue title.
        html_url: Browser URL of the issue.
        reactions: Reaction rollup.
        milestone: Milestone title, if the issue has one.
        labels: Label names in listing order.
        pull_request: Set when the issue is a pull request.
    """

    number: int
    title: str
    html_url: str
    reactions: ReactionSummary
    milestone: str | None = None
    labels: list[str] = field(default_factory=list)
    pull_request: PullRequestInfo | None = None


@dataclass(frozen=True)
class Reaction:
    """Single reaction on an issue."""

    created_at: datetime
    content: str = ""


@dataclass
class IssueRecord:
    """One entry of the output dataset.

    Optional fields are omitted from the serialized form when unset.
    ``recent_reaction_count`` is set if and only if the issue has at least
    ``min_reaction_count`` reactions in total.

    Attributes:
        total_reactions: Reaction rollup copied from the issue.
        url: Browser URL of the issue.
        title: Issue title.
        pull_request: Draft flag, only for pull requests.
        milestone: Milestone title.
        labels: Label names; empty means no labels.
        recent_reaction_count: Reactions created inside the recent window.
        min_reaction_count: Threshold the record was built against.
    """

    total_reactions: ReactionSummary
    url: str
    title: str
    pull_request: PullRequestInfo | None = None
    milestone: str | None = None
    labels: list[str] = field(default_factory=list)
    recent_reaction_count: int | None = None
    min_reaction_count: int = field(default=MIN_REACTION_COUNT, repr=False, compare=False)

    def __post_init__(self) -> None:
        qualifies = self.total_reactions.total_count >= self.min_reaction_count
        if qualifies != (self.recent_reaction_count is not None):
            raise ValueError(
                f"recent_reaction_count must be set iff total_count >= {self.min_reaction_count} "
                f"(total_count={self.total_reactions.total_count}, "
                f"recent_reaction_count={self.recent_reaction_count})"
            )

    def to_dict(self) -> dict:
        """Convert to the JSON object written to the dataset.

        Returns:
            Dictionary with absent optional fields left out.
        """
        result: dict = {
            "total_reactions": self.total_reactions.to_dict(),
            "url": self.url,
            "title": self.title,
        }
        if self.pull_request is not None:
            result["pull_request"] = {"draft": self.pull_request.draft}
        if self.milestone is not None:
            result["milestone"] = self.milestone
        if self.labels:
            result["labels"] = list(self.labels)
        if self.recent_reaction_count is not None:
            result["recent_reaction_count"] = self.recent_reaction_count
        return result
