"""Repository discovery from the browser-specs registry."""

import json
from pathlib import Path
from urllib.parse import urlsplit

import httpx
from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError

from specreactions.models import RepositoryRef


class RegistryError(Exception):
    """Raised when the registry cannot be loaded."""


class NightlyInfo(BaseModel):
    """Nightly (editor's draft) details of a spec."""

    model_config = ConfigDict(extra="ignore")

    repository: str | None = None


class SpecEntry(BaseModel):
    """Single specification in the registry."""

    model_config = ConfigDict(extra="ignore")

    nightly: NightlyInfo | None = None


_ENTRIES = TypeAdapter(list[SpecEntry])


def load_registry(source: str | Path, timeout: float = 30.0) -> list[SpecEntry]:
    """Load the specs registry from a file or URL.

    Args:
        source: Path to a JSON file, or an http(s) URL.
        timeout: Request timeout in seconds for URL sources.

    Returns:
        Registry entries in document order.

    Raises:
        RegistryError: If the registry can't be read or isn't a list of specs.
    """
    source = str(source)
    try:
        if source.startswith(("http://", "https://")):
            response = httpx.get(source, timeout=timeout, follow_redirects=True)
            response.raise_for_status()
            data = response.json()
        else:
            with open(source, encoding="utf-8") as f:
                data = json.load(f)
        return _ENTRIES.validate_python(data)
    except (httpx.HTTPError, OSError, ValueError, ValidationError) as e:
        raise RegistryError(f"Could not load registry from {source}: {e}") from e


def collect_repository_urls(entries: list[SpecEntry]) -> set[str]:
    """Collect the distinct nightly repository URLs.

    URLs are compared as plain strings, so differently formatted URLs of the
    same repository are kept apart.
    """
    urls: set[str] = set()
    for entry in entries:
        if entry.nightly and entry.nightly.repository:
            urls.add(entry.nightly.repository)
    return urls


def parse_repository_url(url: str) -> RepositoryRef | None:
    """Parse a ``https://github.com/owner/repo`` URL.

    Args:
        url: Repository URL from the registry.

    Returns:
        RepositoryRef, or None if the URL isn't a GitHub repository root.
    """
    try:
        parts = urlsplit(url)
        hostname = parts.hostname
    except ValueError:
        return None

    if hostname != "github.com":
        return None

    segments = [s for s in parts.path.split("/") if s]
    if len(segments) != 2:
        return None

    owner, name = segments
    return RepositoryRef(owner=owner, name=name, url=url)


def resolve_repositories(entries: list[SpecEntry]) -> list[RepositoryRef]:
    """Resolve registry entries to GitHub repositories.

    Args:
        entries: Registry entries.

    Returns:
        Repositories ordered by their registry URL.
    """
    repos = []
    for url in sorted(collect_repository_urls(entries)):
        repo = parse_repository_url(url)
        if repo is not None:
            repos.append(repo)
    return repos
