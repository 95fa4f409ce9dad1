"""
GitHub REST API wrapper for the sync system.

Provides a clean interface to the two listings the sync needs:
- Starred repositories of a user
- Pull requests authored by a user (issue search)

Both are page-numbered listings with a fixed page size; a page shorter
than the page size is the only end-of-listing signal used.
"""

from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import urlparse

import requests
from ratelimit import limits, sleep_and_retry
from rich.console import Console

console = Console()

API_ROOT = "https://api.github.com"
PER_PAGE = 100
SEARCH_RESULT_LIMIT = 1000
REQUEST_TIMEOUT = 30  # seconds
USER_AGENT = "github-vault-sync"

# Client-side politeness limit; GitHub's own quotas are enforced server side
RATE_LIMIT_CALLS = 10
RATE_LIMIT_PERIOD = 1  # second


class GitHubAPIError(Exception):
    """Raised when a GitHub request fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class StarredRepo:
    """A starred repository, identified by its full name."""

    name: str
    full_name: str
    html_url: str
    description: str
    owner_login: str
    owner_url: str
    language: str
    topics: list[str]
    stargazers_count: int
    forks_count: int
    created_at: str
    updated_at: str
    raw: dict = field(default_factory=dict, repr=False)

    @property
    def owner(self) -> str:
        return self.full_name.split("/", 1)[0]

    @property
    def repo(self) -> str:
        return self.full_name.split("/", 1)[-1]

    @classmethod
    def from_api_response(cls, repo: dict) -> "StarredRepo":
        """Create StarredRepo from an item of the starred listing."""
        owner = repo.get("owner") or {}
        owner_login = owner.get("login", "")

        return cls(
            name=repo["name"],
            full_name=repo["full_name"],
            html_url=repo.get("html_url", ""),
            description=repo.get("description") or "",
            owner_login=owner_login,
            owner_url=owner.get("html_url") or f"https://github.com/{owner_login}",
            language=repo.get("language") or "",
            topics=list(repo.get("topics") or []),
            stargazers_count=repo.get("stargazers_count", 0),
            forks_count=repo.get("forks_count", 0),
            created_at=repo.get("created_at") or "",
            updated_at=repo.get("updated_at") or "",
            raw=repo,
        )


@dataclass
class PullRequest:
    """A pull request, identified by (repository, number)."""

    number: int
    title: str
    html_url: str
    state: str
    draft: bool
    owner: str
    repo: str
    author: str
    labels: list[str]
    created_at: str
    updated_at: str
    merged_at: str
    closed_at: str
    raw: dict = field(default_factory=dict, repr=False)

    @property
    def repository(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def repository_url(self) -> str:
        return f"https://github.com/{self.owner}/{self.repo}"

    @property
    def owner_url(self) -> str:
        return f"https://github.com/{self.owner}"

    @property
    def merged(self) -> bool:
        return bool(self.merged_at)

    @classmethod
    def from_api_response(cls, item: dict) -> "PullRequest":
        """
        Create PullRequest from an issue-search item.

        The repository is not embedded in search results; it is recovered
        from the last two segments of `repository_url`.
        """
        owner, repo = parse_repository_url(item["repository_url"])
        pull = item.get("pull_request") or {}

        return cls(
            number=item["number"],
            title=item.get("title") or "",
            html_url=item.get("html_url", ""),
            state=item.get("state") or "",
            draft=bool(item.get("draft", False)),
            owner=owner,
            repo=repo,
            author=(item.get("user") or {}).get("login", ""),
            labels=[label["name"] for label in item.get("labels") or [] if label.get("name")],
            created_at=item.get("created_at") or "",
            updated_at=item.get("updated_at") or "",
            merged_at=pull.get("merged_at") or "",
            closed_at=item.get("closed_at") or "",
            raw=item,
        )


def parse_repository_url(url: str) -> tuple[str, str]:
    """
    Split a repository API URL into (owner, repo).

    Examples:
        https://api.github.com/repos/octo/hello -> ("octo", "hello")

    Raises:
        GitHubAPIError: If the URL has fewer than two path segments.
    """
    segments = [s for s in urlparse(url).path.split("/") if s]
    if len(segments) < 2:
        raise GitHubAPIError(f"Cannot parse repository from URL: {url}")
    return segments[-2], segments[-1]


@dataclass
class Page:
    """
    One page of a listing.

    Items are the raw JSON objects; decoding happens per item so one
    malformed record cannot take the rest of the page down with it.
    """

    number: int
    items: list
    has_more: bool


class GitHubAPI:
    """
    Wrapper around the GitHub REST API.

    Handles:
    - Authentication (optional token)
    - Rate limiting
    - Page-numbered listings
    - Error reporting
    """

    def __init__(
        self,
        username: str,
        token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        debug: bool = False,
    ):
        """
        Initialize the GitHub API client.

        Args:
            username: GitHub login whose stars and pull requests are listed.
            token: Optional personal access token.
            session: Optional requests session (mainly for tests).
            debug: Print every request.
        """
        self.username = username
        self.debug = debug
        self.session = session or requests.Session()
        self.session.headers.update({
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": USER_AGENT,
        })
        if token:
            self.session.headers["Authorization"] = f"token {token}"
        self._request_count = 0

    @sleep_and_retry
    @limits(calls=RATE_LIMIT_CALLS, period=RATE_LIMIT_PERIOD)
    def _get(self, path: str, params: dict) -> Any:
        """Execute a rate-limited GET and decode the JSON body."""
        self._request_count += 1
        url = f"{API_ROOT}{path}"

        if self.debug:
            console.print(f"[dim]GET {url} {params}[/dim]")

        try:
            response = self.session.get(url, params=params, timeout=REQUEST_TIMEOUT)
        except requests.RequestException as e:
            raise GitHubAPIError(f"Request to {url} failed: {e}") from e

        if not response.ok:
            raise GitHubAPIError(_describe_error(response), status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise GitHubAPIError(f"Invalid JSON from {url}: {e}") from e

    def get_starred_page(self, page: int) -> Page:
        """
        Get one page of the user's starred repositories, newest first.

        Args:
            page: 1-based page number.
        """
        data = self._get(
            f"/users/{self.username}/starred",
            {"per_page": PER_PAGE, "page": page, "sort": "created", "direction": "desc"},
        )
        if not isinstance(data, list):
            raise GitHubAPIError("Unexpected response for starred repositories")

        return Page(number=page, items=data, has_more=len(data) == PER_PAGE)

    def get_pull_requests_page(self, page: int) -> Page:
        """
        Get one page of pull requests authored by the user, newest first.

        Search only serves the first 1000 results, so the page that reaches
        that limit is reported as the last one.

        Args:
            page: 1-based page number.
        """
        data = self._get(
            "/search/issues",
            {
                "q": f"author:{self.username} type:pr",
                "sort": "created",
                "order": "desc",
                "per_page": PER_PAGE,
                "page": page,
            },
        )
        if not isinstance(data, dict):
            raise GitHubAPIError("Unexpected response for pull request search")

        items = data.get("items") or []
        has_more = len(items) == PER_PAGE and page * PER_PAGE < SEARCH_RESULT_LIMIT
        return Page(number=page, items=items, has_more=has_more)

    @property
    def request_count(self) -> int:
        """Number of API requests made."""
        return self._request_count


def _describe_error(response: requests.Response) -> str:
    """Build a short message for a failed response."""
    try:
        data = response.json()
        message = data.get("message", "") if isinstance(data, dict) else ""
    except ValueError:
        message = response.text[:200]

    if response.status_code in (403, 429) and response.headers.get("X-RateLimit-Remaining") == "0":
        return f"GitHub rate limit exceeded ({response.status_code}): {message}"
    if response.status_code == 401:
        return f"GitHub rejected the token (401): {message}"

    return f"GitHub API error {response.status_code}: {message}"
