"""Shared fixtures: temporary vaults, GitHub payloads and a fake API."""

from datetime import datetime, timezone

import pytest

from github_vault_sync.config import Config, Settings, SettingsStore
from github_vault_sync.github_api import PER_PAGE, Page, PullRequest, StarredRepo

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def repo_payload(index: int, owner: str = "octo", **overrides) -> dict:
    payload = {
        "name": f"repo{index}",
        "full_name": f"{owner}/repo{index}",
        "html_url": f"https://github.com/{owner}/repo{index}",
        "description": f"Repository number {index}",
        "owner": {"login": owner, "html_url": f"https://github.com/{owner}"},
        "language": "Python",
        "topics": ["cli", "Machine Learning"],
        "stargazers_count": 10 + index,
        "forks_count": index,
        "created_at": "2024-01-02T03:04:05Z",
        "updated_at": "2025-06-07T08:09:10Z",
    }
    payload.update(overrides)
    return payload


def pull_payload(number: int, repo: str = "octo/hello", **overrides) -> dict:
    payload = {
        "number": number,
        "title": f"Fix bug {number}",
        "html_url": f"https://github.com/{repo}/pull/{number}",
        "repository_url": f"https://api.github.com/repos/{repo}",
        "state": "closed",
        "draft": False,
        "user": {"login": "alice"},
        "labels": [{"name": "bug"}, {"name": "Good First Issue"}],
        "created_at": "2025-03-01T10:00:00Z",
        "updated_at": "2025-03-02T10:00:00Z",
        "closed_at": "2025-03-02T10:00:00Z",
        "pull_request": {"merged_at": "2025-03-02T10:00:00Z"},
    }
    payload.update(overrides)
    return payload


def make_repo(index: int, **overrides) -> StarredRepo:
    return StarredRepo.from_api_response(repo_payload(index, **overrides))


def make_pull(number: int, **overrides) -> PullRequest:
    return PullRequest.from_api_response(pull_payload(number, **overrides))


class FakeGitHubAPI:
    """
    Serves pre-built pages and records which pages were requested.

    Pages may hold records or raw payloads; records are served as their
    raw payload, like the real listings.
    """

    def __init__(self, star_pages=None, pull_pages=None):
        self.star_pages = star_pages or [[]]
        self.pull_pages = pull_pages or [[]]
        self.requested: list[tuple[str, int]] = []
        self.request_count = 0

    def _page(self, kind: str, pages: list, number: int) -> Page:
        self.requested.append((kind, number))
        self.request_count += 1
        items = pages[number - 1] if number <= len(pages) else []
        if isinstance(items, Exception):
            raise items
        raw = [getattr(item, "raw", item) for item in items]
        return Page(number=number, items=raw, has_more=len(raw) == PER_PAGE)

    def get_starred_page(self, page: int) -> Page:
        return self._page("stars", self.star_pages, page)

    def get_pull_requests_page(self, page: int) -> Page:
        return self._page("pulls", self.pull_pages, page)

    def pages_requested(self, kind: str) -> list[int]:
        return [number for k, number in self.requested if k == kind]


@pytest.fixture
def vault_dir(tmp_path):
    vault = tmp_path / "vault"
    vault.mkdir()
    return vault


@pytest.fixture
def config(vault_dir):
    return Config(vault_root=vault_dir)


@pytest.fixture
def write_settings(config):
    """Persist settings into the test vault before an engine loads them."""

    def _write(**values) -> Settings:
        settings = Settings(**values)
        SettingsStore(config.settings_file).save(settings)
        return settings

    return _write
