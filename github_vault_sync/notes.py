"""
Turns GitHub records into vault notes.

A note's path is derived from the record identity only, so repeated syncs
land on the same file. New notes get a rendered body; existing notes keep
their body and, with the built-in template, get fresh frontmatter.
"""

import re
from typing import Any, Union

from .config import PULLS, STARS, Settings
from .github_api import PullRequest, StarredRepo
from .templates import (
    BUILTIN_BODIES,
    CONTEXT_BUILDERS,
    TemplateError,
    format_date,
    normalize_tags,
    render_template,
)
from .vault import Vault

MAX_TITLE_LENGTH = 60

UNSAFE_CHARS_RE = re.compile(r'[\\/:*?"<>|#^\[\]\x00-\x1f]')


def sanitize_filename(name: str, max_length: int = 0) -> str:
    """
    Make a string safe as a file name on all platforms.

    Examples:
        'Fix: handle "quoted" paths' -> "Fix-handle-quoted-paths"
        "a / b" -> "a-b"
    """
    name = UNSAFE_CHARS_RE.sub("-", name)
    name = re.sub(r"[\s-]*-[\s-]*", "-", name)
    name = re.sub(r"\s+", " ", name).strip(" .-")
    if max_length and len(name) > max_length:
        name = name[:max_length].rstrip(" .-")
    return name


def star_note_path(directory: str, repo: StarredRepo) -> str:
    """<dir>/<owner>-<repo>.md"""
    filename = sanitize_filename(repo.full_name.replace("/", "-"))
    return f"{directory}/{filename}.md"


def pull_note_path(directory: str, pr: PullRequest) -> str:
    """<dir>/<owner>-<repo>-<number>-<title>.md"""
    title = sanitize_filename(pr.title, MAX_TITLE_LENGTH)
    stem = sanitize_filename(f"{pr.owner}-{pr.repo}-{pr.number}")
    filename = f"{stem}-{title}" if title else stem
    return f"{directory}/{filename}.md"


def star_frontmatter(repo: StarredRepo) -> dict[str, Any]:
    """Fixed frontmatter field set for a starred repository."""
    tags = ["github/star"]
    if repo.language:
        tags.append(f"language/{repo.language}")
    tags.extend(f"topic/{topic}" for topic in repo.topics)

    return {
        "tags": normalize_tags(tags),
        "description": repo.description,
        "url": repo.html_url,
        "owner": repo.owner_login,
        "owner_url": repo.owner_url,
        "language": repo.language,
        "stars": repo.stargazers_count,
        "forks": repo.forks_count,
        "created": format_date(repo.created_at),
        "updated": format_date(repo.updated_at),
    }


def pull_frontmatter(pr: PullRequest) -> dict[str, Any]:
    """Fixed frontmatter field set for a pull request."""
    tags = ["github/pull-request", f"state/{pr.state}"]
    if pr.draft:
        tags.append("draft")
    if pr.merged:
        tags.append("merged")
    tags.extend(f"label/{label}" for label in pr.labels)

    return {
        "tags": normalize_tags(tags),
        "title": pr.title,
        "url": pr.html_url,
        "repository": pr.repository,
        "repository_url": pr.repository_url,
        "owner_url": pr.owner_url,
        "number": pr.number,
        "state": pr.state,
        "draft": pr.draft,
        "created": format_date(pr.created_at),
        "merged": format_date(pr.merged_at),
        "closed": format_date(pr.closed_at),
    }


PATH_BUILDERS = {STARS: star_note_path, PULLS: pull_note_path}
FRONTMATTER_BUILDERS = {STARS: star_frontmatter, PULLS: pull_frontmatter}


class NoteWriter:
    """
    Materializes records as notes.

    `materialize` returns True when it created a new note, which is what
    the sync engine's incremental stop is based on.
    """

    def __init__(self, vault: Vault, settings: Settings, dry_run: bool = False):
        self.vault = vault
        self.settings = settings
        self.dry_run = dry_run

    def note_path(self, kind: str, record: Union[StarredRepo, PullRequest]) -> str:
        return PATH_BUILDERS[kind](self.settings.directory_for(kind), record)

    def materialize(self, kind: str, record: Union[StarredRepo, PullRequest]) -> bool:
        """
        Create or update the note for one record.

        Args:
            kind: STARS or PULLS.
            record: The record to write.

        Returns:
            True if the note was newly created, False if it already existed.
        """
        path = self.note_path(kind, record)
        existed = self.vault.exists(path)

        if self.dry_run:
            return not existed

        self.vault.ensure_directory(self.settings.directory_for(kind))

        builtin = self.settings.uses_builtin_template(kind)

        if not existed:
            if builtin:
                body = BUILTIN_BODIES[kind](record)
            else:
                template = self._load_template(kind)
                body = render_template(template, CONTEXT_BUILDERS[kind](record))
            self.vault.create(path, body)

        if builtin:
            fields = FRONTMATTER_BUILDERS[kind](record)
            self.vault.process_frontmatter(path, lambda _: fields)

        return not existed

    def _load_template(self, kind: str) -> str:
        """
        Read the user template for `kind`.

        Obsidian-style paths without the .md suffix are accepted.

        Raises:
            TemplateError: If the template file does not exist.
        """
        path = self.settings.template_path_for(kind)
        candidates = [path] if path.endswith(".md") else [path, f"{path}.md"]

        for candidate in candidates:
            if self.vault.exists(candidate):
                return self.vault.read(candidate)

        raise TemplateError(f"Template file not found: {path}")
