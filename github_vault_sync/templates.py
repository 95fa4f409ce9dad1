"""
Note body templates.

- Built-in minimal bodies for stars and pull requests
- `{{ field }}` substitution for user-supplied templates
- Tag normalization shared by the frontmatter builders
"""

import re
from datetime import datetime
from typing import Any, Callable

from .github_api import PullRequest, StarredRepo

PLACEHOLDER_RE = re.compile(r"\{\{\s*([\w.-]+)\s*\}\}")


class TemplateError(Exception):
    """Raised when a user template cannot be loaded."""


def normalize_tag(tag: str) -> str:
    """
    Make a string usable as an Obsidian tag.

    Examples:
        "C++" -> "c"
        "Jupyter Notebook" -> "jupyter-notebook"
        "language/Visual Basic .NET" -> "language/visual-basic-net"
    """
    tag = tag.strip().lower()
    tag = re.sub(r"[^a-z0-9_/-]+", "-", tag)
    tag = re.sub(r"-+", "-", tag)
    tag = re.sub(r"/+", "/", tag)
    tag = re.sub(r"-*/-*", "/", tag)
    return tag.strip("-/")


def normalize_tags(tags: list[str]) -> list[str]:
    """Normalize, drop empties and duplicates, keep order."""
    result = []
    for tag in tags:
        normalized = normalize_tag(tag)
        if normalized and normalized not in result:
            result.append(normalized)
    return result


def format_date(timestamp: str) -> str:
    """ISO timestamp → YYYY-MM-DD, empty stays empty."""
    if not timestamp:
        return ""
    return datetime.fromisoformat(timestamp.replace("Z", "+00:00")).strftime("%Y-%m-%d")


def _lookup(context: dict, dotted: str) -> Any:
    value: Any = context
    for part in dotted.split("."):
        if isinstance(value, dict):
            value = value.get(part)
        else:
            return None
    return value


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list):
        return ", ".join(_to_text(v) for v in value)
    return str(value)


def render_template(template: str, context: dict) -> str:
    """
    Substitute `{{ name }}` placeholders.

    Dotted names reach into nested mappings (`{{ owner.login }}`).
    Unknown names render as an empty string.
    """
    return PLACEHOLDER_RE.sub(lambda m: _to_text(_lookup(context, m.group(1))), template)


def star_context(repo: StarredRepo) -> dict:
    """Fields available to star templates."""
    context = dict(repo.raw)
    context.update({
        "name": repo.name,
        "full_name": repo.full_name,
        "description": repo.description,
        "url": repo.html_url,
        "owner_name": repo.owner_login,
        "owner_url": repo.owner_url,
        "language": repo.language,
        "topics": repo.topics,
        "stars": repo.stargazers_count,
        "forks": repo.forks_count,
        "created": format_date(repo.created_at),
        "updated": format_date(repo.updated_at),
        "date": datetime.now().strftime("%Y-%m-%d"),
    })
    return context


def pull_context(pr: PullRequest) -> dict:
    """Fields available to pull request templates."""
    context = dict(pr.raw)
    context.update({
        "number": pr.number,
        "title": pr.title,
        "url": pr.html_url,
        "state": pr.state,
        "draft": pr.draft,
        "merged": pr.merged,
        "repository": pr.repository,
        "repository_url": pr.repository_url,
        "owner": pr.owner,
        "owner_url": pr.owner_url,
        "repo": pr.repo,
        "author": pr.author,
        "labels": pr.labels,
        "created": format_date(pr.created_at),
        "merged_at": format_date(pr.merged_at),
        "closed": format_date(pr.closed_at),
        "date": datetime.now().strftime("%Y-%m-%d"),
    })
    return context


def builtin_star_body(repo: StarredRepo) -> str:
    return (
        f"# {repo.name}\n"
        f"\n"
        f"> {repo.description or 'No description'}\n"
        f"\n"
        f"[{repo.full_name}]({repo.html_url})\n"
    )


def builtin_pull_body(pr: PullRequest) -> str:
    return (
        f"# {pr.title}\n"
        f"\n"
        f"[{pr.repository}#{pr.number}]({pr.html_url})\n"
    )


BUILTIN_BODIES: dict[str, Callable[[Any], str]] = {
    "stars": builtin_star_body,
    "pulls": builtin_pull_body,
}

CONTEXT_BUILDERS: dict[str, Callable[[Any], dict]] = {
    "stars": star_context,
    "pulls": pull_context,
}
