"""
File storage for an Obsidian vault directory.

Notes are addressed by vault-relative paths with forward slashes.
Frontmatter is the YAML block between `---` fences at the very top of
a note; rewriting it never touches the bytes of the body.
"""

import re
from pathlib import Path
from typing import Any, Callable

import yaml

FRONTMATTER_RE = re.compile(
    r"\A---[ \t]*\r?\n(?:(?P<yaml>.*?)\r?\n)?---[ \t]*(?:\r?\n|\Z)",
    re.DOTALL,
)


class VaultError(Exception):
    """Raised for paths outside the vault or unreadable notes."""


def split_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """
    Split note text into (metadata, body).

    The body is returned exactly as stored, without stripping.

    Raises:
        VaultError: If the frontmatter block is not a YAML mapping.
    """
    match = FRONTMATTER_RE.match(text)
    if not match:
        return {}, text

    try:
        metadata = yaml.safe_load(match.group("yaml") or "") or {}
    except yaml.YAMLError as e:
        raise VaultError(f"Frontmatter contains invalid YAML: {e}") from e

    if not isinstance(metadata, dict):
        raise VaultError("Frontmatter must be a mapping of key/value pairs")

    return metadata, text[match.end():]


def join_frontmatter(metadata: dict[str, Any], body: str) -> str:
    """Serialize metadata in front of body. Empty metadata drops the block."""
    if not metadata:
        return body

    header = yaml.safe_dump(
        metadata,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )
    return f"---\n{header}---\n{body}"


class Vault:
    """
    Vault-relative file operations.

    Handles:
    - Existence checks, create, read, write
    - Recursive folder creation
    - Frontmatter rewrite that preserves the note body
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    def resolve(self, relative_path: str) -> Path:
        """
        Map a vault-relative path to an absolute one.

        Raises:
            VaultError: If the path escapes the vault root.
        """
        root = self.root.resolve()
        target = (root / relative_path).resolve()
        if target != root and root not in target.parents:
            raise VaultError(f"Path {relative_path!r} is outside the vault")
        return target

    def exists(self, relative_path: str) -> bool:
        return self.resolve(relative_path).exists()

    def read(self, relative_path: str) -> str:
        with open(self.resolve(relative_path), encoding="utf-8", newline="") as f:
            return f.read()

    def write(self, relative_path: str, content: str) -> None:
        with open(self.resolve(relative_path), "w", encoding="utf-8", newline="") as f:
            f.write(content)

    def create(self, relative_path: str, content: str) -> None:
        """
        Create a new note.

        Raises:
            FileExistsError: If the note already exists.
        """
        with open(self.resolve(relative_path), "x", encoding="utf-8", newline="") as f:
            f.write(content)

    def ensure_directory(self, relative_path: str) -> None:
        """Create a folder and any missing parents."""
        if relative_path:
            self.resolve(relative_path).mkdir(parents=True, exist_ok=True)

    def process_frontmatter(
        self,
        relative_path: str,
        update: Callable[[dict[str, Any]], dict[str, Any]],
    ) -> None:
        """
        Rewrite the frontmatter of a note.

        Args:
            relative_path: Note to modify.
            update: Receives the current metadata, returns the new metadata.
        """
        metadata, body = split_frontmatter(self.read(relative_path))
        self.write(relative_path, join_frontmatter(update(dict(metadata)), body))

    def read_frontmatter(self, relative_path: str) -> dict[str, Any]:
        metadata, _ = split_frontmatter(self.read(relative_path))
        return metadata

    def count_notes(self, relative_dir: str) -> int:
        """Number of Markdown notes directly inside a folder."""
        folder = self.resolve(relative_dir)
        if not folder.is_dir():
            return 0
        return sum(1 for p in folder.glob("*.md") if p.is_file())
