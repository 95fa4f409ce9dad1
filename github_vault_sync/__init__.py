"""
GitHub → Vault Sync

Keeps a GitHub user's starred repositories and authored pull requests
as Markdown notes with YAML frontmatter in an Obsidian vault.
"""

__version__ = "1.0.0"
