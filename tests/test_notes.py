"""Tests for note paths, bodies and frontmatter."""

import pytest

from github_vault_sync.config import PULLS, STARS, Settings
from github_vault_sync.notes import (
    NoteWriter,
    pull_frontmatter,
    pull_note_path,
    sanitize_filename,
    star_frontmatter,
    star_note_path,
)
from github_vault_sync.templates import TemplateError
from github_vault_sync.vault import Vault, split_frontmatter

from .conftest import make_pull, make_repo


@pytest.fixture
def vault(vault_dir):
    return Vault(vault_dir)


@pytest.fixture
def settings():
    return Settings(username="alice", stars_directory="Stars", pulls_directory="Work/PRs")


class TestPaths:
    def test_star_path_uses_owner_and_repo(self):
        assert star_note_path("Stars", make_repo(1)) == "Stars/octo-repo1.md"

    def test_star_path_joins_owner_and_repo_with_hyphen(self):
        # Kept for compatibility with existing vaults, collisions included.
        first = make_repo(1, full_name="foo/bar-baz", name="bar-baz")
        second = make_repo(2, full_name="foo-bar/baz", name="baz")

        assert star_note_path("Stars", first) == star_note_path("Stars", second) == "Stars/foo-bar-baz.md"

    def test_pull_path_includes_repository_number_and_title(self):
        pr = make_pull(42, title='Fix: handle "quoted" paths')
        assert pull_note_path("PRs", pr) == "PRs/octo-hello-42-Fix-handle-quoted-paths.md"

    def test_pull_title_is_capped(self):
        pr = make_pull(1, title="x" * 200)
        filename = pull_note_path("PRs", pr).split("/")[-1]
        assert filename == "octo-hello-1-" + "x" * 60 + ".md"

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("a / b", "a-b"),
            ("what? [draft] #12", "what-draft-12"),
            ("  spaced   out  ", "spaced out"),
            ("trailing.", "trailing"),
        ],
    )
    def test_sanitize_filename(self, raw, expected):
        assert sanitize_filename(raw) == expected


class TestFrontmatterFields:
    def test_star_fields(self):
        fields = star_frontmatter(make_repo(3))

        assert fields["tags"] == [
            "github/star",
            "language/python",
            "topic/cli",
            "topic/machine-learning",
        ]
        assert fields["url"] == "https://github.com/octo/repo3"
        assert fields["owner_url"] == "https://github.com/octo"
        assert fields["stars"] == 13
        assert fields["created"] == "2024-01-02"
        assert fields["updated"] == "2025-06-07"

    def test_star_without_language_or_topics(self):
        fields = star_frontmatter(make_repo(1, language=None, topics=[]))
        assert fields["tags"] == ["github/star"]
        assert fields["language"] == ""

    def test_pull_fields(self):
        fields = pull_frontmatter(make_pull(5, draft=True))

        assert fields["tags"] == [
            "github/pull-request",
            "state/closed",
            "draft",
            "merged",
            "label/bug",
            "label/good-first-issue",
        ]
        assert fields["repository"] == "octo/hello"
        assert fields["repository_url"] == "https://github.com/octo/hello"
        assert fields["merged"] == "2025-03-02"

    def test_open_pull_is_not_merged(self):
        pr = make_pull(5, state="open", closed_at=None, pull_request={"merged_at": None}, labels=[])
        fields = pull_frontmatter(pr)

        assert fields["tags"] == ["github/pull-request", "state/open"]
        assert fields["merged"] == ""
        assert fields["closed"] == ""


class TestMaterialize:
    def test_creates_note_with_body_and_frontmatter(self, vault, vault_dir, settings):
        writer = NoteWriter(vault, settings)

        created = writer.materialize(STARS, make_repo(1))

        assert created is True
        metadata, body = split_frontmatter((vault_dir / "Stars/octo-repo1.md").read_text())
        assert metadata["url"] == "https://github.com/octo/repo1"
        assert body.startswith("# repo1\n")

    def test_creates_nested_directories(self, vault, vault_dir, settings):
        NoteWriter(vault, settings).materialize(PULLS, make_pull(1))
        assert (vault_dir / "Work/PRs/octo-hello-1-Fix bug 1.md").is_file()

    def test_existing_body_is_preserved_byte_for_byte(self, vault, vault_dir, settings):
        note = vault_dir / "Stars/octo-repo1.md"
        note.parent.mkdir(parents=True)
        original_body = "# My notes\r\n\r\nKeep   this\twhitespace \n\n\n"
        note.write_bytes(("---\nstars: 1\ncustom: yes\n---\n" + original_body).encode())

        created = NoteWriter(vault, settings).materialize(STARS, make_repo(1, stargazers_count=99))

        assert created is False
        text = note.read_bytes().decode()
        metadata, body = split_frontmatter(text)
        assert body == original_body
        assert metadata["stars"] == 99
        assert "custom" not in metadata

    def test_custom_template_renders_body_and_skips_builtin_frontmatter(self, vault, vault_dir, settings):
        settings.stars_use_builtin_template = False
        settings.stars_template_path = "Templates/Star"
        template = vault_dir / "Templates/Star.md"
        template.parent.mkdir()
        template.write_text("---\nsource: {{ url }}\n---\n# {{ full_name }} by {{ owner.login }}\n{{ topics }}\n")

        NoteWriter(vault, settings).materialize(STARS, make_repo(2))

        text = (vault_dir / "Stars/octo-repo2.md").read_text()
        assert text == (
            "---\nsource: https://github.com/octo/repo2\n---\n"
            "# octo/repo2 by octo\ncli, Machine Learning\n"
        )

    def test_custom_template_leaves_existing_note_untouched(self, vault, vault_dir, settings):
        settings.stars_use_builtin_template = False
        settings.stars_template_path = "Templates/Star.md"
        note = vault_dir / "Stars/octo-repo2.md"
        note.parent.mkdir()
        note.write_text("---\nmine: true\n---\nbody\n")

        created = NoteWriter(vault, settings).materialize(STARS, make_repo(2))

        assert created is False
        assert note.read_text() == "---\nmine: true\n---\nbody\n"

    def test_missing_template_raises(self, vault, settings):
        settings.pulls_use_builtin_template = False
        settings.pulls_template_path = "Templates/Nope"

        with pytest.raises(TemplateError):
            NoteWriter(vault, settings).materialize(PULLS, make_pull(1))

    def test_dry_run_reports_without_writing(self, vault, vault_dir, settings):
        writer = NoteWriter(vault, settings, dry_run=True)

        assert writer.materialize(STARS, make_repo(1)) is True
        assert not (vault_dir / "Stars").exists()
