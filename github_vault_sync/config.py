"""
Configuration management for GitHub → Vault sync.

Two layers:
- Config: runtime options (vault location, debug, dry-run) loaded
  from environment variables.
- Settings: the persisted record (username, token, target folders,
  template selection, watermarks) stored as JSON inside the vault.
"""

import json
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


class ConfigurationError(ValueError):
    """Raised when settings are missing or invalid."""


STARS = "stars"
PULLS = "pulls"
ENTITY_KINDS = (STARS, PULLS)


def normalize_directory(path: str) -> str:
    """
    Normalize a vault-relative directory.

    Examples:
        "/Inbox//GitHub/ " -> "Inbox/GitHub"
        "Notes\\Stars" -> "Notes/Stars"
        "  " -> ""
    """
    parts = path.replace("\\", "/").split("/")
    return "/".join(p.strip() for p in parts if p.strip())


def parse_bool(value: str) -> bool:
    """Parse a toggle value typed on the command line."""
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise ConfigurationError(f"Expected a boolean value, got '{value}'")


@dataclass
class Settings:
    """
    Persisted sync settings.

    Empty watermarks mean the entity type has never been synced.
    """

    api_token: str = ""
    username: str = ""

    stars_directory: str = ""
    pulls_directory: str = ""

    stars_last_sync: str = ""
    pulls_last_sync: str = ""

    stars_use_builtin_template: bool = True
    stars_template_path: str = ""
    pulls_use_builtin_template: bool = True
    pulls_template_path: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "Settings":
        """
        Merge stored values over the defaults, ignoring unknown keys.

        Stored values get the same normalization as `update`; null values
        fall back to the default.

        Raises:
            ConfigurationError: If a stored value has the wrong type.
        """
        types = {f.name: f.type for f in fields(cls)}
        values = {}

        for key, value in data.items():
            if key not in types or value is None:
                continue

            if types[key] in (bool, "bool"):
                if isinstance(value, str):
                    value = parse_bool(value)
                elif not isinstance(value, bool):
                    raise ConfigurationError(
                        f"Setting '{key}' must be true or false, got {value!r}"
                    )
            elif not isinstance(value, str):
                raise ConfigurationError(f"Setting '{key}' must be a string, got {value!r}")
            elif key.endswith("_directory") or key.endswith("_template_path"):
                value = normalize_directory(value)

            values[key] = value

        return cls(**values)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    def directory_for(self, kind: str) -> str:
        return getattr(self, f"{kind}_directory")

    def watermark_for(self, kind: str) -> str:
        return getattr(self, f"{kind}_last_sync")

    def set_watermark(self, kind: str, value: str) -> None:
        setattr(self, f"{kind}_last_sync", value)

    def uses_builtin_template(self, kind: str) -> bool:
        return getattr(self, f"{kind}_use_builtin_template")

    def template_path_for(self, kind: str) -> str:
        return getattr(self, f"{kind}_template_path")

    def is_valid_for(self, kind: str) -> bool:
        """Check that username and the target directory for `kind` are set."""
        return bool(self.username and self.directory_for(kind))

    def validate_for(self, kind: str) -> None:
        """
        Ensure a sync of `kind` can start.

        Raises:
            ConfigurationError: If username or target directory is missing.
        """
        if not self.username:
            raise ConfigurationError(
                "GitHub username is not set.\n"
                "Run: sync.py config set username <login>"
            )
        if not self.directory_for(kind):
            raise ConfigurationError(
                f"Target directory for {kind} is not set.\n"
                f"Run: sync.py config set {kind}_directory <folder>"
            )
        if not self.uses_builtin_template(kind) and not self.template_path_for(kind):
            raise ConfigurationError(
                f"Custom template is enabled for {kind} but no template path is set.\n"
                f"Run: sync.py config set {kind}_template_path <file>"
            )

    def update(self, key: str, raw_value: str) -> None:
        """
        Set one field from its string form, applying normalization.

        Raises:
            ConfigurationError: If the key is unknown or the value is invalid.
        """
        types = {f.name: f.type for f in fields(self)}
        if key not in types:
            raise ConfigurationError(
                f"Unknown setting '{key}'. Known settings: {', '.join(types)}"
            )

        value: object = raw_value
        if types[key] in (bool, "bool"):
            value = parse_bool(raw_value)
        elif key.endswith("_directory") or key.endswith("_template_path"):
            value = normalize_directory(raw_value)
        else:
            value = raw_value.strip()

        setattr(self, key, value)


class SettingsStore:
    """Loads and saves Settings as a JSON file."""

    def __init__(self, path: Path):
        self.path = path

    def load(self) -> Settings:
        """
        Load settings, falling back to defaults.

        Raises:
            ConfigurationError: If the file exists but is not a JSON object.
        """
        if not self.path.exists():
            return Settings()

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Settings file {self.path} is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Settings file {self.path} must contain a JSON object")

        return Settings.from_dict(data)

    def save(self, settings: Settings) -> None:
        """Persist settings."""
        self.path.parent.mkdir(parents=True, exist_ok=True)

        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(settings.to_dict(), f, indent=2)


@dataclass
class Config:
    """
    Runtime configuration for the sync tool.

    The vault location comes from the command line or GITHUB_VAULT_PATH;
    everything persistent lives in the Settings record.
    """

    vault_root: Path = field(default_factory=lambda: Path.cwd())

    # Sync behavior
    debug: bool = False
    dry_run: bool = False

    # Token taken from the environment when none is stored
    env_token: Optional[str] = None

    @property
    def sync_dir(self) -> Path:
        """Path to the .github-sync directory inside the vault."""
        return self.vault_root / ".github-sync"

    @property
    def settings_file(self) -> Path:
        """Path to the settings JSON file."""
        return self.sync_dir / "settings.json"

    @classmethod
    def from_env(
        cls,
        env_file: Optional[Path] = None,
        vault_root: Optional[Path] = None,
    ) -> "Config":
        """
        Load configuration from environment variables.

        Args:
            env_file: Optional path to .env file. If not provided,
                     looks for .env in current directory.
            vault_root: Vault directory; overrides GITHUB_VAULT_PATH.

        Returns:
            Configured Config instance.

        Raises:
            ConfigurationError: If GITHUB_VAULT_PATH points to a missing directory.
        """
        if env_file:
            load_dotenv(env_file)
        else:
            load_dotenv()

        if vault_root is None:
            vault_str = os.getenv("GITHUB_VAULT_PATH")
            vault_root = Path(vault_str).expanduser() if vault_str else Path.cwd()
        if not vault_root.is_dir():
            raise ConfigurationError(
                f"Vault directory {vault_root} does not exist.\n"
                "Set GITHUB_VAULT_PATH or pass --vault."
            )

        return cls(
            vault_root=vault_root,
            debug=os.getenv("DEBUG", "false").lower() == "true",
            dry_run=os.getenv("DRY_RUN", "false").lower() == "true",
            env_token=os.getenv("GITHUB_TOKEN") or None,
        )

    def __post_init__(self):
        if isinstance(self.vault_root, str):
            self.vault_root = Path(self.vault_root)

    def settings_store(self) -> SettingsStore:
        return SettingsStore(self.settings_file)
