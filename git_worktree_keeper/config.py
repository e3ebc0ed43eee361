"""Configuration handling for git-worktree-keeper"""

import json
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional, Union

from git_worktree_keeper.constants import APP_DIR_NAME, CONFIG_FILE_NAME, DEFAULT_REMOTE
from git_worktree_keeper.exceptions import ConfigError
from git_worktree_keeper.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class Config:
    """Configuration for git-worktree-keeper with validation."""

    # Branch new worktrees start from when no --from is given
    base_branch: Optional[str] = None
    # Directory holding worktrees (None = sibling "<repo>.worktrees")
    base_path: Optional[str] = None
    remote_name: str = DEFAULT_REMOTE

    # Execution modes
    dry_run: bool = False
    force: bool = False
    verbose: bool = False
    debug: bool = False

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_base_branch()
        self._validate_base_path()
        self._validate_remote_name()

    def _validate_base_branch(self):
        """Normalize base_branch; blank means unset."""
        if self.base_branch is not None:
            if not isinstance(self.base_branch, str):
                raise ConfigError(f"base_branch must be a string, got {self.base_branch!r}")
            self.base_branch = self.base_branch.strip() or None

    def _validate_base_path(self):
        """Normalize base_path; blank means unset."""
        if self.base_path is not None:
            if not isinstance(self.base_path, str):
                raise ConfigError(f"base_path must be a string, got {self.base_path!r}")
            self.base_path = self.base_path.strip() or None

    def _validate_remote_name(self):
        """Validate remote_name is not empty."""
        if not self.remote_name or not str(self.remote_name).strip():
            raise ConfigError("remote_name cannot be empty")
        self.remote_name = str(self.remote_name).strip()

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return {
            "base_branch": self.base_branch,
            "base_path": self.base_path,
            "remote_name": self.remote_name,
            "dry_run": self.dry_run,
            "force": self.force,
            "verbose": self.verbose,
            "debug": self.debug,
        }

    def get(self, key: str, default=None):
        """Get config value by key."""
        return getattr(self, key, default)

    @classmethod
    def from_dict(cls, config_dict: dict) -> "Config":
        """Create Config from dictionary, ignoring unknown keys."""
        known_fields = {f.name for f in fields(cls)}
        filtered = {k: v for k, v in config_dict.items() if k in known_fields}
        return cls(**filtered)


def default_config_path() -> Path:
    """Return the per-user config file location."""
    return Path.home() / APP_DIR_NAME / CONFIG_FILE_NAME


def load_config_file(path: Optional[Union[str, Path]], repo_root: Optional[Path] = None) -> dict:
    """Read settings from a JSON config file.

    The file may hold a "defaults" table and a "repos" table keyed by the
    absolute path of a repository's main checkout. Values from the matching
    repo entry override the defaults.

    Args:
        path: Config file to read (None = default location)
        repo_root: Main checkout of the current repository

    Returns:
        Dict of settings; empty if the file does not exist
    """
    explicit = path is not None
    config_path = Path(path).expanduser() if explicit else default_config_path()

    if not config_path.exists():
        if explicit:
            raise ConfigError(f"Config file not found: {config_path}")
        logger.debug(f"No config file at {config_path}")
        return {}

    try:
        with open(config_path, "r") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Could not read {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{config_path} must contain a JSON object")

    settings = dict(data.get("defaults") or {})
    repos = data.get("repos") or {}
    if not isinstance(repos, dict):
        raise ConfigError(f"'repos' in {config_path} must be an object")

    if repo_root is not None:
        resolved_root = Path(repo_root).resolve()
        for key, repo_settings in repos.items():
            if Path(key).expanduser().resolve() == resolved_root:
                logger.debug(f"Using repo settings for {key} from {config_path}")
                settings.update(repo_settings or {})
                break

    return settings


def build_config(file_settings: dict, **overrides) -> Config:
    """Merge config file settings with command-line overrides.

    Overrides set to None are treated as "not given" so that file values
    survive.
    """
    merged = dict(file_settings)
    merged.update({k: v for k, v in overrides.items() if v is not None})
    return Config.from_dict(merged)
