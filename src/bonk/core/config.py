"""Configuration loading for bonk.

The config lives in ``$BONK_HOME/config.json`` (default ``~/.bonk``) and is
human-editable JSON::

    {
      "projectDirs": ["personal", "work"],
      "editor": "code"
    }

Project directories are relative to the parent of BONK_HOME, which is the
user's home directory unless BONK_HOME points elsewhere.
"""

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from bonk.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

BONK_HOME_ENV = "BONK_HOME"
HOME_ENV = "HOME"
DEFAULT_HOME_DIRNAME = ".bonk"
CONFIG_FILENAME = "config.json"
PIDFILE_FILENAME = "pidfile.json"
STARTS_FILENAME = "pidstarts.json"
DEFAULT_EDITOR = "code"

EXAMPLE_CONFIG = {"projectDirs": ["personal", "work"]}


class BonkConfig(BaseModel):
    """Validated contents of config.json.

    Attributes:
        project_dirs: Ordered root directory names, relative to the home dir.
        editor: Command used by ``bonk edit``.
        groups: Named groupings of project ids. Stored but not used by any
            command yet.

    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    project_dirs: list[str] = Field(default_factory=list, alias="projectDirs")
    editor: str = DEFAULT_EDITOR
    groups: dict[str, list[str]] = Field(default_factory=dict)

    @field_validator("project_dirs")
    @classmethod
    def _strip_project_dirs(cls, value: list[str]) -> list[str]:
        stripped = [item.strip().strip("/") for item in value]
        return [item for item in stripped if item]

    @field_validator("editor", mode="before")
    @classmethod
    def _default_editor(cls, value: object) -> object:
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_EDITOR
        return value


@dataclass(frozen=True)
class BonkPaths:
    """Filesystem locations derived from the environment.

    Attributes:
        bonk_home: Directory holding config and registry files.
        home: Anchor directory that project roots are relative to.

    """

    bonk_home: Path
    home: Path

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "BonkPaths":
        """Resolve paths from BONK_HOME / HOME.

        Args:
            environ: Environment mapping, defaults to os.environ.

        Returns:
            BonkPaths with home set to the parent of bonk_home.

        """
        env = os.environ if environ is None else environ
        if env.get(BONK_HOME_ENV):
            bonk_home = Path(env[BONK_HOME_ENV]).expanduser()
        elif env.get(HOME_ENV):
            bonk_home = Path(env[HOME_ENV]) / DEFAULT_HOME_DIRNAME
        else:
            bonk_home = Path(DEFAULT_HOME_DIRNAME)
        bonk_home = bonk_home.absolute()
        return cls(bonk_home=bonk_home, home=bonk_home.parent)

    @property
    def config_file(self) -> Path:
        return self.bonk_home / CONFIG_FILENAME

    @property
    def pidfile(self) -> Path:
        return self.bonk_home / PIDFILE_FILENAME

    @property
    def starts_file(self) -> Path:
        return self.bonk_home / STARTS_FILENAME

    def project_root(self, root_dir: str) -> Path:
        return self.home / root_dir


def load_config(path: Path) -> BonkConfig:
    """Load and validate a config file.

    Args:
        path: Path to config.json.

    Returns:
        Validated BonkConfig.

    Raises:
        ConfigError: If the file cannot be read, is not JSON or fails validation.

    """
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e

    try:
        data = json.loads(raw) if raw.strip() else {}
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config file {path} is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")

    try:
        return BonkConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config file {path}:\n{e}") from e


def ensure_config(paths: BonkPaths) -> BonkConfig:
    """Create BONK_HOME and an empty config if needed, then load it.

    Args:
        paths: Resolved bonk paths.

    Returns:
        Loaded configuration.

    Raises:
        ConfigError: If the directory or file cannot be created or loaded.

    """
    try:
        paths.bonk_home.mkdir(parents=True, exist_ok=True)
        if not paths.config_file.exists():
            empty = BonkConfig().model_dump(by_alias=True, include={"project_dirs"})
            paths.config_file.write_text(json.dumps(empty, indent=2) + "\n", encoding="utf-8")
            logger.info("Created empty config at %s", paths.config_file)
    except OSError as e:
        raise ConfigError(f"Cannot initialize {paths.bonk_home}: {e}") from e

    return load_config(paths.config_file)


__all__ = [
    "BonkConfig",
    "BonkPaths",
    "DEFAULT_EDITOR",
    "EXAMPLE_CONFIG",
    "ensure_config",
    "load_config",
]
