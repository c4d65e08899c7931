#!/usr/bin/env python3
"""
Settings management for fileinbox.

Handles the persistent configuration stored in a YAML file.
The file lives in the user's config directory:
- macOS: ~/Library/Application Support/fileinbox/fileinbox.yaml
- Linux: ~/.config/fileinbox/fileinbox.yaml
- Windows: %APPDATA%/fileinbox/fileinbox.yaml

Example:

    root: ~/Documents/archive
    extra_inboxes:
      - ~/Downloads/scans
    cc:
      root: /mnt/shared/archive
      dests: [taxes, medical]
"""

import os
import sys
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

# Load environment variables from .env file (if it exists and is accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    pass  # .env not accessible

APP_NAME = "fileinbox"
CONFIG_FILE_NAME = "fileinbox.yaml"

# Used when neither --root nor the config file provide a root
ROOT_ENV_VAR = "FILEINBOX_ROOT"


class ConfigError(Exception):
    """Raised when the configuration cannot be read, written or is incomplete."""


def get_config_dir() -> Path:
    """Get the platform-appropriate config directory."""
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_NAME
    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA", str(Path.home() / "AppData" / "Roaming"))
        return Path(appdata) / APP_NAME
    # Linux and others - follow XDG spec
    xdg_config = os.environ.get("XDG_CONFIG_HOME", str(Path.home() / ".config"))
    return Path(xdg_config) / APP_NAME


def get_config_path() -> Path:
    """Get path to the config file."""
    return get_config_dir() / CONFIG_FILE_NAME


def _scalar(data: dict, key: str, label: str = "") -> str:
    value = data.get(key)
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        raise ConfigError(f"Invalid '{label or key}': expected a single path, got {type(value).__name__}")
    return str(value)


def _string_list(data: dict, key: str, label: str = "") -> list:
    value = data.get(key)
    if value is None:
        return []
    # A bare string would otherwise be taken apart character by character
    if not isinstance(value, list) or any(isinstance(v, (dict, list)) for v in value):
        raise ConfigError(f"Invalid '{label or key}': expected a list of names or paths")
    return [str(v) for v in value]


class Config:
    """Where the inboxes and filed directories live.

    With persist=False nothing is read from or written to disk.
    """

    def __init__(self, persist: bool = True, root: str = "",
                 extra_inboxes: Optional[list] = None,
                 cc_root: str = "", cc_dests: Optional[list] = None,
                 path: Optional[Path] = None):
        self.persist = persist
        self.root = root
        self.extra_inboxes = list(extra_inboxes or [])
        self.cc_root = cc_root
        self.cc_dests = list(cc_dests or [])
        self._path = path

    @property
    def path(self) -> Path:
        return self._path or get_config_path()

    def read(self):
        """Load settings from disk. A missing file is not an error."""
        if not self.persist:
            return
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except FileNotFoundError:
            return
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to read {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Failed to read {self.path}: expected a mapping, got {type(data).__name__}")
        try:
            self.update(data)
        except ConfigError as e:
            raise ConfigError(f"Failed to read {self.path}: {e}") from e

    def write(self):
        """Save settings to disk, readable by the owner only."""
        if not self.persist:
            return
        path = self.path
        try:
            path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                yaml.safe_dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)
        except OSError as e:
            raise ConfigError(f"Failed to write {path}: {e}") from e

    def update(self, data: dict):
        """Merge values loaded from a config mapping.

        Raises ConfigError when a value has the wrong shape, before anything
        is changed.
        """
        root = _scalar(data, "root")
        extra_inboxes = _string_list(data, "extra_inboxes")
        cc = data.get("cc") or {}
        if not isinstance(cc, dict):
            raise ConfigError("Invalid 'cc': expected a mapping with root and dests")
        cc_root = _scalar(cc, "root", "cc.root")
        cc_dests = _string_list(cc, "dests", "cc.dests")

        if root:
            self.root = os.path.expanduser(root)
        if extra_inboxes:
            self.extra_inboxes = [os.path.expanduser(p) for p in extra_inboxes]
        if cc_root:
            self.cc_root = os.path.expanduser(cc_root)
        if cc_dests:
            self.cc_dests = cc_dests

    def to_dict(self) -> dict:
        return {
            "root": self.root,
            "extra_inboxes": list(self.extra_inboxes),
            "cc": {
                "root": self.cc_root,
                "dests": list(self.cc_dests),
            },
        }

    def resolve_root(self, cli_root: Optional[str] = None):
        """Pick the root directory.

        Priority: --root flag (stored for later runs) > config file > FILEINBOX_ROOT.
        """
        if cli_root:
            self.root = os.path.expanduser(cli_root)
            self.write()
            return
        if self.root:
            return
        env_root = os.environ.get(ROOT_ENV_VAR)
        if env_root:
            self.root = os.path.expanduser(env_root)
            return
        raise ConfigError(
            "You must use the --root flag to specify a root directory. "
            "This will be stored for later use."
        )

    # Paths the filing core works with

    def inbox(self) -> str:
        return os.path.join(self.root, "inbox")

    def inboxes(self) -> list:
        return [self.inbox()] + list(self.extra_inboxes)

    def dest(self, name: str) -> str:
        return os.path.join(self.root, "filed", name)

    def cc_dest(self, name: str) -> Optional[str]:
        """Carbon-copy directory for a destination, or None if it has none."""
        if not self.cc_root or name not in self.cc_dests:
            return None
        return os.path.join(self.cc_root, name)


def load_config(persist: bool = True, cli_root: Optional[str] = None) -> Config:
    """Read the stored config and settle on a root directory."""
    config = Config(persist=persist)
    config.read()
    config.resolve_root(cli_root)
    return config
