"""
Pytest configuration and shared fixtures for fileinbox tests.
"""

import os
import sys
import tempfile
from pathlib import Path
from typing import Generator

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from settings import Config


def contents_for(name: str) -> str:
    return f"contents for {name}"


def create_files(root: Path, names: list):
    """Create files and directories below root.

    Names ending in "/" are directories; files get contents_for(basename).
    """
    for name in names:
        path = root / name
        if name.endswith("/"):
            path.mkdir(mode=0o700, parents=True, exist_ok=True)
        else:
            path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
            path.write_text(contents_for(path.name))


def read_files(root: Path) -> list:
    """List everything below root (directories with a trailing "/"), sorted.

    Fails the test if any file does not hold its expected contents.
    """
    found = []
    for dirpath, dirnames, filenames in os.walk(root):
        rel = Path(dirpath).relative_to(root)
        for d in dirnames:
            found.append(f"{(rel / d).as_posix()}/")
        for f in filenames:
            path = Path(dirpath) / f
            assert path.read_text() == contents_for(f), f"Unexpected contents in {path}"
            found.append((rel / f).as_posix())
    return sorted(found)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def root_dir(temp_dir: Path) -> Path:
    """Create a fileinbox root with an empty inbox and filed directory."""
    root = temp_dir / "root"
    (root / "inbox").mkdir(parents=True)
    (root / "filed").mkdir()
    return root


@pytest.fixture
def inbox_dir(root_dir: Path) -> Path:
    return root_dir / "inbox"


@pytest.fixture
def filed_dir(root_dir: Path) -> Path:
    return root_dir / "filed"


@pytest.fixture
def config(root_dir: Path) -> Config:
    """A config for root_dir that never touches the user's config file."""
    return Config(persist=False, root=str(root_dir))


@pytest.fixture(autouse=True)
def reset_env_vars(temp_dir: Path):
    """Reset environment variables and keep config files inside temp_dir."""
    original_env = os.environ.copy()
    os.environ["XDG_CONFIG_HOME"] = str(temp_dir / "xdg")
    os.environ["APPDATA"] = str(temp_dir / "appdata")
    os.environ.pop("FILEINBOX_ROOT", None)
    yield
    os.environ.clear()
    os.environ.update(original_env)
