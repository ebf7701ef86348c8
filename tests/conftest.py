"""Pytest configuration and fixtures for bonk tests."""

import json
from collections.abc import Iterable
from pathlib import Path

import pytest

from bonk.core.config import BonkPaths


class FakeLiveness:
    """LivenessChecker stand-in driven by a set of live pids."""

    def __init__(self, alive: Iterable[int] = (), start_times: dict[int, float] | None = None):
        self.alive = set(alive)
        self.start_times = dict(start_times or {})
        self.checked: list[int] = []

    def is_alive(self, pid: int, started_at: float | None = None) -> bool:
        self.checked.append(pid)
        return pid in self.alive

    def start_time(self, pid: int) -> float | None:
        return self.start_times.get(pid)


def make_project(
    root: Path,
    name: str,
    *,
    scripts: dict[str, str] | None = None,
    deno_tasks: dict[str, str] | None = None,
    lockfiles: Iterable[str] = (),
) -> Path:
    """Create a project directory with a package.json or deno.json."""
    path = root / name
    path.mkdir(parents=True, exist_ok=True)
    if deno_tasks is not None:
        (path / "deno.json").write_text(json.dumps({"tasks": deno_tasks}))
    else:
        (path / "package.json").write_text(json.dumps({"name": name, "scripts": scripts or {}}))
    for lockfile in lockfiles:
        (path / lockfile).write_text("")
    return path


@pytest.fixture
def home(tmp_path: Path) -> Path:
    """A fake home directory."""
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    return home_dir


@pytest.fixture
def bonk_paths(home: Path, monkeypatch: pytest.MonkeyPatch) -> BonkPaths:
    """BONK_HOME inside the fake home, exported to the environment."""
    bonk_home = home / ".bonk"
    monkeypatch.setenv("BONK_HOME", str(bonk_home))
    return BonkPaths.from_env()


@pytest.fixture
def write_config(bonk_paths: BonkPaths):
    """Write config.json with the given project dirs."""

    def _write(project_dirs: list[str], **extra: object) -> Path:
        bonk_paths.bonk_home.mkdir(parents=True, exist_ok=True)
        data = {"projectDirs": project_dirs, **extra}
        bonk_paths.config_file.write_text(json.dumps(data))
        return bonk_paths.config_file

    return _write
