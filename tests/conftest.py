from __future__ import annotations

import os
import shutil
import subprocess
from datetime import datetime, timezone
from pathlib import Path

import pytest

from vitality.analyzers.ranges import RangeTable, load_ranges

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)

SMALL_RANGES = {
    "userCommunity": [[0, 1, 0], [1, 3, 10]],
    "codeActivity": [[0, 1, 0], [1, 5, 5]],
    "releaseHistory": [[0, 1, 0], [1, 2, 8]],
    "longevity": [[0, 365, 0], [365, 9999, 15]],
}

SMALL_RANGES_YAML = """\
userCommunity: [[0, 1, 0], [1, 3, 10]]
codeActivity: [[0, 1, 0], [1, 5, 5]]
releaseHistory: [[0, 1, 0], [1, 2, 8]]
longevity: [[0, 365, 0], [365, 9999, 15]]
"""


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in list(os.environ):
        if var.startswith("VITALITY_"):
            monkeypatch.delenv(var, raising=False)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def small_ranges() -> RangeTable:
    return load_ranges(SMALL_RANGES)


@pytest.fixture
def small_ranges_file(tmp_path: Path) -> Path:
    path = tmp_path / "ranges.yml"
    path.write_text(SMALL_RANGES_YAML, encoding="utf-8")
    return path


class GitRepo:
    """Builds a throwaway repository with controlled author dates."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self.path.mkdir(parents=True, exist_ok=True)
        self.git("init")
        self.git("config", "user.name", "Test User")
        self.git("config", "user.email", "test@example.com")
        self.git("config", "commit.gpgsign", "false")
        self.git("config", "tag.gpgsign", "false")
        self._n = 0

    def git(self, *args: str, date: str | None = None) -> str:
        env = os.environ.copy()
        if date is not None:
            env["GIT_AUTHOR_DATE"] = date
            env["GIT_COMMITTER_DATE"] = date
        proc = subprocess.run(
            ["git", *args], cwd=str(self.path), env=env, check=True, capture_output=True, text=True
        )
        return proc.stdout

    def commit(self, author: str, date: str, message: str | None = None) -> str:
        self._n += 1
        (self.path / f"file{self._n}.txt").write_text(f"change {self._n}\n", encoding="utf-8")
        self.git("add", ".")
        self.git("commit", "-m", message or f"change {self._n}", f"--author=Dev <{author}>", date=date)
        return self.git("rev-parse", "HEAD").strip()

    @property
    def branch(self) -> str:
        return self.git("symbolic-ref", "--short", "HEAD").strip()


@pytest.fixture
def git_repo(tmp_path: Path) -> GitRepo:
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    return GitRepo(tmp_path / "repo")
