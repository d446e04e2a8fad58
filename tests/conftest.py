"""
Shared fixtures: isolated config dirs, diff builders and throwaway git repos.
"""

from pathlib import Path
from typing import Iterable

import pytest
from git import Repo

from commit_wizard.git_ops.diff_reader import make_modified_file, render_summary
from commit_wizard.git_ops.models import DiffInfo, ModifiedFile


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path_factory, monkeypatch):
    """Keep tests away from the user's config file, cache and API key."""
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(home / "cache"))
    monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
    monkeypatch.delenv("OPENROUTER_MODEL", raising=False)


def patch_text(added: Iterable[str] = (), removed: Iterable[str] = ()) -> str:
    lines = ["@@ -1 +1 @@"]
    lines.extend(f"-{line}" for line in removed)
    lines.extend(f"+{line}" for line in added)
    return "\n".join(lines)


def make_file(path: str, added=(), removed=(), is_new_file: bool = False) -> ModifiedFile:
    """ModifiedFile whose counts match the given added/removed line lists."""
    added = list(added)
    removed = list(removed)
    return make_modified_file(path, len(added), len(removed), patch_text(added, removed), is_new_file)


def make_diff(*files: ModifiedFile, source: str = "staged") -> DiffInfo:
    return DiffInfo(files=tuple(files), summary=render_summary(list(files)), source=source)


@pytest.fixture
def git_repo(tmp_path) -> Repo:
    repo = Repo.init(tmp_path)
    with repo.config_writer() as config:
        config.set_value("user", "name", "Test User")
        config.set_value("user", "email", "test@example.com")
    return repo


def write(repo: Repo, relative: str, content) -> Path:
    path = Path(repo.working_dir) / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content)
    return path


def commit_files(repo: Repo, files: dict, message: str = "chore: initial commit") -> None:
    for relative, content in files.items():
        write(repo, relative, content)
    repo.index.add(list(files))
    repo.index.commit(message)
