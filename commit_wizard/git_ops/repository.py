"""
Git repository access built on GitPython.

GitRepository only talks to git: it lists changed paths and hands back raw
per-file patches. Classification and aggregation happen in diff_reader.
"""

import os
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo
from loguru import logger

from commit_wizard.git_ops.models import RawFileDiff


BINARY_SNIFF_BYTES = 8000


class GitRepository:
    """Thin wrapper around a GitPython Repo."""

    def __init__(self, repo_path: Optional[Path] = None):
        """Open the repository containing repo_path."""
        self.repo_path = Path(repo_path) if repo_path else Path.cwd()
        try:
            self.repo = Repo(self.repo_path, search_parent_directories=True)
            logger.debug(f"Opened Git repository at {self.repo.working_dir}")
        except (InvalidGitRepositoryError, NoSuchPathError):
            raise GitRepositoryError(f"Not a Git repository: {self.repo_path}")

        if self.repo.bare:
            raise GitRepositoryError(f"Bare repositories are not supported: {self.repo_path}")

    @property
    def working_dir(self) -> Path:
        return Path(self.repo.working_dir)

    def has_commits(self) -> bool:
        """False for a freshly initialised repository with no HEAD commit."""
        return self.repo.head.is_valid()

    def has_staged_changes(self) -> bool:
        if not self.has_commits():
            return len(self.repo.index.entries) > 0
        return bool(self._git("diff", "--cached", "--name-only").strip())

    def get_staged_files(self) -> List[str]:
        """Paths currently staged for commit, in git's order."""
        if not self.has_commits():
            return self._indexed_paths()
        output = self._git("diff", "--cached", "--name-only", "--no-renames")
        return [line for line in output.splitlines() if line.strip()]

    def iter_staged(self, max_file_size: int) -> Iterator[RawFileDiff]:
        """Index versus HEAD."""
        for path, added, removed, is_binary in self._numstat("--cached"):
            size = self._blob_size(f":{path}") or self._blob_size(f"HEAD:{path}")
            if is_binary or size > max_file_size:
                yield RawFileDiff(path=path, is_binary=is_binary, size=size)
                continue
            patch = self._git("diff", "--cached", "--no-renames", "--no-color", "--", path)
            yield RawFileDiff(
                path=path,
                added=added,
                removed=removed,
                patch_lines=_patch_lines(patch),
                size=size,
            )

    def iter_unstaged(self, max_file_size: int) -> Iterator[RawFileDiff]:
        """Working tree versus index."""
        for path, added, removed, is_binary in self._numstat():
            full_path = self.working_dir / path
            size = full_path.stat().st_size if full_path.exists() else self._blob_size(f":{path}")
            if is_binary or size > max_file_size:
                yield RawFileDiff(path=path, is_binary=is_binary, size=size)
                continue
            patch = self._git("diff", "--no-renames", "--no-color", "--", path)
            yield RawFileDiff(
                path=path,
                added=added,
                removed=removed,
                patch_lines=_patch_lines(patch),
                size=size,
            )

    def iter_untracked(self, max_file_size: int) -> Iterator[RawFileDiff]:
        """Untracked files, read whole as additions."""
        for path in self.repo.untracked_files:
            yield self._whole_file(path, max_file_size)

    def iter_initial(self, max_file_size: int) -> Iterator[RawFileDiff]:
        """Every indexed path of a repository that has no commits yet."""
        for path in self._indexed_paths():
            yield self._indexed_file(path, max_file_size)

    def commit(self, message: str) -> str:
        """Create a commit from the current index and return its sha."""
        try:
            commit = self.repo.index.commit(message)
        except (GitCommandError, ValueError) as e:
            raise GitRepositoryError(f"Failed to create commit: {e}")

        logger.info(f"Created commit {commit.hexsha[:8]}: {message.splitlines()[0]}")
        return commit.hexsha

    def _git(self, command: str, *args: str) -> str:
        try:
            return getattr(self.repo.git, command)(*args)
        except GitCommandError as e:
            raise GitRepositoryError(f"git {command} failed: {e}")

    def _numstat(self, *args: str) -> Iterator[Tuple[str, int, int, bool]]:
        output = self._git("diff", *args, "--numstat", "--no-renames", "-z")
        for record in output.split("\0"):
            if not record.strip():
                continue
            added, removed, path = record.split("\t", 2)
            if added == "-" and removed == "-":
                yield path, 0, 0, True
            else:
                yield path, int(added), int(removed), False

    def _indexed_paths(self) -> List[str]:
        return sorted({path for path, _stage in self.repo.index.entries})

    def _blob_size(self, rev_path: str) -> int:
        try:
            return int(self.repo.git.cat_file("-s", rev_path))
        except (GitCommandError, ValueError):
            return 0

    def _whole_file(self, path: str, max_file_size: int) -> RawFileDiff:
        full_path = self.working_dir / path
        try:
            size = os.path.getsize(full_path)
        except OSError:
            logger.debug(f"Cannot stat {path}, treating as empty")
            return RawFileDiff(path=path, is_new_file=True)

        if size > max_file_size:
            return RawFileDiff(path=path, size=size, is_new_file=True)
        return _added_file(path, full_path.read_bytes(), size)

    def _indexed_file(self, path: str, max_file_size: int) -> RawFileDiff:
        """Staged blob content, independent of later working tree edits."""
        size = self._blob_size(f":{path}")
        if size > max_file_size:
            return RawFileDiff(path=path, size=size, is_new_file=True)
        try:
            data = self.repo.git.cat_file("blob", f":{path}", stdout_as_string=False)
        except GitCommandError as e:
            raise GitRepositoryError(f"Cannot read staged content of {path}: {e}")
        return _added_file(path, data, size)


def _added_file(path: str, data: bytes, size: int) -> RawFileDiff:
    """Whole file content recorded as additions."""
    if b"\0" in data[:BINARY_SNIFF_BYTES]:
        return RawFileDiff(path=path, size=size, is_binary=True, is_new_file=True)

    lines = data.decode("utf-8", errors="replace").splitlines()
    return RawFileDiff(
        path=path,
        added=len(lines),
        patch_lines=tuple(f"+{line}" for line in lines),
        size=size,
        is_new_file=True,
    )


def _patch_lines(patch: str) -> Tuple[str, ...]:
    return tuple(patch.splitlines())


class GitRepositoryError(Exception):
    """Raised when the repository cannot be opened or read."""
    pass


class NoChangesError(GitRepositoryError):
    """Raised when neither staged nor unstaged changes exist."""
    pass
