"""
Assemble a DiffInfo from the raw per-file diffs of a repository.
"""

import re
from itertools import chain
from pathlib import Path
from typing import Iterable, List, Optional

from loguru import logger

from commit_wizard.git_ops.classifier import analyse_change_hints, classify_file_type
from commit_wizard.git_ops.models import DiffInfo, ModifiedFile, RawFileDiff
from commit_wizard.git_ops.repository import GitRepository, NoChangesError


MAX_DIFF_CONTENT = 5000
MAX_KEY_CHANGES = 3

_FUNCTION_NAME = re.compile(
    r"^\s*(?:pub(?:\([^)]*\))?\s+)?(?:export\s+)?(?:async\s+)?"
    r"(?:fn|def|function|func)\s+([A-Za-z_][A-Za-z0-9_]*)"
)


def cap_diff_content(patch_lines: Iterable[str], limit: int = MAX_DIFF_CONTENT) -> str:
    """Join patch lines, dropping everything from the first line that would overflow limit."""
    kept: List[str] = []
    length = 0
    for line in patch_lines:
        extra = len(line) + (1 if kept else 0)
        if length + extra > limit:
            break
        kept.append(line)
        length += extra
    return "\n".join(kept)


def make_modified_file(
    path: str,
    added: int,
    removed: int,
    diff_content: str,
    is_new_file: bool = False,
) -> ModifiedFile:
    """Classify one file and freeze it into a ModifiedFile."""
    return ModifiedFile(
        path=path,
        added_lines=added,
        removed_lines=removed,
        diff_content=diff_content,
        file_type=classify_file_type(path),
        change_hints=analyse_change_hints(diff_content, is_new_file),
    )


def build_diff_info(
    entries: Iterable[RawFileDiff],
    max_file_size: int,
    max_files: int,
    verbose: bool = False,
    source: str = "staged",
) -> DiffInfo:
    """Filter, classify and summarise raw diffs.

    Binary and oversized files are skipped. Enumeration stops once max_files
    files are recorded; the remaining entries are never pulled from the
    iterator.
    """
    log_skip = logger.info if verbose else logger.debug
    files: List[ModifiedFile] = []
    seen = set()

    for raw in entries:
        if raw.path in seen:
            continue
        if raw.is_binary:
            log_skip(f"Skipping binary file: {raw.path}")
            continue
        if raw.size > max_file_size:
            log_skip(f"Skipping large file: {raw.path} ({raw.size} bytes > {max_file_size})")
            continue
        if raw.added + raw.removed == 0 and not raw.is_new_file:
            continue

        seen.add(raw.path)
        files.append(make_modified_file(
            raw.path,
            raw.added,
            raw.removed,
            cap_diff_content(raw.patch_lines),
            is_new_file=raw.is_new_file,
        ))
        if len(files) >= max_files:
            logger.debug(f"Reached max files ({max_files}), stopping diff enumeration")
            break

    return DiffInfo(files=tuple(files), summary=render_summary(files), source=source)


def get_diff_info(
    repo_path: Optional[Path],
    max_file_size: int,
    max_files: int,
    verbose: bool = False,
) -> DiffInfo:
    """Read staged changes, or unstaged ones when nothing is staged."""
    repository = GitRepository(repo_path)

    if repository.has_commits():
        diff_info = build_diff_info(
            repository.iter_staged(max_file_size), max_file_size, max_files, verbose, "staged"
        )
    else:
        diff_info = build_diff_info(
            repository.iter_initial(max_file_size), max_file_size, max_files, verbose, "initial"
        )

    if not diff_info.files:
        logger.debug("No staged changes, inspecting the working tree")
        unstaged = chain(
            repository.iter_unstaged(max_file_size),
            repository.iter_untracked(max_file_size),
        )
        diff_info = build_diff_info(unstaged, max_file_size, max_files, verbose, "unstaged")

    if not diff_info.files:
        raise NoChangesError("no changes detected in the repository")

    logger.debug(f"Collected {len(diff_info.files)} files from {diff_info.source} changes")
    return diff_info


def _plural(count: int, singular: str, plural: str) -> str:
    return f"{count} {singular if count == 1 else plural}"


def _describe(file: ModifiedFile) -> str:
    if file.removed_lines == 0 and file.added_lines > 5:
        return "new file"
    if file.added_lines > file.removed_lines * 2:
        return "major additions"
    if file.removed_lines > file.added_lines * 2:
        return "major deletions"
    return "modified"


def extract_key_changes(diff_content: str) -> List[str]:
    """Short phrases for notable added lines, found by substring checks."""
    changes = []
    for line in diff_content.splitlines():
        if not line.startswith('+') or line.startswith('+++'):
            continue
        content = line[1:].strip()
        lowered = content.lower()

        match = _FUNCTION_NAME.match(content)
        if match:
            changes.append(f"add function {match.group(1)}")
        elif lowered.startswith(("struct ", "pub struct ", "class ", "enum ", "pub enum ",
                                 "interface ", "export interface ", "type ", "export type ")):
            changes.append("add type definition")
        elif lowered.startswith(("import ", "from ", "use ", "require(", "#include")):
            changes.append("add dependencies")
        elif "config" in lowered or "setting" in lowered:
            changes.append("modify configuration")
        elif any(word in lowered for word in ("error", "except", "catch", "result<")):
            changes.append("improve error handling")
        elif "async" in lowered or "await" in lowered:
            changes.append("add async/performance features")
    return changes


def render_summary(files: List[ModifiedFile]) -> str:
    """Human readable synopsis; display only, never scored."""
    total_added = sum(f.added_lines for f in files)
    total_removed = sum(f.removed_lines for f in files)

    lines = [
        f"{_plural(len(files), 'file', 'files')} changed, "
        f"{_plural(total_added, 'insertion', 'insertions')}, "
        f"{_plural(total_removed, 'deletion', 'deletions')}",
        "",
        "file breakdown:",
    ]
    key_changes = set()
    for file in files:
        lines.append(f"  {file.path}: +{file.added_lines} -{file.removed_lines} ({_describe(file)})")
        key_changes.update(extract_key_changes(file.diff_content))

    if key_changes:
        lines.append("")
        lines.append("key changes:")
        lines.extend(f"  - {change}" for change in sorted(key_changes)[:MAX_KEY_CHANGES])

    return "\n".join(lines)


def has_staged_changes(repo_path: Optional[Path] = None) -> bool:
    return GitRepository(repo_path).has_staged_changes()


def get_staged_files(repo_path: Optional[Path] = None) -> List[str]:
    return GitRepository(repo_path).get_staged_files()
