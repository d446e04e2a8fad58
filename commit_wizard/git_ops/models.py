"""
Normalized diff data shared by the analysis pipeline.
"""

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Tuple


class FileType(str, Enum):
    """Coarse purpose of a changed file."""

    SOURCE_CODE = "source"
    TEST = "test"
    DOCUMENTATION = "documentation"
    CONFIG = "config"
    BUILD = "build"
    OTHER = "other"


class ChangeHint(str, Enum):
    """Qualitative tags derived from the added/removed lines of a file."""

    BUG_FIX = "bug_fix"
    ERROR_HANDLING = "error_handling"
    REFACTOR = "refactor"
    NEW_FEATURE = "new_feature"
    PERFORMANCE = "performance"
    DOCUMENTATION = "documentation"
    DEPENDENCIES = "dependencies"
    NEW_FUNCTION = "new_function"
    NEW_STRUCT = "new_struct"
    NEW_ENUM = "new_enum"
    NEW_MODULE = "new_module"
    MAJOR_ADDITION = "major_addition"
    MINOR_TWEAK = "minor_tweak"


@dataclass(frozen=True)
class RawFileDiff:
    """One entry produced by the repository collaborator before classification."""

    path: str
    added: int = 0
    removed: int = 0
    patch_lines: Tuple[str, ...] = ()
    is_binary: bool = False
    size: int = 0
    is_new_file: bool = False  # whole-file read standing in for a patch


@dataclass(frozen=True)
class ModifiedFile:
    """A single changed path with its statistics and classification."""

    path: str
    added_lines: int
    removed_lines: int
    diff_content: str
    file_type: FileType
    change_hints: FrozenSet[ChangeHint]

    @property
    def total_changes(self) -> int:
        return self.added_lines + self.removed_lines

    @property
    def is_new(self) -> bool:
        """Metadata view of a new file: nothing removed, a real amount added."""
        return self.removed_lines == 0 and self.added_lines > 10

    @property
    def extension(self) -> str:
        name = self.path.rsplit('/', 1)[-1]
        return name.rsplit('.', 1)[-1].lower() if '.' in name else ""

    @property
    def added_content(self) -> Tuple[str, ...]:
        """Added lines with the leading '+' stripped."""
        return tuple(
            line[1:] for line in self.diff_content.splitlines()
            if line.startswith('+') and not line.startswith('+++')
        )

    @property
    def removed_content(self) -> Tuple[str, ...]:
        """Removed lines with the leading '-' stripped."""
        return tuple(
            line[1:] for line in self.diff_content.splitlines()
            if line.startswith('-') and not line.startswith('---')
        )


@dataclass(frozen=True)
class DiffInfo:
    """Whole-repository view for one analysis pass."""

    files: Tuple[ModifiedFile, ...]
    summary: str
    source: str = "staged"  # staged, unstaged or initial

    @property
    def paths(self) -> Tuple[str, ...]:
        return tuple(f.path for f in self.files)

    @property
    def total_added(self) -> int:
        return sum(f.added_lines for f in self.files)

    @property
    def total_removed(self) -> int:
        return sum(f.removed_lines for f in self.files)

    @property
    def total_changes(self) -> int:
        return self.total_added + self.total_removed

    def get(self, path: str) -> ModifiedFile:
        for file in self.files:
            if file.path == path:
                return file
        raise KeyError(path)
