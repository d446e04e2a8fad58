"""
Heuristic file and change classification.

Both classifiers are driven by ordered rule tables: the first matching file
type rule wins, while every change hint rule that matches contributes a hint.
"""

import re
from typing import Callable, FrozenSet, Iterable, List, Set, Tuple

from commit_wizard.git_ops.models import ChangeHint, FileType


TEST_FRAGMENTS = ("test", "spec", "__tests__", "/e2e/", "/fixtures/")
DOC_SUFFIXES = (".md", ".rst", ".adoc", ".txt", ".rdoc", ".textile")
DOC_FRAGMENTS = ("docs/", "doc/", "readme", "changelog", "license", "contributing", "authors")
BUILD_NAMES = (
    "package.json", "package-lock.json", "yarn.lock", "pnpm-lock.yaml",
    "cargo.toml", "cargo.lock", "go.mod", "go.sum",
    "pyproject.toml", "setup.py", "setup.cfg", "poetry.lock", "pipfile", "pipfile.lock",
    "gemfile", "gemfile.lock", "composer.json", "composer.lock",
    "pom.xml", "build.gradle", "build.gradle.kts", "settings.gradle",
    "makefile", "cmakelists.txt", "dockerfile", "build.rs", "build.sh",
)
BUILD_PREFIXES = ("requirements",)
CONFIG_SUFFIXES = (
    ".json", ".yaml", ".yml", ".toml", ".ini", ".cfg", ".conf",
    ".config", ".properties", ".env", ".xml",
)
CONFIG_NAMES = (".env", ".gitignore", ".editorconfig", ".dockerignore", ".npmrc", ".babelrc")
SOURCE_SUFFIXES = (
    ".py", ".pyi", ".rs", ".go", ".js", ".jsx", ".mjs", ".cjs", ".ts", ".tsx",
    ".java", ".kt", ".kts", ".scala", ".groovy", ".c", ".h", ".cc", ".cpp", ".cxx",
    ".hpp", ".cs", ".fs", ".rb", ".php", ".swift", ".m", ".mm", ".dart", ".lua",
    ".pl", ".pm", ".r", ".jl", ".ex", ".exs", ".erl", ".hs", ".clj", ".elm",
    ".vue", ".svelte", ".sh", ".bash", ".zsh", ".ps1", ".sql", ".zig", ".nim",
    ".css", ".scss", ".sass", ".less", ".html", ".htm",
)


def _basename(path: str) -> str:
    return path.rsplit('/', 1)[-1]


def _is_build_name(name: str) -> bool:
    return name in BUILD_NAMES or (name.startswith(BUILD_PREFIXES) and name.endswith(".txt"))


def _is_test_path(path: str) -> bool:
    return any(fragment in path for fragment in TEST_FRAGMENTS)


def _is_doc_path(path: str) -> bool:
    name = _basename(path)
    if _is_build_name(name):
        return False
    return name.endswith(DOC_SUFFIXES) or any(fragment in path for fragment in DOC_FRAGMENTS)


def _is_build_path(path: str) -> bool:
    return _is_build_name(_basename(path))


def _is_config_path(path: str) -> bool:
    name = _basename(path)
    return (
        name.endswith(CONFIG_SUFFIXES)
        or name in CONFIG_NAMES
        or name.startswith(".env.")
    )


def _is_source_path(path: str) -> bool:
    return _basename(path).endswith(SOURCE_SUFFIXES)


FILE_TYPE_RULES: Tuple[Tuple[FileType, Callable[[str], bool]], ...] = (
    (FileType.TEST, _is_test_path),
    (FileType.DOCUMENTATION, _is_doc_path),
    (FileType.BUILD, _is_build_path),
    (FileType.CONFIG, _is_config_path),
    (FileType.SOURCE_CODE, _is_source_path),
)


def classify_file_type(path: str) -> FileType:
    """Map a repository-relative path to exactly one FileType."""
    normalized = path.replace('\\', '/').lower()
    for file_type, matches in FILE_TYPE_RULES:
        if matches(normalized):
            return file_type
    return FileType.OTHER


# Keyword families scanned over lowercased added lines
STRUCT_MARKERS = (
    "class ", "struct ", "interface ", "record ", "trait ", "typedef ",
    "type ", "data class ", "protocol ",
)
ENUM_MARKERS = ("enum ",)
FUNCTION_MARKERS = (
    "def ", "fn ", "function ", "func ", "fun ", "sub ", "=> {",
    "public ", "private ", "protected ", "static ",
)
MODULE_MARKERS = ("namespace ", "module ", "mod ", "export ", "package ")
BUG_KEYWORDS = ("fix", "bug", "error", "issue", "problem", "crash", "incorrect", "wrong")
ERROR_HANDLING_KEYWORDS = (
    "try:", "try {", "except ", "catch", "raise ", "throw ", "result<",
    "unwrap", "expect(", "err != nil", ".context(", "finally",
)
REFACTOR_KEYWORDS = ("refactor", "rename", "move", "extract", "cleanup", "clean up", "simplify")
PERFORMANCE_KEYWORDS = ("perf", "optimiz", "speed", "cache", "async", "parallel", "lazy", "memo")
DEPENDENCY_FILE_MARKERS = (
    "cargo.toml", "package.json", "requirements", "pyproject.toml", "go.mod",
    "gemfile", "pom.xml", "build.gradle", "composer.json", "[dependencies]", "\"dependencies\"",
)
IMPORT_MARKERS = ("import ", "from ", "require(", "use ", "#include", "using ", "extern crate")
DOC_MARKERS = ("///", "/**", "//!", '"""', "'''", " * ", "@param", "@return")

MAJOR_ADDITION_THRESHOLD = 20
FEATURE_FUNCTION_THRESHOLD = 10
MINOR_TWEAK_THRESHOLD = 5

_MARKDOWN_HEADING = re.compile(r"^#{1,6} \S")


def _diff_lines(diff_text: str) -> Tuple[List[str], List[str]]:
    added = []
    removed = []
    for line in diff_text.splitlines():
        if line.startswith('+') and not line.startswith('+++'):
            added.append(line[1:])
        elif line.startswith('-') and not line.startswith('---'):
            removed.append(line[1:])
    return added, removed


def _starts_with_any(lines: Iterable[str], markers: Tuple[str, ...]) -> bool:
    return any(line.lstrip().startswith(markers) for line in lines)


def _contains_any(text: str, keywords: Tuple[str, ...]) -> bool:
    return any(keyword in text for keyword in keywords)


class _HintContext:
    """Precomputed views of one diff shared by the hint rules."""

    def __init__(self, diff_text: str):
        added, removed = _diff_lines(diff_text)
        self.added = [line.lower() for line in added]
        self.raw_added = added
        self.added_text = "\n".join(self.added)
        self.full_text = diff_text.lower()
        self.net_additions = max(0, len(added) - len(removed))


def _has_structs(ctx: _HintContext) -> bool:
    return _starts_with_any(
        (line.replace("pub ", "", 1).replace("export ", "", 1) for line in ctx.added),
        STRUCT_MARKERS,
    )


def _has_enums(ctx: _HintContext) -> bool:
    return _starts_with_any(
        (line.replace("pub ", "", 1).replace("export ", "", 1) for line in ctx.added),
        ENUM_MARKERS,
    )


def _has_functions(ctx: _HintContext) -> bool:
    stripped = (
        line.replace("pub ", "", 1).replace("async ", "", 1).replace("export ", "", 1)
        for line in ctx.added
    )
    return _starts_with_any(stripped, FUNCTION_MARKERS)


def _has_modules(ctx: _HintContext) -> bool:
    return _starts_with_any(
        (line.replace("pub ", "", 1) for line in ctx.added),
        MODULE_MARKERS,
    )


def _has_docs(ctx: _HintContext) -> bool:
    if _contains_any(ctx.added_text, DOC_MARKERS):
        return True
    return any(_MARKDOWN_HEADING.match(line) for line in ctx.raw_added)


def _has_dependencies(ctx: _HintContext) -> bool:
    return (
        _contains_any(ctx.full_text, DEPENDENCY_FILE_MARKERS)
        and _starts_with_any(ctx.added, IMPORT_MARKERS + ('"', "[dependencies"))
    )


# (hints, predicate); structural rules come first so later rules can see them
STRUCTURAL_HINT_RULES: Tuple[Tuple[FrozenSet[ChangeHint], Callable[[_HintContext], bool]], ...] = (
    (frozenset({ChangeHint.NEW_STRUCT, ChangeHint.NEW_FEATURE}), _has_structs),
    (frozenset({ChangeHint.NEW_ENUM, ChangeHint.NEW_FEATURE}), _has_enums),
    (frozenset({ChangeHint.NEW_FUNCTION}), _has_functions),
    (frozenset({ChangeHint.NEW_MODULE, ChangeHint.NEW_FEATURE}), _has_modules),
)

CONTENT_HINT_RULES: Tuple[Tuple[ChangeHint, Callable[[_HintContext], bool]], ...] = (
    (ChangeHint.ERROR_HANDLING, lambda ctx: _starts_with_any(ctx.added, ERROR_HANDLING_KEYWORDS)
        or _contains_any(ctx.added_text, ERROR_HANDLING_KEYWORDS)),
    (ChangeHint.PERFORMANCE, lambda ctx: _contains_any(ctx.added_text, PERFORMANCE_KEYWORDS)),
    (ChangeHint.DEPENDENCIES, _has_dependencies),
    (ChangeHint.DOCUMENTATION, _has_docs),
)

# Suppressed when the diff is already a major addition
FEATURE_SUPPRESSED_RULES: Tuple[Tuple[ChangeHint, Callable[[_HintContext], bool]], ...] = (
    (ChangeHint.BUG_FIX, lambda ctx: _contains_any(ctx.full_text, BUG_KEYWORDS)),
    (ChangeHint.REFACTOR, lambda ctx: _contains_any(ctx.full_text, REFACTOR_KEYWORDS)),
)


def analyse_change_hints(diff_text: str, is_new_file: bool = False) -> FrozenSet[ChangeHint]:
    """Derive qualitative hints from the added and removed lines of a patch."""
    if is_new_file:
        return frozenset({ChangeHint.NEW_FEATURE, ChangeHint.MAJOR_ADDITION})

    ctx = _HintContext(diff_text)
    hints: Set[ChangeHint] = set()

    structural = False
    for rule_hints, matches in STRUCTURAL_HINT_RULES:
        if matches(ctx):
            hints.update(rule_hints)
            structural = True

    if ChangeHint.NEW_FUNCTION in hints and ctx.net_additions > FEATURE_FUNCTION_THRESHOLD:
        hints.add(ChangeHint.NEW_FEATURE)

    if ctx.net_additions > MAJOR_ADDITION_THRESHOLD:
        hints.update((ChangeHint.MAJOR_ADDITION, ChangeHint.NEW_FEATURE))
    elif ctx.net_additions <= MINOR_TWEAK_THRESHOLD and not structural:
        hints.add(ChangeHint.MINOR_TWEAK)

    for hint, matches in CONTENT_HINT_RULES:
        if matches(ctx):
            hints.add(hint)

    if ChangeHint.MAJOR_ADDITION not in hints:
        for hint, matches in FEATURE_SUPPRESSED_RULES:
            if matches(ctx):
                hints.add(hint)

    if not hints:
        hints.add(ChangeHint.NEW_FEATURE)

    return frozenset(hints)
