"""
Universal change pattern detection.

Each rule looks at the whole DiffInfo and may emit one or more weighted
patterns. Rules are independent: a diff can trigger any combination.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Tuple

from commit_wizard.git_ops.models import DiffInfo, FileType, ModifiedFile


class PatternType(str, Enum):
    """Closed vocabulary of detectable change patterns."""

    NEW_FILE = "NewFilePattern"
    MASS_MODIFICATION = "MassModification"
    CROSS_LAYER_CHANGE = "CrossLayerChange"
    INTERFACE_EVOLUTION = "InterfaceEvolution"
    ARCHITECTURAL_SHIFT = "ArchitecturalShift"
    CONFIGURATION_DRIFT = "ConfigurationDrift"
    DEPENDENCY_UPDATE = "DependencyUpdate"
    REFACTORING = "RefactoringPattern"
    FEATURE_ADDITION = "FeatureAddition"
    BUG_FIX = "BugFixPattern"
    TEST_EVOLUTION = "TestEvolution"
    DOCUMENTATION_UPDATE = "DocumentationUpdate"
    STYLE_NORMALIZATION = "StyleNormalization"
    PERFORMANCE_TUNING = "PerformanceTuning"
    SECURITY_HARDENING = "SecurityHardening"
    CI_CHANGE = "CiChange"
    DEPRECATION = "Deprecation"
    SECURITY_FIX = "SecurityFix"


@dataclass(frozen=True)
class Pattern:
    """One weighted signal about a diff."""

    pattern_type: PatternType
    description: str
    impact: float
    files_affected: Tuple[str, ...]

    def __post_init__(self):
        object.__setattr__(self, "impact", min(1.0, max(0.0, float(self.impact))))
        object.__setattr__(self, "files_affected", tuple(self.files_affected))


# Directory fragments per architectural layer
LAYER_FRAGMENTS = (
    ("frontend", ("frontend", "client", "web")),
    ("backend", ("backend", "server")),
    ("mobile", ("mobile", "ios", "android")),
    ("api", ("api", "controller", "endpoint", "routes")),
    ("service", ("service", "business", "domain")),
    ("model", ("model", "entity", "schema")),
    ("ui", ("view", "component", "ui", "page")),
    ("test", ("test", "spec", "__tests__")),
    ("configuration", ("config", "settings")),
    ("database", ("db", "database", "migration")),
)
LAYER_EXTENSIONS = {
    "tsx": "frontend", "jsx": "frontend", "vue": "frontend", "svelte": "frontend",
    "css": "frontend", "scss": "frontend", "sass": "frontend", "less": "frontend",
    "html": "frontend",
    "swift": "mobile", "kt": "mobile", "dart": "mobile",
    "sql": "database",
}

FUNCTION_PREFIXES = ("def ", "fn ", "function ", "func ", "fun ")
TYPE_PREFIXES = ("class ", "struct ", "interface ", "enum ", "trait ", "record ", "type ")
VISIBILITY_PREFIXES = ("pub ", "pub(crate) ", "export ", "export default ", "async ",
                       "public ", "private ", "protected ", "static ", "abstract ")
ROUTE_MARKERS = (
    "@app.route", "@router.", "@blueprint.", "@app.get", "@app.post", "@app.put", "@app.delete",
    "@get(", "@post(", "@put(", "@delete(", "@patch(",
    "@getmapping", "@postmapping", "@putmapping", "@deletemapping", "@requestmapping",
    "#[get(", "#[post(", "#[put(", "#[delete(", "#[route(",
    "app.get(", "app.post(", "app.put(", "app.delete(",
    "router.get(", "router.post(", "router.put(", "router.delete(",
    "handlefunc(", "@endpoint", "@api_view",
)
BUG_KEYWORDS = ("fix", "bug", "issue", "crash", "incorrect", "broken", "regression", "wrong")
PERFORMANCE_KEYWORDS = ("perf", "optimiz", "cache", "async", "parallel", "speed", "benchmark", "memoiz")
CONFIG_EXTENSIONS = ("json", "yaml", "yml", "toml", "ini", "conf", "cfg", "properties", "env")
DEPENDENCY_MANIFESTS = (
    "cargo.toml", "cargo.lock", "package.json", "package-lock.json", "yarn.lock",
    "pnpm-lock.yaml", "go.mod", "go.sum", "pyproject.toml", "poetry.lock", "pipfile",
    "pipfile.lock", "gemfile", "gemfile.lock", "composer.json", "composer.lock",
    "pom.xml", "build.gradle", "build.gradle.kts",
)
CI_FRAGMENTS = (
    ".github/workflows", ".gitlab-ci", ".circleci", "jenkinsfile", ".travis",
    "azure-pipelines", "bitbucket-pipelines", ".drone", ".buildkite",
)
DEPRECATION_MARKERS = ("deprecat", "obsolete")
PUBLIC_SYMBOL_MARKERS = ("export ", "pub ", "public ")
SECURITY_STRONG_KEYWORDS = (
    "vulnerab", "exploit", "injection", "xss", "csrf", "cve-", "sanitiz",
    "privilege escalation", "security fix", "directory traversal",
)
SECURITY_AUTH_KEYWORDS = (
    "authenticat", "authoriz", "password", "token", "crypto", "encrypt", "decrypt",
    "secret", "credential", "jwt", "oauth",
)
SECURITY_PATH_COMPONENTS = ("auth", "security", "crypto", "authentication", "authorization",
                            "permissions", "acl", "oauth")

NEW_FILE_MIN_LINES = 10
MASS_MODIFICATION_FILES = 5
TEST_SHARE_THRESHOLD = 0.3
REFACTOR_RATIO_BAND = (0.7, 1.3)
REFACTOR_MIN_ADDED = 50
STYLE_MIN_FILES = 3
STYLE_MAX_AVG_CHANGES = 10
DEPRECATION_MIN_REMOVED = 10


def _directories(path: str) -> List[str]:
    return [part.lower() for part in path.split('/')[:-1] if part]


def _basename(path: str) -> str:
    return path.rsplit('/', 1)[-1].lower()


def _strip_modifiers(line: str) -> str:
    line = line.strip().lower()
    changed = True
    while changed:
        changed = False
        for prefix in VISIBILITY_PREFIXES:
            if line.startswith(prefix):
                line = line[len(prefix):]
                changed = True
    return line


def _component_matches(component: str, fragment: str) -> bool:
    if component == fragment or component == fragment + "s":
        return True
    # Short fragments such as "ui" or "db" only match whole components
    return len(fragment) >= 5 and fragment in component


def detect_layers(files: Iterable[ModifiedFile]) -> List[str]:
    """Architectural layers touched, in first-seen order."""
    layers: List[str] = []

    def add(layer: str):
        if layer not in layers:
            layers.append(layer)

    for file in files:
        for component in _directories(file.path):
            for layer, fragments in LAYER_FRAGMENTS:
                if any(_component_matches(component, fragment) for fragment in fragments):
                    add(layer)
        ext_layer = LAYER_EXTENSIONS.get(file.extension)
        if ext_layer:
            add(ext_layer)
    return layers


def file_summary(paths: Tuple[str, ...], limit: int = 3) -> str:
    names = [path.rsplit('/', 1)[-1] for path in paths[:limit]]
    summary = ", ".join(names)
    if len(paths) > limit:
        summary += f" and {len(paths) - limit} more"
    return summary


def _new_file_patterns(diff_info: DiffInfo) -> List[Pattern]:
    new_files = tuple(f.path for f in diff_info.files
                      if f.removed_lines == 0 and f.added_lines > NEW_FILE_MIN_LINES)
    if not new_files:
        return []
    impact = min(0.9, 0.5 + 0.08 * (len(new_files) - 1))
    return [Pattern(
        PatternType.NEW_FILE,
        f"{len(new_files)} new file(s) added: {file_summary(new_files)}",
        impact,
        new_files,
    )]


def _cross_layer_patterns(diff_info: DiffInfo) -> List[Pattern]:
    layers = detect_layers(diff_info.files)
    if len(layers) < 2:
        return []
    return [Pattern(
        PatternType.CROSS_LAYER_CHANGE,
        f"changes span {len(layers)} layers: {', '.join(layers)}",
        0.8 + 0.1 * len(layers),
        diff_info.paths,
    )]


def _mass_modification_patterns(diff_info: DiffInfo) -> List[Pattern]:
    count = len(diff_info.files)
    if count < MASS_MODIFICATION_FILES:
        return []
    return [Pattern(
        PatternType.MASS_MODIFICATION,
        f"{count} files modified together",
        min(1.0, 0.5 + 0.1 * count),
        diff_info.paths,
    )]


def _per_file_patterns(diff_info: DiffInfo) -> List[Pattern]:
    patterns = []
    for file in diff_info.files:
        added = [_strip_modifiers(line) for line in file.added_content]
        added_text = "\n".join(added)
        functions = sum(1 for line in added if line.startswith(FUNCTION_PREFIXES))
        types = sum(1 for line in added if line.startswith(TYPE_PREFIXES))

        if functions >= 3 or types >= 1:
            patterns.append(Pattern(
                PatternType.FEATURE_ADDITION,
                f"new functionality in {file.path} ({functions} functions, {types} types)",
                0.8,
                (file.path,),
            ))

        if any(marker in added_text for marker in ROUTE_MARKERS):
            patterns.append(Pattern(
                PatternType.INTERFACE_EVOLUTION,
                f"interface endpoints changed in {file.path}",
                0.75,
                (file.path,),
            ))

        if file.removed_lines > 0 and any(k in file.diff_content.lower() for k in BUG_KEYWORDS):
            patterns.append(Pattern(
                PatternType.BUG_FIX,
                f"bug fix indicators in {file.path}",
                0.6,
                (file.path,),
            ))

        if any(keyword in added_text for keyword in PERFORMANCE_KEYWORDS):
            patterns.append(Pattern(
                PatternType.PERFORMANCE_TUNING,
                f"performance related changes in {file.path}",
                0.7,
                (file.path,),
            ))
    return patterns


def _path_rule(
    pattern_type: PatternType,
    impact: float,
    label: str,
    predicate: Callable[[ModifiedFile], bool],
) -> Callable[[DiffInfo], List[Pattern]]:
    """Build a rule that fires when any file satisfies predicate."""
    def rule(diff_info: DiffInfo) -> List[Pattern]:
        matched = tuple(f.path for f in diff_info.files if predicate(f))
        if not matched:
            return []
        return [Pattern(pattern_type, f"{label}: {file_summary(matched)}", impact, matched)]
    return rule


def _is_config_file(file: ModifiedFile) -> bool:
    name = _basename(file.path)
    return file.extension in CONFIG_EXTENSIONS or name.startswith(".env")


def _is_dependency_manifest(file: ModifiedFile) -> bool:
    name = _basename(file.path)
    return name in DEPENDENCY_MANIFESTS or (name.startswith("requirements") and name.endswith(".txt"))


def _is_ci_file(file: ModifiedFile) -> bool:
    path = file.path.lower()
    return any(fragment in path for fragment in CI_FRAGMENTS)


def _test_evolution_patterns(diff_info: DiffInfo) -> List[Pattern]:
    tests = tuple(
        f.path for f in diff_info.files
        if f.file_type == FileType.TEST and not f.is_new
    )
    if not tests or len(tests) / len(diff_info.files) <= TEST_SHARE_THRESHOLD:
        return []
    return [Pattern(
        PatternType.TEST_EVOLUTION,
        f"test suite evolved: {file_summary(tests)}",
        0.5,
        tests,
    )]


def _refactoring_patterns(diff_info: DiffInfo) -> List[Pattern]:
    added = diff_info.total_added
    removed = diff_info.total_removed
    if added <= REFACTOR_MIN_ADDED:
        return []
    ratio = removed / added
    low, high = REFACTOR_RATIO_BAND
    if not low < ratio < high:
        return []
    touched = tuple(f.path for f in diff_info.files if f.removed_lines > 0) or diff_info.paths
    return [Pattern(
        PatternType.REFACTORING,
        f"balanced restructuring (+{added} -{removed})",
        0.7,
        touched,
    )]


def _style_patterns(diff_info: DiffInfo) -> List[Pattern]:
    count = len(diff_info.files)
    if count <= STYLE_MIN_FILES:
        return []
    if diff_info.total_changes / count >= STYLE_MAX_AVG_CHANGES:
        return []
    return [Pattern(
        PatternType.STYLE_NORMALIZATION,
        f"small consistent edits across {count} files",
        0.3,
        diff_info.paths,
    )]


def _is_deprecation(file: ModifiedFile) -> bool:
    if any(marker in file.diff_content.lower() for marker in DEPRECATION_MARKERS):
        return True
    if file.removed_lines <= DEPRECATION_MIN_REMOVED:
        return False
    return any(
        line.strip().lower().startswith(PUBLIC_SYMBOL_MARKERS)
        for line in file.removed_content
    )


def _is_security_fix(file: ModifiedFile) -> bool:
    if file.file_type in (FileType.TEST, FileType.DOCUMENTATION):
        return False
    content = file.diff_content.lower()
    if any(keyword in content for keyword in SECURITY_STRONG_KEYWORDS):
        return True
    # Auth keywords only count when existing code changed
    if file.removed_lines == 0:
        return False
    on_security_path = any(
        component in SECURITY_PATH_COMPONENTS for component in _directories(file.path)
    )
    return on_security_path and any(keyword in content for keyword in SECURITY_AUTH_KEYWORDS)


PATTERN_RULES: Tuple[Callable[[DiffInfo], List[Pattern]], ...] = (
    _new_file_patterns,
    _cross_layer_patterns,
    _mass_modification_patterns,
    _per_file_patterns,
    _path_rule(PatternType.CONFIGURATION_DRIFT, 0.7, "configuration changed", _is_config_file),
    _path_rule(PatternType.DEPENDENCY_UPDATE, 0.6, "dependency manifests changed", _is_dependency_manifest),
    _test_evolution_patterns,
    _refactoring_patterns,
    _path_rule(PatternType.DOCUMENTATION_UPDATE, 0.4, "documentation updated",
               lambda f: f.file_type == FileType.DOCUMENTATION),
    _style_patterns,
    _path_rule(PatternType.CI_CHANGE, 0.5, "CI pipeline changed", _is_ci_file),
    _path_rule(PatternType.DEPRECATION, 0.9, "deprecation signals", _is_deprecation),
    _path_rule(PatternType.SECURITY_FIX, 0.95, "security sensitive changes", _is_security_fix),
)


def detect_universal_patterns(diff_info: DiffInfo) -> Tuple[Pattern, ...]:
    """Run every rule in order and collect the patterns they emit."""
    if not diff_info.files:
        return ()
    patterns: List[Pattern] = []
    for rule in PATTERN_RULES:
        patterns.extend(rule(diff_info))
    return tuple(patterns)
