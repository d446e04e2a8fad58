"""
Reduce detected patterns to a single commit judgement.
"""

import re
from collections import Counter
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from loguru import logger

from commit_wizard.git_ops.models import DiffInfo, FileType
from commit_wizard.intelligence.patterns import (
    Pattern,
    PatternType,
    file_summary,
    detect_universal_patterns,
)


COMMIT_TYPES = (
    "feat", "fix", "docs", "style", "refactor", "perf",
    "test", "build", "ci", "chore", "revert",
)

MAX_COMPLEXITY = 5.0
BODY_COMPLEXITY_THRESHOLD = 2.5
MAX_BULLETS = 5

# pattern type -> (commit type, weight)
TYPE_WEIGHTS: Dict[PatternType, Tuple[str, float]] = {
    PatternType.SECURITY_FIX: ("fix", 1.5),
    PatternType.BUG_FIX: ("fix", 1.0),
    PatternType.DEPRECATION: ("feat", 1.2),
    PatternType.FEATURE_ADDITION: ("feat", 1.0),
    PatternType.INTERFACE_EVOLUTION: ("feat", 1.0),
    PatternType.REFACTORING: ("refactor", 1.0),
    PatternType.DOCUMENTATION_UPDATE: ("docs", 1.0),
    PatternType.TEST_EVOLUTION: ("test", 1.0),
    PatternType.PERFORMANCE_TUNING: ("perf", 1.0),
    PatternType.CI_CHANGE: ("ci", 1.0),
    PatternType.DEPENDENCY_UPDATE: ("build", 1.0),
    PatternType.CONFIGURATION_DRIFT: ("chore", 1.0),
    PatternType.STYLE_NORMALIZATION: ("style", 1.0),
}

# New files feed the type matching what they are
NEW_FILE_TYPES = {
    FileType.DOCUMENTATION: "docs",
    FileType.TEST: "test",
}

SUBSYSTEM_KEYWORDS = (
    ("auth", ("auth", "authentication", "login", "oauth")),
    ("api", ("api", "endpoint", "endpoints", "routes")),
    ("ui", ("ui", "component", "components", "views")),
    ("database", ("database", "db", "model", "models", "migrations", "schema")),
    ("test", ("test", "tests", "spec", "specs")),
)
GENERIC_DIRECTORIES = frozenset({"src", "lib", "app", "test", "tests", "spec", "specs"})

BULLET_TEMPLATES: Dict[PatternType, Callable[[Pattern], str]] = {
    PatternType.NEW_FILE: lambda p: f"Introduce {file_summary(p.files_affected)} for enhanced functionality",
    PatternType.CROSS_LAYER_CHANGE: lambda p: f"Coordinate {p.description}",
    PatternType.MASS_MODIFICATION: lambda p: f"Apply consistent updates across {len(p.files_affected)} files",
    PatternType.FEATURE_ADDITION: lambda p: f"Add new functionality in {file_summary(p.files_affected)}",
    PatternType.INTERFACE_EVOLUTION: lambda p: f"Extend interface endpoints in {file_summary(p.files_affected)}",
    PatternType.BUG_FIX: lambda p: f"Correct faulty behaviour in {file_summary(p.files_affected)}",
    PatternType.PERFORMANCE_TUNING: lambda p: f"Improve performance of {file_summary(p.files_affected)}",
    PatternType.CONFIGURATION_DRIFT: lambda p: f"Update configuration in {file_summary(p.files_affected)}",
    PatternType.DEPENDENCY_UPDATE: lambda p: f"Update dependencies in {file_summary(p.files_affected)}",
    PatternType.TEST_EVOLUTION: lambda p: f"Extend test coverage in {file_summary(p.files_affected)}",
    PatternType.REFACTORING: lambda p: "Restructure existing code without changing behaviour",
    PatternType.DOCUMENTATION_UPDATE: lambda p: f"Update documentation in {file_summary(p.files_affected)}",
    PatternType.STYLE_NORMALIZATION: lambda p: f"Normalize formatting across {len(p.files_affected)} files",
    PatternType.CI_CHANGE: lambda p: f"Adjust CI pipeline in {file_summary(p.files_affected)}",
    PatternType.DEPRECATION: lambda p: f"Deprecate outdated interfaces in {file_summary(p.files_affected)}",
    PatternType.SECURITY_FIX: lambda p: f"Harden security sensitive code in {file_summary(p.files_affected)}",
}

_TOKEN_SPLIT = re.compile(r"[/._\-]+")


@dataclass(frozen=True)
class CommitIntelligence:
    """Aggregate judgement for one diff."""

    complexity_score: float
    requires_body: bool
    detected_patterns: Tuple[Pattern, ...]
    suggested_bullets: Tuple[str, ...]
    commit_type_hint: str
    scope_hint: Optional[str]

    @property
    def pattern_types(self) -> Tuple[PatternType, ...]:
        return tuple(dict.fromkeys(p.pattern_type for p in self.detected_patterns))


def calculate_complexity(patterns: Tuple[Pattern, ...]) -> float:
    """Pattern count plus summed impact, halved and saturated at 5."""
    raw = (0.3 * len(patterns) + sum(p.impact for p in patterns)) / 2
    return min(MAX_COMPLEXITY, max(0.0, raw))


def determine_body_requirement(
    patterns: Tuple[Pattern, ...],
    complexity: float,
    diff_info: DiffInfo,
) -> bool:
    """True when any one of the independent body triggers fires."""
    types = [p.pattern_type for p in patterns]
    distinct = set(types)
    high_impact = sum(1 for p in patterns if p.impact >= 0.7)
    feature_like = sum(
        1 for t in types if t in (PatternType.FEATURE_ADDITION, PatternType.NEW_FILE)
    )

    triggers = (
        complexity >= BODY_COMPLEXITY_THRESHOLD,
        high_impact >= 2,
        PatternType.CROSS_LAYER_CHANGE in distinct,
        feature_like >= 2,
        PatternType.ARCHITECTURAL_SHIFT in distinct or PatternType.INTERFACE_EVOLUTION in distinct,
        PatternType.SECURITY_FIX in distinct or PatternType.DEPRECATION in distinct,
        len(distinct) >= 3 and complexity >= 1.5,
        len(diff_info.files) >= 5,
        diff_info.total_changes > 100,
    )
    return any(triggers)


def generate_bullets(patterns: Tuple[Pattern, ...]) -> Tuple[str, ...]:
    """One bullet per pattern type among the highest impact patterns."""
    ranked = sorted(patterns, key=lambda p: p.impact, reverse=True)
    bullets: List[str] = []
    seen = set()
    for pattern in ranked:
        if len(bullets) >= MAX_BULLETS:
            break
        if pattern.pattern_type in seen:
            continue
        seen.add(pattern.pattern_type)
        template = BULLET_TEMPLATES.get(pattern.pattern_type)
        text = template(pattern) if template else pattern.description
        bullets.append(text[:1].upper() + text[1:])
    return tuple(bullets)


def suggest_commit_type(
    patterns: Tuple[Pattern, ...],
    diff_info: DiffInfo,
    fallback: str = "feat",
) -> str:
    scores: Dict[str, float] = {}

    def add(commit_type: str, amount: float):
        scores[commit_type] = scores.get(commit_type, 0.0) + amount

    for pattern in patterns:
        if pattern.pattern_type == PatternType.NEW_FILE:
            share = pattern.impact / len(pattern.files_affected)
            for path in pattern.files_affected:
                file_type = diff_info.get(path).file_type
                add(NEW_FILE_TYPES.get(file_type, "feat"), share)
            continue
        mapping = TYPE_WEIGHTS.get(pattern.pattern_type)
        if mapping:
            commit_type, weight = mapping
            add(commit_type, pattern.impact * weight)

    best_type = None
    best_score = 0.0
    for commit_type, score in scores.items():
        if score > best_score:
            best_type, best_score = commit_type, score

    if best_type is None:
        logger.debug(f"No pattern maps to a commit type, using {fallback}")
        return fallback
    return best_type


def _path_tokens(path: str) -> List[str]:
    return [token for token in _TOKEN_SPLIT.split(path.lower()) if token]


def normalize_scope(scope: str) -> str:
    return scope.strip().lower().replace("_", "-").replace(" ", "-")


def detect_scope(diff_info: DiffInfo) -> Optional[str]:
    """Dominant subsystem, or the majority directory, or None."""
    if not diff_info.files:
        return None

    tokens = [set(_path_tokens(path)) for path in diff_info.paths]
    for scope, keywords in SUBSYSTEM_KEYWORDS:
        if any(keyword in file_tokens for file_tokens in tokens for keyword in keywords):
            return scope

    counts: Counter = Counter()
    for path in diff_info.paths:
        for component in path.split('/')[:-1]:
            if component and component.lower() not in GENERIC_DIRECTORIES:
                counts[component] += 1
                break

    if not counts:
        return None
    component, count = counts.most_common(1)[0]
    if count * 2 <= len(diff_info.files):
        return None
    return normalize_scope(component)


def analyse_commit_intelligence(diff_info: DiffInfo, fallback_type: str = "feat") -> CommitIntelligence:
    """Score a diff and suggest type, scope and body bullets."""
    patterns = detect_universal_patterns(diff_info)
    complexity = calculate_complexity(patterns)
    requires_body = determine_body_requirement(patterns, complexity, diff_info)

    intelligence = CommitIntelligence(
        complexity_score=complexity,
        requires_body=requires_body,
        detected_patterns=patterns,
        suggested_bullets=generate_bullets(patterns) if requires_body else (),
        commit_type_hint=suggest_commit_type(patterns, diff_info, fallback_type),
        scope_hint=detect_scope(diff_info),
    )
    logger.debug(
        f"Intelligence: complexity={complexity:.2f} body={requires_body} "
        f"type={intelligence.commit_type_hint} scope={intelligence.scope_hint} "
        f"patterns={[p.pattern_type.value for p in patterns]}"
    )
    return intelligence
