"""
Tests for commit intelligence: complexity, body requirement, type and scope.

Run with:
    pytest tests/test_analyser.py -v
"""

import pytest

from commit_wizard.git_ops.models import ChangeHint, FileType
from commit_wizard.intelligence.analyser import (
    analyse_commit_intelligence,
    calculate_complexity,
    detect_scope,
    determine_body_requirement,
    generate_bullets,
    normalize_scope,
    suggest_commit_type,
)
from commit_wizard.intelligence.patterns import Pattern, PatternType

from conftest import make_diff, make_file


def pattern(pattern_type, impact=0.5, files=("a.py",)):
    return Pattern(pattern_type, pattern_type.value, impact, files)


def session_source():
    lines = [
        "use std::collections::HashMap;",
        "",
        "pub struct Session {",
        "    id: u64,",
        "    user: String,",
        "    token: String,",
        "    values: HashMap<String, String>,",
        "}",
        "",
        "impl Session {",
        "    pub fn new(id: u64, user: &str) -> Self {",
        "        Session { id, user: user.to_string(), token: String::new(), values: HashMap::new() }",
        "    }",
        "    pub fn id(&self) -> u64 {",
        "        self.id",
        "    }",
        "    pub fn token(&self) -> &str {",
        "        &self.token",
        "    }",
        "    pub fn get(&self, key: &str) -> Option<&String> {",
        "        self.values.get(key)",
        "    }",
        "    pub fn set(&mut self, key: &str, value: &str) {",
        "        self.values.insert(key.to_string(), value.to_string());",
        "    }",
        "}",
    ]
    lines.extend(f"// note {i}" for i in range(80 - len(lines)))
    return lines


def cross_layer_diff():
    paths = [
        "frontend/src/App.tsx",
        "frontend/src/Button.tsx",
        "frontend/src/Nav.tsx",
        "backend/cmd/main.go",
        "backend/internal/handler.go",
        "backend/internal/store.go",
    ]
    removed_counts = [9, 9, 9, 9, 9, 10]
    files = []
    for index, (path, removed) in enumerate(zip(paths, removed_counts)):
        added = [f"  label_{index}_{i} := \"new {i}\"" for i in range(10)]
        old = [f"  label_{index}_{i} := \"old {i}\"" for i in range(removed)]
        files.append(make_file(path, added, old))
    return make_diff(*files)


# ---------------------------------------------------------------------------
# Concrete scenarios
# ---------------------------------------------------------------------------

class TestScenarios:

    def test_readme_only_is_docs(self):
        added = ["# Commit Wizard", ""] + [f"Line {i} of the guide." for i in range(28)]
        readme = make_file("README.md", added)
        assert readme.file_type == FileType.DOCUMENTATION
        assert ChangeHint.DOCUMENTATION in readme.change_hints

        intelligence = analyse_commit_intelligence(make_diff(readme))

        assert PatternType.DOCUMENTATION_UPDATE in intelligence.pattern_types
        assert intelligence.commit_type_hint == "docs"
        assert intelligence.scope_hint is None

    def test_new_rust_module_is_a_scoped_feature(self):
        session = make_file("src/auth/session.rs", session_source())
        assert session.added_lines == 80

        intelligence = analyse_commit_intelligence(make_diff(session))

        assert set(intelligence.pattern_types) == {PatternType.NEW_FILE, PatternType.FEATURE_ADDITION}
        assert intelligence.commit_type_hint == "feat"
        assert intelligence.scope_hint == "auth"
        assert intelligence.requires_body
        assert intelligence.suggested_bullets

    def test_balanced_cross_layer_change_is_a_refactor(self):
        diff_info = cross_layer_diff()
        assert (diff_info.total_added, diff_info.total_removed) == (60, 55)

        intelligence = analyse_commit_intelligence(diff_info)

        assert PatternType.CROSS_LAYER_CHANGE in intelligence.pattern_types
        assert PatternType.REFACTORING in intelligence.pattern_types
        assert intelligence.requires_body
        assert intelligence.commit_type_hint == "refactor"
        assert intelligence.scope_hint is None


# ---------------------------------------------------------------------------
# Complexity and body requirement
# ---------------------------------------------------------------------------

class TestComplexity:

    def test_empty(self):
        assert calculate_complexity(()) == 0.0

    def test_formula(self):
        patterns = (pattern(PatternType.CI_CHANGE, 0.5), pattern(PatternType.BUG_FIX, 0.6))
        assert calculate_complexity(patterns) == pytest.approx((0.6 + 1.1) / 2)

    def test_saturates_at_five(self):
        patterns = tuple(pattern(PatternType.SECURITY_FIX, 1.0) for _ in range(20))
        assert calculate_complexity(patterns) == 5.0

    def test_monotonic_in_added_patterns(self):
        patterns = ()
        previous = calculate_complexity(patterns)
        for impact in (0.0, 0.3, 0.9, 0.1, 1.0, 0.5):
            patterns = patterns + (pattern(PatternType.CI_CHANGE, impact),)
            current = calculate_complexity(patterns)
            assert current >= previous
            previous = current


class TestBodyRequirement:

    @pytest.fixture
    def small_diff(self):
        return make_diff(make_file("docs/a.md", ["text"]))

    def test_threshold_at_two_point_five(self, small_diff):
        patterns = (pattern(PatternType.DOCUMENTATION_UPDATE, 0.4),)
        assert determine_body_requirement(patterns, 2.5, small_diff)
        assert not determine_body_requirement(patterns, 2.49, small_diff)

    @pytest.mark.parametrize("patterns", [
        (pattern(PatternType.BUG_FIX, 0.7), pattern(PatternType.CI_CHANGE, 0.8)),
        (pattern(PatternType.CROSS_LAYER_CHANGE, 0.2),),
        (pattern(PatternType.FEATURE_ADDITION, 0.1), pattern(PatternType.NEW_FILE, 0.1)),
        (pattern(PatternType.INTERFACE_EVOLUTION, 0.1),),
        (pattern(PatternType.SECURITY_FIX, 0.1),),
        (pattern(PatternType.DEPRECATION, 0.1),),
    ])
    def test_pattern_triggers(self, small_diff, patterns):
        assert determine_body_requirement(patterns, 0.5, small_diff)

    def test_many_files(self):
        diff = make_diff(*[make_file(f"f{i}.py", ["x"]) for i in range(5)])
        assert determine_body_requirement((), 0.0, diff)

    def test_many_lines(self):
        diff = make_diff(make_file("a.py", [f"x{i}" for i in range(101)]))
        assert determine_body_requirement((), 0.0, diff)

    def test_quiet_change(self, small_diff):
        assert not determine_body_requirement((pattern(PatternType.CI_CHANGE, 0.5),), 0.4, small_diff)


# ---------------------------------------------------------------------------
# Bullets, type and scope
# ---------------------------------------------------------------------------

class TestBullets:

    def test_one_bullet_per_type_ordered_by_impact(self):
        patterns = (
            pattern(PatternType.CI_CHANGE, 0.5, (".github/workflows/ci.yml",)),
            pattern(PatternType.BUG_FIX, 0.6, ("src/a.py",)),
            pattern(PatternType.BUG_FIX, 0.6, ("src/b.py",)),
        )
        bullets = generate_bullets(patterns)
        assert bullets == (
            "Correct faulty behaviour in a.py",
            "Adjust CI pipeline in ci.yml",
        )

    def test_at_most_five(self):
        types = [PatternType.CI_CHANGE, PatternType.BUG_FIX, PatternType.DEPRECATION,
                 PatternType.STYLE_NORMALIZATION, PatternType.TEST_EVOLUTION,
                 PatternType.DOCUMENTATION_UPDATE, PatternType.REFACTORING]
        bullets = generate_bullets(tuple(pattern(t) for t in types))
        assert len(bullets) == 5
        assert all(b[0].isupper() for b in bullets)

    def test_description_fallback(self):
        bullets = generate_bullets((Pattern(PatternType.ARCHITECTURAL_SHIFT, "moved modules", 0.5, ()),))
        assert bullets == ("Moved modules",)


class TestCommitType:

    def test_security_outweighs_feature(self):
        diff = make_diff(make_file("a.py", ["x"], ["y"]))
        patterns = (pattern(PatternType.FEATURE_ADDITION, 0.8), pattern(PatternType.SECURITY_FIX, 0.95))
        assert suggest_commit_type(patterns, diff) == "fix"

    def test_tie_goes_to_first_type_seen(self):
        diff = make_diff(make_file("a.py", ["x"], ["y"]))
        patterns = (pattern(PatternType.CI_CHANGE, 0.5), pattern(PatternType.TEST_EVOLUTION, 0.5))
        assert suggest_commit_type(patterns, diff) == "ci"

    def test_new_test_file_counts_as_test(self):
        diff = make_diff(make_file("tests/test_new.py", [f"assert {i}" for i in range(12)]))
        patterns = (Pattern(PatternType.NEW_FILE, "new", 0.5, ("tests/test_new.py",)),)
        assert suggest_commit_type(patterns, diff) == "test"

    @pytest.mark.parametrize("fallback", ["feat", "chore"])
    def test_fallback_when_nothing_maps(self, fallback):
        diff = make_diff(make_file("a.py", ["x"], ["y"]))
        patterns = (pattern(PatternType.MASS_MODIFICATION, 0.9),)
        assert suggest_commit_type(patterns, diff, fallback) == fallback


class TestScope:

    @pytest.mark.parametrize("paths, expected", [
        (["src/auth/login.py"], "auth"),
        (["server/api/users.py", "server/api/teams.py"], "api"),
        (["web/components/Nav.tsx"], "ui"),
        (["src/parser/lexer.rs", "src/parser/tokens.rs", "README.md"], "parser"),
        (["src/parser/lexer.rs", "src/codegen/emit.rs"], None),
        (["main.go"], None),
    ])
    def test_detect_scope(self, paths, expected):
        diff = make_diff(*[make_file(path, ["x"], ["y"]) for path in paths])
        assert detect_scope(diff) == expected

    def test_normalize_scope(self):
        assert normalize_scope(" User_Profile page ") == "user-profile-page"

    def test_directory_scope_is_normalized(self):
        diff = make_diff(make_file("Http_Client/request.py", ["x"], ["y"]))
        assert detect_scope(diff) == "http-client"
