"""
Tests for prompt construction and diff budgeting.

Run with:
    pytest tests/test_prompts.py -v
"""

import pytest

from commit_wizard.intelligence.analyser import CommitIntelligence, analyse_commit_intelligence
from commit_wizard.intelligence.patterns import PatternType
from commit_wizard.utils.prompts import (
    SYSTEM_PROMPTS,
    PromptBuilder,
    construct_intelligent_prompt,
    extract_meaningful_diff_lines,
    file_priority,
    format_pattern_type,
    get_system_prompt,
    infer_dominant_language,
    is_boring_file,
)

from conftest import make_diff, make_file


def intelligence(complexity=1.0, requires_body=False, bullets=(), commit_type="feat", scope=None):
    return CommitIntelligence(complexity, requires_body, (), bullets, commit_type, scope)


def body_lines(prompt):
    return prompt.split("DIFF CONTENT:\n", 1)[1].split("\n\nEXAMPLES:", 1)[0].splitlines()


class TestHelpers:

    @pytest.mark.parametrize("pattern_type, expected", [
        (PatternType.NEW_FILE, "new file pattern"),
        (PatternType.CI_CHANGE, "ci change"),
        (PatternType.SECURITY_FIX, "security fix"),
    ])
    def test_format_pattern_type(self, pattern_type, expected):
        assert format_pattern_type(pattern_type) == expected

    @pytest.mark.parametrize("path", [
        "package-lock.json",
        "web/yarn.lock",
        "node_modules/left-pad/index.js",
        "static/app.min.js",
        "assets/logo.png",
        "dist/bundle.js",
    ])
    def test_boring_files(self, path):
        assert is_boring_file(path)

    @pytest.mark.parametrize("path", ["src/app.py", "docs/build.md", "Cargo.toml"])
    def test_interesting_files(self, path):
        assert not is_boring_file(path)

    @pytest.mark.parametrize("path, priority", [
        ("src/parser.py", 10),
        ("src/main.rs", 9),
        ("Cargo.toml", 7),
        ("config/app.yaml", 7),
        ("tests/test_parser.py", 5),
        ("README.md", 3),
        ("Procfile", 1),
    ])
    def test_file_priority(self, path, priority):
        assert file_priority(make_file(path, ["x"])) == priority

    def test_language_single(self):
        files = [make_file("a.rs", ["x"]), make_file("b.rs", ["x"]), make_file("README.md", ["x"])]
        assert infer_dominant_language(files[:2]) == "Rust"

    def test_language_mixed(self):
        files = [make_file("a.tsx", ["x"]), make_file("b.go", ["x"]), make_file("c.go", ["x"])]
        assert infer_dominant_language(files) == "Mixed (Go, TypeScript)"

    def test_language_unknown(self):
        assert infer_dominant_language([make_file("Procfile", ["x"])]) == "Unknown"

    def test_system_prompt_by_complexity(self):
        assert get_system_prompt(intelligence(1.0)) == SYSTEM_PROMPTS["simple"]
        assert get_system_prompt(intelligence(2.0)) == SYSTEM_PROMPTS["standard"]
        assert get_system_prompt(intelligence(2.0, requires_body=True)) == SYSTEM_PROMPTS["detailed"]


class TestMeaningfulLines:

    def test_prefers_important_lines_in_patch_order(self):
        diff = "\n".join([
            "diff --git a/x.py b/x.py",
            "+++ b/x.py",
            "@@ -1,3 +1,4 @@",
            " context",
            "+x = 1",
            "+def run():",
            "+    return x",
        ])
        assert extract_meaningful_diff_lines(diff, 2) == ["@@ -1,3 +1,4 @@", "+def run():"]

    def test_fills_with_changes_then_context(self):
        diff = " ctx\n+a = 1\n-b = 2"
        assert extract_meaningful_diff_lines(diff, 3) == [" ctx", "+a = 1", "-b = 2"]

    def test_zero_budget(self):
        assert extract_meaningful_diff_lines("+def x():", 0) == []


class TestPromptBuilder:

    @pytest.fixture
    def diff_info(self):
        return make_diff(
            make_file("src/parser.py", ["def parse(text):", "    return text.split()"], ["pass"]),
            make_file("README.md", ["# Parser", "Usage notes"]),
        )

    def test_sections_in_order(self, diff_info):
        prompt = PromptBuilder().construct_intelligent_prompt(
            diff_info, intelligence(bullets=("Add parser",), requires_body=True)
        )
        headers = [
            "COMMIT ANALYSIS", "LANGUAGE CONTEXT:", "DETECTED PATTERNS:", "CHANGE CONTEXT:",
            "RECOMMENDATION:", "ALLOWED TYPES:", "SUGGESTED BULLETS:", "DIFF SUMMARY:",
            "DIFF CONTENT:", "EXAMPLES:", "INSTRUCTIONS:",
        ]
        positions = [prompt.index(header) for header in headers]
        assert positions == sorted(positions)

    def test_scope_guidance(self, diff_info):
        scoped = construct_intelligent_prompt(diff_info, intelligence(scope="parser"))
        unscoped = construct_intelligent_prompt(diff_info, intelligence())
        assert "scope: parser" in scoped
        assert "scope: none (omit the parentheses)" in unscoped
        assert "SUGGESTED BULLETS" not in unscoped

    def test_deterministic(self, diff_info):
        judged = analyse_commit_intelligence(diff_info)
        assert construct_intelligent_prompt(diff_info, judged) == construct_intelligent_prompt(diff_info, judged)

    def test_source_before_docs(self, diff_info):
        lines = body_lines(construct_intelligent_prompt(diff_info, intelligence()))
        headers = [line for line in lines if line.startswith("--- ")]
        assert headers[0].startswith("--- src/parser.py")
        assert headers[1].startswith("--- README.md")

    def test_boring_files_excluded(self):
        diff_info = make_diff(
            make_file("src/app.js", ["x = 1"], ["x = 0"]),
            make_file("package-lock.json", ['"lockfileVersion": 3'], ['"lockfileVersion": 2']),
        )
        content = "\n".join(body_lines(construct_intelligent_prompt(diff_info, intelligence())))
        assert "package-lock.json" not in content
        assert "lockfileVersion" not in content
        assert "... 1 more file(s) not shown" in content

    @pytest.mark.parametrize("budget", [5, 20, 60, 200])
    def test_respects_line_budget(self, budget):
        files = [
            make_file(f"src/mod{i}.py", [f"value_{i}_{j} = {j}" for j in range(80)], ["old"])
            for i in range(8)
        ]
        builder = PromptBuilder(max_total_diff_lines=budget)
        rendered = builder.render_diff_content(make_diff(*files))
        assert len(rendered.splitlines()) <= budget

    def test_respects_file_ceiling(self):
        files = [make_file(f"src/mod{i}.py", ["x = 1"], ["x = 0"]) for i in range(5)]
        rendered = PromptBuilder(max_diff_files=2).render_diff_content(make_diff(*files))
        assert sum(1 for line in rendered.splitlines() if line.startswith("--- ")) == 2
        assert rendered.endswith("... 3 more file(s) not shown")

    def test_allowance_never_exceeds_remaining(self):
        builder = PromptBuilder()
        big = make_file("src/big.py", [f"x{i}" for i in range(300)])
        assert builder.lines_for_file(big, 10, 7) <= 7
        assert builder.lines_for_file(big, 10, 0) == 0
        assert builder.lines_for_file(big, 10, 3000) == 50
