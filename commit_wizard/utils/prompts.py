"""
Prompt construction for commit message generation.

The prompt carries the intelligence judgement plus a prioritized, line
budgeted slice of the raw diff. Rendering is deterministic.
"""

import re
from collections import Counter
from typing import List, Optional

from loguru import logger

from commit_wizard.git_ops.models import DiffInfo, FileType, ModifiedFile
from commit_wizard.intelligence.analyser import COMMIT_TYPES, CommitIntelligence
from commit_wizard.intelligence.patterns import PatternType


BORING_NAMES = (
    "package-lock.json", "yarn.lock", "pnpm-lock.yaml", "cargo.lock", "poetry.lock",
    "pipfile.lock", "gemfile.lock", "composer.lock", "go.sum", "npm-shrinkwrap.json",
)
BORING_DIRECTORIES = (
    "node_modules/", "dist/", "build/", "target/", "vendor/", "__pycache__/",
    ".next/", "out/", "coverage/", ".venv/",
)
BORING_SUFFIXES = (
    ".min.js", ".min.css", ".map", ".pb.go", "_pb2.py", ".pyc", ".lock",
    ".png", ".jpg", ".jpeg", ".gif", ".bmp", ".ico", ".svg", ".webp",
    ".pdf", ".zip", ".tar", ".gz", ".tgz", ".7z", ".jar", ".war",
    ".woff", ".woff2", ".ttf", ".eot", ".otf",
    ".mp3", ".mp4", ".wav", ".mov", ".avi",
    ".exe", ".dll", ".so", ".dylib", ".a", ".o", ".class", ".wasm",
)

ENTRY_POINT_STEMS = (
    "main", "index", "app", "lib", "mod", "__init__", "__main__", "server", "cli", "program",
)

LANGUAGES = {
    "py": "Python", "rs": "Rust", "go": "Go", "js": "JavaScript", "jsx": "JavaScript",
    "mjs": "JavaScript", "ts": "TypeScript", "tsx": "TypeScript", "java": "Java",
    "kt": "Kotlin", "swift": "Swift", "rb": "Ruby", "php": "PHP", "cs": "C#",
    "c": "C", "h": "C", "cpp": "C++", "cc": "C++", "hpp": "C++", "scala": "Scala",
    "dart": "Dart", "lua": "Lua", "ex": "Elixir", "exs": "Elixir", "hs": "Haskell",
    "sh": "Shell", "bash": "Shell", "vue": "Vue", "svelte": "Svelte", "sql": "SQL",
    "css": "CSS", "scss": "CSS", "html": "HTML", "md": "Markdown", "zig": "Zig",
}
MIXED_SHARE = 0.2

IMPORTANT_PREFIXES = (
    "fn ", "def ", "class ", "struct ", "enum ", "interface ", "trait ", "impl ",
    "function ", "func ", "const ", "static ", "type ", "module ", "package ",
    "import ", "from ", "use ", "export ", "pub ", "public ", "private ", "protected ",
    "async ", "#include", "#define", "@",
    "//", "#", "/*", "*", '"""', "'''", "--",
)

SYSTEM_PROMPTS = {
    "simple": (
        "You write conventional commit messages. Reply with a single line: "
        "type(scope): description. No explanations, no markdown."
    ),
    "standard": (
        "You are a senior engineer writing conventional commit messages from diffs. "
        "Reply with the commit message only, following the requested type and scope."
    ),
    "detailed": (
        "You are a senior engineer writing conventional commit messages for substantial changes. "
        "Reply with a subject line, a blank line, then bullet points starting with '- ' "
        "and a capitalized word. Output the commit message only."
    ),
}

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def format_pattern_type(pattern_type: PatternType) -> str:
    """'NewFilePattern' -> 'new file pattern'."""
    return _CAMEL_BOUNDARY.sub(" ", pattern_type.value).lower()


def is_boring_file(path: str) -> bool:
    """Generated, vendored or binary paths that never enter the prompt."""
    lowered = path.lower()
    name = lowered.rsplit('/', 1)[-1]
    if name in BORING_NAMES:
        return True
    if lowered.endswith(BORING_SUFFIXES):
        return True
    return any(lowered.startswith(d) or f"/{d}" in lowered for d in BORING_DIRECTORIES)


def file_priority(file: ModifiedFile) -> int:
    """Higher ranks first: core source, entry points, manifests, tests, docs, rest."""
    stem = file.path.rsplit('/', 1)[-1].rsplit('.', 1)[0].lower()
    if file.file_type == FileType.SOURCE_CODE:
        return 9 if stem in ENTRY_POINT_STEMS else 10
    if file.file_type in (FileType.BUILD, FileType.CONFIG):
        return 7
    if file.file_type == FileType.TEST:
        return 5
    if file.file_type == FileType.DOCUMENTATION:
        return 3
    return 1


def infer_dominant_language(files) -> str:
    """Most common language by extension, or 'Mixed (...)' when several share the diff."""
    counts = Counter(
        LANGUAGES[f.extension] for f in files if f.extension in LANGUAGES
    )
    if not counts:
        return "Unknown"

    total = sum(counts.values())
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    significant = [name for name, count in ranked if count / total > MIXED_SHARE]
    if len(significant) > 1:
        return f"Mixed ({', '.join(significant)})"
    return ranked[0][0]


def is_important_line(line: str) -> bool:
    """Declarations, imports, visibility modifiers, constants and comments."""
    if line.startswith("@@"):
        return True
    if not line.startswith(('+', '-')) or line.startswith(('+++', '---')):
        return False
    content = line[1:].strip()
    if not content:
        return False
    return content.lower().startswith(IMPORTANT_PREFIXES) or content.isupper()


def extract_meaningful_diff_lines(diff_content: str, max_lines: int) -> List[str]:
    """Pick up to max_lines lines, important ones first, kept in patch order."""
    if max_lines <= 0:
        return []

    candidates = [
        (index, line) for index, line in enumerate(diff_content.splitlines())
        if line.strip() and not line.startswith(("diff --git", "index ", "+++", "---", "new file mode",
                                                  "deleted file mode", "similarity index"))
    ]
    important = [index for index, line in candidates if is_important_line(line)]
    changes = [index for index, line in candidates
               if index not in important and line.startswith(('+', '-'))]
    context = [index for index, line in candidates
               if index not in important and not line.startswith(('+', '-'))]

    chosen = (important + changes + context)[:max_lines]
    lines = dict(candidates)
    return [lines[index] for index in sorted(chosen)]


def get_system_prompt(intelligence: CommitIntelligence) -> str:
    if intelligence.requires_body:
        return SYSTEM_PROMPTS["detailed"]
    if intelligence.complexity_score < 1.5:
        return SYSTEM_PROMPTS["simple"]
    return SYSTEM_PROMPTS["standard"]


def _complexity_label(score: float) -> str:
    if score < 1.5:
        return "simple"
    if score < 2.5:
        return "moderate"
    if score < 3.5:
        return "complex"
    return "very complex"


class PromptBuilder:
    """Render CommitIntelligence and a budgeted diff slice into one prompt."""

    def __init__(self, max_total_diff_lines: int = 3000, max_diff_files: int = 15,
                 description_limit: int = 72):
        self.max_total_diff_lines = max_total_diff_lines
        self.max_diff_files = max_diff_files
        self.description_limit = description_limit

    def construct_intelligent_prompt(self, diff_info: DiffInfo, intelligence: CommitIntelligence) -> str:
        sections = [
            self._analysis_section(intelligence),
            f"LANGUAGE CONTEXT: {infer_dominant_language(diff_info.files)}",
            self._patterns_section(intelligence),
            self._context_section(diff_info),
            self._recommendation_section(intelligence),
            f"ALLOWED TYPES: {', '.join(COMMIT_TYPES)}",
        ]
        if intelligence.suggested_bullets:
            sections.append(
                "SUGGESTED BULLETS:\n" + "\n".join(f"- {b}" for b in intelligence.suggested_bullets)
            )
        sections.extend([
            f"DIFF SUMMARY:\n{diff_info.summary}",
            f"DIFF CONTENT:\n{self.render_diff_content(diff_info)}",
            self._examples_section(intelligence),
            self._instructions_section(intelligence),
        ])

        prompt = "\n\n".join(sections)
        logger.debug(f"Built prompt: {len(prompt)} characters, {len(diff_info.files)} files")
        return prompt

    def lines_for_file(self, file: ModifiedFile, priority: int, remaining: int) -> int:
        """Line allowance for one file, never above what is left of the budget."""
        if remaining <= 0:
            return 0
        changes = file.total_changes
        if changes < 50:
            wanted = changes
        elif changes < 200:
            wanted = min(changes // 2, 100)
        else:
            wanted = 50
        share = max(1, remaining * priority // 10)
        return max(0, min(wanted, share, remaining))

    def render_diff_content(self, diff_info: DiffInfo) -> str:
        """Diff slice within max_total_diff_lines; skipped files are only counted."""
        candidates = [f for f in diff_info.files if not is_boring_file(f.path)]
        ranked = sorted(candidates, key=file_priority, reverse=True)

        # One line is kept back for the skipped-files note
        budget = self.max_total_diff_lines - 1
        used = 0
        included = 0
        blocks: List[str] = []

        for file in ranked:
            if included >= self.max_diff_files or budget - used < 2:
                break
            allowance = self.lines_for_file(file, file_priority(file), budget - used - 1)
            lines = extract_meaningful_diff_lines(file.diff_content, allowance)
            if not lines and allowance > 0:
                lines = [f"(large diff with {file.total_changes} changed lines omitted)"]

            blocks.append(f"--- {file.path} (+{file.added_lines} -{file.removed_lines}) ---")
            blocks.extend(lines)
            used += 1 + len(lines)
            included += 1

        skipped = len(diff_info.files) - included
        if skipped and self.max_total_diff_lines > 0:
            blocks.append(f"... {skipped} more file(s) not shown")
        return "\n".join(blocks)

    def _analysis_section(self, intelligence: CommitIntelligence) -> str:
        score = intelligence.complexity_score
        if intelligence.requires_body:
            body = "REQUIRED: add a blank line and 2-5 bullet points after the subject"
        else:
            body = "not required: a single subject line is enough"
        return (
            "COMMIT ANALYSIS\n"
            f"complexity: {score:.2f}/5.0 ({_complexity_label(score)})\n"
            f"body: {body}"
        )

    def _patterns_section(self, intelligence: CommitIntelligence) -> str:
        if not intelligence.detected_patterns:
            return "DETECTED PATTERNS: none"
        lines = ["DETECTED PATTERNS:"]
        for pattern in intelligence.detected_patterns:
            lines.append(
                f"- {format_pattern_type(pattern.pattern_type)} "
                f"(impact {pattern.impact:.2f}): {pattern.description}"
            )
        return "\n".join(lines)

    def _context_section(self, diff_info: DiffInfo) -> str:
        return (
            "CHANGE CONTEXT:\n"
            f"source: {diff_info.source} changes\n"
            f"files: {len(diff_info.files)}, +{diff_info.total_added} -{diff_info.total_removed}"
        )

    def _recommendation_section(self, intelligence: CommitIntelligence) -> str:
        ranked = sorted(intelligence.detected_patterns, key=lambda p: p.impact, reverse=True)
        if ranked:
            rationale = ", ".join(format_pattern_type(p.pattern_type) for p in ranked[:3])
        else:
            rationale = "no strong signals, default type"
        scope = intelligence.scope_hint
        scope_line = f"scope: {scope}" if scope else "scope: none (omit the parentheses)"
        return (
            "RECOMMENDATION:\n"
            f"type: {intelligence.commit_type_hint}\n"
            f"{scope_line}\n"
            f"rationale: {rationale}"
        )

    def _examples_section(self, intelligence: CommitIntelligence) -> str:
        examples = [
            "EXAMPLES:",
            "feat(auth): add session expiry check",
            "fix: handle empty response from server",
            "refactor(api): split request parsing into helpers",
        ]
        if intelligence.requires_body:
            examples.extend([
                "",
                "feat(ui): add settings page",
                "",
                "- Add form for notification preferences",
                "- Persist choices in local storage",
            ])
        return "\n".join(examples)

    def _instructions_section(self, intelligence: CommitIntelligence) -> str:
        rules = [
            "INSTRUCTIONS:",
            "- Format: type(scope): description, or type: description without a scope",
            f"- Description at most {self.description_limit} characters, lowercase start, no trailing period",
            "- Use the imperative mood (add, fix, update), not past tense",
            "- Avoid vague words such as 'various' or 'stuff'",
        ]
        if intelligence.requires_body:
            rules.append("- After a blank line, list bullets as '- ' followed by a capitalized word")
        else:
            rules.append("- Output one line only")
        rules.append("- Reply with the commit message only, no explanations or markdown")
        return "\n".join(rules)


def construct_intelligent_prompt(
    diff_info: DiffInfo,
    intelligence: CommitIntelligence,
    builder: Optional[PromptBuilder] = None,
) -> str:
    return (builder or PromptBuilder()).construct_intelligent_prompt(diff_info, intelligence)
