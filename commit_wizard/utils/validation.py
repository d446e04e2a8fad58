"""
Conventional commit grammar: parsing, validation, post-processing and
deterministic repairs.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from loguru import logger

from commit_wizard.intelligence.analyser import COMMIT_TYPES


DESCRIPTION_LIMIT = 72
MAX_VAGUE_WORDS = 2
MAX_TYPE_FIELD = 20

VAGUE_WORDS = frozenset({
    "things", "stuff", "various", "multiple", "some", "several", "many", "few",
    "miscellaneous", "misc", "general", "generic", "updates", "changes",
    "modifications", "improvements", "fixes",
})
NON_IMPERATIVE = frozenset({
    "added", "removed", "deleted", "created", "updated", "modified",
    "fixing", "adding", "removing", "creating", "updating", "modifying",
})

# Shortening passes, applied in order until the description fits
LONG_WORDS = (
    ("functionality", "func"), ("configuration", "config"), ("implementation", "impl"),
    ("documentation", "docs"), ("specification", "spec"), ("repository", "repo"),
    ("database", "db"), ("application", "app"), ("development", "dev"),
    ("production", "prod"), ("environment", "env"), ("authentication", "auth"),
    ("authorization", "authz"), ("administrator", "admin"), ("management", "mgmt"),
    ("information", "info"),
)
FILLER_WORDS = ("the", "a", "an", "for", "with", "to", "in", "of")
ABBREVIATIONS = (
    ("update", "upd"), ("message", "msg"), ("commit", "cmt"), ("generation", "gen"),
    ("validation", "valid"), ("description", "desc"), ("character", "char"),
    ("maximum", "max"), ("minimum", "min"), ("function", "fn"), ("variable", "var"),
    ("parameter", "param"),
)

SUBJECT_PATTERN = re.compile(
    r'^(?P<type>[^\s():!]+)(?:\((?P<scope>[^()]*)\))?(?P<breaking>!)?: (?P<description>.*)$'
)
SCOPE_PATTERN = re.compile(r'^[A-Za-z0-9_\-,./]+$')
BULLET_PATTERN = re.compile(r'^- [A-Z]')


class ValidationIssue(str, Enum):
    """Individual grammar violations."""

    EMPTY = "empty"
    FORMAT = "format"
    TYPE = "type"
    SCOPE = "scope"
    DESCRIPTION_EMPTY = "description_empty"
    TOO_LONG = "too_long"
    TRAILING_PERIOD = "trailing_period"
    UPPERCASE_START = "uppercase_start"
    NOT_IMPERATIVE = "not_imperative"
    TOO_VAGUE = "too_vague"
    BODY_FORMAT = "body_format"


# Issues a regeneration with a corrective hint can address
RETRYABLE_ISSUES = frozenset({ValidationIssue.TOO_LONG, ValidationIssue.SCOPE, ValidationIssue.BODY_FORMAT})


class CommitValidationError(Exception):
    """A commit message broke the grammar; lists every violation found."""

    def __init__(self, issues: Tuple[ValidationIssue, ...], message: str):
        super().__init__(message)
        self.issues = tuple(issues)

    @property
    def issue(self) -> ValidationIssue:
        return self.issues[0]

    @property
    def retryable(self) -> bool:
        return all(issue in RETRYABLE_ISSUES for issue in self.issues)


@dataclass(frozen=True)
class ParsedCommit:
    """Structured view of a conventional commit message."""

    type: str
    scope: Optional[str]
    breaking: bool
    description: str
    body: Tuple[str, ...] = ()

    @property
    def subject(self) -> str:
        scope = f"({self.scope})" if self.scope is not None else ""
        bang = "!" if self.breaking else ""
        return f"{self.type}{scope}{bang}: {self.description}"


def parse_commit_message(message: str) -> ParsedCommit:
    """Split a message into type, scope, breaking flag, description and body."""
    lines = message.strip("\n").split("\n")
    match = SUBJECT_PATTERN.match(lines[0]) if lines else None
    if not match:
        raise CommitValidationError(
            (ValidationIssue.FORMAT,),
            "commit message must follow 'type(scope): description' or 'type: description'",
        )
    return ParsedCommit(
        type=match.group("type"),
        scope=match.group("scope"),
        breaking=bool(match.group("breaking")),
        description=match.group("description").rstrip(),
        body=tuple(lines[1:]),
    )


def _description_issues(description: str, limit: int) -> List[Tuple[ValidationIssue, str]]:
    issues = []
    if not description.strip():
        return [(ValidationIssue.DESCRIPTION_EMPTY, "description is empty")]
    if len(description) > limit:
        issues.append((ValidationIssue.TOO_LONG,
                       f"description is {len(description)} characters, limit is {limit}"))
    if description.endswith("."):
        issues.append((ValidationIssue.TRAILING_PERIOD, "description must not end with a period"))
    if description[0].isupper():
        issues.append((ValidationIssue.UPPERCASE_START, "description must start with a lowercase letter"))

    words = re.findall(r"[a-z0-9]+", description.lower())
    if words and words[0] in NON_IMPERATIVE:
        issues.append((ValidationIssue.NOT_IMPERATIVE,
                       f"description must use the imperative mood, not '{words[0]}'"))
    vague = [word for word in words if word in VAGUE_WORDS]
    if len(vague) > MAX_VAGUE_WORDS:
        issues.append((ValidationIssue.TOO_VAGUE,
                       f"description is too vague ({', '.join(vague)})"))
    return issues


def _body_issues(body: Tuple[str, ...]) -> List[Tuple[ValidationIssue, str]]:
    if not body:
        return []
    if body[0].strip():
        return [(ValidationIssue.BODY_FORMAT, "subject must be followed by a blank line")]
    issues = []
    for line in body[1:]:
        if line.startswith("-") and not BULLET_PATTERN.match(line):
            issues.append((ValidationIssue.BODY_FORMAT,
                           f"bullet must be '- ' followed by a capitalized word: {line!r}"))
    return issues


def validate_commit_message(message: str, description_limit: int = DESCRIPTION_LIMIT) -> ParsedCommit:
    """Validate a full message and return its parsed form.

    Raises CommitValidationError naming every violation found.
    """
    if not message or not message.strip():
        raise CommitValidationError((ValidationIssue.EMPTY,), "commit message is empty")

    try:
        parsed = parse_commit_message(message)
    except CommitValidationError as e:
        # Still report description level problems of the bare subject
        subject = message.strip().split("\n")[0]
        found = [(ValidationIssue.FORMAT, str(e))]
        found.extend(
            item for item in _description_issues(subject, description_limit)
            if item[0] in (ValidationIssue.TRAILING_PERIOD, ValidationIssue.UPPERCASE_START)
        )
        raise CommitValidationError(tuple(i for i, _ in found), "; ".join(m for _, m in found))

    found: List[Tuple[ValidationIssue, str]] = []
    if parsed.type not in COMMIT_TYPES:
        found.append((ValidationIssue.TYPE,
                      f"invalid commit type '{parsed.type}', expected one of {', '.join(COMMIT_TYPES)}"))
    if parsed.scope is not None:
        if not parsed.scope:
            found.append((ValidationIssue.SCOPE, "scope must not be empty, omit the parentheses instead"))
        elif not SCOPE_PATTERN.match(parsed.scope):
            found.append((ValidationIssue.SCOPE, f"scope '{parsed.scope}' contains invalid characters"))
    found.extend(_description_issues(parsed.description, description_limit))
    found.extend(_body_issues(parsed.body))

    if found:
        raise CommitValidationError(tuple(i for i, _ in found), "; ".join(m for _, m in found))
    return parsed


def _replace_words(text: str, replacements) -> str:
    for word, short in replacements:
        text = re.sub(rf'\b{word}\b', short, text, flags=re.IGNORECASE)
    return text


def _remove_fillers(text: str) -> str:
    words = text.split()
    kept = [words[0]] + [w for w in words[1:] if w.lower() not in FILLER_WORDS] if words else []
    return " ".join(kept)


def shorten_description(description: str, limit: int = DESCRIPTION_LIMIT) -> str:
    """Deterministically shorten a description; may still exceed limit."""
    if len(description) <= limit:
        return description
    for shorten in (
        lambda text: _replace_words(text, LONG_WORDS),
        _remove_fillers,
        lambda text: _replace_words(text, ABBREVIATIONS),
    ):
        description = shorten(description)
        if len(description) <= limit:
            break
    logger.debug(f"Shortened description to {len(description)} characters")
    return description


def normalize_body(body: Tuple[str, ...]) -> Tuple[str, ...]:
    """Blank line after the subject, '- ' bullets starting with a capital."""
    lines = []
    for line in body:
        stripped = line.strip()
        if stripped[:1] in ("-", "*") and not stripped.startswith("---"):
            text = stripped[1:].strip()
            line = f"- {text[:1].upper()}{text[1:]}" if text else "-"
        lines.append(line)
    if lines and lines[0].strip():
        lines.insert(0, "")
    return tuple(lines)


def post_process_commit_message(message: str, description_limit: int = DESCRIPTION_LIMIT) -> str:
    """Lowercase the description start, drop a trailing period, shorten if too
    long and tidy body bullets."""
    try:
        parsed = parse_commit_message(message)
    except CommitValidationError:
        return message.strip()

    description = parsed.description.strip().rstrip(".").rstrip()
    if description and description[0].isupper():
        description = description[0].lower() + description[1:]
    if len(description) > description_limit:
        description = shorten_description(description, description_limit)

    subject = ParsedCommit(parsed.type, parsed.scope, parsed.breaking, description).subject
    return "\n".join((subject,) + normalize_body(parsed.body)).rstrip()


def fix_commit_format(message: str) -> Optional[str]:
    """Repair a type field that carries stray words; None when nothing applies."""
    subject, newline, rest = message.partition("\n")
    head, sep, description = subject.partition(":")
    if not sep:
        return None

    fixed_head = None
    if len(head) > MAX_TYPE_FIELD and "(" not in head:
        first = head.split()[0].lower() if head.split() else ""
        if first in COMMIT_TYPES:
            fixed_head = first
    elif head.lower() != head and head.lower().rstrip("!").split("(")[0] in COMMIT_TYPES:
        fixed_head = head.split("(")[0].lower() + head[len(head.split("(")[0]):]

    if fixed_head is None:
        return None
    logger.debug(f"Repaired commit type field '{head}' -> '{fixed_head}'")
    return f"{fixed_head}: {description.strip()}{newline}{rest}"
