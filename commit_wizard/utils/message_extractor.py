"""
Commit message extraction and cleaning for raw model responses.
"""

import re
from typing import List

from loguru import logger

from commit_wizard.intelligence.analyser import COMMIT_TYPES


class MessageExtractor:
    """Pull a conventional commit message out of free-form model output."""

    COMMIT_TYPES = COMMIT_TYPES

    def __init__(self):
        self._compile_patterns()

    def _compile_patterns(self) -> None:
        types_pattern = "|".join(self.COMMIT_TYPES)

        # type, optional (scope) or [scope], optional !, then a colon and text
        self.commit_line = re.compile(
            rf'^({types_pattern})(\([^)]*\)|\[[^\]]*\])?!?:\s*\S',
            re.IGNORECASE
        )
        self.code_block = re.compile(r'```[\w+-]*[ \t]*\n?(.*?)```', re.DOTALL)
        self.bracket_scope = re.compile(r'^(\w+)\[([^\]]*)\](!?):')
        self.paren_scope = re.compile(r'^(\w+)\(([^)]*)\)(!?):')
        self.label_prefix = re.compile(r'^(?:commit message|message|commit)\s*:\s*', re.IGNORECASE)

    def extract_commit_message(self, raw_response: str) -> str:
        """Best candidate commit message; an empty string when the response is empty."""
        logger.debug(f"Extracting commit message from {len(raw_response)} char response")
        if not raw_response or not raw_response.strip():
            return ""

        # Pass 1: fenced code blocks holding something commit shaped
        for block in self.code_block.findall(raw_response):
            lines = [self.clean_commit_message(line) for line in block.strip().splitlines()]
            lines = self._trim_blank_edges(lines)
            if lines and self.is_likely_commit_message(lines[0]):
                logger.debug("Extracted commit message from code block")
                return self._finish(lines)

        # Pass 2: plain text outside the fences
        plain = self.code_block.sub("", raw_response)
        lines = [self.clean_commit_message(line) for line in plain.splitlines()]
        for index, line in enumerate(lines):
            if self.is_likely_commit_message(line):
                logger.debug("Extracted commit message from plain text")
                return self._finish([line] + self._body_after(lines, index))

        # Last resort: first non-empty line verbatim
        for line in raw_response.splitlines():
            cleaned = self.clean_commit_message(line)
            if cleaned and not cleaned.startswith("```"):
                logger.warning("No conventional commit found in response, using first line")
                return self.normalize_commit_format(cleaned)
        return ""

    def clean_commit_message(self, line: str) -> str:
        """Strip markdown artifacts and surrounding quotes from one line."""
        cleaned = line.strip()
        cleaned = cleaned.replace("**", "").replace("`", "")
        cleaned = self.label_prefix.sub("", cleaned)
        if len(cleaned) >= 2 and cleaned[0] == cleaned[-1] and cleaned[0] in "\"'":
            cleaned = cleaned[1:-1].strip()
        if cleaned.startswith("* "):
            cleaned = "- " + cleaned[2:]
        return cleaned

    def is_likely_commit_message(self, line: str) -> bool:
        return bool(self.commit_line.match(line.strip()))

    def normalize_commit_format(self, message: str) -> str:
        """type[scope]: -> type(scope):, and no spaces after commas inside the scope."""
        lines = message.split("\n")
        subject = self.bracket_scope.sub(r'\1(\2)\3:', lines[0])

        match = self.paren_scope.match(subject)
        if match:
            commit_type, scope, bang = match.groups()
            scope = re.sub(r',\s+', ',', scope.strip())
            subject = f"{commit_type.lower()}({scope}){bang}:{subject[match.end():]}"
        else:
            head, sep, rest = subject.partition(":")
            if sep and head.rstrip("!").lower() in self.COMMIT_TYPES:
                subject = f"{head.lower()}:{rest}"

        head, sep, rest = subject.partition(":")
        if sep:
            subject = f"{head}: {rest.strip()}"
        lines[0] = subject
        return "\n".join(lines)

    def _finish(self, lines: List[str]) -> str:
        return self.normalize_commit_format("\n".join(lines).strip())

    def _body_after(self, lines: List[str], index: int) -> List[str]:
        """Bullet and footer lines following a subject, separated by one blank line."""
        body: List[str] = []
        for line in lines[index + 1:]:
            if not line:
                if body and body[-1] == "":
                    continue
                body.append("")
                continue
            if line.startswith("- ") or line.startswith("BREAKING CHANGE:"):
                body.append(line)
            else:
                break
        body = self._trim_blank_edges(body)
        return [""] + body if body else []

    @staticmethod
    def _trim_blank_edges(lines: List[str]) -> List[str]:
        start = 0
        end = len(lines)
        while start < end and not lines[start]:
            start += 1
        while end > start and not lines[end - 1]:
            end -= 1
        return lines[start:end]


# Shared instance
message_extractor = MessageExtractor()
