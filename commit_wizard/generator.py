"""
Commit message generation: prompt, call, extract, validate, retry.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from loguru import logger

from commit_wizard.ai_backends.base import AIBackend, EmptyResponseError
from commit_wizard.config.settings import ModelSettings, Settings
from commit_wizard.git_ops.models import DiffInfo
from commit_wizard.intelligence.analyser import CommitIntelligence, analyse_commit_intelligence
from commit_wizard.utils.message_extractor import MessageExtractor
from commit_wizard.utils.prompts import PromptBuilder, get_system_prompt
from commit_wizard.utils.validation import (
    CommitValidationError,
    ValidationIssue,
    fix_commit_format,
    post_process_commit_message,
    validate_commit_message,
)


SMART_MODEL_THRESHOLD = 1.5


@dataclass
class GenerationResult:
    """A validated message and how it was produced."""

    message: str
    intelligence: CommitIntelligence
    model: str
    attempts: int
    type_matches_hint: bool = True


def select_model_for_complexity(intelligence: CommitIntelligence, models: ModelSettings) -> str:
    if intelligence.complexity_score < SMART_MODEL_THRESHOLD:
        logger.info(f"Simple commit detected, using fast model {models.fast}")
        return models.fast
    logger.info(f"Complex commit detected, using thinking model {models.thinking}")
    return models.thinking


def corrective_hint(intelligence: CommitIntelligence, error: Optional[Exception], limit: int = 72) -> str:
    """Short instructions appended to the prompt on a retry."""
    lines = ["", "IMPORTANT (previous answer was rejected):"]
    if isinstance(error, CommitValidationError) and ValidationIssue.TOO_LONG in error.issues:
        lines.append(f"- the description must be under {limit} characters. be concise.")
    if isinstance(error, CommitValidationError) and ValidationIssue.BODY_FORMAT in error.issues:
        lines.append("- separate the body with a blank line and start each bullet with '- ' and a capital letter")
    lines.append(f"- must use type: {intelligence.commit_type_hint}")
    if intelligence.scope_hint:
        lines.append(f"- must use scope: {intelligence.scope_hint}")
    else:
        lines.append("- do not include a scope")
    return "\n".join(lines)


class CommitMessageGenerator:
    """Drive the model until a message passes validation, within a fixed bound."""

    def __init__(
        self,
        backend: AIBackend,
        settings: Settings,
        prompt_builder: Optional[PromptBuilder] = None,
        extractor: Optional[MessageExtractor] = None,
    ):
        self.backend = backend
        self.settings = settings
        self.max_retries = settings.ai.max_retries
        self.description_limit = settings.analysis.description_limit
        self.prompt_builder = prompt_builder or PromptBuilder(
            max_total_diff_lines=settings.analysis.max_total_diff_lines,
            max_diff_files=settings.analysis.max_diff_files,
            description_limit=settings.analysis.description_limit,
        )
        self.extractor = extractor or MessageExtractor()

    def analyse(self, diff_info: DiffInfo) -> CommitIntelligence:
        return analyse_commit_intelligence(diff_info, self.settings.analysis.fallback_commit_type)

    def resolve_model(self, intelligence: CommitIntelligence, model: Optional[str] = None) -> str:
        if model:
            return model
        if self.settings.models.smart_model:
            return select_model_for_complexity(intelligence, self.settings.models)
        return self.settings.models.default

    async def generate(
        self,
        diff_info: DiffInfo,
        model: Optional[str] = None,
        intelligence: Optional[CommitIntelligence] = None,
    ) -> GenerationResult:
        """Produce a validated commit message.

        Makes at most max_retries + 1 model calls. Raises the last
        validation or backend error once the bound is exhausted.
        """
        intelligence = intelligence or self.analyse(diff_info)
        model = self.resolve_model(intelligence, model)

        prompt = self.prompt_builder.construct_intelligent_prompt(diff_info, intelligence)
        system_prompt = get_system_prompt(intelligence)

        last_error: Optional[Exception] = None
        mismatched: Optional[str] = None
        total_attempts = self.max_retries + 1

        for attempt in range(total_attempts):
            user_prompt = prompt if attempt == 0 else prompt + "\n" + corrective_hint(
                intelligence, last_error, self.description_limit
            )
            messages = self._messages(system_prompt, user_prompt)
            is_last = attempt == total_attempts - 1

            try:
                response = await self.backend.call_with_retry(messages, model, self.settings.ai.max_retries)
            except EmptyResponseError as e:
                logger.warning(f"Attempt {attempt + 1}: {e}")
                last_error = e
                continue

            try:
                message = self._validated_candidate(response.content)
            except CommitValidationError as e:
                logger.warning(f"Attempt {attempt + 1}: invalid commit message: {e}")
                last_error = e
                if e.retryable:
                    continue
                if mismatched:
                    break
                raise

            generated_type = message.split(":", 1)[0].split("(", 1)[0].rstrip("!")
            if generated_type != intelligence.commit_type_hint and not is_last:
                logger.info(
                    f"Attempt {attempt + 1}: type '{generated_type}' differs from "
                    f"suggested '{intelligence.commit_type_hint}', retrying"
                )
                mismatched = message
                last_error = None
                continue

            return GenerationResult(
                message=message,
                intelligence=intelligence,
                model=model,
                attempts=attempt + 1,
                type_matches_hint=generated_type == intelligence.commit_type_hint,
            )

        if mismatched:
            # Type agreement is advisory
            return GenerationResult(mismatched, intelligence, model, total_attempts, False)

        logger.error(f"No valid commit message after {total_attempts} attempts")
        raise GenerationError(
            f"failed to generate a valid commit message after {total_attempts} attempts: {last_error}"
        ) from last_error

    def _validated_candidate(self, raw_response: str) -> str:
        candidate = self.extractor.extract_commit_message(raw_response)
        candidate = post_process_commit_message(candidate, self.description_limit)
        try:
            validate_commit_message(candidate, self.description_limit)
            return candidate
        except CommitValidationError as e:
            if e.retryable:
                raise
            fixed = fix_commit_format(candidate)
            if fixed is None:
                raise
            fixed = post_process_commit_message(fixed, self.description_limit)
            validate_commit_message(fixed, self.description_limit)
            logger.debug(f"Auto-fixed commit message: {fixed}")
            return fixed

    @staticmethod
    def _messages(system_prompt: str, user_prompt: str) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]


class GenerationError(Exception):
    """The retry bound was exhausted without a valid message."""
    pass
