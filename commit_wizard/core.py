"""
Core Commit Wizard flow that orchestrates all components.
"""

from pathlib import Path
from typing import Optional

from loguru import logger

from .ai_backends.base import AIBackend, AIBackendError, InvalidModelError, MissingCredentialError
from .ai_backends.factory import BackendFactory
from .config.settings import ModelStore, Settings, SettingsModelStore
from .generator import CommitMessageGenerator, GenerationError, GenerationResult
from .git_ops.diff_reader import get_diff_info
from .git_ops.models import DiffInfo
from .git_ops.repository import GitRepository, GitRepositoryError, NoChangesError
from .intelligence.analyser import CommitIntelligence
from .ui.console import WizardConsole


class CommitWizard:
    """Read the changes, generate a message, confirm and commit."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        repo_path: Optional[Path] = None,
        model_store: Optional[ModelStore] = None,
        console: Optional[WizardConsole] = None,
    ):
        self.settings = settings or Settings()
        self.repo_path = repo_path
        self.model_store = model_store or SettingsModelStore(self.settings)
        self.console = console or WizardConsole(self.settings)

        logger.info("Commit Wizard initialized")

    def create_backend(self, model: Optional[str] = None) -> AIBackend:
        try:
            return BackendFactory.create_backend(self.settings, model=model)
        except MissingCredentialError as e:
            raise CommitWizardError(str(e))

    async def run(
        self,
        auto_commit: bool = False,
        debug: bool = False,
        verbose: bool = False,
        model: Optional[str] = None,
    ) -> Optional[str]:
        """Run the whole flow; returns the accepted message or None."""
        backend = self.create_backend(model)

        try:
            repository = GitRepository(self.repo_path)
            self.console.print_staged_files(repository.get_staged_files())
        except GitRepositoryError as e:
            raise CommitWizardError(str(e))

        try:
            with self.console.show_progress_spinner("Analyzing changes"):
                diff_info = get_diff_info(
                    repository.working_dir,
                    self.settings.git.max_file_size_kb * 1024,
                    self.settings.git.max_files,
                    verbose,
                )
        except NoChangesError:
            self.console.print_warning("No changes detected in repository")
            return None
        except GitRepositoryError as e:
            raise CommitWizardError(str(e))

        self.console.show_diff_overview(diff_info)

        generator = CommitMessageGenerator(backend, self.settings)
        intelligence = generator.analyse(diff_info)
        if debug:
            self.console.show_intelligence(intelligence)

        result = await self._generate(generator, diff_info, intelligence, model)

        self.console.show_commit_message_preview(result.message, result.model)
        if not result.type_matches_hint:
            self.console.print_warning(
                f"Model chose a different type than the suggested '{intelligence.commit_type_hint}'"
            )

        if diff_info.source == "unstaged":
            self.console.print_info("Changes are not staged; stage them and commit with the message above")
            return result.message

        if not auto_commit and not self.console.confirm_action("Create this commit?"):
            self.console.print_info("Commit cancelled")
            return None

        try:
            sha = repository.commit(result.message)
        except GitRepositoryError as e:
            raise CommitWizardError(str(e))

        self.console.print_success(f"Created commit {sha[:8]}")
        return result.message

    async def _generate(
        self,
        generator: CommitMessageGenerator,
        diff_info: DiffInfo,
        intelligence: CommitIntelligence,
        model: Optional[str],
    ) -> GenerationResult:
        """Generate, switching to the next known model once if the API rejects ours."""
        try:
            with self.console.show_progress_spinner("Generating commit message"):
                return await generator.generate(diff_info, model, intelligence)
        except InvalidModelError as e:
            fallback = self.next_model(e.model or model or self.settings.models.default)
            if fallback is None:
                raise CommitWizardError(str(e))
            self.console.print_warning(f"{e}; switching to {fallback}")
        except (GenerationError, AIBackendError) as e:
            raise CommitWizardError(str(e))

        try:
            with self.console.show_progress_spinner(f"Retrying with {fallback}"):
                result = await generator.generate(diff_info, fallback, intelligence)
        except (GenerationError, AIBackendError) as e:
            raise CommitWizardError(str(e))

        for info in self.model_store.load_models():
            if info.name == fallback:
                self.model_store.save_preference(info)
                break
        return result

    def next_model(self, rejected: str) -> Optional[str]:
        """First stored model other than the rejected one."""
        for info in self.model_store.load_models():
            if info.name != rejected:
                return info.name
        return None


class CommitWizardError(Exception):
    """Custom exception for Commit Wizard errors."""
    pass
