"""
Tests for the end to end flow and the command line front end.

Run with:
    pytest tests/test_core.py -v
"""

import asyncio
import io

import pytest
from rich.console import Console
from typer.testing import CliRunner

from commit_wizard import cli
from commit_wizard.ai_backends.base import AIBackend, AIResponse, InvalidModelError
from commit_wizard.config.settings import AISettings, ModelInfo, Settings
from commit_wizard.core import CommitWizard, CommitWizardError
from commit_wizard.ui.console import WizardConsole

from conftest import commit_files, write


class FakeBackend(AIBackend):

    def __init__(self, responses):
        super().__init__("http://localhost", "m/default")
        self.responses = list(responses)
        self.requests = []

    async def call_api(self, messages, model=None):
        self.requests.append(model)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return AIResponse(content=response, model=model or self.model)


class FakeModelStore:

    def __init__(self, names):
        self.models = [ModelInfo(name=name) for name in names]
        self.saved = None

    def load_models(self):
        return list(self.models)

    def save_preference(self, model):
        self.saved = model.name


def quiet_console(settings):
    return WizardConsole(settings, console=Console(file=io.StringIO(), width=120))


def make_wizard(repo, backend, monkeypatch, store=None):
    settings = Settings(ai=AISettings(api_key="k"))
    wizard = CommitWizard(settings, repo.working_dir, store or FakeModelStore([]), quiet_console(settings))
    monkeypatch.setattr(wizard, "create_backend", lambda model=None: backend)
    return wizard


@pytest.fixture
def staged_repo(git_repo):
    commit_files(git_repo, {"src/app.py": "x = 1\n"})
    write(git_repo, "src/app.py", "x = 2\n")
    git_repo.index.add(["src/app.py"])
    return git_repo


class TestCommitWizard:

    def test_auto_commit(self, staged_repo, monkeypatch):
        wizard = make_wizard(staged_repo, FakeBackend(["feat: bump value"]), monkeypatch)
        message = asyncio.run(wizard.run(auto_commit=True))
        assert message == "feat: bump value"
        assert staged_repo.head.commit.message == "feat: bump value"

    def test_declined_confirmation(self, staged_repo, monkeypatch):
        head = staged_repo.head.commit.hexsha
        wizard = make_wizard(staged_repo, FakeBackend(["feat: bump value"]), monkeypatch)
        monkeypatch.setattr(wizard.console, "confirm_action", lambda *args, **kwargs: False)
        assert asyncio.run(wizard.run()) is None
        assert staged_repo.head.commit.hexsha == head

    def test_no_changes(self, git_repo, monkeypatch):
        commit_files(git_repo, {"a.py": "a = 1\n"})
        backend = FakeBackend(["feat: bump value"])
        wizard = make_wizard(git_repo, backend, monkeypatch)
        assert asyncio.run(wizard.run(auto_commit=True)) is None
        assert backend.requests == []

    def test_unstaged_changes_are_not_committed(self, git_repo, monkeypatch):
        commit_files(git_repo, {"src/app.py": "x = 1\n"})
        write(git_repo, "src/app.py", "x = 2\n")
        head = git_repo.head.commit.hexsha
        wizard = make_wizard(git_repo, FakeBackend(["feat: bump value"]), monkeypatch)
        assert asyncio.run(wizard.run(auto_commit=True)) == "feat: bump value"
        assert git_repo.head.commit.hexsha == head

    def test_invalid_model_switches_once(self, staged_repo, monkeypatch):
        backend = FakeBackend([InvalidModelError("rejected", "m/bad"), "feat: bump value"])
        store = FakeModelStore(["m/bad", "m/good"])
        wizard = make_wizard(staged_repo, backend, monkeypatch, store)
        message = asyncio.run(wizard.run(auto_commit=True, model="m/bad"))
        assert message == "feat: bump value"
        assert backend.requests == ["m/bad", "m/good"]
        assert store.saved == "m/good"

    def test_invalid_model_without_alternative(self, staged_repo, monkeypatch):
        backend = FakeBackend([InvalidModelError("rejected", "m/bad")])
        wizard = make_wizard(staged_repo, backend, monkeypatch, FakeModelStore(["m/bad"]))
        with pytest.raises(CommitWizardError, match="rejected"):
            asyncio.run(wizard.run(auto_commit=True, model="m/bad"))

    def test_generation_failure_is_a_wizard_error(self, staged_repo, monkeypatch):
        backend = FakeBackend(["feat: add " + "x" * 100])
        wizard = make_wizard(staged_repo, backend, monkeypatch)
        with pytest.raises(CommitWizardError, match="after 4 attempts"):
            asyncio.run(wizard.run(auto_commit=True))

    def test_missing_api_key(self, staged_repo):
        settings = Settings()
        wizard = CommitWizard(settings, staged_repo.working_dir, FakeModelStore([]), quiet_console(settings))
        with pytest.raises(CommitWizardError, match="OPENROUTER_API_KEY"):
            asyncio.run(wizard.run())

    def test_not_a_repository(self, tmp_path, monkeypatch):
        plain = tmp_path / "plain"
        plain.mkdir()
        settings = Settings(ai=AISettings(api_key="k"))
        wizard = CommitWizard(settings, plain, FakeModelStore([]), quiet_console(settings))
        monkeypatch.setattr(wizard, "create_backend", lambda model=None: FakeBackend(["x"]))
        with pytest.raises(CommitWizardError, match="Not a Git repository"):
            asyncio.run(wizard.run())


class TestCli:

    @pytest.fixture
    def runner(self, monkeypatch):
        monkeypatch.setattr(cli, "setup_logging", lambda *args, **kwargs: None)
        return CliRunner()

    def test_version(self, runner):
        result = runner.invoke(cli.app, ["--version"])
        assert result.exit_code == 0
        assert "Commit Wizard" in result.output

    def test_missing_key_exits_one(self, runner, staged_repo):
        result = runner.invoke(cli.app, ["--path", staged_repo.working_dir, "--yes"])
        assert result.exit_code == 1
        assert "OPENROUTER_API_KEY" in result.output

    def test_config_show(self, runner):
        result = runner.invoke(cli.app, ["config", "--show"])
        assert result.exit_code == 0
        assert "Configuration" in result.output

    def test_config_save(self, runner):
        result = runner.invoke(cli.app, ["config", "--model", "m/chosen", "--save"])
        assert result.exit_code == 0
        assert Settings().models.default == "m/chosen"

    @pytest.mark.parametrize("verbose, debug, expected", [
        (False, False, "WARNING"),
        (True, False, "INFO"),
        (True, True, "DEBUG"),
    ])
    def test_log_level(self, verbose, debug, expected):
        assert cli.resolve_log_level(Settings(), verbose, debug) == expected
