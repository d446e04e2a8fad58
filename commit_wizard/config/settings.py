"""
Configuration management with Pydantic validation and environment variable support.
"""

import json
import os
import platform
from pathlib import Path
from typing import List, Literal, Optional, Protocol

from loguru import logger
from pydantic import AliasChoices, BaseModel, Field, model_validator
from pydantic_settings import BaseSettings


DEFAULT_MODEL = "nvidia/llama-3.1-nemotron-ultra-253b-v1:free"


class ModelInfo(BaseModel):
    """A selectable model."""

    name: str
    description: str = ""


class AISettings(BaseModel):
    """Chat completion API configuration."""

    api_url: str = Field(
        default="https://openrouter.ai/api/v1",
        description="OpenAI compatible API base URL"
    )
    api_key: Optional[str] = Field(
        default=None,
        description="Bearer credential, normally taken from OPENROUTER_API_KEY"
    )
    connect_timeout: float = Field(
        default=10,
        gt=0,
        le=120,
        description="Connect timeout per attempt in seconds"
    )
    timeout: float = Field(
        default=30,
        ge=5,
        le=600,
        description="Total request timeout per attempt in seconds"
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum transport attempts and validation retries"
    )
    temperature: float = Field(default=0.1, ge=0.0, le=2.0)
    top_p: float = Field(default=0.9, gt=0.0, le=1.0)
    max_tokens: int = Field(default=400, ge=16, le=4096)


class ModelSettings(BaseModel):
    """Model choice and smart selection."""

    default: str = Field(default=DEFAULT_MODEL, description="Model used unless overridden")
    fast: str = Field(
        default="mistralai/mistral-small-3.1-24b-instruct:free",
        description="Model for simple commits"
    )
    thinking: str = Field(
        default="deepseek/deepseek-r1:free",
        description="Model for complex commits"
    )
    smart_model: bool = Field(
        default=False,
        description="Pick fast or thinking model from the commit complexity"
    )
    available: List[ModelInfo] = Field(
        default_factory=lambda: [
            ModelInfo(name=DEFAULT_MODEL, description="large general model"),
            ModelInfo(name="mistralai/mistral-small-3.1-24b-instruct:free", description="fast"),
            ModelInfo(name="deepseek/deepseek-r1:free", description="reasoning"),
        ]
    )


class GitSettings(BaseModel):
    """Git operation configuration."""

    max_file_size_kb: int = Field(
        default=100,
        ge=1,
        le=10240,
        description="Files larger than this are skipped"
    )
    max_files: int = Field(
        default=10,
        ge=1,
        le=200,
        description="Maximum number of files to analyze"
    )


class AnalysisSettings(BaseModel):
    """Heuristic analysis and prompt budgets."""

    fallback_commit_type: Literal[
        "feat", "fix", "docs", "style", "refactor", "perf",
        "test", "build", "ci", "chore", "revert",
    ] = Field(default="feat", description="Commit type when no pattern maps to one")
    max_total_diff_lines: int = Field(
        default=3000,
        ge=10,
        le=20000,
        description="Total diff lines allowed in the prompt"
    )
    max_diff_files: int = Field(
        default=15,
        ge=1,
        le=100,
        description="Maximum files shown in the prompt diff"
    )
    description_limit: int = Field(
        default=72,
        ge=20,
        le=200,
        description="Maximum commit description length"
    )


class UISettings(BaseModel):
    """User interface configuration."""

    use_colors: bool = Field(
        default=True,
        description="Use colored output"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging level"
    )


class Settings(BaseSettings):
    """Main application settings with environment variable support."""

    ai: AISettings = Field(default_factory=AISettings)
    models: ModelSettings = Field(default_factory=ModelSettings)
    git: GitSettings = Field(default_factory=GitSettings)
    analysis: AnalysisSettings = Field(default_factory=AnalysisSettings)
    ui: UISettings = Field(default_factory=UISettings)

    # Conventional variable names, read without the CW_ prefix
    openrouter_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("OPENROUTER_API_KEY", "openrouter_api_key"),
        exclude=True,
    )
    openrouter_model: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("OPENROUTER_MODEL", "openrouter_model"),
        exclude=True,
    )

    model_config = {
        "env_prefix": "CW_",  # Commit Wizard prefix
        "env_nested_delimiter": "__",
        "case_sensitive": False,
        "env_file": ".env",
        "extra": "ignore",
        "populate_by_name": True,
    }

    def __init__(self, **kwargs):
        # Fall back to the config file when nothing explicit is given
        if not kwargs:
            config_path = default_config_path()
            if config_path.exists():
                try:
                    with open(config_path) as f:
                        kwargs = json.load(f)
                except (json.JSONDecodeError, OSError) as e:
                    logger.warning(f"Ignoring unreadable config file {config_path}: {e}")
        super().__init__(**kwargs)

    @model_validator(mode="after")
    def _apply_conventional_env(self) -> "Settings":
        if self.openrouter_api_key and not self.ai.api_key:
            self.ai.api_key = self.openrouter_api_key
        if self.openrouter_model:
            self.models.default = self.openrouter_model
        return self

    @classmethod
    def from_file(cls, config_path: Path) -> "Settings":
        """Load settings from a configuration file."""
        if config_path.exists():
            with open(config_path) as f:
                config_data = json.load(f)
            return cls(**config_data)
        return cls()

    def save_to_file(self, config_path: Path) -> None:
        """Save current settings to a configuration file; the API key is never written."""
        config_path.parent.mkdir(parents=True, exist_ok=True)
        data = self.model_dump(exclude={"ai": {"api_key"}})
        with open(config_path, 'w') as f:
            json.dump(data, f, indent=2)

    @property
    def config_dir(self) -> Path:
        """Get the configuration directory."""
        return default_config_path().parent

    @property
    def config_file(self) -> Path:
        return default_config_path()

    @property
    def cache_dir(self) -> Path:
        """Get the cache directory."""
        if platform.system() == "Windows":
            base = Path(os.environ.get("LOCALAPPDATA", "~"))
        else:
            base = Path(os.environ.get("XDG_CACHE_HOME", "~/.cache"))

        return (base / "commit-wizard").expanduser()

    @property
    def log_file(self) -> Path:
        """Get the log file path."""
        return self.cache_dir / "commit-wizard.log"


def default_config_path() -> Path:
    """Get the default config file path."""
    if platform.system() == "Windows":
        base = Path(os.environ.get("APPDATA", "~"))
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", "~/.config"))

    return (base / "commit-wizard" / "config.json").expanduser()


class ModelStore(Protocol):
    """Narrow interface for model preferences."""

    def load_models(self) -> List[ModelInfo]:
        ...

    def save_preference(self, model: ModelInfo) -> None:
        ...


class SettingsModelStore:
    """ModelStore backed by a Settings object and its JSON config file."""

    def __init__(self, settings: Settings, config_path: Optional[Path] = None):
        self.settings = settings
        self.config_path = config_path or settings.config_file

    def load_models(self) -> List[ModelInfo]:
        models = list(self.settings.models.available)
        if not any(m.name == self.settings.models.default for m in models):
            models.insert(0, ModelInfo(name=self.settings.models.default, description="configured default"))
        return models

    def save_preference(self, model: ModelInfo) -> None:
        self.settings.models.default = model.name
        self.settings.save_to_file(self.config_path)
        logger.info(f"Saved preferred model {model.name} to {self.config_path}")
