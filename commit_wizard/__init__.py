"""
Commit Wizard - conventional commit messages generated from your git changes.

Analyses staged changes with local heuristics, asks a chat completion API
(OpenRouter) for a message and validates it against the conventional commit
grammar before committing.
"""

__version__ = "0.1.0"

from commit_wizard.core import CommitWizard
from commit_wizard.config.settings import Settings

__all__ = ["CommitWizard", "Settings"]
