"""
Console interface with Rich components.
"""

from typing import List, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm
from rich.table import Table
from rich.theme import Theme

from .. import __version__
from ..config.settings import Settings
from ..git_ops.models import DiffInfo
from ..intelligence.analyser import CommitIntelligence


class WizardConsole:
    """Terminal output for Commit Wizard."""

    def __init__(self, settings: Settings, console: Optional[Console] = None):
        """Initialize console with settings."""
        self.settings = settings
        self._setup_styles()
        self.console = console or Console(
            color_system="auto" if settings.ui.use_colors else None,
            theme=self.theme
        )

    def _setup_styles(self) -> None:
        """Setup custom styles for consistent theming."""
        self.styles = {
            "title": "bold blue",
            "success": "bold green",
            "warning": "bold yellow",
            "error": "bold red",
            "info": "blue",
            "muted": "dim",
            "file_added": "green",
            "file_modified": "yellow",
            "commit_type": "bold magenta",
            "scope": "cyan",
        }
        self.theme = Theme(self.styles)

    def print_banner(self) -> None:
        banner = Panel.fit(
            f"[bold blue]Commit Wizard v{__version__}[/bold blue]\n"
            "[dim]Conventional commit messages from your staged changes[/dim]",
            box=box.ROUNDED,
            style="blue"
        )
        self.console.print(banner)
        self.console.print()

    def print_staged_files(self, files: List[str]) -> None:
        """List the files staged for commit."""
        if not files:
            self.console.print("[muted]No staged files, falling back to working tree changes[/muted]")
            return
        self.console.print(f"[info]Staged files ({len(files)}):[/info]")
        for path in files:
            self.console.print(f"  [file_added]{path}[/file_added]")
        self.console.print()

    def show_diff_overview(self, diff_info: DiffInfo) -> None:
        """Per-file table of the analysed changes."""
        table = Table(title=f"Analysed {diff_info.source} changes", box=box.SIMPLE_HEAD)
        table.add_column("File", style="bold")
        table.add_column("Kind", style="muted")
        table.add_column("Changes", justify="right")

        for file in diff_info.files:
            table.add_row(
                file.path,
                file.file_type.value,
                f"[file_added]+{file.added_lines}[/file_added] [file_modified]-{file.removed_lines}[/file_modified]",
            )

        self.console.print(table)
        self.console.print()

    def show_intelligence(self, intelligence: CommitIntelligence) -> None:
        """Debug view of the analysis behind the prompt."""
        table = Table(title="Commit intelligence", box=box.SIMPLE_HEAD)
        table.add_column("Pattern", style="bold")
        table.add_column("Impact", justify="right")
        table.add_column("Description", style="muted")
        for pattern in intelligence.detected_patterns:
            table.add_row(pattern.pattern_type.value, f"{pattern.impact:.2f}", pattern.description)

        self.console.print(table)
        self.console.print(
            f"complexity [bold]{intelligence.complexity_score:.2f}[/bold]/5.0, "
            f"body {'required' if intelligence.requires_body else 'optional'}, "
            f"type [commit_type]{intelligence.commit_type_hint}[/commit_type], "
            f"scope [scope]{intelligence.scope_hint or '-'}[/scope]"
        )
        self.console.print()

    def show_commit_message_preview(self, message: str, model: Optional[str] = None) -> None:
        """Show commit message preview."""
        subject, newline, body = message.partition("\n")
        if ':' in subject:
            prefix, description = subject.split(':', 1)
            formatted = f"[commit_type]{prefix.strip()}[/commit_type]: {description.strip()}"
        else:
            formatted = subject
        formatted += newline + body

        title = "Generated Commit Message"
        if model:
            title += f" [dim]({model})[/dim]"

        self.console.print(Panel(formatted, title=title, box=box.ROUNDED, style="green"))
        self.console.print()

    def show_configuration(self) -> None:
        """Display current settings, never the API key itself."""
        table = Table(title="Configuration", box=box.SIMPLE_HEAD)
        table.add_column("Setting", style="bold")
        table.add_column("Value")

        ai = self.settings.ai
        table.add_row("API URL", ai.api_url)
        table.add_row("API key", "[success]set[/success]" if ai.api_key else "[error]missing[/error]")
        table.add_row("Timeouts", f"{ai.connect_timeout}s connect / {ai.timeout}s total")
        table.add_row("Max retries", str(ai.max_retries))
        table.add_row("Model", self.settings.models.default)
        table.add_row("Smart model", "on" if self.settings.models.smart_model else "off")
        table.add_row("Max file size", f"{self.settings.git.max_file_size_kb} KB")
        table.add_row("Max files", str(self.settings.git.max_files))
        table.add_row("Fallback type", self.settings.analysis.fallback_commit_type)
        table.add_row("Config file", str(self.settings.config_file))

        self.console.print(table)

    def confirm_action(self, message: str, default: bool = True) -> bool:
        """Get user confirmation for an action."""
        return Confirm.ask(message, default=default, console=self.console)

    def show_progress_spinner(self, description: str):
        """Create a progress spinner context manager."""
        return self.console.status(f"[blue]{description}...[/blue]", spinner="dots")

    def print_success(self, message: str) -> None:
        self.console.print(f"[success]✓ {message}[/success]")

    def print_warning(self, message: str) -> None:
        self.console.print(f"[warning]⚠ {message}[/warning]")

    def print_error(self, message: str) -> None:
        self.console.print(f"[error]✗ {message}[/error]")

    def print_info(self, message: str) -> None:
        self.console.print(f"[info]ℹ {message}[/info]")
