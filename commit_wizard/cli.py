"""
CLI interface using Typer with Rich integration.
"""

import asyncio
import sys
from pathlib import Path
from typing import Optional
import typer
from rich.console import Console
from loguru import logger

from .core import CommitWizard, CommitWizardError
from .config.settings import Settings
from .ui.console import WizardConsole


app = typer.Typer(
    name="commit-wizard",
    help="Generate conventional commit messages from your git changes",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=False
)

# Global console for error handling
console = Console()


def setup_logging(log_level: str = "WARNING", log_file: Optional[Path] = None):
    """Setup logging configuration."""
    logger.remove()  # Remove default handler

    logger.add(
        sys.stderr,
        level=log_level,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        colorize=True
    )

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            level="DEBUG",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
            rotation="1 MB",
            retention="7 days"
        )


def resolve_log_level(settings: Settings, verbose: bool, debug: bool) -> str:
    # debug overrides verbose
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    return settings.ui.log_level


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    path: Optional[Path] = typer.Option(
        None, "--path", "-p",
        help="Git repository path (default: current directory)"
    ),
    max_size: Optional[int] = typer.Option(
        None, "--max-size", "-m", min=1,
        help="Skip files larger than this many KB"
    ),
    max_files: Optional[int] = typer.Option(
        None, "--max-files", "-f", min=1,
        help="Maximum number of files to analyze"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Enable verbose logging"
    ),
    debug: bool = typer.Option(
        False, "--debug", "-d",
        help="Enable debug logging and show the change analysis"
    ),
    yes: bool = typer.Option(
        False, "--yes", "-y",
        help="Commit without asking for confirmation"
    ),
    smart_model: bool = typer.Option(
        False, "--smart-model",
        help="Pick a fast or thinking model from the commit complexity"
    ),
    model: Optional[str] = typer.Option(
        None, "--model",
        help="Model to use for this run"
    ),
    version: bool = typer.Option(
        False, "--version",
        help="Show version information"
    )
):
    """
    Generate a conventional commit message for your staged changes.

    [bold blue]Examples:[/bold blue]

    [green]commit-wizard[/green]                          # Analyse, preview, confirm, commit
    [green]commit-wizard --yes[/green]                    # Commit without confirmation
    [green]commit-wizard --smart-model[/green]            # Choose the model by complexity
    [green]commit-wizard --model deepseek/deepseek-r1:free[/green]
    [green]commit-wizard --debug[/green]                  # Show patterns and complexity
    [green]commit-wizard config --show[/green]            # Show configuration
    """
    if version:
        from . import __version__
        console.print(f"[bold blue]Commit Wizard[/bold blue] version [green]{__version__}[/green]")
        return

    if ctx.invoked_subcommand is None:
        asyncio.run(_run_commit(path, max_size, max_files, verbose, debug, yes, smart_model, model))


@app.command()
def config(
    show: bool = typer.Option(
        False, "--show", "-s",
        help="Show current configuration"
    ),
    model: Optional[str] = typer.Option(
        None, "--model", "-m",
        help="Set the default model"
    ),
    smart_model: Optional[bool] = typer.Option(
        None, "--smart-model/--no-smart-model",
        help="Enable or disable smart model selection"
    ),
    save: bool = typer.Option(
        False, "--save",
        help="Save configuration to file"
    )
):
    """
    Manage Commit Wizard configuration.

    [bold blue]Examples:[/bold blue]

    [green]commit-wizard config --show[/green]
    [green]commit-wizard config --model mistralai/mistral-small-3.1-24b-instruct:free --save[/green]
    """
    try:
        settings = Settings()

        if show:
            WizardConsole(settings).show_configuration()
            return

        config_changed = False

        if model:
            settings.models.default = model
            config_changed = True
            console.print(f"[green]Set model to:[/green] {model}")

        if smart_model is not None:
            settings.models.smart_model = smart_model
            config_changed = True
            console.print(f"[green]Smart model selection:[/green] {'on' if smart_model else 'off'}")

        if save and config_changed:
            settings.save_to_file(settings.config_file)
            console.print(f"[green]Configuration saved to:[/green] {settings.config_file}")
        elif config_changed:
            console.print("[yellow]Use --save to persist these changes[/yellow]")
        else:
            console.print("[yellow]No configuration changes made[/yellow]")
            console.print("Use [green]--show[/green] to see current configuration")

    except (OSError, ValueError) as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1)


async def _run_commit(
    path: Optional[Path],
    max_size: Optional[int],
    max_files: Optional[int],
    verbose: bool,
    debug: bool,
    yes: bool,
    smart_model: bool,
    model: Optional[str],
):
    """Run the commit flow."""
    try:
        settings = Settings()
        if max_size:
            settings.git.max_file_size_kb = max_size
        if max_files:
            settings.git.max_files = max_files
        if smart_model:
            settings.models.smart_model = True

        setup_logging(resolve_log_level(settings, verbose, debug), settings.log_file)

        wizard = CommitWizard(settings, path)
        wizard.console.print_banner()
        await wizard.run(auto_commit=yes, debug=debug, verbose=verbose, model=model)

    except CommitWizardError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        raise typer.Exit(130)
    except Exception as e:
        logger.exception("Unexpected error occurred")
        console.print(f"[red]Unexpected error:[/red] {e}")
        raise typer.Exit(1)


def main():
    """Main entry point for the CLI."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()
