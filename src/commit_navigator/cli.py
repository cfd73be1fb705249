"""Command-line interface for commit-navigator."""

import asyncio
import logging
import os
import re
import sys
from collections.abc import Callable, Coroutine
from pathlib import Path
from typing import Any, TypeVar

import click
import typer
from typer.core import TyperGroup
from rich import print
from rich.console import Console
from rich.logging import RichHandler
from rich.prompt import Confirm, Prompt
from rich.table import Table

from commit_navigator.ai.client import CredentialSources, ProviderGateway, resolve_backend
from commit_navigator.ai.orchestrator import CommitNavigator
from commit_navigator.ai.prompts import AnalysisMode, ChangelogFormat, render_repository_context
from commit_navigator.config import AI_PROVIDERS, Config, NavigatorSettings
from commit_navigator.errors import NavigatorError
from commit_navigator.git_client import GitClient
from commit_navigator.project_context import ProjectContextBuilder
from commit_navigator.writers import (
    CHANGELOG_FILENAME,
    display_result,
    prepend_changelog,
    write_analysis,
    write_context,
)

_COUNT_PATTERN = re.compile(r"^(\d+)([dD]?)$")


class DefaultCommandGroup(TyperGroup):
    """Route invocations without a command name to ``analyze`` or ``last``.

    A count such as ``2`` or ``3d`` goes to ``last``. Anything else, including
    nothing at all, is the directory to analyze.
    """

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        params = self.get_params(ctx)
        eager_opts = {opt for p in params if p.is_eager for opt in (*p.opts, *p.secondary_opts)}
        if any(arg in eager_opts for arg in args):
            return super().parse_args(ctx, args)

        group_opts = {opt for p in params for opt in (*p.opts, *p.secondary_opts)}
        leading = [arg for arg in args if arg in group_opts]
        rest = [arg for arg in args if arg not in group_opts]
        first = next((arg for arg in rest if not arg.startswith("-")), None)

        if first in self.commands:
            return super().parse_args(ctx, args)

        command = "last" if first is not None and _COUNT_PATTERN.match(first) else "analyze"
        return super().parse_args(ctx, [*leading, command, *rest])


app = typer.Typer(
    name="cnav",
    help="Commit Navigator - understand git commit changes using an LLM",
    epilog=(
        "Examples: 'cnav' analyzes the current project directory, "
        "'cnav 2' analyzes the last 2 commits, "
        "'cnav 3d' analyzes commits in the last 3 days."
    ),
    cls=DefaultCommandGroup,
)

console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_state: dict[str, bool] = {"interactive": True}


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
    no_input: bool = typer.Option(
        False, "--no-input", help="Never prompt for missing API keys"
    ),
) -> None:
    """Commit Navigator - a CLI tool to understand git commit changes using an LLM."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )
    _state["interactive"] = not no_input and sys.stdin.isatty()


def _get_config() -> Config:
    config_dir = os.environ.get("CNAV_CONFIG_DIR")
    if config_dir:
        logger.debug(f"Using config directory from CNAV_CONFIG_DIR: {config_dir}")
    return Config(Path(config_dir) if config_dir else None)


def _run(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine, turning navigator errors into a non-zero exit."""
    try:
        return asyncio.run(coro)
    except KeyboardInterrupt:
        print("\n[red]Operation cancelled by user[/red]")
        raise typer.Exit(1)
    except NavigatorError as e:
        print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def _save(write: Callable[..., Path], *args: Any, **kwargs: Any) -> Path:
    """Write an artifact, turning write errors into a non-zero exit."""
    try:
        return write(*args, **kwargs)
    except NavigatorError as e:
        print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def _load_settings(config: Config) -> NavigatorSettings:
    try:
        settings = config.load_settings()
    except NavigatorError as e:
        print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    console.no_color = not settings.color_output
    return settings


def _prompt_for_api_key(config: Config) -> bool:
    """Ask for an API key and store it. Returns True when a key was saved."""
    print("[yellow]No OpenAI or Anthropic API key found.[/yellow]")
    print("To use cnav, you need to provide an API key.")
    print("  • OpenAI: [link]https://platform.openai.com/api-keys[/link]")
    print("  • Anthropic: [link]https://console.anthropic.com/[/link]")
    print()

    provider = Prompt.ask(
        "[cyan]Which provider would you like to use?",
        choices=list(AI_PROVIDERS),
        default="openai",
    )
    api_key = Prompt.ask(f"[cyan]Enter your {provider.title()} API key", password=True)

    if not api_key:
        print("[red]API key cannot be empty[/red]")
        return False
    if provider == "openai" and not api_key.startswith("sk-"):
        print('[red]Invalid API key format. It should start with "sk-"[/red]')
        return False

    config.set_ai_api_key(provider, api_key)
    return True


def _build_gateway(config: Config, settings: NavigatorSettings) -> ProviderGateway:
    """Create the gateway, offering interactive key setup when no key resolves."""
    sources = CredentialSources.from_environment(os.environ, config)
    if resolve_backend(sources, settings.default_model) is None and _state["interactive"]:
        if _prompt_for_api_key(config):
            sources = CredentialSources.from_environment(os.environ, config)

    return ProviderGateway(
        sources,
        default_model=settings.default_model,
        timeout=settings.request_timeout,
    )


def _resolve_directory(path: str) -> Path:
    target = Path(path).resolve()
    if not target.is_dir():
        print(f"[red]Error: Cannot access path: {target}[/red]")
        raise typer.Exit(1)
    return target


def _parse_count(count: str, days: int | None) -> tuple[int, bool]:
    """Split ``cnav last`` arguments into a value and whether it counts days.

    ``3d`` is shorthand for ``--days 3``.
    """
    if days is not None:
        if days < 1:
            raise typer.BadParameter("--days must be positive")
        return days, True

    match = _COUNT_PATTERN.match(count.strip())
    if match is None or int(match.group(1)) < 1:
        raise typer.BadParameter(f"Invalid count: {count}. Use a number like 2 or 3d")

    return int(match.group(1)), bool(match.group(2))


@app.command()
def version() -> None:
    """Show the version and exit."""
    from commit_navigator import __version__

    print(f"cnav {__version__}")


@app.command()
def analyze(
    path: str = typer.Argument(".", help="Project directory to analyze"),
    review: bool = typer.Option(
        False, "--review", "-r", help="Perform a detailed review of the project"
    ),
    md: bool = typer.Option(False, "--md", "-m", help="Output analysis in Markdown format"),
    output_context: bool = typer.Option(
        False,
        "--output-context",
        "--oc",
        help="Write repository context to README_context.md without calling the model",
    ),
) -> None:
    """Analyze a project directory (defaults to the current directory)."""
    target = _resolve_directory(path)
    config = _get_config()
    settings = _load_settings(config)
    git_client = GitClient(target, max_concurrency=settings.max_concurrency)

    if output_context:
        context = _run(_build_context_document(git_client, settings))
        context_path = _save(write_context, target, context)
        print(f"[green]📄 Repository context saved to: {context_path}[/green]")
        display_result(console, "📊 Repository Context", context, markdown=md)
        return

    gateway = _build_gateway(config, settings)
    navigator = CommitNavigator(git_client, gateway, settings)
    mode = AnalysisMode.REVIEW if review else AnalysisMode.SUMMARY

    with console.status("Analyzing project..."):
        analysis = _run(navigator.analyze_project(mode))

    readme_path = _save(write_analysis, target, analysis)
    print(f"[green]📄 Analysis saved to: {readme_path}[/green]")

    title = (
        "📊 Current Project Analysis"
        if target == Path.cwd()
        else f"📊 Project Analysis: {target.name}"
    )
    display_result(console, title, analysis, markdown=md)


async def _build_context_document(git_client: GitClient, settings: NavigatorSettings) -> str:
    builder = ProjectContextBuilder(git_client, max_depth=settings.max_depth)
    context = await builder.build()
    return render_repository_context(context, str(git_client.repo_path))


@app.command()
def last(
    count: str = typer.Argument("1", help="Number of commits to review, or Nd for N days"),
    review: bool = typer.Option(
        False, "--review", "-r", help="Perform a code review on the commits"
    ),
    days: int | None = typer.Option(
        None, "--days", "-d", help="Review commits from the last n days"
    ),
    md: bool = typer.Option(False, "--md", "-m", help="Output analysis in Markdown format"),
    output: str | None = typer.Option(
        None, "--output", "-o", help="Also write the analysis to this file"
    ),
) -> None:
    """Review the last n commits (default: 1)."""
    value, in_days = _parse_count(count, days)

    target = Path.cwd()
    config = _get_config()
    settings = _load_settings(config)
    git_client = GitClient(target, max_concurrency=settings.max_concurrency)

    if in_days:
        with console.status(f"Fetching commits from the last {value} day(s)..."):
            commits = _run(git_client.get_commits_from_last_days(value))
        print(f"[green]✓[/green] Found {len(commits)} commits from the last {value} day(s)")
    else:
        with console.status(f"Fetching the last {value} commit(s)..."):
            commits = _run(git_client.get_last_commits(value))
        print(f"[green]✓[/green] Found {len(commits)} commit(s)")

    if not commits:
        print("[yellow]No commits found in the specified range.[/yellow]")
        return

    gateway = _build_gateway(config, settings)
    navigator = CommitNavigator(git_client, gateway, settings)
    mode = AnalysisMode.REVIEW if review else AnalysisMode.SUMMARY

    with console.status("Analyzing commit changes..."):
        analysis = _run(navigator.analyze_commits(commits, mode))

    if output:
        output_path = Path(output)
        _save(write_analysis, output_path.parent, analysis, filename=output_path.name)
        print(f"[green]📄 Analysis saved to: {output_path}[/green]")

    display_result(console, "📊 Commit Analysis", analysis, markdown=md)


@app.command()
def changelog(
    fmt_name: str = typer.Option(
        "weekly", "--format", "-f", help="Output format: daily/weekly"
    ),
) -> None:
    """Update the CHANGELOG file with the latest changes."""
    try:
        fmt = ChangelogFormat(fmt_name.lower())
    except ValueError:
        raise typer.BadParameter("--format must be 'daily' or 'weekly'")

    target = Path.cwd()
    config = _get_config()
    settings = _load_settings(config)
    git_client = GitClient(target, max_concurrency=settings.max_concurrency)

    with console.status("Fetching commits since last changelog update..."):
        commits = _run(git_client.get_commits_since_changelog())

    if not commits:
        print("[blue]No new commits found since last changelog update.[/blue]")
        return

    print(f"[green]✓[/green] Found {len(commits)} new commit(s) to add to changelog")

    gateway = _build_gateway(config, settings)
    navigator = CommitNavigator(git_client, gateway, settings)

    with console.status("Generating changelog content..."):
        entry = _run(navigator.generate_changelog(commits, fmt))

    changelog_path = _save(prepend_changelog, target / CHANGELOG_FILENAME, entry)
    print(f"[green]✓[/green] Changelog updated at: {changelog_path}")


def _validate_provider(provider: str) -> str:
    provider = provider.lower()
    if provider not in AI_PROVIDERS:
        print(
            f"[red]Error: Unknown provider '{provider}'. Use: {', '.join(AI_PROVIDERS)}[/red]"
        )
        raise typer.Exit(1)
    return provider


@app.command()
def auth(
    provider: str = typer.Argument(..., help="AI provider (openai, anthropic)"),
) -> None:
    """Store an API key for an AI provider."""
    provider = _validate_provider(provider)
    config = _get_config()

    if config.get_ai_api_key(provider):
        print(f"[green]✓[/green] You already have a {provider} API key stored")
        if not Confirm.ask("Would you like to replace it with a new key?"):
            return

    api_key = Prompt.ask(f"[cyan]Enter your {provider.title()} API key", password=True)
    if not api_key:
        print("[red]No API key provided[/red]")
        raise typer.Exit(1)

    config.set_ai_api_key(provider, api_key)


@app.command("auth-status")
def auth_status() -> None:
    """Show which AI API keys are available."""
    config = _get_config()
    info = config.get_config_info()

    table = Table(title="AI API Key Status")
    table.add_column("Provider", style="cyan")
    table.add_column("Stored", style="green")
    table.add_column("Environment", style="green")

    env_vars = {"openai": "OPENAI_API_KEY", "anthropic": "ANTHROPIC_API_KEY"}
    for provider, has_key in info["ai_api_keys"].items():
        in_env = bool(os.environ.get(env_vars[provider]))
        table.add_row(
            provider.title(),
            "✓ Yes" if has_key else "✗ No",
            "✓ Yes" if in_env else "✗ No",
        )

    print(table)
    print(f"Config file: {info['config_file']}")

    sources = CredentialSources.from_environment(os.environ, config)
    backend = resolve_backend(sources)
    if backend is None:
        print()
        print(
            "[yellow]No AI API keys found. Run [bold]cnav auth <provider>[/bold] to set up a key.[/yellow]"
        )
    else:
        print(f"Active backend: [magenta]{backend.name}[/magenta]")


@app.command("auth-remove")
def auth_remove(
    provider: str = typer.Argument(..., help="AI provider (openai, anthropic)"),
) -> None:
    """Remove a stored API key."""
    provider = _validate_provider(provider)
    config = _get_config()

    if not config.get_ai_api_key(provider):
        print(f"[yellow]No {provider} API key is currently stored[/yellow]")
        return

    if Confirm.ask(f"[red]Are you sure you want to remove the {provider} API key?[/red]"):
        config.remove_ai_api_key(provider)
    else:
        print("API key removal cancelled")


if __name__ == "__main__":
    app()
