"""Analysis pipeline: git data → project context → prompt → inference.

Errors from any stage propagate unchanged to the caller.
"""

import logging
from collections.abc import Sequence
from datetime import date

from commit_navigator.ai.client import ProviderGateway
from commit_navigator.ai.prompts import (
    CHANGELOG_SYSTEM_MESSAGE,
    COMMIT_SYSTEM_MESSAGE,
    PROJECT_SYSTEM_MESSAGE,
    AnalysisMode,
    ChangelogFormat,
    assemble_changelog_prompt,
    assemble_prompt,
    render_repository_context,
)
from commit_navigator.config import NavigatorSettings
from commit_navigator.git_client import GitClient
from commit_navigator.models import CommitRecord, ProjectContext
from commit_navigator.project_context import ProjectContextBuilder

logger = logging.getLogger(__name__)

CHANGELOG_TEMPERATURE = 0.3
CHANGELOG_MAX_TOKENS = 2000


class CommitNavigator:
    """Orchestrates context gathering, prompt assembly and inference."""

    def __init__(
        self,
        git_client: GitClient,
        gateway: ProviderGateway,
        settings: NavigatorSettings | None = None,
        context_builder: ProjectContextBuilder | None = None,
    ) -> None:
        """Initialize the navigator.

        Args:
            git_client: Client bound to the analyzed repository
            gateway: Inference gateway
            settings: Runtime settings (defaults if None)
            context_builder: Project context builder (created from git_client if None)
        """
        self.git_client = git_client
        self.gateway = gateway
        self.settings = settings or NavigatorSettings()
        self.context_builder = context_builder or ProjectContextBuilder(
            git_client, max_depth=self.settings.max_depth
        )

    @property
    def target(self) -> str:
        return str(self.git_client.repo_path.resolve())

    async def gather_context(self) -> ProjectContext:
        """Build the project context for the repository."""
        return await self.context_builder.build()

    async def analyze_commits(
        self,
        commits: Sequence[CommitRecord],
        mode: AnalysisMode = AnalysisMode.SUMMARY,
    ) -> str:
        """Summarize or review a range of commits.

        Args:
            commits: Commits to analyze, in log order
            mode: Review or summary

        Returns:
            Generated analysis text
        """
        logger.info(f"Analyzing {len(commits)} commits in {mode.value} mode")
        context = await self.gather_context()
        prompt = assemble_prompt(mode, self.target, commits=commits, context=context)
        logger.debug(f"Commit prompt: {len(prompt)} chars")

        return await self.gateway.invoke(
            prompt,
            COMMIT_SYSTEM_MESSAGE,
            temperature=self.settings.temperature,
            max_tokens=self.settings.max_tokens,
        )

    async def analyze_project(self, mode: AnalysisMode = AnalysisMode.SUMMARY) -> str:
        """Produce a whole-project overview or review."""
        logger.info(f"Analyzing project {self.target} in {mode.value} mode")
        context = await self.gather_context()
        prompt = assemble_prompt(mode, self.target, context=context)
        logger.debug(f"Project prompt: {len(prompt)} chars")

        return await self.gateway.invoke(
            prompt,
            PROJECT_SYSTEM_MESSAGE,
            temperature=self.settings.temperature,
            max_tokens=self.settings.max_tokens,
        )

    async def repository_context(self) -> str:
        """Render the context document without calling the model."""
        context = await self.gather_context()
        return render_repository_context(context, self.target)

    async def generate_changelog(
        self,
        commits: Sequence[CommitRecord],
        fmt: ChangelogFormat = ChangelogFormat.WEEKLY,
        today: date | None = None,
    ) -> str:
        """Generate a Keep a Changelog entry for the given commits."""
        context = await self.gather_context()
        prompt = assemble_changelog_prompt(
            commits, context, fmt, today or date.today()
        )
        logger.debug(f"Changelog prompt: {len(prompt)} chars")

        return await self.gateway.invoke(
            prompt,
            CHANGELOG_SYSTEM_MESSAGE,
            temperature=CHANGELOG_TEMPERATURE,
            max_tokens=CHANGELOG_MAX_TOKENS,
        )
