"""Commit Navigator - understand git commit changes using an LLM.

Library API:

    import asyncio
    import os

    from commit_navigator import (
        CommitNavigator,
        CredentialSources,
        GitClient,
        ProviderGateway,
    )

    git_client = GitClient(".")
    gateway = ProviderGateway(CredentialSources.from_environment(os.environ))
    navigator = CommitNavigator(git_client, gateway)

    commits = asyncio.run(git_client.get_last_commits(3))
    summary = asyncio.run(navigator.analyze_commits(commits))
"""

__version__ = "0.1.0"

from commit_navigator.ai import (
    NO_ANALYSIS_SENTINEL,
    AnalysisMode,
    ChangelogFormat,
    CommitNavigator,
    CredentialSources,
    ProviderGateway,
    assemble_prompt,
)
from commit_navigator.config import Config, NavigatorSettings
from commit_navigator.errors import (
    ArtifactWriteError,
    CommitRetrievalError,
    ConfigurationError,
    CredentialMissingError,
    NavigatorError,
    NotARepositoryError,
    ProviderTransportError,
)
from commit_navigator.git_client import GitClient
from commit_navigator.models import CommitRecord, ProjectContext
from commit_navigator.project_context import ProjectContextBuilder

__all__ = [
    # Core API
    "CommitNavigator",
    "GitClient",
    "ProjectContextBuilder",
    "ProviderGateway",
    "CredentialSources",
    "AnalysisMode",
    "ChangelogFormat",
    "assemble_prompt",
    "NO_ANALYSIS_SENTINEL",
    # Models and configuration
    "CommitRecord",
    "ProjectContext",
    "Config",
    "NavigatorSettings",
    # Exceptions
    "NavigatorError",
    "NotARepositoryError",
    "CommitRetrievalError",
    "CredentialMissingError",
    "ProviderTransportError",
    "ConfigurationError",
    "ArtifactWriteError",
]
