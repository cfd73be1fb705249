"""AI integration for commit-navigator.

Prompt assembly, the OpenAI/Anthropic inference gateway and the pipeline that
ties them to the git and project context layers.
"""

from .client import (
    NO_ANALYSIS_SENTINEL,
    AnthropicBackend,
    CredentialSources,
    GatewayState,
    OpenAIBackend,
    ProviderGateway,
    resolve_backend,
)
from .orchestrator import CommitNavigator
from .prompts import AnalysisMode, ChangelogFormat, assemble_prompt

__all__ = [
    "NO_ANALYSIS_SENTINEL",
    "AnalysisMode",
    "AnthropicBackend",
    "ChangelogFormat",
    "CommitNavigator",
    "CredentialSources",
    "GatewayState",
    "OpenAIBackend",
    "ProviderGateway",
    "assemble_prompt",
    "resolve_backend",
]
