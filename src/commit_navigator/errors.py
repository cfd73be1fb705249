"""Exception hierarchy for commit-navigator."""


class NavigatorError(Exception):
    """Base exception for commit-navigator errors."""


class NotARepositoryError(NavigatorError):
    """Raised when the target directory is not inside a git work tree."""


class CommitRetrievalError(NavigatorError):
    """Raised when a git query for commit data fails.

    The original git error message is kept as ``original_message``.
    """

    def __init__(self, original_message: str) -> None:
        super().__init__(f"Failed to get commits: {original_message}")
        self.original_message = original_message


class CredentialMissingError(NavigatorError):
    """Raised when neither the OpenAI nor the Anthropic API key is available."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(
            message
            or "No API key found. Set OPENAI_API_KEY or ANTHROPIC_API_KEY, "
            "or run `cnav auth <provider>`."
        )


class ProviderTransportError(NavigatorError):
    """Raised when the inference backend cannot be reached or rejects a request."""

    def __init__(self, provider: str, status_code: int | None, body: str) -> None:
        if status_code is None:
            message = f"{provider} request failed: {body}"
        else:
            message = f"{provider} API error: {status_code} - {body}"
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code
        self.body = body


class ConfigurationError(NavigatorError):
    """Raised when stored settings are invalid."""


class ArtifactWriteError(NavigatorError):
    """Raised when a required output artifact cannot be written."""
