"""Inference gateway for the OpenAI and Anthropic HTTP APIs.

This module resolves a backend from explicit credential sources, encodes the
request for that backend, enforces its output-token ceiling and decodes the
generated text. There is no retry and no fallback to the other backend once
one has been selected for a call.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx

from commit_navigator.config import Config
from commit_navigator.errors import CredentialMissingError, ProviderTransportError
from commit_navigator.models import ChatMessage, InferenceRequest

logger = logging.getLogger(__name__)

NO_ANALYSIS_SENTINEL = "no analysis available"

OPENAI_URL = "https://api.openai.com/v1/chat/completions"
OPENAI_DEFAULT_MODEL = "gpt-4o-mini"
OPENAI_MAX_TOKENS = 5000

ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_DEFAULT_MODEL = "claude-3-haiku-20240307"
ANTHROPIC_MAX_TOKENS = 4096
ANTHROPIC_VERSION = "2023-06-01"
ANTHROPIC_DEFAULT_SYSTEM = "You are a helpful assistant."


class GatewayState(Enum):
    """Per-call state of the gateway."""

    UNRESOLVED = "unresolved"
    RESOLVING = "resolving"
    RESOLVED = "resolved"
    CREDENTIAL_MISSING = "credential_missing"
    TRANSPORT_FAILED = "transport_failed"


@dataclass(frozen=True)
class OpenAIBackend:
    """OpenAI chat completions backend."""

    api_key: str
    model: str = OPENAI_DEFAULT_MODEL
    max_output_tokens: int = OPENAI_MAX_TOKENS
    name: str = "OpenAI"


@dataclass(frozen=True)
class AnthropicBackend:
    """Anthropic messages backend."""

    api_key: str
    model: str = ANTHROPIC_DEFAULT_MODEL
    max_output_tokens: int = ANTHROPIC_MAX_TOKENS
    name: str = "Anthropic"


Backend = OpenAIBackend | AnthropicBackend


@dataclass(frozen=True)
class CredentialSources:
    """API keys available to the gateway, in resolution order per provider.

    Environment keys take precedence over keys stored in the config file.
    """

    openai_env: str | None = None
    openai_stored: str | None = None
    anthropic_env: str | None = None
    anthropic_stored: str | None = None

    @classmethod
    def from_environment(
        cls, environ: Mapping[str, str], config: Config | None = None
    ) -> "CredentialSources":
        """Collect credentials from an environment mapping and the config store."""

        def stored(provider: str) -> str | None:
            return config.get_ai_api_key(provider) if config is not None else None

        return cls(
            openai_env=environ.get("OPENAI_API_KEY") or None,
            openai_stored=stored("openai"),
            anthropic_env=environ.get("ANTHROPIC_API_KEY") or None,
            anthropic_stored=stored("anthropic"),
        )

    def openai_key(self) -> str | None:
        for key in (self.openai_env, self.openai_stored):
            if key is not None and key != "":
                return key
        return None

    def anthropic_key(self) -> str | None:
        for key in (self.anthropic_env, self.anthropic_stored):
            if key is not None and key != "":
                return key
        return None


def _model_for(provider: str, model: str | None) -> str | None:
    """Return ``model`` when it plausibly belongs to ``provider``."""
    if model is None:
        return None
    lowered = model.lower()
    if provider == "anthropic":
        return model if "claude" in lowered or "anthropic" in lowered else None
    return None if "claude" in lowered or "anthropic" in lowered else model


def resolve_backend(sources: CredentialSources, model: str | None = None) -> Backend | None:
    """Pick the backend for a call.

    OpenAI is the primary backend and Anthropic the secondary. A configured
    default model only applies to the backend it belongs to.

    Returns:
        The selected backend, or None when no key is available
    """
    openai_key = sources.openai_key()
    if openai_key is not None:
        openai_model = _model_for("openai", model)
        if openai_model is not None:
            return OpenAIBackend(api_key=openai_key, model=openai_model)
        return OpenAIBackend(api_key=openai_key)

    anthropic_key = sources.anthropic_key()
    if anthropic_key is not None:
        anthropic_model = _model_for("anthropic", model)
        if anthropic_model is not None:
            return AnthropicBackend(api_key=anthropic_key, model=anthropic_model)
        return AnthropicBackend(api_key=anthropic_key)

    return None


def clamp_max_tokens(requested: int, backend: Backend) -> int:
    """Limit the requested output size to the backend's hard ceiling."""
    return min(requested, backend.max_output_tokens)


def encode_openai(request: InferenceRequest, backend: OpenAIBackend) -> dict[str, Any]:
    """Build the chat completions payload."""
    messages: list[dict[str, str]] = []
    has_system = any(m.role == "system" for m in request.messages)
    if request.system_message and not has_system:
        messages.append({"role": "system", "content": request.system_message})
    messages.extend({"role": m.role, "content": m.content} for m in request.messages)

    return {
        "model": backend.model,
        "messages": messages,
        "temperature": request.temperature,
        "max_tokens": clamp_max_tokens(request.max_tokens, backend),
    }


def encode_anthropic(request: InferenceRequest, backend: AnthropicBackend) -> dict[str, Any]:
    """Build the messages payload.

    The messages API has no ``system`` role, so system entries are merged
    into the top-level ``system`` field.
    """
    system_parts = [m.content for m in request.messages if m.role == "system"]
    system = request.system_message or "\n".join(system_parts) or ANTHROPIC_DEFAULT_SYSTEM

    return {
        "model": backend.model,
        "max_tokens": clamp_max_tokens(request.max_tokens, backend),
        "temperature": request.temperature,
        "system": system,
        "messages": [
            {"role": m.role, "content": m.content}
            for m in request.messages
            if m.role != "system"
        ],
    }


def decode_openai(data: Any) -> str | None:
    """Extract ``choices[0].message.content``."""
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return None
    return content if isinstance(content, str) and content else None


def decode_anthropic(data: Any) -> str | None:
    """Extract ``content[0].text``."""
    try:
        text = data["content"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) and text else None


class ProviderGateway:
    """Submits inference requests to the first available backend."""

    def __init__(
        self,
        credentials: CredentialSources,
        default_model: str | None = None,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the gateway.

        Args:
            credentials: API keys for the supported backends
            default_model: Model used when a request does not name one
            timeout: HTTP timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.credentials = credentials
        self.default_model = default_model
        self.timeout = timeout
        self._transport = transport
        self.state = GatewayState.UNRESOLVED
        self.last_backend: Backend | None = None

    def resolve(self, model: str | None = None) -> Backend:
        """Resolve the backend for a call.

        Raises:
            CredentialMissingError: If no API key is available
        """
        self.state = GatewayState.RESOLVING
        backend = resolve_backend(self.credentials, model or self.default_model)
        if backend is None:
            self.state = GatewayState.CREDENTIAL_MISSING
            raise CredentialMissingError()

        self.state = GatewayState.RESOLVED
        self.last_backend = backend
        logger.info(f"Using {backend.name} backend with model {backend.model}")
        return backend

    async def submit(
        self,
        messages: Sequence[ChatMessage],
        options: InferenceRequest | None = None,
    ) -> str:
        """Run one inference call.

        Args:
            messages: Conversation to send
            options: Model, output size, temperature and system message.
                Its ``messages`` field is replaced by ``messages``.

        Returns:
            Generated text, or NO_ANALYSIS_SENTINEL when the response carries
            no text at the expected path

        Raises:
            CredentialMissingError: If no backend can be resolved
            ProviderTransportError: If the backend returns a non-success status
                or cannot be reached
        """
        self.state = GatewayState.UNRESOLVED
        request = (options or InferenceRequest(messages=[])).model_copy(
            update={"messages": list(messages)}
        )
        backend = self.resolve(request.model)

        if isinstance(backend, OpenAIBackend):
            url = OPENAI_URL
            headers = {
                "Authorization": f"Bearer {backend.api_key}",
                "Content-Type": "application/json",
            }
            payload = encode_openai(request, backend)
            decode = decode_openai
        elif isinstance(backend, AnthropicBackend):
            url = ANTHROPIC_URL
            headers = {
                "x-api-key": backend.api_key,
                "anthropic-version": ANTHROPIC_VERSION,
                "content-type": "application/json",
            }
            payload = encode_anthropic(request, backend)
            decode = decode_anthropic
        else:
            raise TypeError(f"Unsupported backend: {backend!r}")

        if payload["max_tokens"] < request.max_tokens:
            logger.debug(
                f"Clamped max_tokens from {request.max_tokens} to {payload['max_tokens']} for {backend.name}"
            )

        response = await self._post(backend, url, headers, payload)

        try:
            data = response.json()
        except ValueError as e:
            logger.warning(f"{backend.name} returned a body that is not JSON: {e}")
            return NO_ANALYSIS_SENTINEL

        text = decode(data)
        if text is None:
            logger.warning(f"{backend.name} response has no generated text")
            return NO_ANALYSIS_SENTINEL

        logger.info(f"Received {len(text)} chars from {backend.name}")
        return text

    async def _post(
        self,
        backend: Backend,
        url: str,
        headers: dict[str, str],
        payload: dict[str, Any],
    ) -> httpx.Response:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(url, headers=headers, json=payload)
        except httpx.HTTPError as e:
            self.state = GatewayState.TRANSPORT_FAILED
            logger.error(f"{backend.name} request failed: {e}")
            raise ProviderTransportError(backend.name, None, str(e)) from e

        if not response.is_success:
            self.state = GatewayState.TRANSPORT_FAILED
            logger.error(f"{backend.name} returned HTTP {response.status_code}")
            raise ProviderTransportError(backend.name, response.status_code, response.text)

        return response

    async def invoke(
        self,
        prompt: str,
        system_message: str | None = None,
        **options: Any,
    ) -> str:
        """Send a single user prompt with an optional system message."""
        request = InferenceRequest(
            messages=[], system_message=system_message, **options
        )
        return await self.submit([ChatMessage(role="user", content=prompt)], request)
