"""Tests for the inference gateway."""

import json

import httpx
import pytest

from commit_navigator.ai.client import (
    ANTHROPIC_DEFAULT_MODEL,
    ANTHROPIC_MAX_TOKENS,
    ANTHROPIC_URL,
    ANTHROPIC_VERSION,
    NO_ANALYSIS_SENTINEL,
    OPENAI_DEFAULT_MODEL,
    OPENAI_MAX_TOKENS,
    OPENAI_URL,
    AnthropicBackend,
    CredentialSources,
    GatewayState,
    OpenAIBackend,
    ProviderGateway,
    resolve_backend,
)
from commit_navigator.config import Config
from commit_navigator.errors import CredentialMissingError, ProviderTransportError
from commit_navigator.models import ChatMessage, InferenceRequest


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it receives."""

    def __init__(self, status_code=200, body=None, text=None):
        self.requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            if text is not None:
                return httpx.Response(status_code, text=text)
            return httpx.Response(status_code, json=body)

        super().__init__(handler)

    @property
    def payload(self):
        return json.loads(self.requests[-1].content)


def openai_body(content="Generated summary"):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def anthropic_body(text="Generated summary"):
    return {"content": [{"type": "text", "text": text}]}


class TestResolveBackend:
    """Test backend selection order."""

    def test_openai_env_first(self):
        sources = CredentialSources(
            openai_env="sk-env", openai_stored="sk-stored", anthropic_env="ak-env"
        )

        backend = resolve_backend(sources)

        assert isinstance(backend, OpenAIBackend)
        assert backend.api_key == "sk-env"
        assert backend.model == OPENAI_DEFAULT_MODEL

    def test_openai_stored_before_anthropic(self):
        sources = CredentialSources(openai_stored="sk-stored", anthropic_env="ak-env")
        assert resolve_backend(sources).api_key == "sk-stored"

    def test_anthropic_when_no_openai_key(self):
        sources = CredentialSources(openai_env="", anthropic_stored="ak-stored")

        backend = resolve_backend(sources)

        assert isinstance(backend, AnthropicBackend)
        assert backend.api_key == "ak-stored"
        assert backend.model == ANTHROPIC_DEFAULT_MODEL

    def test_no_keys(self):
        assert resolve_backend(CredentialSources()) is None

    def test_default_model_applies_to_matching_backend(self):
        sources = CredentialSources(anthropic_env="ak-env")

        backend = resolve_backend(sources, "claude-3-5-sonnet-20241022")

        assert backend.model == "claude-3-5-sonnet-20241022"

    def test_claude_model_ignored_for_openai(self):
        sources = CredentialSources(openai_env="sk-env")

        backend = resolve_backend(sources, "claude-3-5-sonnet-20241022")

        assert backend.model == OPENAI_DEFAULT_MODEL

    def test_from_environment_reads_config(self, tmp_path):
        config = Config(tmp_path / "cfg")
        config.set_ai_api_key("anthropic", "ak-stored")

        sources = CredentialSources.from_environment({"OPENAI_API_KEY": "sk-env"}, config)

        assert sources.openai_env == "sk-env"
        assert sources.openai_stored is None
        assert sources.anthropic_stored == "ak-stored"


class TestProviderGateway:
    """Test request encoding and response decoding per backend."""

    @pytest.mark.asyncio
    async def test_openai_request(self):
        transport = RecordingTransport(body=openai_body())
        gateway = ProviderGateway(CredentialSources(openai_env="sk-test"), transport=transport)

        result = await gateway.invoke("Summarize", "Be brief", max_tokens=100, temperature=0.2)

        assert result == "Generated summary"
        request = transport.requests[0]
        assert str(request.url) == OPENAI_URL
        assert request.headers["Authorization"] == "Bearer sk-test"
        assert transport.payload == {
            "model": OPENAI_DEFAULT_MODEL,
            "messages": [
                {"role": "system", "content": "Be brief"},
                {"role": "user", "content": "Summarize"},
            ],
            "temperature": 0.2,
            "max_tokens": 100,
        }
        assert gateway.state is GatewayState.RESOLVED

    @pytest.mark.asyncio
    async def test_openai_max_tokens_clamped(self):
        transport = RecordingTransport(body=openai_body())
        gateway = ProviderGateway(CredentialSources(openai_env="sk-test"), transport=transport)

        await gateway.invoke("Summarize", max_tokens=20000)

        assert transport.payload["max_tokens"] == OPENAI_MAX_TOKENS == 5000

    @pytest.mark.asyncio
    async def test_anthropic_request(self):
        transport = RecordingTransport(body=anthropic_body("Claude says hi"))
        gateway = ProviderGateway(
            CredentialSources(anthropic_env="ak-test"), transport=transport
        )

        result = await gateway.invoke("Summarize", "Be brief", max_tokens=20000)

        assert result == "Claude says hi"
        request = transport.requests[0]
        assert str(request.url) == ANTHROPIC_URL
        assert request.headers["x-api-key"] == "ak-test"
        assert request.headers["anthropic-version"] == ANTHROPIC_VERSION
        payload = transport.payload
        assert payload["max_tokens"] == ANTHROPIC_MAX_TOKENS == 4096
        assert payload["system"] == "Be brief"
        assert payload["messages"] == [{"role": "user", "content": "Summarize"}]

    @pytest.mark.asyncio
    async def test_anthropic_merges_system_messages(self):
        transport = RecordingTransport(body=anthropic_body())
        gateway = ProviderGateway(
            CredentialSources(anthropic_env="ak-test"), transport=transport
        )

        await gateway.submit(
            [
                ChatMessage(role="system", content="You review code."),
                ChatMessage(role="user", content="Review this"),
            ]
        )

        payload = transport.payload
        assert payload["system"] == "You review code."
        assert all(m["role"] != "system" for m in payload["messages"])

    @pytest.mark.asyncio
    async def test_request_model_overrides_default(self):
        transport = RecordingTransport(body=openai_body())
        gateway = ProviderGateway(CredentialSources(openai_env="sk-test"), transport=transport)

        await gateway.submit(
            [ChatMessage(role="user", content="hi")],
            InferenceRequest(messages=[], model="gpt-4o"),
        )

        assert transport.payload["model"] == "gpt-4o"

    @pytest.mark.asyncio
    async def test_missing_credentials_fail_before_network(self):
        transport = RecordingTransport(body=openai_body())
        gateway = ProviderGateway(CredentialSources(), transport=transport)

        with pytest.raises(CredentialMissingError):
            await gateway.invoke("Summarize")

        assert transport.requests == []
        assert gateway.state is GatewayState.CREDENTIAL_MISSING

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        transport = RecordingTransport(status_code=401, text='{"error": "invalid key"}')
        gateway = ProviderGateway(CredentialSources(openai_env="sk-bad"), transport=transport)

        with pytest.raises(ProviderTransportError) as exc_info:
            await gateway.invoke("Summarize")

        error = exc_info.value
        assert error.provider == "OpenAI"
        assert error.status_code == 401
        assert "invalid key" in error.body
        assert gateway.state is GatewayState.TRANSPORT_FAILED

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        gateway = ProviderGateway(
            CredentialSources(anthropic_env="ak-test"),
            transport=httpx.MockTransport(handler),
        )

        with pytest.raises(ProviderTransportError) as exc_info:
            await gateway.invoke("Summarize")

        assert exc_info.value.status_code is None
        assert exc_info.value.provider == "Anthropic"

    @pytest.mark.asyncio
    async def test_missing_text_returns_sentinel(self):
        transport = RecordingTransport(body={"choices": []})
        gateway = ProviderGateway(CredentialSources(openai_env="sk-test"), transport=transport)

        assert await gateway.invoke("Summarize") == NO_ANALYSIS_SENTINEL

    @pytest.mark.asyncio
    async def test_non_json_body_returns_sentinel(self):
        transport = RecordingTransport(text="<html>gateway</html>")
        gateway = ProviderGateway(
            CredentialSources(anthropic_env="ak-test"), transport=transport
        )

        assert await gateway.invoke("Summarize") == NO_ANALYSIS_SENTINEL

    def test_invalid_temperature_rejected(self):
        with pytest.raises(ValueError):
            InferenceRequest(messages=[], temperature=3.0)
