"""
WriteUp Backend: Provider Adapter Tests (Mocked)
================================================

What:  Tests for the four backend adapters without network access.
How:   The OpenAI and Anthropic SDK classes are patched; OpenRouter and
       Ollama talk to an httpx.MockTransport.

What we test:
    ✅ Request shape per backend (instruction, model, variants, headers)
    ✅ Response normalization into EnhancementResult / ChatCompletion
    ✅ Backend errors surface as ProviderError with the backend's message
    ✅ Empty output is a failure, never an empty suggestion
    ✅ test_connection returns False instead of raising
    ✅ SDK clients are rebuilt only when the key changes
"""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from writeup.exceptions import ProviderError
from writeup.schemas.chat import ChatMessage, ChatOptions
from writeup.schemas.enhancement import EnhancementOptions
from writeup.services.providers import (
    AnthropicProvider,
    OllamaProvider,
    OpenAIProvider,
    OpenRouterProvider,
)
from writeup.services.providers.base import build_instruction


# ══════════════════════════════════════════════════════════════════════════
# Shared helpers
# ══════════════════════════════════════════════════════════════════════════

def openai_response(*contents, total_tokens=50, finish_reason="stop"):
    return SimpleNamespace(
        choices=[
            SimpleNamespace(message=SimpleNamespace(content=c), finish_reason=finish_reason)
            for c in contents
        ],
        usage=SimpleNamespace(total_tokens=total_tokens),
    )


def anthropic_response(text, stop_reason="end_turn", block_type="text"):
    return SimpleNamespace(
        content=[SimpleNamespace(type=block_type, text=text)],
        usage=SimpleNamespace(input_tokens=10, output_tokens=5),
        stop_reason=stop_reason,
    )


class Recorder:
    """httpx.MockTransport handler that records requests and replays one response."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.response

    @property
    def body(self):
        return json.loads(self.requests[-1].content)


class TestBuildInstruction:

    TEMPLATES = {"rephrase": "Rephrase.", "grammar": "Fix grammar."}

    def test_unknown_type_uses_rephrase(self):
        assert build_instruction(self.TEMPLATES, EnhancementOptions(type="poetic")) == "Rephrase."

    def test_language_and_context_appended(self):
        instruction = build_instruction(
            self.TEMPLATES,
            EnhancementOptions(type="grammar", language="German", context="An email"),
        )

        assert instruction == "Fix grammar. Respond in German.\n\nContext: An email"


# ══════════════════════════════════════════════════════════════════════════
# OpenAI
# ══════════════════════════════════════════════════════════════════════════

class TestOpenAIProvider:

    def setup_method(self):
        self.patcher = patch("writeup.services.providers.openai_provider.AsyncOpenAI")
        self.sdk = self.patcher.start()
        self.client = self.sdk.return_value
        self.client.chat.completions.create = AsyncMock()
        self.provider = OpenAIProvider()

    def teardown_method(self):
        self.patcher.stop()

    def test_unconfigured_without_key(self):
        assert not self.provider.is_configured()

    def test_client_rebuilt_only_on_key_change(self):
        self.provider.configure("sk-1")
        self.provider.configure("sk-1", "gpt-4o")
        self.provider.configure("sk-2")

        assert self.sdk.call_count == 2
        assert self.provider.model == "gpt-4o"
        assert self.provider.is_configured()

    def test_clearing_key_drops_client(self):
        self.provider.configure("sk-1")
        self.provider.configure("")

        assert not self.provider.is_configured()

    @pytest.mark.asyncio
    async def test_enhance_returns_ranked_variants(self):
        self.client.chat.completions.create.return_value = openai_response(" First ", "Second")
        self.provider.configure("sk-1")

        result = await self.provider.enhance("teh text", EnhancementOptions(type="grammar"))

        assert [s.text for s in result.suggestions] == ["First", "Second"]
        assert [s.confidence for s in result.suggestions] == [1.0, 0.85]
        assert result.tokens_used == 50
        assert result.provider == "OpenAI"

        kwargs = self.client.chat.completions.create.await_args.kwargs
        assert kwargs["n"] == 2
        assert kwargs["messages"][0]["role"] == "system"
        assert kwargs["messages"][0]["content"].startswith("You are a grammar and spelling")
        assert kwargs["messages"][1] == {"role": "user", "content": "teh text"}

    @pytest.mark.asyncio
    async def test_variant_count_capped(self):
        self.client.chat.completions.create.return_value = openai_response("a")
        self.provider.configure("sk-1")

        await self.provider.enhance("text", EnhancementOptions(max_variants=10))

        assert self.client.chat.completions.create.await_args.kwargs["n"] == 3

    @pytest.mark.asyncio
    async def test_empty_choices_fail(self):
        self.client.chat.completions.create.return_value = openai_response("  ")
        self.provider.configure("sk-1")

        with pytest.raises(ProviderError) as exc_info:
            await self.provider.enhance("text", EnhancementOptions())

        assert "OpenAI enhancement failed" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_sdk_error_keeps_backend_message(self):
        self.client.chat.completions.create.side_effect = RuntimeError("401 Unauthorized")
        self.provider.configure("sk-1")

        with pytest.raises(ProviderError) as exc_info:
            await self.provider.enhance("text", EnhancementOptions())

        assert exc_info.value.message == "OpenAI enhancement failed: 401 Unauthorized"
        assert exc_info.value.provider == "OpenAI"

    @pytest.mark.asyncio
    async def test_enhance_chat(self):
        self.client.chat.completions.create.return_value = openai_response("Reply", finish_reason="length")
        self.provider.configure("sk-1")
        messages = [ChatMessage(role="system", content="sys"), ChatMessage(role="user", content="hi")]

        completion = await self.provider.enhance_chat(messages, ChatOptions(temperature=0.2, max_tokens=50))

        assert completion.text == "Reply"
        assert completion.finish_reason == "length"
        kwargs = self.client.chat.completions.create.await_args.kwargs
        assert kwargs["messages"] == [
            {"role": "system", "content": "sys"},
            {"role": "user", "content": "hi"},
        ]
        assert kwargs["temperature"] == 0.2
        assert kwargs["max_tokens"] == 50
        assert kwargs["stream"] is False

    @pytest.mark.asyncio
    async def test_chat_error_message(self):
        self.client.chat.completions.create.side_effect = RuntimeError("boom")
        self.provider.configure("sk-1")

        with pytest.raises(ProviderError) as exc_info:
            await self.provider.enhance_chat([ChatMessage(role="user", content="hi")], ChatOptions())

        assert exc_info.value.message == "OpenAI chat enhancement failed: boom"

    @pytest.mark.asyncio
    async def test_connection_test_never_raises(self):
        self.client.chat.completions.create.side_effect = RuntimeError("offline")
        self.provider.configure("sk-1")

        assert await self.provider.test_connection() is False

    @pytest.mark.asyncio
    async def test_connection_test_without_key(self):
        assert await self.provider.test_connection() is False


# ══════════════════════════════════════════════════════════════════════════
# Anthropic
# ══════════════════════════════════════════════════════════════════════════

class TestAnthropicProvider:

    def setup_method(self):
        self.patcher = patch("writeup.services.providers.anthropic_provider.AsyncAnthropic")
        self.sdk = self.patcher.start()
        self.client = self.sdk.return_value
        self.client.messages.create = AsyncMock()
        self.provider = AnthropicProvider()
        self.provider.configure("sk-ant")

    def teardown_method(self):
        self.patcher.stop()

    @pytest.mark.asyncio
    async def test_enhance_uses_system_parameter(self):
        self.client.messages.create.return_value = anthropic_response(" Polished. ")

        result = await self.provider.enhance("rough", EnhancementOptions(type="formal"))

        assert result.suggestions[0].text == "Polished."
        assert result.suggestions[0].confidence == 0.95
        assert result.tokens_used == 15
        kwargs = self.client.messages.create.await_args.kwargs
        assert kwargs["system"].startswith("Rewrite the user's text in a formal")
        assert kwargs["messages"] == [{"role": "user", "content": "rough"}]
        assert kwargs["max_tokens"] == 1024

    @pytest.mark.asyncio
    async def test_non_text_block_is_empty_output(self):
        self.client.messages.create.return_value = anthropic_response("x", block_type="tool_use")

        with pytest.raises(ProviderError):
            await self.provider.enhance("rough", EnhancementOptions())

    @pytest.mark.asyncio
    async def test_chat_lifts_system_messages(self):
        self.client.messages.create.return_value = anthropic_response("Answer", stop_reason="max_tokens")
        messages = [
            ChatMessage(role="system", content="Be brief."),
            ChatMessage(role="user", content="q1"),
            ChatMessage(role="assistant", content="a1"),
            ChatMessage(role="user", content="q2"),
        ]

        completion = await self.provider.enhance_chat(messages, ChatOptions(max_tokens=200))

        kwargs = self.client.messages.create.await_args.kwargs
        assert kwargs["system"] == "Be brief."
        assert [m["role"] for m in kwargs["messages"]] == ["user", "assistant", "user"]
        assert kwargs["max_tokens"] == 200
        assert completion.text == "Answer"
        assert completion.finish_reason == "length"

    @pytest.mark.asyncio
    async def test_chat_without_system_omits_parameter(self):
        self.client.messages.create.return_value = anthropic_response("Answer")

        await self.provider.enhance_chat([ChatMessage(role="user", content="q")], ChatOptions())

        assert "system" not in self.client.messages.create.await_args.kwargs

    @pytest.mark.asyncio
    async def test_error_message(self):
        self.client.messages.create.side_effect = RuntimeError("overloaded")

        with pytest.raises(ProviderError) as exc_info:
            await self.provider.enhance("rough", EnhancementOptions())

        assert exc_info.value.message == "Anthropic enhancement failed: overloaded"

    @pytest.mark.asyncio
    async def test_connection(self):
        self.client.messages.create.return_value = anthropic_response("ok")

        assert await self.provider.test_connection() is True
        assert self.client.messages.create.await_args.kwargs["max_tokens"] == 10


# ══════════════════════════════════════════════════════════════════════════
# OpenRouter
# ══════════════════════════════════════════════════════════════════════════

class TestOpenRouterProvider:

    def make(self, recorder):
        provider = OpenRouterProvider(
            base_url="https://router.test/api/v1/",
            transport=httpx.MockTransport(recorder),
        )
        provider.configure("or-key", "meta/llama")
        return provider

    @pytest.mark.asyncio
    async def test_enhance(self):
        recorder = Recorder(
            httpx.Response(
                200,
                json={
                    "choices": [{"message": {"content": " Clearer text "}}],
                    "usage": {"total_tokens": 33},
                },
            )
        )
        provider = self.make(recorder)

        result = await provider.enhance("text", EnhancementOptions(type="concise"))

        assert result.suggestions[0].text == "Clearer text"
        assert result.tokens_used == 33
        request = recorder.requests[0]
        assert str(request.url) == "https://router.test/api/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer or-key"
        assert "HTTP-Referer" in request.headers
        assert "X-Title" in request.headers
        assert recorder.body["model"] == "meta/llama"
        assert recorder.body["messages"][0]["content"] == "Make more concise. Return only the concise version."

    @pytest.mark.asyncio
    async def test_http_error_surfaces_status(self):
        provider = self.make(Recorder(httpx.Response(401, json={"error": "bad key"})))

        with pytest.raises(ProviderError) as exc_info:
            await provider.enhance("text", EnhancementOptions())

        assert exc_info.value.message.startswith("OpenRouter enhancement failed:")
        assert "401" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_empty_choices_fail(self):
        provider = self.make(Recorder(httpx.Response(200, json={"choices": []})))

        with pytest.raises(ProviderError):
            await provider.enhance("text", EnhancementOptions())

    @pytest.mark.asyncio
    async def test_connection_lists_models(self):
        recorder = Recorder(httpx.Response(200, json={"data": []}))
        provider = self.make(recorder)

        assert await provider.test_connection() is True
        assert recorder.requests[0].url.path == "/api/v1/models"

    @pytest.mark.asyncio
    async def test_connection_failure(self):
        provider = self.make(Recorder(error=httpx.ConnectError("refused")))

        assert await provider.test_connection() is False


# ══════════════════════════════════════════════════════════════════════════
# Ollama
# ══════════════════════════════════════════════════════════════════════════

class TestOllamaProvider:

    def make(self, recorder):
        return OllamaProvider(
            base_url="http://ollama.test:11434",
            transport=httpx.MockTransport(recorder),
        )

    def test_always_configured_and_ignores_key(self):
        provider = OllamaProvider()

        provider.configure("ignored", "mistral")

        assert provider.is_configured()
        assert provider.api_key == ""
        assert provider.model == "mistral"

    def test_prompt_puts_language_and_context_first(self):
        prompt = OllamaProvider().build_prompt(
            "hello",
            EnhancementOptions(type="grammar", language="French", context="Chat"),
        )

        assert prompt == (
            "Respond in French.\nContext: Chat\n"
            "Fix all grammar and spelling errors in the following text. "
            "Return only the corrected text:\n\nhello"
        )

    @pytest.mark.asyncio
    async def test_enhance(self):
        recorder = Recorder(httpx.Response(200, json={"response": " Hello, world. "}))
        provider = self.make(recorder)

        result = await provider.enhance("hello world", EnhancementOptions())

        assert result.suggestions[0].text == "Hello, world."
        assert result.suggestions[0].confidence == 0.85
        assert result.tokens_used is None
        assert recorder.requests[0].url.path == "/api/generate"
        assert recorder.body["stream"] is False
        assert recorder.body["options"] == {"temperature": 0.7, "top_p": 0.9}

    @pytest.mark.asyncio
    async def test_server_down(self):
        provider = self.make(Recorder(error=httpx.ConnectError("Connection refused")))

        with pytest.raises(ProviderError) as exc_info:
            await provider.enhance("hello", EnhancementOptions())

        assert exc_info.value.message == "Ollama (Local) enhancement failed: Connection refused"

    @pytest.mark.asyncio
    async def test_connection_uses_tags(self):
        recorder = Recorder(httpx.Response(200, json={"models": []}))
        provider = self.make(recorder)

        assert await provider.test_connection() is True
        assert recorder.requests[0].url.path == "/api/tags"
