"""
WriteUp Backend: Anthropic Adapter
==================================

What:  Chat-capable adapter for the Anthropic Messages API.
How:   Uses the official async SDK. The enhancement instruction goes in the
       top-level `system` parameter; the Messages API has no system role.
       It returns exactly one completion per call, so one suggestion.
"""

import logging
import time
from typing import Any, Dict, List, Optional

from anthropic import AsyncAnthropic

from writeup.schemas.chat import ChatCompletion, ChatMessage, ChatOptions
from writeup.schemas.enhancement import EnhancementOptions, EnhancementResult, Suggestion
from writeup.schemas.provider import ANTHROPIC
from writeup.services.providers.base import ChatProviderAdapter

logger = logging.getLogger(__name__)

STOP_REASONS = {
    "end_turn": "stop",
    "max_tokens": "length",
}


def _first_text(response: Any) -> str:
    """Text of the first content block, or "" if the first block is not text."""
    blocks = getattr(response, "content", None) or []
    if not blocks:
        return ""
    first = blocks[0]
    if getattr(first, "type", None) != "text":
        return ""
    return (first.text or "").strip()


def _total_tokens(response: Any) -> Optional[int]:
    usage = getattr(response, "usage", None)
    if usage is None:
        return None
    return (usage.input_tokens or 0) + (usage.output_tokens or 0)


class AnthropicProvider(ChatProviderAdapter):
    name = ANTHROPIC

    TEMPLATES = {
        "grammar": (
            "You are an expert grammar checker. Correct any grammar, spelling, or "
            "punctuation errors in the user's text. Return ONLY the corrected text "
            "with no explanations or additional commentary."
        ),
        "rephrase": (
            "You are a professional writing assistant. Improve the clarity and flow "
            "of the user's text while preserving its meaning. Return ONLY the "
            "improved text."
        ),
        "formal": (
            "Rewrite the user's text in a formal, professional tone appropriate for "
            "business or academic contexts. Return ONLY the rewritten text."
        ),
        "casual": (
            "Rewrite the user's text in a casual, conversational tone. Return ONLY "
            "the rewritten text."
        ),
        "concise": (
            "Make the user's text more concise while retaining all key information. "
            "Return ONLY the condensed text."
        ),
        "expand": (
            "Expand the user's text with additional relevant details and context. "
            "Return ONLY the expanded text."
        ),
    }

    def _create_client(self, api_key: str) -> AsyncAnthropic:
        return AsyncAnthropic(api_key=api_key)

    def is_configured(self) -> bool:
        return self._client is not None and len(self.api_key) > 0

    async def test_connection(self) -> bool:
        if self._client is None:
            return False
        try:
            await self._client.messages.create(
                model=self.model,
                max_tokens=10,
                messages=[{"role": "user", "content": "test"}],
            )
            return True
        except Exception as e:
            logger.warning("Anthropic connection test failed: %s", e)
            return False

    async def enhance(self, text: str, options: EnhancementOptions) -> EnhancementResult:
        if self._client is None:
            raise self._failure(RuntimeError("provider not configured"))

        start_time = time.time()
        try:
            response = await self._client.messages.create(
                model=self.model,
                max_tokens=1024,
                system=self.build_instruction(options),
                messages=[{"role": "user", "content": text}],
            )

            content = _first_text(response)
            if not content:
                raise ValueError("empty response from model")

            return EnhancementResult(
                original=text,
                suggestions=[Suggestion(text=content, type=options.type, confidence=0.95)],
                provider=self.name,
                tokens_used=_total_tokens(response),
                processing_time=(time.time() - start_time) * 1000,
            )
        except Exception as e:
            raise self._failure(e) from e

    async def enhance_chat(
        self,
        messages: List[ChatMessage],
        options: ChatOptions,
    ) -> ChatCompletion:
        if self._client is None:
            raise self._failure(RuntimeError("provider not configured"), "chat enhancement")

        # System messages become the `system` parameter; everything else is
        # user or assistant
        system_prompt = "\n\n".join(m.content for m in messages if m.role == "system")
        conversation = [
            {"role": "assistant" if m.role == "assistant" else "user", "content": m.content}
            for m in messages
            if m.role != "system"
        ]

        request: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": options.max_tokens,
            "temperature": options.temperature,
            "top_p": options.top_p,
            "messages": conversation,
        }
        if system_prompt:
            request["system"] = system_prompt

        try:
            response = await self._client.messages.create(**request)

            content = _first_text(response)
            if not content:
                raise ValueError("empty response from model")

            return ChatCompletion(
                text=content,
                tokens_used=_total_tokens(response),
                finish_reason=STOP_REASONS.get(getattr(response, "stop_reason", None)),
                model=self.model,
            )
        except Exception as e:
            raise self._failure(e, "chat enhancement") from e
