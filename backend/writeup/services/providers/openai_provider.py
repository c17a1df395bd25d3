"""
WriteUp Backend: OpenAI Adapter
===============================

What:  Chat-capable adapter for the OpenAI Chat Completions API.
How:   Uses the official async SDK. One request asks for `n` choices, so a
       single call yields up to three ranked suggestions.

Confidence:
    Choices are ranked by position: 1.0, 0.85, 0.70. The API itself gives
    no score, so this only conveys "first is preferred".
"""

import logging
import time
from typing import List

from openai import AsyncOpenAI

from writeup.config import settings
from writeup.schemas.chat import ChatCompletion, ChatMessage, ChatOptions
from writeup.schemas.enhancement import (
    MAX_VARIANTS_CAP,
    EnhancementOptions,
    EnhancementResult,
    Suggestion,
)
from writeup.schemas.provider import OPENAI
from writeup.services.providers.base import ChatProviderAdapter

logger = logging.getLogger(__name__)

FINISH_REASONS = ("stop", "length", "content_filter")


class OpenAIProvider(ChatProviderAdapter):
    name = OPENAI

    DEFAULT_VARIANTS = 2

    TEMPLATES = {
        "grammar": (
            "You are a grammar and spelling correction expert. Fix errors while "
            "preserving the original meaning and style. Return only the corrected "
            "text without explanations."
        ),
        "rephrase": (
            "You are a professional writing assistant. Rephrase the text to improve "
            "clarity and readability while maintaining the original meaning. Return "
            "only the rephrased text."
        ),
        "formal": (
            "You are a professional writing assistant. Rewrite the text in a formal, "
            "professional tone suitable for business communication. Return only the "
            "rewritten text."
        ),
        "casual": (
            "You are a friendly writing assistant. Rewrite the text in a casual, "
            "conversational tone. Return only the rewritten text."
        ),
        "concise": (
            "You are an expert at concise communication. Make the text more concise "
            "and direct while preserving key information. Return only the concise "
            "version."
        ),
        "expand": (
            "You are a writing assistant. Expand and elaborate on the text to provide "
            "more detail and context. Return only the expanded text."
        ),
    }

    def _create_client(self, api_key: str) -> AsyncOpenAI:
        return AsyncOpenAI(api_key=api_key)

    def is_configured(self) -> bool:
        return self._client is not None and len(self.api_key) > 0

    def variant_count(self, options: EnhancementOptions) -> int:
        requested = options.max_variants or self.DEFAULT_VARIANTS
        return max(1, min(requested, settings.max_variants, MAX_VARIANTS_CAP))

    async def test_connection(self) -> bool:
        if self._client is None:
            return False
        try:
            await self._client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": "test"}],
                max_tokens=5,
            )
            return True
        except Exception as e:
            logger.warning("OpenAI connection test failed: %s", e)
            return False

    async def enhance(self, text: str, options: EnhancementOptions) -> EnhancementResult:
        if self._client is None:
            raise self._failure(RuntimeError("provider not configured"))

        start_time = time.time()
        n = self.variant_count(options)

        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": self.build_instruction(options)},
                    {"role": "user", "content": text},
                ],
                temperature=0.7,
                max_tokens=1000,
                n=n,
            )

            contents = [
                choice.message.content.strip()
                for choice in (response.choices or [])
                if choice.message and choice.message.content and choice.message.content.strip()
            ]
            if not contents:
                raise ValueError("empty response from model")

            suggestions = [
                Suggestion(text=content, type=options.type, confidence=1 - index * 0.15)
                for index, content in enumerate(contents)
            ]
            return EnhancementResult(
                original=text,
                suggestions=suggestions,
                provider=self.name,
                tokens_used=response.usage.total_tokens if response.usage else None,
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

        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=[{"role": m.role, "content": m.content} for m in messages],
                temperature=options.temperature,
                max_tokens=options.max_tokens,
                top_p=options.top_p,
                frequency_penalty=options.frequency_penalty,
                presence_penalty=options.presence_penalty,
                stream=False,
            )

            choice = response.choices[0] if response.choices else None
            content = (choice.message.content or "").strip() if choice and choice.message else ""
            if not content:
                raise ValueError("empty response from model")

            finish_reason = choice.finish_reason if choice.finish_reason in FINISH_REASONS else None
            return ChatCompletion(
                text=content,
                tokens_used=response.usage.total_tokens if response.usage else None,
                finish_reason=finish_reason,
                model=self.model,
            )
        except Exception as e:
            raise self._failure(e, "chat enhancement") from e
