"""
WriteUp Backend: OpenRouter Adapter
===================================

What:  Completion-only adapter for the OpenRouter aggregator.
How:   OpenRouter speaks the OpenAI chat-completions wire format, so this is
       a plain httpx POST rather than a second SDK. OpenRouter asks callers
       to identify themselves with HTTP-Referer and X-Title headers.
"""

import logging
import time
from typing import Dict, Optional

import httpx

from writeup.config import settings
from writeup.schemas.enhancement import EnhancementOptions, EnhancementResult, Suggestion
from writeup.schemas.provider import OPENROUTER
from writeup.services.providers.base import ProviderAdapter

logger = logging.getLogger(__name__)


class OpenRouterProvider(ProviderAdapter):
    name = OPENROUTER

    TEMPLATES = {
        "grammar": "Fix grammar and spelling errors. Return only the corrected text.",
        "rephrase": "Improve clarity and readability. Return only the improved text.",
        "formal": "Rewrite in a formal, professional tone. Return only the rewritten text.",
        "casual": "Rewrite in a casual, friendly tone. Return only the rewritten text.",
        "concise": "Make more concise. Return only the concise version.",
        "expand": "Expand with more detail. Return only the expanded version.",
    }

    def __init__(
        self,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__()
        self.base_url = (base_url or settings.openrouter_base_url).rstrip("/")
        # Injected in tests (httpx.MockTransport); None means real network
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": settings.openrouter_referer,
            "X-Title": settings.openrouter_title,
        }

    def _client_for(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=timeout)

    async def test_connection(self) -> bool:
        try:
            async with self._client_for(settings.test_connection_timeout_seconds) as client:
                response = await client.get(
                    f"{self.base_url}/models",
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
            return response.status_code == 200
        except Exception as e:
            logger.warning("OpenRouter connection test failed: %s", e)
            return False

    async def enhance(self, text: str, options: EnhancementOptions) -> EnhancementResult:
        if not self.api_key:
            raise self._failure(RuntimeError("provider not configured"))

        start_time = time.time()
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": self.build_instruction(options)},
                {"role": "user", "content": text},
            ],
            "temperature": 0.7,
            "max_tokens": 1000,
        }

        try:
            async with self._client_for(settings.provider_timeout_seconds) as client:
                response = await client.post(
                    f"{self.base_url}/chat/completions",
                    json=payload,
                    headers=self._headers(),
                )
                response.raise_for_status()
                data = response.json()

            choices = data.get("choices") or [{}]
            content = ((choices[0].get("message") or {}).get("content") or "").strip()
            if not content:
                raise ValueError("empty response from model")

            return EnhancementResult(
                original=text,
                suggestions=[Suggestion(text=content, type=options.type, confidence=0.95)],
                provider=self.name,
                tokens_used=(data.get("usage") or {}).get("total_tokens"),
                processing_time=(time.time() - start_time) * 1000,
            )
        except Exception as e:
            raise self._failure(e) from e
