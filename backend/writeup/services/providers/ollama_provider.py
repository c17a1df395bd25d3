"""
WriteUp Backend: Ollama (Local) Adapter
=======================================

What:  Completion-only adapter for a local Ollama server.
How:   POST /api/generate with stream=false. There is no system role in the
       generate endpoint, so the instruction is prefixed to the text.

This is the only backend without a credential: is_configured() is always
True and configure() ignores the key. Whether the server is actually
running is found out at call time (connection refused → ProviderError).
"""

import logging
import time
from typing import Optional

import httpx

from writeup.config import settings
from writeup.schemas.enhancement import (
    DEFAULT_ENHANCEMENT_TYPE,
    EnhancementOptions,
    EnhancementResult,
    Suggestion,
)
from writeup.schemas.provider import OLLAMA
from writeup.services.providers.base import ProviderAdapter

logger = logging.getLogger(__name__)


class OllamaProvider(ProviderAdapter):
    name = OLLAMA

    GENERATE_TIMEOUT_SECONDS = 30.0
    TAGS_TIMEOUT_SECONDS = 3.0

    TEMPLATES = {
        "grammar": (
            "Fix all grammar and spelling errors in the following text. "
            "Return only the corrected text"
        ),
        "rephrase": (
            "Improve the following text for clarity and readability. "
            "Return only the improved version"
        ),
        "formal": (
            "Rewrite the following text in a formal, professional tone. "
            "Return only the rewritten text"
        ),
        "casual": (
            "Rewrite the following text in a casual, friendly tone. "
            "Return only the rewritten text"
        ),
        "concise": "Make the following text more concise. Return only the concise version",
        "expand": (
            "Expand the following text with more details. "
            "Return only the expanded version"
        ),
    }

    def __init__(
        self,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__()
        self.base_url = (base_url or settings.ollama_base_url).rstrip("/")
        self._transport = transport

    def configure(self, api_key: str, model: Optional[str] = None) -> None:
        # No credential for a local server
        if model:
            self.model = model

    def is_configured(self) -> bool:
        return True

    def build_prompt(self, text: str, options: EnhancementOptions) -> str:
        # Templates end where the text begins, so language and context go first
        template = self.TEMPLATES.get(options.type, self.TEMPLATES[DEFAULT_ENHANCEMENT_TYPE])
        preamble = ""
        if options.language:
            preamble += f"Respond in {options.language}.\n"
        if options.context:
            preamble += f"Context: {options.context}\n"
        return f"{preamble}{template}:\n\n{text}"

    async def test_connection(self) -> bool:
        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self.TAGS_TIMEOUT_SECONDS
            ) as client:
                response = await client.get(f"{self.base_url}/api/tags")
            return response.status_code == 200
        except Exception as e:
            logger.warning("Ollama connection test failed at %s: %s", self.base_url, e)
            return False

    async def enhance(self, text: str, options: EnhancementOptions) -> EnhancementResult:
        start_time = time.time()
        payload = {
            "model": self.model,
            "prompt": self.build_prompt(text, options),
            "stream": False,
            "options": {"temperature": 0.7, "top_p": 0.9},
        }

        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self.GENERATE_TIMEOUT_SECONDS
            ) as client:
                response = await client.post(f"{self.base_url}/api/generate", json=payload)
                response.raise_for_status()
                data = response.json()

            content = (data.get("response") or "").strip()
            if not content:
                raise ValueError("empty response from model")

            return EnhancementResult(
                original=text,
                suggestions=[Suggestion(text=content, type=options.type, confidence=0.85)],
                provider=self.name,
                processing_time=(time.time() - start_time) * 1000,
            )
        except Exception as e:
            raise self._failure(e) from e
