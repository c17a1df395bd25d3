"""
WriteUp Backend: Provider Adapter Interfaces
============================================

What:  Abstract base classes every AI backend adapter implements.
Why:   Each backend has its own request/response shape, pricing semantics
       (several choices per call vs exactly one) and failure taxonomy.
       Normalizing to one contract keeps the orchestrator backend-agnostic.
How:   Two explicit capability levels:
         ProviderAdapter      completion only (enhance)
         ChatProviderAdapter  completion plus native multi-turn chat
       The registry checks which one an adapter is once, at registration.

Contract:
    - configure() is idempotent and cheap; it runs before every attempt
    - is_configured() is True iff the adapter has enough state to call out
    - test_connection() never raises; it logs and returns False instead
    - enhance()/enhance_chat() raise ProviderError on any failure, with the
      backend's own error text in the message. They never return an empty
      suggestion.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from writeup.exceptions import ProviderError
from writeup.schemas.chat import ChatCompletion, ChatMessage, ChatOptions
from writeup.schemas.enhancement import (
    DEFAULT_ENHANCEMENT_TYPE,
    EnhancementOptions,
    EnhancementResult,
)
from writeup.schemas.provider import default_descriptor

logger = logging.getLogger(__name__)


def build_instruction(templates: Dict[str, str], options: EnhancementOptions) -> str:
    """
    Picks the template for options.type and appends language/context.

    Unknown types use the "rephrase" template.
    """
    instruction = templates.get(options.type, templates[DEFAULT_ENHANCEMENT_TYPE])
    if options.language:
        instruction += f" Respond in {options.language}."
    if options.context:
        instruction += f"\n\nContext: {options.context}"
    return instruction


class ProviderAdapter(ABC):
    """
    Uniform wrapper around one AI backend (completion only).

    Instances are process-lifetime singletons. configure() mutates them in
    place; the last applied configuration wins.

    Subclasses that talk to an SDK override _create_client(); the client is
    rebuilt only when the API key actually changes.
    """

    name: str = ""

    # Six templates keyed by enhancement type; "rephrase" is required
    TEMPLATES: Dict[str, str] = {}

    def __init__(self) -> None:
        defaults = default_descriptor(self.name)
        self.api_key: str = ""
        self.model: str = defaults.model if defaults else ""
        self._client: Any = None
        self._client_key: str = ""

    # ── Configuration ─────────────────────────────────────────────────────

    def configure(self, api_key: str, model: Optional[str] = None) -> None:
        self.api_key = api_key or ""
        if model:
            self.model = model

        if not self.api_key:
            self._client = None
            self._client_key = ""
        elif self.api_key != self._client_key:
            self._client = self._create_client(self.api_key)
            self._client_key = self.api_key

    def is_configured(self) -> bool:
        return len(self.api_key) > 0

    def _create_client(self, api_key: str) -> Any:
        """Builds the backend SDK client; adapters speaking plain HTTP return None."""
        return None

    def build_instruction(self, options: EnhancementOptions) -> str:
        return build_instruction(self.TEMPLATES, options)

    def _failure(self, exc: Exception, action: str = "enhancement") -> ProviderError:
        """Wraps any backend error as '<Backend> <action> failed: <message>'."""
        return ProviderError(
            message=f"{self.name} {action} failed: {exc}",
            provider=self.name,
            context={"error_type": type(exc).__name__},
        )

    # ── Backend calls ─────────────────────────────────────────────────────

    @abstractmethod
    async def test_connection(self) -> bool:
        """
        Lightweight round-trip to the backend for the settings panel "Test" button.

        Returns:
            True if the backend answered, False otherwise. Never raises.
        """
        ...

    @abstractmethod
    async def enhance(self, text: str, options: EnhancementOptions) -> EnhancementResult:
        """
        Enhance `text` according to `options`.

        Returns:
            EnhancementResult with at least one non-empty suggestion.
            processing_time is this call's own duration in milliseconds.

        Raises:
            ProviderError: Transport, API, or empty-response failure.
        """
        ...


class ChatProviderAdapter(ProviderAdapter):
    """A ProviderAdapter whose backend also supports native multi-turn chat."""

    @abstractmethod
    async def enhance_chat(
        self,
        messages: List[ChatMessage],
        options: ChatOptions,
    ) -> ChatCompletion:
        """
        Send the whole conversation (system prompt included) to the backend.

        Raises:
            ProviderError: "<Backend> chat enhancement failed: <message>"
        """
        ...
