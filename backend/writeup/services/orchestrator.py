"""
WriteUp Backend: Fallback Orchestrator
======================================

What:  Tries the configured AI providers one after another until one succeeds.
Why:   Any single backend can be down, rate-limited, or misconfigured. The
       user only cares that *some* provider enhanced their text, and when none
       could, exactly why each one failed.
How:   Per call:

    START → SELECT_CANDIDATES → (TRY_NEXT → SUCCESS | RECORD_FAILURE → TRY_NEXT)*
          → DONE(success) | DONE(all failed)

    1. Re-apply saved config through the registry (never trust prior state)
    2. Candidates = enabled descriptors with a key (or the local backend),
       sorted by (priority, registration order)
    3. No candidates → NoProvidersAvailableError, no adapter is touched
    4. For each candidate:
         adapter missing            → "Provider not found"
         descriptor read fails      → the DatabaseError message
         key missing (non-local)    → "API key not configured"
         configure(); not configured → "Provider not properly configured"
         call with timeout          → success returns immediately
                                      error/timeout → FailureRecord, next
    5. Loop exhausted → AllProvidersFailedError with every FailureRecord

Guarantees:
    - At most one success: nothing is called after the first success
    - Strictly sequential: no fan-out, no retries, no backoff
    - One FailureRecord per failed candidate, none swallowed

Timeout:
    Each attempt runs under asyncio.wait_for, which cancels the abandoned
    adapter call when the deadline passes.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, List, Optional, Tuple, TypeVar

from writeup.config import settings
from writeup.exceptions import (
    AllProvidersFailedError,
    DatabaseError,
    NoProvidersAvailableError,
    ProviderError,
)
from writeup.schemas.chat import ChatCompletion, ChatMessage, ChatOptions, ChatReply
from writeup.schemas.enhancement import EnhancementOptions, EnhancementResult, FailureRecord
from writeup.schemas.provider import ProviderDescriptor, is_local_provider
from writeup.services.config_store import ConfigStore, config_store
from writeup.services.providers import ProviderAdapter
from writeup.services.registry import ProviderRegistry, provider_registry

logger = logging.getLogger(__name__)

T = TypeVar("T")

# One attempt against one adapter, given the adapter and its provider name
Attempt = Callable[[ProviderAdapter, str], Awaitable[T]]

CHAT_ENHANCEMENT_TYPE = "chat"


def _elapsed_ms(start_time: float) -> float:
    return (time.time() - start_time) * 1000


class FallbackOrchestrator:
    """
    Sequential, priority-ordered provider fallback.

    Holds no state between calls; the registry and config store are injected
    so tests can drive it with stub adapters and an in-memory store.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        store: ConfigStore,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        self._registry = registry
        self._store = store
        self._timeout_seconds = timeout_seconds

    @property
    def timeout_seconds(self) -> float:
        if self._timeout_seconds is not None:
            return self._timeout_seconds
        return settings.provider_timeout_seconds

    def select_candidates(self, descriptors: List[ProviderDescriptor]) -> List[str]:
        """
        Eligible provider names in attempt order.

        Sort key is (priority, registration index). Names the registry does
        not know sort after every known name of the same priority, in the
        order they were stored.
        """
        unknown_rank = len(self._registry.get_all_providers())

        def sort_key(descriptor: ProviderDescriptor) -> Tuple[int, int]:
            index = self._registry.index_of(descriptor.name)
            return descriptor.priority, unknown_rank if index is None else index

        eligible = [d for d in descriptors if d.is_eligible()]
        return [d.name for d in sorted(eligible, key=sort_key)]

    # ── Entry points ──────────────────────────────────────────────────────

    async def enhance(self, text: str, options: EnhancementOptions) -> EnhancementResult:
        """
        Enhance `text` with the first provider that succeeds.

        Returns:
            The adapter's EnhancementResult, with processing_time replaced by
            the milliseconds elapsed since this call started.

        Raises:
            NoProvidersAvailableError: Nothing is enabled and credentialed
            AllProvidersFailedError:   Every candidate failed or timed out
        """

        async def attempt(adapter: ProviderAdapter, name: str) -> EnhancementResult:
            return await adapter.enhance(text, options)

        result, _, elapsed = await self._run(
            attempt,
            text_length=len(text),
            enhancement_type=options.type,
        )
        return result.model_copy(update={"processing_time": elapsed})

    async def chat(
        self,
        messages: List[ChatMessage],
        chat_options: Optional[ChatOptions] = None,
    ) -> ChatReply:
        """
        Same fallback loop for a conversation.

        Chat-capable adapters receive the full message list. Completion-only
        adapters receive just the last user message as a single "rephrase"
        enhancement, and their first suggestion becomes the reply.
        """
        options = chat_options or ChatOptions()
        last_user_message = next((m for m in reversed(messages) if m.role == "user"), None)

        async def attempt(adapter: ProviderAdapter, name: str) -> ChatCompletion:
            if self._registry.supports_chat(name):
                return await adapter.enhance_chat(messages, options)

            if last_user_message is None:
                raise ProviderError("No user message to send", provider=name)
            result = await adapter.enhance(
                last_user_message.content,
                EnhancementOptions(type="rephrase", max_variants=1),
            )
            return ChatCompletion(
                text=result.suggestions[0].text,
                tokens_used=result.tokens_used,
            )

        completion, provider, elapsed = await self._run(
            attempt,
            text_length=0,
            enhancement_type=CHAT_ENHANCEMENT_TYPE,
        )
        return ChatReply(
            text=completion.text,
            tokens_used=completion.tokens_used,
            finish_reason=completion.finish_reason,
            model=completion.model,
            provider=provider,
            processing_time=elapsed,
        )

    # ── Fallback loop ─────────────────────────────────────────────────────

    async def _run(
        self,
        attempt: Attempt,
        text_length: int,
        enhancement_type: str,
    ) -> Tuple[T, str, float]:
        start_time = time.time()

        descriptors = await self._registry.apply_config()
        candidates = self.select_candidates(descriptors)

        if not candidates:
            logger.warning("No eligible providers for %s request", enhancement_type)
            raise NoProvidersAvailableError(
                text_length=text_length,
                enhancement_type=enhancement_type,
                processing_time=_elapsed_ms(start_time),
            )

        logger.debug("Provider attempt order: %s", ", ".join(candidates))
        errors: List[FailureRecord] = []

        def record(name: str, message: str) -> None:
            errors.append(FailureRecord(provider=name, error=message))
            logger.warning("Provider %s failed: %s", name, message)

        for name in candidates:
            adapter = self._registry.get_provider(name)
            if adapter is None:
                record(name, "Provider not found")
                continue

            # Re-read: config may have changed since candidates were selected
            try:
                descriptor = await self._store.get_provider(name)
            except DatabaseError as e:
                record(name, e.message)
                continue
            api_key = descriptor.api_key if descriptor else ""
            model = descriptor.model if descriptor else None

            if is_local_provider(name):
                api_key = ""
            elif not api_key:
                record(name, "API key not configured")
                continue

            adapter.configure(api_key, model or None)
            if not adapter.is_configured():
                record(name, "Provider not properly configured")
                continue

            try:
                outcome = await asyncio.wait_for(
                    attempt(adapter, name),
                    timeout=self.timeout_seconds,
                )
            except asyncio.TimeoutError:
                record(name, "Request timeout")
                continue
            except Exception as e:
                record(name, str(e) or type(e).__name__)
                continue

            elapsed = _elapsed_ms(start_time)
            if errors:
                logger.warning(
                    "Provider %s succeeded after fallback from: %s",
                    name,
                    ", ".join(e.provider for e in errors),
                )
            else:
                logger.info("Provider %s succeeded in %.0fms", name, elapsed)
            return outcome, name, elapsed

        raise AllProvidersFailedError(
            errors=errors,
            text_length=text_length,
            enhancement_type=enhancement_type,
            processing_time=_elapsed_ms(start_time),
        )


# ── Singleton Instance ────────────────────────────────────────────────────
orchestrator = FallbackOrchestrator(provider_registry, config_store)
