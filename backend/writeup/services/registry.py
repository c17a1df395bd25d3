"""
WriteUp Backend: Provider Registry
==================================

What:  Maps provider names to adapter singletons and applies saved config to them.
Who:   Used by the orchestrator (every call), the providers routes, and /health.

Registration order is fixed and is the priority tiebreak:
    OpenAI → OpenRouter → Anthropic → Ollama (Local)

Chat capability is decided here, once per adapter, by checking whether it is
a ChatProviderAdapter. Nothing downstream inspects adapters for methods.

Failure semantics:
    Lookups never raise. An unknown name is "absent", and config entries for
    names with no adapter are skipped.
"""

import logging
from typing import Dict, List, Optional, Set

from writeup.schemas.provider import ProviderDescriptor, ProviderStatus, is_local_provider
from writeup.services.config_store import ConfigStore, config_store
from writeup.services.providers import ChatProviderAdapter, ProviderAdapter, default_adapters

logger = logging.getLogger(__name__)


class ProviderRegistry:
    def __init__(
        self,
        store: ConfigStore,
        adapters: Optional[List[ProviderAdapter]] = None,
    ) -> None:
        self._store = store
        self._adapters: Dict[str, ProviderAdapter] = {}
        self._order: List[str] = []
        self._chat_capable: Set[str] = set()

        for adapter in default_adapters() if adapters is None else adapters:
            self.register(adapter)

    def register(self, adapter: ProviderAdapter) -> None:
        """Adds an adapter; re-registering a name replaces it in place."""
        if adapter.name not in self._adapters:
            self._order.append(adapter.name)
        self._adapters[adapter.name] = adapter

        if isinstance(adapter, ChatProviderAdapter):
            self._chat_capable.add(adapter.name)
        else:
            self._chat_capable.discard(adapter.name)

    # ── Lookups ───────────────────────────────────────────────────────────

    def get_provider(self, name: str) -> Optional[ProviderAdapter]:
        return self._adapters.get(name)

    def get_all_providers(self) -> List[ProviderAdapter]:
        return [self._adapters[name] for name in self._order]

    def supports_chat(self, name: str) -> bool:
        return name in self._chat_capable

    def index_of(self, name: str) -> Optional[int]:
        """Registration position of `name`, or None if it is not registered."""
        try:
            return self._order.index(name)
        except ValueError:
            return None

    # ── Configuration ─────────────────────────────────────────────────────

    async def apply_config(self) -> List[ProviderDescriptor]:
        """
        Pushes the latest saved descriptors into the adapters.

        The local backend always receives an empty credential. Adapters with
        no saved descriptor keep whatever state they had.

        Returns:
            The descriptors that were read, so callers see the same snapshot.
        """
        descriptors = await self._store.get_providers()
        for descriptor in descriptors:
            adapter = self._adapters.get(descriptor.name)
            if adapter is None:
                logger.debug("Ignoring config for unregistered provider %s", descriptor.name)
                continue
            api_key = "" if is_local_provider(descriptor.name) else descriptor.api_key
            adapter.configure(api_key, descriptor.model or None)
        return descriptors

    async def get_configured_providers(self) -> List[ProviderAdapter]:
        await self.apply_config()
        return [adapter for adapter in self.get_all_providers() if adapter.is_configured()]

    async def get_statuses(self) -> List[ProviderStatus]:
        """
        Whether each registered provider has been set up by the user.

        Remote backends count as configured once they have a key. The local
        backend needs no key, so it counts as configured once it is enabled.
        """
        descriptors = {d.name: d for d in await self.apply_config()}
        statuses = []
        for adapter in self.get_all_providers():
            descriptor = descriptors.get(adapter.name)
            if descriptor is None:
                configured = False
            elif is_local_provider(adapter.name):
                configured = descriptor.enabled
            else:
                configured = bool(descriptor.api_key)
            statuses.append(
                ProviderStatus(
                    name=adapter.name,
                    configured=configured,
                    supports_chat=self.supports_chat(adapter.name),
                )
            )
        return statuses


# ── Singleton Instance ────────────────────────────────────────────────────
provider_registry = ProviderRegistry(config_store)
