"""
WriteUp Backend: Provider Configuration Schemas
===============================================

What:  ProviderDescriptor (persisted per-backend config) and the API views of it.
Why:   The registry, the orchestrator, and the settings endpoints all speak
       in descriptors; only the HTTP view hides the API key.

Canonical backends, in registration order:
    OpenAI → OpenRouter → Anthropic → Ollama (Local)

    The order matters: it breaks priority ties during candidate selection.
"""

from typing import List, Optional

from pydantic import Field

from writeup.schemas.enhancement import CamelModel

OPENAI = "OpenAI"
OPENROUTER = "OpenRouter"
ANTHROPIC = "Anthropic"
OLLAMA = "Ollama (Local)"

PROVIDER_NAMES = (OPENAI, OPENROUTER, ANTHROPIC, OLLAMA)

# The local inference backend needs no credential; every other backend does.
LOCAL_PROVIDER_NAME = OLLAMA


def is_local_provider(name: str) -> bool:
    return name == LOCAL_PROVIDER_NAME


class ProviderDescriptor(CamelModel):
    """
    Persisted configuration for one backend.

    enabled=True with an empty api_key is allowed at save time; such a
    provider is simply not a candidate (except the local backend).
    """

    name: str
    api_key: str = ""
    model: str = ""
    enabled: bool = False
    priority: int = Field(default=1, ge=1)

    def is_eligible(self) -> bool:
        """True if this descriptor may be attempted in a fallback run."""
        return self.enabled and (is_local_provider(self.name) or len(self.api_key) > 0)


DEFAULT_PROVIDERS: List[ProviderDescriptor] = [
    ProviderDescriptor(name=OPENAI, model="gpt-4-turbo-preview", priority=1),
    ProviderDescriptor(name=OPENROUTER, model="anthropic/claude-3-sonnet", priority=2),
    ProviderDescriptor(name=ANTHROPIC, model="claude-3-sonnet-20240229", priority=3),
    ProviderDescriptor(name=OLLAMA, model="llama2", priority=4),
]


def default_descriptor(name: str) -> Optional[ProviderDescriptor]:
    for descriptor in DEFAULT_PROVIDERS:
        if descriptor.name == name:
            return descriptor.model_copy()
    return None


class ProviderUpdate(CamelModel):
    """Partial update for PUT /api/providers/{name}; omitted fields are unchanged."""

    api_key: Optional[str] = None
    model: Optional[str] = None
    enabled: Optional[bool] = None
    priority: Optional[int] = Field(default=None, ge=1)


def mask_api_key(api_key: str) -> str:
    """Keeps only the last four characters, e.g. "sk-abc...wxyz" → "****wxyz"."""
    if not api_key:
        return ""
    if len(api_key) <= 8:
        return "*" * len(api_key)
    return "****" + api_key[-4:]


class ProviderView(CamelModel):
    """A descriptor as returned to the settings panel (key masked)."""

    name: str
    api_key: str = Field(description="Masked API key")
    has_api_key: bool
    model: str
    enabled: bool
    priority: int

    @classmethod
    def from_descriptor(cls, descriptor: ProviderDescriptor) -> "ProviderView":
        return cls(
            name=descriptor.name,
            api_key=mask_api_key(descriptor.api_key),
            has_api_key=bool(descriptor.api_key),
            model=descriptor.model,
            enabled=descriptor.enabled,
            priority=descriptor.priority,
        )


class ProviderStatus(CamelModel):
    """Whether a registered backend has what it needs to be attempted."""

    name: str
    configured: bool
    supports_chat: bool = False


class ProviderTestResult(CamelModel):
    """Outcome of a user-initiated connectivity test."""

    success: bool
    error: Optional[str] = None
