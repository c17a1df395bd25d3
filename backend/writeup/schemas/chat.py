"""
WriteUp Backend: Chat Schemas
=============================

What:  Messages, per-call options, completions, and the chat window config.
Who:   ChatService builds the message list; the orchestrator passes it through
       to chat-capable adapters untouched.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field

from writeup.schemas.enhancement import CamelModel, utc_now

Role = Literal["user", "assistant", "system"]
FinishReason = Literal["stop", "length", "content_filter"]


class ChatMessage(CamelModel):
    role: Role
    content: str
    timestamp: datetime = Field(default_factory=utc_now)
    id: Optional[str] = None


class ChatOptions(CamelModel):
    """Sampling parameters forwarded to chat-capable adapters."""

    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=1000, ge=1, le=32_000)
    top_p: float = Field(default=1.0, ge=0.0, le=1.0)
    frequency_penalty: float = Field(default=0.0, ge=-2.0, le=2.0)
    presence_penalty: float = Field(default=0.0, ge=-2.0, le=2.0)


class ChatCompletion(CamelModel):
    """What an adapter's enhance_chat returns."""

    text: str
    tokens_used: Optional[int] = None
    finish_reason: Optional[FinishReason] = None
    model: Optional[str] = None


class ChatReply(ChatCompletion):
    """A ChatCompletion plus which provider answered and the orchestration time."""

    provider: str
    processing_time: float = 0.0


# ══════════════════════════════════════════════════════════════════════════
# Chat window configuration
# ══════════════════════════════════════════════════════════════════════════

ResponseStyle = Literal["concise", "balanced", "detailed"]
Tone = Literal["professional", "casual", "technical", "friendly"]
Creativity = Literal["low", "medium", "high"]

# Values that mean "derive from style/creativity" rather than "custom".
DEFAULT_CHAT_TEMPERATURE = 0.7
DEFAULT_CHAT_MAX_TOKENS = 1000


class ChatConfig(CamelModel):
    response_style: ResponseStyle = "balanced"
    tone: Tone = "friendly"
    creativity: Creativity = "medium"
    context_awareness: bool = True
    max_tokens: int = Field(default=DEFAULT_CHAT_MAX_TOKENS, ge=1, le=32_000)
    temperature: float = Field(default=DEFAULT_CHAT_TEMPERATURE, ge=0.0, le=2.0)


class ChatConfigUpdate(CamelModel):
    response_style: Optional[ResponseStyle] = None
    tone: Optional[Tone] = None
    creativity: Optional[Creativity] = None
    context_awareness: Optional[bool] = None
    max_tokens: Optional[int] = Field(default=None, ge=1, le=32_000)
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)


# ══════════════════════════════════════════════════════════════════════════
# HTTP bodies
# ══════════════════════════════════════════════════════════════════════════


class ChatRequest(CamelModel):
    """Body of POST /api/chat."""

    message: str = Field(min_length=1)
    conversation_history: List[ChatMessage] = Field(default_factory=list)
    use_context: bool = True


class ChatResponse(CamelModel):
    message: str
    message_id: str
    timestamp: datetime
    provider: str
    tokens_used: Optional[int] = None
    finish_reason: Optional[FinishReason] = None
    processing_time: float


class ChatExportRequest(CamelModel):
    messages: List[ChatMessage] = Field(default_factory=list)


class ChatExportResponse(CamelModel):
    content: str


class ChatPreset(CamelModel):
    name: str
    description: str
    config: ChatConfig
