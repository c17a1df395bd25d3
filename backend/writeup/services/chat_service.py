"""
WriteUp Backend: Chat Service
=============================

What:  The request boundary for the chat window.
How:   For each user message:
         1. Build the system prompt from the current ChatConfig
         2. Trim the conversation history (once, before any provider is tried)
         3. Hand [system, *history, user] to the orchestrator's chat path
       The orchestrator then sends the full list to chat-capable providers,
       or only the last user message to completion-only ones.

Context trimming:
    At most settings.chat_history_limit recent messages are kept, and only as
    many of those as fit settings.chat_context_char_budget, counting from the
    newest. Order is preserved. History is dropped entirely when either the
    config or the request turns context off.

Config state is held in memory for the life of the process.
"""

import logging
import time
import uuid
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from writeup.config import settings
from writeup.exceptions import NotFoundError
from writeup.schemas.chat import (
    DEFAULT_CHAT_MAX_TOKENS,
    DEFAULT_CHAT_TEMPERATURE,
    ChatConfig,
    ChatConfigUpdate,
    ChatMessage,
    ChatOptions,
    ChatPreset,
    ChatRequest,
    ChatResponse,
)
from writeup.schemas.enhancement import utc_now
from writeup.services.orchestrator import FallbackOrchestrator, orchestrator

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Presets
# ══════════════════════════════════════════════════════════════════════════

def _preset(style, tone, creativity, context, max_tokens, temperature) -> ChatConfig:
    return ChatConfig(
        response_style=style,
        tone=tone,
        creativity=creativity,
        context_awareness=context,
        max_tokens=max_tokens,
        temperature=temperature,
    )


# name → (description, config)
CHAT_PRESETS: Dict[str, Tuple[str, ChatConfig]] = {
    "quickHelp": (
        "Fast, concise answers for quick questions",
        _preset("concise", "friendly", "low", False, 300, 0.3),
    ),
    "codeAssistant": (
        "Technical, detailed code explanations and help",
        _preset("detailed", "technical", "low", True, 2000, 0.4),
    ),
    "writingCoach": (
        "Professional feedback for writing improvement",
        _preset("balanced", "professional", "medium", True, 1200, 0.7),
    ),
    "creativeBrainstorm": (
        "High creativity for idea generation and exploration",
        _preset("detailed", "casual", "high", True, 1500, 0.9),
    ),
    "studyBuddy": (
        "Educational, patient learning assistance",
        _preset("detailed", "friendly", "medium", True, 1800, 0.6),
    ),
    "businessComm": (
        "Professional, concise business communication",
        _preset("concise", "professional", "low", False, 800, 0.4),
    ),
    "casualChat": (
        "Friendly, conversational everyday chat",
        _preset("balanced", "casual", "medium", True, 1000, 0.7),
    ),
    "researchAssistant": (
        "Detailed, factual research support",
        _preset("detailed", "professional", "low", True, 2500, 0.3),
    ),
    "debuggingHelper": (
        "Technical, step-by-step debugging assistance",
        _preset("detailed", "technical", "low", True, 2000, 0.2),
    ),
    "contentCreator": (
        "Creative, engaging content generation",
        _preset("detailed", "friendly", "high", True, 2000, 0.8),
    ),
}

# ── System prompt fragments ───────────────────────────────────────────────

STYLE_PROMPTS = {
    "concise": (
        "Provide brief, to-the-point responses. Be succinct and focus only on "
        "essential information. "
    ),
    "detailed": (
        "Provide comprehensive, detailed explanations. Include relevant context, "
        "examples, and thorough analysis. "
    ),
    "balanced": "Provide clear, balanced responses with appropriate detail. ",
}

TONE_PROMPTS = {
    "professional": "Maintain a professional, formal tone suitable for business communication. ",
    "casual": "Use a casual, conversational tone as if talking to a friend. ",
    "technical": (
        "Use precise, technical language with domain-specific terminology when "
        "appropriate. "
    ),
    "friendly": "Be warm, approachable, and encouraging in your responses. ",
}

CREATIVITY_PROMPTS = {
    "low": "Be factual and straightforward in your responses.",
    "high": "Feel free to be creative and explore different perspectives.",
    "medium": "Balance factual accuracy with creative insights when appropriate.",
}

CREATIVITY_TEMPERATURES = {"low": 0.3, "medium": 0.7, "high": 0.9}
STYLE_MAX_TOKENS = {"concise": 500, "balanced": 1000, "detailed": 2000}


def generate_message_id() -> str:
    return f"msg_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def trim_history(
    history: List[ChatMessage],
    limit: int,
    char_budget: int,
) -> List[ChatMessage]:
    """Newest messages that fit both the count limit and the character budget, oldest first."""
    if limit <= 0:
        return []

    kept: List[ChatMessage] = []
    used = 0
    for message in reversed(history[-limit:]):
        used += len(message.content)
        if used > char_budget:
            break
        kept.append(message)
    kept.reverse()
    return kept


class ChatService:
    def __init__(
        self,
        orchestrator: FallbackOrchestrator,
        config: Optional[ChatConfig] = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._config = config or ChatConfig()

    # ── Configuration ─────────────────────────────────────────────────────

    def get_config(self) -> ChatConfig:
        return self._config.model_copy()

    def update_config(self, update: ChatConfigUpdate) -> ChatConfig:
        changes = update.model_dump(exclude_unset=True, exclude_none=True)
        self._config = self._config.model_copy(update=changes)
        logger.info("Chat config updated: %s", ", ".join(sorted(changes)) or "no changes")
        return self.get_config()

    def list_presets(self) -> List[ChatPreset]:
        return [
            ChatPreset(name=name, description=description, config=config)
            for name, (description, config) in CHAT_PRESETS.items()
        ]

    def apply_preset(self, name: str) -> ChatConfig:
        if name not in CHAT_PRESETS:
            raise NotFoundError(resource="chat preset", resource_id=name)
        self._config = CHAT_PRESETS[name][1].model_copy()
        logger.info("Chat preset applied: %s", name)
        return self.get_config()

    def build_system_prompt(self) -> str:
        config = self._config
        return (
            "You are a helpful AI assistant. "
            + STYLE_PROMPTS.get(config.response_style, STYLE_PROMPTS["balanced"])
            + TONE_PROMPTS.get(config.tone, "")
            + CREATIVITY_PROMPTS.get(config.creativity, CREATIVITY_PROMPTS["medium"])
        )

    def get_temperature(self) -> float:
        # A non-default value means the user picked one explicitly
        if self._config.temperature != DEFAULT_CHAT_TEMPERATURE:
            return self._config.temperature
        return CREATIVITY_TEMPERATURES.get(self._config.creativity, DEFAULT_CHAT_TEMPERATURE)

    def get_max_tokens(self) -> int:
        if self._config.max_tokens != DEFAULT_CHAT_MAX_TOKENS:
            return self._config.max_tokens
        return STYLE_MAX_TOKENS.get(self._config.response_style, DEFAULT_CHAT_MAX_TOKENS)

    def chat_options(self) -> ChatOptions:
        return ChatOptions(
            temperature=self.get_temperature(),
            max_tokens=self.get_max_tokens(),
        )

    # ── Conversation ──────────────────────────────────────────────────────

    def build_messages(self, request: ChatRequest) -> List[ChatMessage]:
        messages = [ChatMessage(role="system", content=self.build_system_prompt())]

        if self._config.context_awareness and request.use_context:
            history = trim_history(
                request.conversation_history,
                settings.chat_history_limit,
                settings.chat_context_char_budget,
            )
            messages.extend(
                ChatMessage(
                    role="assistant" if m.role == "assistant" else "user",
                    content=m.content,
                    timestamp=m.timestamp,
                )
                for m in history
            )

        messages.append(ChatMessage(role="user", content=request.message))
        return messages

    async def send_message(self, request: ChatRequest) -> ChatResponse:
        """
        Answer one chat message through the provider fallback chain.

        Raises:
            NoProvidersAvailableError / AllProvidersFailedError from the orchestrator
        """
        messages = self.build_messages(request)
        logger.info(
            "Chat request: %d message(s) in context (%d in history)",
            len(messages),
            len(request.conversation_history),
        )

        reply = await self._orchestrator.chat(messages, self.chat_options())

        return ChatResponse(
            message=reply.text,
            message_id=generate_message_id(),
            timestamp=utc_now(),
            provider=reply.provider,
            tokens_used=reply.tokens_used,
            finish_reason=reply.finish_reason,
            processing_time=reply.processing_time,
        )

    def export_conversation(
        self,
        messages: List[ChatMessage],
        exported_at: Optional[datetime] = None,
    ) -> str:
        """Markdown transcript: a heading, then one bold-labelled block per message."""
        exported_at = exported_at or utc_now()
        lines = [f"# Chat Export - {exported_at.isoformat()}\n\n"]
        for message in messages:
            role = "You" if message.role == "user" else "AI Assistant"
            lines.append(
                f"**{role}** ({message.timestamp.strftime('%H:%M:%S')}):\n{message.content}\n\n"
            )
        return "".join(lines)


# ── Singleton Instance ────────────────────────────────────────────────────
chat_service = ChatService(orchestrator)
