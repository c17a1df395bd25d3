"""
WriteUp Backend: Enhancement Service
====================================

What:  The request boundary for POST /api/enhance.
Why:   Input checks and the privacy gate must run before any text can leave
       the machine; the orchestrator itself trusts its input.
How:   Validation runs in a fixed order, each failure raising a typed
       ValidationError:

           empty / whitespace text   → NO_TEXT_SELECTED
           longer than the limit     → TEXT_TOO_LONG
           captured from excluded app→ EXCLUDED_APP
           card / SSN-like digits    → SENSITIVE_DATA

       Then the orchestrator runs. Its own errors (NO_PROVIDERS_AVAILABLE,
       ALL_PROVIDERS_FAILED) propagate unchanged; anything unexpected is
       wrapped as ENHANCEMENT_FAILED.

User guidance:
    suggest_user_action() and troubleshooting_steps() turn an error message
    into a one-line hint and a checklist for the popup. They match on
    lower-cased keywords, since provider messages embed the backend's own
    error text ("401 Unauthorized", "Connection refused", ...).
"""

import logging
import time
from typing import List, Optional

from writeup.config import settings
from writeup.exceptions import (
    EnhancementError,
    ExcludedAppError,
    SensitiveDataError,
    ValidationError,
    WriteupError,
)
from writeup.schemas.enhancement import EnhancementOptions, EnhancementResult, TextCaptureResult
from writeup.services.orchestrator import FallbackOrchestrator, orchestrator
from writeup.services.privacy import PrivacyGate, privacy_gate

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# User guidance
# ══════════════════════════════════════════════════════════════════════════


def suggest_user_action(message: str) -> str:
    lowered = message.lower()
    if "api key" in lowered:
        return "Check your API key in Settings"
    if "rate limit" in lowered:
        return "Wait a moment and try again (rate limit reached)"
    if "network" in lowered or "timeout" in lowered:
        return "Check your internet connection"
    if "unauthorized" in lowered:
        return "Verify your API credentials in Settings"
    return "Try again or check Settings"


def troubleshooting_steps(message: str) -> List[str]:
    lowered = message.lower()
    steps: List[str] = []

    if "api key" in lowered:
        steps.extend([
            "Go to Settings > AI Providers",
            "Verify your API key is correct",
            "Test the connection using the Test button",
        ])

    if "ollama" in lowered:
        steps.extend([
            "Ensure Ollama is running (ollama serve)",
            "Check that the model is installed (ollama list)",
            f"Verify Ollama is accessible at {settings.ollama_base_url}",
        ])

    if "network" in lowered:
        steps.extend([
            "Check your internet connection",
            "Verify firewall settings",
            "Try using a different provider",
        ])

    return steps


def _elapsed_ms(start_time: float) -> float:
    return (time.time() - start_time) * 1000


class EnhancementService:
    def __init__(
        self,
        orchestrator: FallbackOrchestrator,
        privacy: PrivacyGate,
    ) -> None:
        self._orchestrator = orchestrator
        self._privacy = privacy

    def validate(
        self,
        text: str,
        options: EnhancementOptions,
        capture: Optional[TextCaptureResult],
        start_time: float,
    ) -> None:
        """Raises the first ValidationError that applies; returns None if the text may be sent."""
        text_length = len(text or "")

        if not text or not text.strip():
            raise ValidationError(
                message="No text selected. Please select some text and try again.",
                code="NO_TEXT_SELECTED",
                text_length=0,
                enhancement_type=options.type,
                processing_time=_elapsed_ms(start_time),
                user_action="Select text before pressing the shortcut key",
            )

        if text_length > settings.max_text_length:
            raise ValidationError(
                message=(
                    f"Selected text is too long "
                    f"(maximum {settings.max_text_length:,} characters)."
                ),
                code="TEXT_TOO_LONG",
                text_length=text_length,
                enhancement_type=options.type,
                processing_time=_elapsed_ms(start_time),
                user_action="Select a shorter portion of text",
            )

        captured_from = capture.captured_from if capture else None
        if not self._privacy.should_process_text(captured_from):
            raise ExcludedAppError(
                app_name=captured_from,
                text_length=text_length,
                enhancement_type=options.type,
                processing_time=_elapsed_ms(start_time),
            )

        if self._privacy.contains_sensitive_data(text):
            raise SensitiveDataError(
                text_length=text_length,
                enhancement_type=options.type,
                processing_time=_elapsed_ms(start_time),
            )

    async def enhance(
        self,
        text: str,
        options: Optional[EnhancementOptions] = None,
        capture: Optional[TextCaptureResult] = None,
    ) -> EnhancementResult:
        """
        Validate, then enhance through the provider fallback chain.

        Raises:
            ValidationError:            Rejected input (400)
            NoProvidersAvailableError:  Nothing configured (503)
            AllProvidersFailedError:    Every provider failed (503)
            EnhancementError:           Anything unexpected (500)
        """
        start_time = time.time()
        options = options or EnhancementOptions()

        if capture is not None:
            # Capture diagnostics only; the text itself is never logged
            logger.info(
                "Capture: method=%s attempts=%s duration=%sms simulated=%s tool=%s error=%s",
                capture.capture_method,
                capture.attempt_count,
                capture.total_duration,
                capture.copy_simulated,
                capture.platform_tool_available,
                capture.error,
            )

        self.validate(text, options, capture, start_time)

        try:
            result = await self._orchestrator.enhance(text, options)
        except WriteupError:
            raise
        except Exception as e:
            logger.error("Unexpected enhancement error: %s", str(e), exc_info=True)
            raise EnhancementError(
                message=str(e) or "Enhancement failed.",
                text_length=len(text),
                enhancement_type=options.type,
                processing_time=_elapsed_ms(start_time),
                context={"error_type": type(e).__name__},
            )

        logger.info(
            "Enhanced %d chars (%s) via %s in %.0fms",
            len(text),
            options.type,
            result.provider,
            result.processing_time,
        )
        return result


# ── Singleton Instance ────────────────────────────────────────────────────
enhancement_service = EnhancementService(orchestrator, privacy_gate)
