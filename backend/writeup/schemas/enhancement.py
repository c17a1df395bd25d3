"""
WriteUp Backend: Enhancement Schemas
====================================

What:  Pydantic models for enhancement requests, results, and error envelopes.
Why:   One set of models serves the orchestrator, the adapters, and the HTTP
       contract, so nothing is re-mapped between layers.
How:   Fields are snake_case in Python and camelCase on the wire
       (`tokens_used` ↔ `tokensUsed`) via a shared alias generator.
       Both spellings are accepted on input.
"""

from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

# The six enhancement types every adapter has a template for. Other strings
# are accepted and each adapter falls back to its "rephrase" template.
ENHANCEMENT_TYPES = ("grammar", "rephrase", "formal", "casual", "concise", "expand")
DEFAULT_ENHANCEMENT_TYPE = "rephrase"

# Largest number of variants any backend will be asked for.
MAX_VARIANTS_CAP = 3


class CamelModel(BaseModel):
    """Base for every wire-facing model: camelCase JSON, snake_case Python."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
    }


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class EnhancementOptions(CamelModel):
    """
    What:  How the selected text should be enhanced.

    type:          One of ENHANCEMENT_TYPES (unknown values are tolerated)
    language:      Optional output language, e.g. "German"
    context:       Optional background the model should take into account
    max_variants:  Requested number of alternatives, clamped to 1..MAX_VARIANTS_CAP
    """

    type: str = Field(default=DEFAULT_ENHANCEMENT_TYPE, description="Enhancement type")
    language: Optional[str] = Field(default=None, description="Output language")
    context: Optional[str] = Field(default=None, description="Extra context for the model")
    max_variants: Optional[int] = Field(default=None, description="Number of variants (1-3)")

    @field_validator("max_variants")
    @classmethod
    def clamp_max_variants(cls, v: Optional[int]) -> Optional[int]:
        if v is None:
            return v
        return max(1, min(v, MAX_VARIANTS_CAP))


class TextCaptureResult(CamelModel):
    """
    Diagnostic payload produced by the desktop shell's text capture.

    Only `text` feeds enhancement; `captured_from` is checked against the
    privacy exclusion list. Everything else is logged for troubleshooting.
    """

    text: str = ""
    captured_from: Optional[str] = None
    copy_simulated: bool = False
    capture_method: Optional[str] = None
    attempt_count: Optional[int] = None
    total_duration: Optional[float] = None
    platform_tool_available: bool = False
    error: Optional[str] = None


class EnhanceRequest(CamelModel):
    """Body of POST /api/enhance."""

    text: str = Field(default="", description="Selected text to enhance")
    options: EnhancementOptions = Field(default_factory=EnhancementOptions)
    capture: Optional[TextCaptureResult] = Field(
        default=None, description="Capture diagnostics from the desktop shell"
    )


# ══════════════════════════════════════════════════════════════════════════
# Result Models
# ══════════════════════════════════════════════════════════════════════════


class TextChange(CamelModel):
    """Reserved for diff annotations; adapters currently leave `changes` empty."""

    type: Literal["addition", "deletion", "modification"]
    original: str
    replacement: str
    position: int


class Suggestion(CamelModel):
    """One enhanced variant of the input text."""

    text: str
    type: str
    confidence: float = Field(ge=0.0, le=1.0)
    changes: List[TextChange] = Field(default_factory=list)


class EnhancementResult(CamelModel):
    """
    What:  Successful outcome of an enhancement.

    processing_time is wall-clock milliseconds. Adapters fill in their own
    call duration; the orchestrator replaces it with the time elapsed since
    orchestration started, so fallback attempts are included.
    """

    original: str
    suggestions: List[Suggestion] = Field(min_length=1)
    provider: str
    tokens_used: Optional[int] = None
    processing_time: float = 0.0


class FailureRecord(CamelModel):
    """One failed candidate attempt inside a fallback run."""

    provider: str
    error: str
    timestamp: datetime = Field(default_factory=utc_now)


class ErrorEnvelope(CamelModel):
    """
    What:  Uniform error body returned by every endpoint.

    error:            Human-readable message (includes backend detail for provider errors)
    code:             Machine-readable code, e.g. ALL_PROVIDERS_FAILED, SENSITIVE_DATA
    errors:           Per-provider failures when the whole fallback chain failed
    user_action:      Short hint for the popup ("Check your API key in Settings")
    troubleshooting:  Ordered steps for the settings panel
    """

    error: str
    code: str
    text_length: Optional[int] = None
    enhancement_type: Optional[str] = None
    processing_time: Optional[float] = None
    errors: Optional[List[FailureRecord]] = None
    user_action: Optional[str] = None
    troubleshooting: Optional[List[str]] = None
    request_id: Optional[str] = None
