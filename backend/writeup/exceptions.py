"""
WriteUp Backend: Custom Exception Hierarchy
===========================================

What:  Application-specific exceptions for each failure scenario.
Why:   Typed exceptions let the global handlers in main.py pick the right HTTP
       status and build a consistent ErrorEnvelope without try/except in routes.
How:   Every exception carries a human-readable message, a machine-readable
       `code`, and an optional debug `context` (logged, never returned).

Exception Hierarchy:
    WriteupError (base)
    ├── ValidationError            → 400 (NO_TEXT_SELECTED, TEXT_TOO_LONG, ...)
    │   ├── SensitiveDataError     → 400 SENSITIVE_DATA
    │   └── ExcludedAppError       → 400 EXCLUDED_APP
    ├── NotFoundError              → 404 NOT_FOUND
    ├── DatabaseError              → 500 DATABASE_ERROR
    ├── ProviderError              → raised by adapters, absorbed by the orchestrator
    ├── NoProvidersAvailableError  → 503 NO_PROVIDERS_AVAILABLE
    ├── AllProvidersFailedError    → 503 ALL_PROVIDERS_FAILED
    └── EnhancementError           → 500 ENHANCEMENT_FAILED

Design Decision:
    Orchestration failures are exceptions with NAMED fields (errors,
    text_length, processing_time, ...) rather than loose attributes patched
    onto a generic error. Callers can rely on the shape; type checkers can too.
"""

from typing import Any, Dict, List, Optional

from writeup.schemas.enhancement import FailureRecord


class WriteupError(Exception):
    """
    Base exception for all WriteUp application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        code:     Machine-readable error code for the ErrorEnvelope
        context:  Additional debug info (logged but NOT returned to client)
    """

    code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(WriteupError):
    """
    Raised when the request input is rejected before orchestration.

    Input errors never reach the provider layer. They carry the length of the
    offending text and how long validation took so the envelope can report
    both.
    """

    code = "INVALID_REQUEST"

    def __init__(
        self,
        message: str = "Validation failed",
        code: Optional[str] = None,
        text_length: Optional[int] = None,
        enhancement_type: Optional[str] = None,
        processing_time: Optional[float] = None,
        user_action: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        if code:
            self.code = code
        self.text_length = text_length
        self.enhancement_type = enhancement_type
        self.processing_time = processing_time
        self.user_action = user_action


class SensitiveDataError(ValidationError):
    """Raised when the privacy gate finds card- or SSN-like data in the text."""

    code = "SENSITIVE_DATA"

    def __init__(
        self,
        text_length: Optional[int] = None,
        enhancement_type: Optional[str] = None,
        processing_time: Optional[float] = None,
    ):
        super().__init__(
            message="Text contains sensitive information (credit cards, SSN, etc.).",
            text_length=text_length,
            enhancement_type=enhancement_type,
            processing_time=processing_time,
            user_action="Remove sensitive data from the selection",
        )


class ExcludedAppError(ValidationError):
    """Raised when the text was captured from an application on the exclusion list."""

    code = "EXCLUDED_APP"

    def __init__(
        self,
        app_name: str,
        text_length: Optional[int] = None,
        enhancement_type: Optional[str] = None,
        processing_time: Optional[float] = None,
    ):
        super().__init__(
            message=f"Text enhancement is disabled for '{app_name}'.",
            text_length=text_length,
            enhancement_type=enhancement_type,
            processing_time=processing_time,
            user_action="Remove the application from the privacy exclusion list in Settings",
            context={"app_name": app_name},
        )
        self.app_name = app_name


class NotFoundError(WriteupError):
    """Raised when a requested resource (provider, history item, preset) does not exist."""

    code = "NOT_FOUND"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class DatabaseError(WriteupError):
    """
    Raised when database operations fail unexpectedly.

    The message returned to the client is always generic; the underlying
    error is logged server-side only.
    """

    code = "DATABASE_ERROR"

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ProviderError(WriteupError):
    """
    Raised by a provider adapter when its backend call fails.

    The message keeps the backend's own error string (e.g. "401 Unauthorized")
    so downstream guidance can recognise credential or network problems.
    """

    code = "PROVIDER_ERROR"

    def __init__(
        self,
        message: str,
        provider: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["provider"] = provider
        super().__init__(message=message, context=ctx)
        self.provider = provider


class NoProvidersAvailableError(WriteupError):
    """Raised when no enabled, credentialed provider exists. No adapter is called."""

    code = "NO_PROVIDERS_AVAILABLE"

    def __init__(
        self,
        message: str = (
            "No configured providers available. "
            "Please add and enable at least one AI provider in Settings."
        ),
        text_length: Optional[int] = None,
        enhancement_type: Optional[str] = None,
        processing_time: Optional[float] = None,
    ):
        super().__init__(message=message)
        self.text_length = text_length
        self.enhancement_type = enhancement_type
        self.processing_time = processing_time


class AllProvidersFailedError(WriteupError):
    """
    Raised once every candidate provider has been attempted and failed.

    Attributes:
        errors:           One FailureRecord per attempted candidate, in attempt order
        text_length:      Length of the request text (0 for chat requests)
        enhancement_type: Requested enhancement type ("chat" for chat requests)
        processing_time:  Milliseconds from orchestration start to giving up
    """

    code = "ALL_PROVIDERS_FAILED"

    def __init__(
        self,
        errors: List[FailureRecord],
        text_length: Optional[int] = None,
        enhancement_type: Optional[str] = None,
        processing_time: Optional[float] = None,
    ):
        details = "; ".join(f"{e.provider}: {e.error}" for e in errors)
        super().__init__(message=f"All {len(errors)} provider(s) failed. {details}")
        self.errors = list(errors)
        self.text_length = text_length
        self.enhancement_type = enhancement_type
        self.processing_time = processing_time


class EnhancementError(WriteupError):
    """Raised by the request boundary for unexpected failures during enhancement."""

    code = "ENHANCEMENT_FAILED"

    def __init__(
        self,
        message: str = "Enhancement failed.",
        text_length: Optional[int] = None,
        enhancement_type: Optional[str] = None,
        processing_time: Optional[float] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.text_length = text_length
        self.enhancement_type = enhancement_type
        self.processing_time = processing_time
