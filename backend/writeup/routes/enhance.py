"""
WriteUp Backend: Enhancement Route
==================================

What:  POST /api/enhance, the popup's one call per hotkey press.
How:   Thin wrapper over EnhancementService. Every failure is a typed
       exception that the global handlers in main.py turn into an
       ErrorEnvelope with the right status code.
"""

import logging

from fastapi import APIRouter

from writeup.schemas.enhancement import EnhanceRequest, EnhancementResult, ErrorEnvelope
from writeup.services.enhancement_service import enhancement_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Enhancement"])


@router.post(
    "/enhance",
    response_model=EnhancementResult,
    responses={
        200: {"description": "Enhanced text suggestions", "model": EnhancementResult},
        400: {"description": "Rejected input (empty, too long, sensitive, excluded app)", "model": ErrorEnvelope},
        503: {"description": "No provider available or all providers failed", "model": ErrorEnvelope},
        500: {"description": "Unexpected enhancement failure", "model": ErrorEnvelope},
    },
    summary="Enhance selected text",
    description=(
        "Validates the selection, runs the privacy checks, and tries the enabled AI "
        "providers in priority order until one succeeds."
    ),
)
async def enhance_text(request: EnhanceRequest) -> EnhancementResult:
    return await enhancement_service.enhance(request.text, request.options, request.capture)
