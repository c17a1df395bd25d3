"""
WriteUp Backend: Provider Settings Routes
=========================================

What:  The settings panel's view of the AI providers.

    GET  /api/providers              descriptors, API keys masked
    PUT  /api/providers/{name}       partial update (key, model, enabled, priority)
    POST /api/providers/{name}/test  connectivity test for one provider
    GET  /api/providers/status       which providers are set up

The test endpoint configures the adapter from the saved descriptor and calls
test_connection() directly; it never goes through the fallback loop. Failures,
unknown names included, come back as {success: false, error} with status 200.
"""

import asyncio
import logging
from typing import List

from fastapi import APIRouter

from writeup.config import settings
from writeup.schemas.provider import (
    ProviderStatus,
    ProviderTestResult,
    ProviderUpdate,
    ProviderView,
    is_local_provider,
)
from writeup.services.config_store import config_store
from writeup.services.registry import provider_registry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/providers", tags=["Providers"])


@router.get("", response_model=List[ProviderView], summary="List provider settings")
async def list_providers() -> List[ProviderView]:
    descriptors = await config_store.get_providers()
    return [ProviderView.from_descriptor(d) for d in descriptors]


@router.get("/status", response_model=List[ProviderStatus], summary="Provider setup status")
async def provider_status() -> List[ProviderStatus]:
    return await provider_registry.get_statuses()


@router.put("/{name}", response_model=ProviderView, summary="Save provider settings")
async def save_provider(name: str, update: ProviderUpdate) -> ProviderView:
    descriptor = await config_store.save_provider(name, update)
    return ProviderView.from_descriptor(descriptor)


@router.post(
    "/{name}/test",
    response_model=ProviderTestResult,
    summary="Test provider connectivity",
)
async def test_provider(name: str) -> ProviderTestResult:
    adapter = provider_registry.get_provider(name)
    if adapter is None:
        return ProviderTestResult(success=False, error="Provider not found")

    descriptor = await config_store.get_provider(name)
    if is_local_provider(name):
        adapter.configure("", descriptor.model if descriptor else None)
    elif descriptor is not None:
        adapter.configure(descriptor.api_key, descriptor.model or None)

    try:
        success = await asyncio.wait_for(
            adapter.test_connection(),
            timeout=settings.test_connection_timeout_seconds,
        )
    except asyncio.TimeoutError:
        logger.warning("Connection test for %s timed out", name)
        return ProviderTestResult(success=False, error="Request timeout")
    except Exception as e:
        logger.warning("Connection test for %s raised: %s", name, e)
        return ProviderTestResult(success=False, error=str(e))

    logger.info("Connection test for %s: %s", name, "ok" if success else "failed")
    return ProviderTestResult(success=success)
