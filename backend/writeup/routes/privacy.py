"""
WriteUp Backend: Privacy Routes
===============================

What:  Read and edit the list of applications whose selections are never enhanced.
       Edits are saved and survive a restart.
"""

from fastapi import APIRouter

from writeup.schemas.health import ExcludedAppRequest, ExcludedApps
from writeup.services.privacy import privacy_gate

router = APIRouter(prefix="/api/privacy", tags=["Privacy"])


@router.get("/excluded-apps", response_model=ExcludedApps, summary="List excluded applications")
async def get_excluded_apps() -> ExcludedApps:
    return ExcludedApps(apps=privacy_gate.get_excluded_apps())


@router.put("/excluded-apps", response_model=ExcludedApps, summary="Replace excluded applications")
async def set_excluded_apps(body: ExcludedApps) -> ExcludedApps:
    await privacy_gate.set_excluded_apps(body.apps)
    return ExcludedApps(apps=privacy_gate.get_excluded_apps())


@router.post("/excluded-apps", response_model=ExcludedApps, summary="Add an excluded application")
async def add_excluded_app(body: ExcludedAppRequest) -> ExcludedApps:
    await privacy_gate.add_excluded_app(body.app_name)
    return ExcludedApps(apps=privacy_gate.get_excluded_apps())


@router.delete(
    "/excluded-apps/{app_name}",
    response_model=ExcludedApps,
    summary="Remove an excluded application",
)
async def remove_excluded_app(app_name: str) -> ExcludedApps:
    await privacy_gate.remove_excluded_app(app_name)
    return ExcludedApps(apps=privacy_gate.get_excluded_apps())
