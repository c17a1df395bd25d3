"""
WriteUp Backend: Health and Privacy Schemas
===========================================
"""

from typing import List

from pydantic import Field

from writeup.schemas.enhancement import CamelModel
from writeup.schemas.provider import ProviderStatus


class HealthResponse(CamelModel):
    """
    What:  Service and dependency status returned by GET /health.

    The database is critical (no config, no providers). Providers are not:
    a running service with zero configured providers is "degraded".
    """

    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    providers: List[ProviderStatus] = Field(default_factory=list)
    uptime_seconds: float = Field(description="Seconds since service started")


class ExcludedApps(CamelModel):
    apps: List[str]


class ExcludedAppRequest(CamelModel):
    app_name: str = Field(min_length=1)
