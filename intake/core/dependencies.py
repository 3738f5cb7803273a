"""
Process-wide services. Built once at startup, injected into route handlers.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from fastapi import Request

from .config import Settings, get_settings
from .flags import FeatureFlags, get_flags
from ..services.airtable import AirtableClient
from ..services.intake_service import IntakeService
from ..storage.base import get_uploader

logger = logging.getLogger(__name__)


@dataclass
class IntakeServices:
    client: httpx.AsyncClient
    intake: IntakeService

    async def close(self) -> None:
        if not self.client.is_closed:
            await self.client.aclose()


def build_services(
    settings: Optional[Settings] = None,
    flags: Optional[FeatureFlags] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> IntakeServices:
    """
    Construct the shared HTTP client, record store and upload strategy.

    Raises ConfigurationError if the record store or the selected strategy
    is missing credentials. Nothing is sent over the network here.
    """
    settings = settings or get_settings()
    flags = flags or get_flags()
    client = client or httpx.AsyncClient(
        timeout=httpx.Timeout(connect=10, read=120, write=120, pool=10),
        limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
    )

    record_store = AirtableClient(client, settings)
    uploader = get_uploader(flags.storage_provider, client, settings, record_store=record_store)
    intake = IntakeService(record_store, uploader, settings, flags)
    return IntakeServices(client=client, intake=intake)


def get_services(request: Request) -> IntakeServices:
    """Services stored on app.state. Built on first use if startup did not build them."""
    services = getattr(request.app.state, "services", None)
    if services is None:
        services = build_services()
        request.app.state.services = services
    return services


async def get_intake_service(request: Request) -> IntakeService:
    # Runs on the event loop, so the lazy build in get_services is never interleaved
    return get_services(request).intake

