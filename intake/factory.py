"""
FastAPI application factory.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import get_settings
from .core.dependencies import build_services
from .core.errors import ConfigurationError
from .core.flags import get_flags
from .api.router import router
from .api.submit import configuration_error_handler

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="Intake",
        description="Client onboarding intake",
        version="1.0.0",
        docs_url="/docs" if settings.env == "development" else None,
        redoc_url="/redoc" if settings.env == "development" else None,
    )

    # ── CORS ─────────────────────────────────────────────────────
    origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins if origins != ["*"] else ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Startup ──────────────────────────────────────────────────
    @app.on_event("startup")
    async def on_startup():
        logging.basicConfig(
            level=getattr(logging, settings.log_level.upper(), logging.INFO),
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        )
        logger.info("Starting Intake (env=%s)", settings.env)

        flags = get_flags()
        logger.info(
            "Flags: storage_provider=%s secondary_attach=%s",
            flags.storage_provider, flags.use_secondary_attach,
        )

        # Fail fast on missing credentials
        if getattr(app.state, "services", None) is None:
            app.state.services = build_services(settings, flags)

        logger.info("Intake is ready")

    # ── Shutdown ─────────────────────────────────────────────────
    @app.on_event("shutdown")
    async def on_shutdown():
        services = getattr(app.state, "services", None)
        if services is not None:
            await services.close()
            app.state.services = None
        logger.info("Intake shut down")

    # ── Routes ───────────────────────────────────────────────────
    app.include_router(router)
    app.add_exception_handler(ConfigurationError, configuration_error_handler)

    return app
