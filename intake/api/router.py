"""
Main API router. Mounts all sub-routers.
"""

from fastapi import APIRouter

router = APIRouter()


# ── Health ───────────────────────────────────────────────────────────

@router.get("/health")
async def health():
    return {"status": "ok", "service": "intake"}


# ── Intake routes ───────────────────────────────────────────────────

from .submit import submit_router

router.include_router(submit_router, prefix="/api")
