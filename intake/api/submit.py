"""
Intake submission API.

POST /api/submit: multipart/form-data (fields + files) or application/json (fields only)

Responses:
  200 {"ok": true, "record": {...}}
  500 {"ok": false, "error": "Submission failed"}
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ..core.dependencies import get_intake_service
from ..models import SubmitResponse
from ..services.intake_service import IntakeService

logger = logging.getLogger(__name__)

submit_router = APIRouter(tags=["submit"])

GENERIC_ERROR = "Submission failed"


def failure_response() -> JSONResponse:
    body = SubmitResponse(ok=False, error=GENERIC_ERROR)
    return JSONResponse(status_code=500, content=body.model_dump(exclude_none=True))


async def configuration_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Services could not be built. Detail stays in the log."""
    logger.error("%s: %s", request.url.path, exc)
    return failure_response()


@submit_router.post("/submit", response_model=SubmitResponse, response_model_exclude_none=True)
async def submit(request: Request, service: IntakeService = Depends(get_intake_service)):
    """
    Accept one onboarding submission and create its intake record.

    File upload failures are tolerated; a record-store failure is not.
    Provider error detail is logged here and never returned to the client.
    """
    try:
        if "multipart/form-data" in request.headers.get("content-type", ""):
            form = await request.form()
            try:
                record = await service.handle_form(form)
            finally:
                await form.close()
        else:
            try:
                body = await request.json()
            except ValueError:
                body = {}
            record = await service.handle_json(body if isinstance(body, dict) else {})

        return SubmitResponse(ok=True, record=record)

    except Exception:
        logger.exception("/api/submit error")
        return failure_response()
