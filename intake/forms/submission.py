"""
Submission orchestrator. Browser-side half of the intake flow.

    validate_required → multipart (staged files + every field from state) → POST /api/submit

One request in flight per session. On success the state is reset; on any
failure it is left intact so the user can retry without re-entering data.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

import httpx

from .state import FormState, StagedFile, files_for
from .validation import validate_required

logger = logging.getLogger(__name__)

SUBMIT_PATH = "/api/submit"
SUCCESS_MESSAGE = "Thanks! We received your submission."
FAILURE_MESSAGE = "Submission failed"
BUSY_MESSAGE = "Submission already in progress"


@dataclass
class SubmissionResult:
    ok: bool
    record: Optional[Any] = None
    error: Optional[str] = None
    message: Optional[str] = None
    open_section: Optional[int] = None  # section to force open on validation failure


class SubmissionClient:
    """Posts a FormState plus its staged files to the intake endpoint."""

    def __init__(self, client: httpx.AsyncClient, path: str = SUBMIT_PATH):
        self._client = client
        self._path = path

    async def submit(self, state: FormState, files: list[StagedFile]) -> SubmissionResult:
        if state.submitting:
            return SubmissionResult(ok=False, error=BUSY_MESSAGE)

        state.submitting = True
        try:
            failure = validate_required(state)
            if failure:
                return SubmissionResult(ok=False, error=failure.message, open_section=failure.section)

            try:
                resp = await self._client.post(self._path, files=build_multipart(state, files))
            except httpx.HTTPError as e:
                logger.warning("Submit request failed: %s", e)
                return SubmissionResult(ok=False, error=str(e) or FAILURE_MESSAGE)

            if not resp.is_success:
                logger.warning("Submit rejected (%d)", resp.status_code)
                return SubmissionResult(ok=False, error=FAILURE_MESSAGE)

            try:
                body = resp.json()
            except ValueError:
                return SubmissionResult(ok=False, error=FAILURE_MESSAGE)
            logger.info("Submitted: %s", body)
            state.reset()
            files.clear()
            return SubmissionResult(ok=True, record=body.get("record"), message=SUCCESS_MESSAGE)
        finally:
            state.submitting = False


def build_multipart(
    state: FormState, files: list[StagedFile]
) -> list[tuple[str, tuple[Optional[str], Union[str, bytes], ...]]]:
    """
    Multipart parts for httpx, files first.

    Scalar and links fields are always re-appended from state so stale input
    values never win. They go out as filename-less parts, which keeps the body
    multipart even when no file is staged.
    """
    parts: list = [
        (f.field, (f.filename, f.content, f.content_type))
        for f in files_for(files)
    ]
    parts += [(name, (None, value)) for name, value in state.to_form_fields()]
    return parts
