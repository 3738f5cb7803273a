"""
Wire models. Imported here so callers can use `from intake.models import ...`.
"""

from .intake import AttachmentRef, IntakePayload, Links, SubmitResponse, UploadedFileSummary

__all__ = [
    "AttachmentRef",
    "IntakePayload",
    "Links",
    "SubmitResponse",
    "UploadedFileSummary",
]
