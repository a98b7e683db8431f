"""Pydantic schemas for API requests/responses."""

from app.schemas.analysis import (
    ProcessDocumentError,
    ProcessDocumentRequest,
    ProcessDocumentResponse,
)
from app.schemas.documents import (
    DocumentDetailOut,
    DocumentOut,
    KeyFindingOut,
    SubscriptionStatusResponse,
    UploadResponse,
    UsageSummaryResponse,
)

__all__ = [
    "ProcessDocumentError",
    "ProcessDocumentRequest",
    "ProcessDocumentResponse",
    "DocumentDetailOut",
    "DocumentOut",
    "KeyFindingOut",
    "SubscriptionStatusResponse",
    "UploadResponse",
    "UsageSummaryResponse",
]
