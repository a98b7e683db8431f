"""Append-only audit trail of analysis attempts."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from beanie import Document, Indexed
from pydantic import Field

from app.shared.models import utcnow


class ProcessingLog(Document):
    """One row per analysis attempt, closed out once on success or failure."""

    document_id: Indexed(str)

    request_payload: Dict[str, Any] = Field(default_factory=dict)
    response_payload: Optional[Dict[str, Any]] = None

    status: str = "processing"  # processing, completed, error
    error_message: Optional[str] = None
    failed_tables: List[str] = Field(default_factory=list)
    processing_time: Optional[float] = None  # seconds

    created_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None

    class Settings:
        name = "document_processing_logs"
        indexes = [
            [("document_id", 1), ("created_at", -1)],
        ]
