"""Medical document model and its processing state machine."""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from beanie import Indexed
from pydantic import Field

from app.shared.errors import InvalidStateTransition
from app.shared.models import TimestampedDocument, utcnow


class DocumentState(str, Enum):
    """Lifecycle of a document's analysis.

    This is the only stored state; the display string shown in the dashboard
    is derived from it so the two can never disagree.
    """
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (DocumentState.COMPLETED, DocumentState.ERROR)

    @property
    def display_status(self) -> str:
        """Human-facing status used by the dashboard."""
        return _DISPLAY_STATUS[self]

    def can_transition_to(self, target: "DocumentState") -> bool:
        """Check whether ``target`` is reachable from this state."""
        return target in _ALLOWED_TRANSITIONS[self]


_DISPLAY_STATUS = {
    DocumentState.PENDING: "Processing",
    DocumentState.PROCESSING: "Processing",
    DocumentState.COMPLETED: "Analyzed",
    DocumentState.ERROR: "Error",
}

_ALLOWED_TRANSITIONS = {
    DocumentState.PENDING: {DocumentState.PROCESSING, DocumentState.ERROR},
    # Re-marking processing within one attempt is a no-op
    DocumentState.PROCESSING: {
        DocumentState.PROCESSING,
        DocumentState.COMPLETED,
        DocumentState.ERROR,
    },
    DocumentState.COMPLETED: set(),
    DocumentState.ERROR: set(),
}

NON_TERMINAL_DISPLAY_STATUSES = {"Pending", "Processing"}


class DocumentType(str, Enum):
    """Kind of file(s) a document was created from."""
    PDF = "PDF"
    IMAGE = "Image"
    WORD = "Word"
    MULTIPLE_IMAGES = "Multiple Images"
    MIXED = "Mixed"


class MedicalDocument(TimestampedDocument):
    """One uploaded medical file and the outcome of its analysis."""

    # Owner
    user_id: Indexed(str)

    # Upload metadata
    title: str
    type: str = DocumentType.PDF.value
    file_path: Optional[str] = None  # key in the storage gateway
    date: datetime = Field(default_factory=utcnow)

    # Processing state
    processing_status: DocumentState = DocumentState.PENDING
    error_message: Optional[str] = None

    # Analysis results
    summary: str = ""
    patient_info: Dict[str, str] = Field(default_factory=dict)  # date/provider/facility
    critical_values: List[str] = Field(default_factory=list)

    class Settings:
        name = "documents"
        indexes = [
            "user_id",
            "processing_status",
            [("user_id", 1), ("created_at", -1)],
        ]

    @property
    def status(self) -> str:
        """Display status derived from ``processing_status``."""
        return self.processing_status.display_status

    @property
    def is_terminal(self) -> bool:
        return self.processing_status.is_terminal

    def transition_to(self, target: DocumentState, error_message: Optional[str] = None):
        """
        Move the document to ``target`` in memory.

        Entering any non-error state clears a previous error message.
        Raises InvalidStateTransition when the move is not allowed.
        """
        if not self.processing_status.can_transition_to(target):
            raise InvalidStateTransition(self.processing_status.value, target.value)

        self.processing_status = target
        self.error_message = error_message if target == DocumentState.ERROR else None
        self.update_timestamp()
