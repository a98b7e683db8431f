from beanie import Document
from pydantic import Field
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC timestamp, matching what MongoDB hands back."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TimestampedDocument(Document):
    """Base document class with creation and update timestamps."""

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def update_timestamp(self):
        """Update the updated_at timestamp."""
        self.updated_at = utcnow()
