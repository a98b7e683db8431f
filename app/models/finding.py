"""Key finding and recommendation models produced by analysis."""

from datetime import datetime
from enum import Enum
from typing import Optional

from beanie import Document, Indexed
from pydantic import Field

from app.shared.models import utcnow


class FindingCategory(str, Enum):
    """Clinical category of a key finding."""
    DIAGNOSIS = "Diagnosis"
    SYMPTOM = "Symptom"
    MEDICATION = "Medication"
    ALLERGY = "Allergy"
    LAB_RESULT = "Lab Result"
    HISTORY = "History"
    OTHER = "Other"

    @classmethod
    def normalize(cls, raw: Optional[str]) -> "FindingCategory":
        """Map a free-form category from the model onto a known one."""
        if not raw or not isinstance(raw, str):
            return cls.OTHER

        key = raw.strip().lower().replace("_", " ")
        for category in cls:
            if category.value.lower() == key:
                return category

        return _CATEGORY_ALIASES.get(key, cls.OTHER)


_CATEGORY_ALIASES = {
    "lab": FindingCategory.LAB_RESULT,
    "labs": FindingCategory.LAB_RESULT,
    "lab results": FindingCategory.LAB_RESULT,
    "laboratory": FindingCategory.LAB_RESULT,
    "vital": FindingCategory.LAB_RESULT,
    "vitals": FindingCategory.LAB_RESULT,
    "diagnoses": FindingCategory.DIAGNOSIS,
    "symptoms": FindingCategory.SYMPTOM,
    "medications": FindingCategory.MEDICATION,
    "drug": FindingCategory.MEDICATION,
    "allergies": FindingCategory.ALLERGY,
    "medical history": FindingCategory.HISTORY,
}


class KeyFinding(Document):
    """One structured clinical data point extracted from a document."""

    document_id: Indexed(str)

    marker: str
    value: str
    reference_range: Optional[str] = None
    interpretation: Optional[str] = None
    category: str = FindingCategory.OTHER.value
    explanation: Optional[str] = None

    created_at: datetime = Field(default_factory=utcnow)

    class Settings:
        name = "key_findings"


class Recommendation(Document):
    """Free-text recommendation attached to a document."""

    document_id: Indexed(str)
    content: str

    created_at: datetime = Field(default_factory=utcnow)

    class Settings:
        name = "recommendations"
