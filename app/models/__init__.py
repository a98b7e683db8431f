"""Database models for document analysis."""

from app.models.document import DocumentState, DocumentType, MedicalDocument
from app.models.finding import FindingCategory, KeyFinding, Recommendation
from app.models.processing_log import ProcessingLog
from app.models.subscription import Subscription, SubscriptionStatus

DOCUMENT_MODELS = [
    MedicalDocument,
    KeyFinding,
    Recommendation,
    ProcessingLog,
    Subscription,
]

__all__ = [
    "DocumentState",
    "DocumentType",
    "MedicalDocument",
    "FindingCategory",
    "KeyFinding",
    "Recommendation",
    "ProcessingLog",
    "Subscription",
    "SubscriptionStatus",
    "DOCUMENT_MODELS",
]
