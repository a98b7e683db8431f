"""Business logic services."""

from app.services.analysis_service import AnalysisService
from app.services.document_service import DocumentService
from app.services.ocr_service import OCRService
from app.services.pdf_service import PDFService
from app.services.storage_service import StorageService
from app.services.subscription_service import SubscriptionService

__all__ = [
    "AnalysisService",
    "DocumentService",
    "OCRService",
    "PDFService",
    "StorageService",
    "SubscriptionService",
]
