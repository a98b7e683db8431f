"""Document upload, retrieval and deletion."""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from fastapi.concurrency import run_in_threadpool

from app.core.logging import logger
from app.database import is_valid_id
from app.models.document import DocumentState, MedicalDocument
from app.models.finding import KeyFinding, Recommendation
from app.models.processing_log import ProcessingLog
from app.schemas.documents import (
    DocumentDetailOut,
    DocumentOut,
    KeyFindingOut,
    UsageSummaryResponse,
)
from app.services.storage_service import StorageService, build_object_path
from app.services.subscription_service import SubscriptionService
from app.services.text_extraction import extract_text, infer_document_type


@dataclass
class UploadedFile:
    """Raw bytes of one file from a multipart upload."""
    filename: str
    data: bytes
    content_type: Optional[str] = None


@dataclass
class CreatedDocument:
    """A stored document together with the text to analyze."""
    document: MedicalDocument
    text: str


class DocumentService:
    """Service for a user's documents."""

    @staticmethod
    def titles_for(title: str, count: int) -> List[str]:
        """One title per file; batches are numbered from 1."""
        if count == 1:
            return [title]
        return [f"{title} ({i})" for i in range(1, count + 1)]

    @staticmethod
    async def create_document(
        user_id: str,
        upload: UploadedFile,
        title: str,
        pdf_password: Optional[str] = None,
        document_type: Optional[str] = None,
    ) -> CreatedDocument:
        """
        Extract text, store the file and create the document in ``pending``.

        Extraction runs before anything is written so an unreadable file
        leaves no record behind. Extraction errors propagate to the caller.
        """
        text = await run_in_threadpool(extract_text, upload.filename, upload.data, pdf_password)

        path = build_object_path(user_id, upload.filename)
        await StorageService.upload(path, upload.data, upload.content_type)

        document = MedicalDocument(
            user_id=user_id,
            title=title,
            type=document_type or infer_document_type([upload.filename]),
            file_path=path,
        )
        await document.insert()

        logger.info(f"Created document {document.id} for user {user_id} from {upload.filename}")
        return CreatedDocument(document=document, text=text)

    @staticmethod
    async def get_document(user_id: str, document_id: str) -> Optional[MedicalDocument]:
        """Fetch a document owned by ``user_id``."""
        if not is_valid_id(document_id):
            return None
        document = await MedicalDocument.get(document_id)
        if document is None or document.user_id != user_id:
            return None
        return document

    @staticmethod
    async def list_documents(user_id: str) -> List[MedicalDocument]:
        """A user's documents, newest first."""
        return await MedicalDocument.find(
            MedicalDocument.user_id == user_id
        ).sort(-MedicalDocument.created_at).to_list()

    @staticmethod
    async def load_results(document: MedicalDocument) -> Tuple[List[KeyFinding], List[Recommendation]]:
        """Findings and recommendations of a document, oldest first."""
        document_id = str(document.id)
        findings = await KeyFinding.find(
            KeyFinding.document_id == document_id
        ).sort(+KeyFinding.created_at).to_list()
        recommendations = await Recommendation.find(
            Recommendation.document_id == document_id
        ).sort(+Recommendation.created_at).to_list()
        return findings, recommendations

    @classmethod
    async def get_detail(cls, document: MedicalDocument) -> DocumentDetailOut:
        """
        Build the detail view.

        Results are only read once the document is terminal; until then the
        view carries empty findings and recommendations.
        """
        base = DocumentOut.from_document(document).model_dump()
        file_url = StorageService.create_signed_url(document.file_path) if document.file_path else None

        if not document.is_terminal:
            return DocumentDetailOut(**base, file_url=file_url)

        findings, recommendations = await cls.load_results(document)
        return DocumentDetailOut(
            **base,
            summary=document.summary,
            key_findings=[KeyFindingOut.from_finding(f) for f in findings],
            recommendations=[r.content for r in recommendations],
            critical_values=document.critical_values,
            metadata={"patient_info": document.patient_info} if document.patient_info else {},
            file_url=file_url,
        )

    @staticmethod
    async def delete_document(document: MedicalDocument) -> None:
        """
        Delete a document with its results and logs, then its stored file.
        A storage failure is logged and does not fail the deletion.
        """
        document_id = str(document.id)

        await KeyFinding.find(KeyFinding.document_id == document_id).delete()
        await Recommendation.find(Recommendation.document_id == document_id).delete()
        await ProcessingLog.find(ProcessingLog.document_id == document_id).delete()
        await document.delete()

        if document.file_path:
            deleted = await StorageService.delete(document.file_path)
            if not deleted:
                logger.warning(f"Stored file {document.file_path} of document {document_id} was not removed")

        logger.info(f"Deleted document {document_id}")

    @staticmethod
    async def usage_summary(user_id: str) -> UsageSummaryResponse:
        """Counts and plan details for the dashboard header."""
        total = await MedicalDocument.find(MedicalDocument.user_id == user_id).count()
        processed = await MedicalDocument.find(
            MedicalDocument.user_id == user_id,
            MedicalDocument.processing_status == DocumentState.COMPLETED,
        ).count()

        subscription = await SubscriptionService.get_subscription(user_id)
        has_access = SubscriptionService.has_access(subscription)

        return UsageSummaryResponse(
            total_documents=total,
            processed_documents=processed,
            subscription_type=subscription.subscription_type if has_access else "Free",
            next_billing_date=subscription.current_period_end if has_access else None,
        )
