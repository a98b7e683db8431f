"""Document upload and dashboard endpoints."""

from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, UploadFile, status

from app.core.logging import logger
from app.dependencies import get_analysis_service, get_current_user_id
from app.graphs.document_analysis import run_document_analysis
from app.schemas.documents import (
    DocumentDetailOut,
    DocumentOut,
    UploadFailure,
    UploadResponse,
    UsageSummaryResponse,
)
from app.services.analysis_service import AnalysisService
from app.services.document_service import DocumentService, UploadedFile
from app.services.subscription_service import SubscriptionService
from app.shared.errors import (
    IncorrectPasswordError,
    PasswordRequiredError,
    StorageError,
    TextExtractionError,
    UnsupportedFileTypeError,
)
from app.shared.exceptions import (
    BadRequestException,
    NotFoundException,
    PaymentRequiredException,
    UnprocessableException,
)

router = APIRouter(prefix="/documents", tags=["Documents"])


def _upload_error_message(error: Exception) -> str:
    if isinstance(error, PasswordRequiredError):
        return "PDF password required"
    if isinstance(error, IncorrectPasswordError):
        return "Incorrect password"
    if isinstance(error, UnsupportedFileTypeError):
        return str(error)
    if isinstance(error, StorageError):
        return "Failed to store file"
    return "Could not read file"


@router.post("/upload", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_documents(
    background_tasks: BackgroundTasks,
    files: List[UploadFile] = File(...),
    title: str = Form(...),
    document_type: Optional[str] = Form(None, alias="type"),
    pdf_password: Optional[str] = Form(None),
    user_id: str = Depends(get_current_user_id),
    analysis_service: AnalysisService = Depends(get_analysis_service),
):
    """
    Upload one or more medical files.

    Each file becomes its own document in ``pending`` and is analyzed in the
    background. With several files the titles are numbered "<title> (i)".

    - **files**: PDF or image files
    - **title**: Document title
    - **pdf_password**: Password for protected PDFs
    """
    if not files:
        raise BadRequestException("No file provided")

    refusal = await SubscriptionService.can_upload(user_id, len(files))
    if refusal:
        raise PaymentRequiredException(refusal)

    created = []
    failed = []
    errors = []
    for upload, doc_title in zip(files, DocumentService.titles_for(title, len(files))):
        uploaded = UploadedFile(
            filename=upload.filename or "upload",
            data=await upload.read(),
            content_type=upload.content_type,
        )
        try:
            result = await DocumentService.create_document(
                user_id, uploaded, doc_title, pdf_password, document_type
            )
        except (TextExtractionError, StorageError) as e:
            logger.warning(f"Upload of {uploaded.filename} failed for user {user_id}: {e}")
            errors.append(e)
            failed.append(UploadFailure(filename=uploaded.filename, error=_upload_error_message(e)))
            continue

        background_tasks.add_task(
            run_document_analysis,
            document_id=str(result.document.id),
            document_text=result.text,
            document_type=result.document.type,
            document_title=result.document.title,
            analysis_service=analysis_service,
        )
        created.append(DocumentOut.from_document(result.document))

    # Nothing was stored, so report the first failure as the request's outcome
    if not created:
        first = errors[0]
        if isinstance(first, UnsupportedFileTypeError):
            raise BadRequestException(str(first))
        raise UnprocessableException(_upload_error_message(first))

    return UploadResponse(documents=created, failed=failed)


@router.get("", response_model=List[DocumentOut])
async def list_documents(user_id: str = Depends(get_current_user_id)):
    """List the current user's documents, newest first."""
    documents = await DocumentService.list_documents(user_id)
    return [DocumentOut.from_document(d) for d in documents]


@router.get("/usage/summary", response_model=UsageSummaryResponse, response_model_by_alias=True)
async def usage_summary(user_id: str = Depends(get_current_user_id)):
    """Document counts and plan details for the dashboard."""
    return await DocumentService.usage_summary(user_id)


@router.get("/{document_id}", response_model=DocumentDetailOut)
async def get_document(document_id: str, user_id: str = Depends(get_current_user_id)):
    """
    Get a document with its analysis.

    Findings and recommendations stay empty until the document is analyzed
    or has failed.
    """
    document = await DocumentService.get_document(user_id, document_id)
    if document is None:
        raise NotFoundException("Document not found")
    return await DocumentService.get_detail(document)


@router.delete("/{document_id}")
async def delete_document(document_id: str, user_id: str = Depends(get_current_user_id)):
    """Delete a document, its results and its stored file."""
    document = await DocumentService.get_document(user_id, document_id)
    if document is None:
        raise NotFoundException("Document not found")

    await DocumentService.delete_document(document)
    return {"message": "Document deleted successfully"}
