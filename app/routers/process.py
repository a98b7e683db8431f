"""Document analysis endpoint."""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from app.core.logging import logger
from app.dependencies import get_analysis_service, get_current_user_id
from app.graphs.document_analysis import run_document_analysis
from app.models.document import DocumentState
from app.schemas.analysis import (
    ProcessDocumentError,
    ProcessDocumentRequest,
    ProcessDocumentResponse,
)
from app.services.analysis_service import AnalysisService
from app.shared.errors import RequestValidationError

router = APIRouter(tags=["Document Analysis"])


@router.post(
    "/process-document",
    response_model=ProcessDocumentResponse,
    responses={
        400: {"description": "Missing required field"},
        404: {"model": ProcessDocumentError},
        409: {"model": ProcessDocumentError},
        500: {"model": ProcessDocumentError},
    },
)
async def process_document(
    request: ProcessDocumentRequest,
    user_id: str = Depends(get_current_user_id),
    analysis_service: AnalysisService = Depends(get_analysis_service),
):
    """
    Analyze the text of an uploaded document.

    The document moves pending -> processing -> completed | error.
    Document ownership is not checked here; any authenticated caller
    that knows the id can trigger the analysis.
    """
    try:
        request.validate_required()
    except RequestValidationError as e:
        logger.warning(f"Rejected analysis request from user {user_id}: {e}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "error": str(e)},
        )

    logger.info(f"Processing document {request.document_id} for user {user_id}")

    result = await run_document_analysis(
        document_id=request.document_id,
        document_text=request.document_text,
        document_type=request.document_type,
        document_title=request.document_title,
        analysis_service=analysis_service,
    )

    if result.get("error") or result.get("processing_status") != DocumentState.COMPLETED.value:
        error_status = result.get("error_status") or 500
        error = ProcessDocumentError(
            error=result.get("error") or "Unknown error occurred",
            status=error_status,
        )
        return JSONResponse(status_code=error_status, content=error.model_dump())

    return ProcessDocumentResponse(
        summary=result["summary"],
        processing_time=result["processing_time"],
    )
