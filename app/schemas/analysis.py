"""Pydantic schemas for the document analysis endpoint."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.shared.errors import RequestValidationError


class ProcessDocumentRequest(BaseModel):
    """Body of ``POST /process-document``.

    Every field is optional at the schema level so that a missing field is
    reported as a 400 with a specific message rather than a generic 422.
    """
    model_config = ConfigDict(populate_by_name=True)

    document_id: Optional[str] = Field(default=None, alias="documentId")
    document_text: Optional[str] = Field(default=None, alias="documentText")
    document_type: Optional[str] = Field(default=None, alias="documentType")
    document_title: Optional[str] = Field(default=None, alias="documentTitle")

    def validate_required(self):
        """Raise RequestValidationError for the first missing field."""
        if not self.document_id:
            raise RequestValidationError("Document ID is required")
        if not self.document_type:
            raise RequestValidationError("Document type is required")
        if not self.document_title:
            raise RequestValidationError("Document title is required")
        if not self.document_text or not self.document_text.strip():
            raise RequestValidationError("Document text is required for analysis")


class ProcessDocumentResponse(BaseModel):
    """Successful analysis."""
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "message": "Document processed successfully",
                "summary": "Complete blood count within normal limits except mildly low hemoglobin.",
                "processingTime": 4.2,
            }
        },
    )

    message: str = "Document processed successfully"
    summary: str
    processing_time: float = Field(alias="processingTime")


class ProcessDocumentError(BaseModel):
    """Failed analysis."""
    success: bool = False
    error: str
    status: int = 500
