"""Pydantic schemas for document, usage and subscription endpoints."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.document import MedicalDocument
from app.models.finding import KeyFinding


class KeyFindingOut(BaseModel):
    """A key finding as shown on the document page."""
    marker: str
    value: str
    reference_range: Optional[str] = None
    interpretation: Optional[str] = None
    category: Optional[str] = None

    @classmethod
    def from_finding(cls, finding: KeyFinding) -> "KeyFindingOut":
        return cls(
            marker=finding.marker,
            value=finding.value,
            reference_range=finding.reference_range,
            interpretation=finding.interpretation,
            category=finding.category,
        )


class DocumentOut(BaseModel):
    """Document row as listed on the dashboard.

    ``status`` and ``processing_status`` are both rendered from the single
    stored lifecycle state.
    """
    id: str
    title: str
    date: datetime
    type: str
    status: str
    processing_status: str
    error_message: Optional[str] = None
    file_path: Optional[str] = None
    user_id: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_document(cls, document: MedicalDocument) -> "DocumentOut":
        return cls(
            id=str(document.id),
            title=document.title,
            date=document.date,
            type=document.type,
            status=document.status,
            processing_status=document.processing_status.value,
            error_message=document.error_message,
            file_path=document.file_path,
            user_id=document.user_id,
            created_at=document.created_at,
            updated_at=document.updated_at,
        )


class DocumentDetailOut(DocumentOut):
    """Document with its analysis results."""
    summary: str = ""
    key_findings: List[KeyFindingOut] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    critical_values: List[str] = Field(default_factory=list)
    metadata: Dict[str, Dict[str, str]] = Field(default_factory=dict)
    file_url: Optional[str] = None


class UploadFailure(BaseModel):
    filename: str
    error: str


class UploadResponse(BaseModel):
    """Documents created by an upload; files that failed are listed separately."""
    documents: List[DocumentOut] = Field(default_factory=list)
    failed: List[UploadFailure] = Field(default_factory=list)


class UsageSummaryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_documents: int = Field(alias="totalDocuments")
    processed_documents: int = Field(alias="processedDocuments")
    subscription_type: str = Field(alias="subscriptionType")
    next_billing_date: Optional[datetime] = Field(default=None, alias="nextBillingDate")


class SubscriptionStatusResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str
    reports_remaining: int = Field(alias="reportsRemaining")
    next_billing_date: Optional[datetime] = Field(default=None, alias="nextBillingDate")
    cancel_at_period_end: bool = Field(default=False, alias="cancelAtPeriodEnd")
    current_period_end: Optional[datetime] = Field(default=None, alias="currentPeriodEnd")
    subscription_type: str = Field(default="Free", alias="subscriptionType")
