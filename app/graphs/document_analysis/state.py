"""LangGraph state schema for the document analysis workflow."""

from typing import Any, Dict, List, Optional, TypedDict


class DocumentAnalysisState(TypedDict, total=False):
    """State schema for the document analysis workflow."""

    # Input - provided when starting the workflow
    document_id: str
    document_text: str
    document_type: str
    document_title: str
    started_at: float  # perf_counter at invocation

    # Bookkeeping
    log_id: Optional[str]

    # Analysis Service output
    analysis: Dict[str, Any]
    used_fallback: bool

    # Persistence results
    failed_tables: List[str]
    processing_status: str  # final DocumentState value
    summary: str
    processing_time: float

    # Failure, if any; error_status is the HTTP status to report
    error: Optional[str]
    error_status: int
