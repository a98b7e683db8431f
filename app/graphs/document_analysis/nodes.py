"""LangGraph nodes for the document analysis workflow."""

import time
from dataclasses import dataclass, field
from typing import List, Literal

from langchain_core.runnables import RunnableConfig

from app.config import settings
from app.core.logging import logger
from app.database import is_valid_id
from app.graphs.document_analysis.state import DocumentAnalysisState
from app.models.document import DocumentState, MedicalDocument
from app.models.finding import KeyFinding, Recommendation
from app.models.processing_log import ProcessingLog
from app.services.analysis_service import AnalysisService
from app.shared.errors import InsufficientTextError, PersistenceError, SecondLightError
from app.shared.models import utcnow


@dataclass
class PersistOutcome:
    """Result of writing an analysis; ``failed_tables`` empty means complete."""
    failed_tables: List[str] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return not self.failed_tables


def _analysis_service(config: RunnableConfig) -> AnalysisService:
    service = (config or {}).get("configurable", {}).get("analysis_service")
    return service or AnalysisService()


def _elapsed(state: DocumentAnalysisState) -> float:
    return round(time.perf_counter() - state.get("started_at", time.perf_counter()), 3)


async def _get_document(document_id: str):
    if not is_valid_id(document_id):
        return None
    return await MedicalDocument.get(document_id)


# ============ NODE 1: LOAD DOCUMENT ============

async def load_document(state: DocumentAnalysisState) -> dict:
    """
    Make sure the document exists and has not already finished.
    Nothing is written here so a bad id leaves no trace.
    """
    document_id = state["document_id"]
    try:
        document = await _get_document(document_id)
    except Exception as e:
        logger.error(f"Error loading document {document_id}: {e}")
        return {"error": f"Failed to load document: {e}", "error_status": 500}

    if document is None:
        logger.warning(f"Analysis requested for unknown document {document_id}")
        return {"error": "Document not found", "error_status": 404}

    if document.is_terminal:
        logger.warning(
            f"Analysis requested for document {document_id} already in "
            f"'{document.processing_status.value}'"
        )
        return {
            "error": f"Document has already been processed (status: {document.processing_status.value})",
            "error_status": 409,
        }

    return {"error": None}


# ============ NODE 2: MARK PROCESSING ============

async def mark_processing(state: DocumentAnalysisState) -> dict:
    """
    Move the document to processing and clear any previous error message.
    """
    document = await _get_document(state["document_id"])
    try:
        document.transition_to(DocumentState.PROCESSING)
        await document.save()
    except Exception as e:
        logger.error(f"Failed to mark document {state['document_id']} as processing: {e}")
        return {"error": f"Failed to update document status: {e}", "error_status": 500}

    logger.info(f"Document {state['document_id']} marked processing")
    return {"processing_status": DocumentState.PROCESSING.value}


# ============ NODE 3: LOG REQUEST ============

async def log_request(state: DocumentAnalysisState) -> dict:
    """
    Open a processing log row with the request payload.
    A failure here is logged and does not stop the analysis.
    """
    processing_log = ProcessingLog(
        document_id=state["document_id"],
        request_payload={
            "documentId": state["document_id"],
            "documentType": state["document_type"],
            "documentTitle": state["document_title"],
            "documentText": state["document_text"],
        },
        status="processing",
    )
    try:
        await processing_log.insert()
    except Exception as e:
        logger.error(f"Error logging request for document {state['document_id']}: {e}")
        return {"log_id": None}

    return {"log_id": str(processing_log.id)}


# ============ NODE 4: CHECK TEXT ============

def check_text(state: DocumentAnalysisState) -> dict:
    """
    Refuse text too short to analyze before calling the Analysis Service.
    """
    text = (state.get("document_text") or "").strip()
    if len(text) <= settings.MIN_DOCUMENT_TEXT_LENGTH:
        logger.warning(f"Document {state['document_id']} text too short ({len(text)} chars)")
        return {"error": str(InsufficientTextError()), "error_status": 400}
    return {"error": None}


# ============ NODE 5: REQUEST ANALYSIS ============

async def request_analysis(state: DocumentAnalysisState, config: RunnableConfig) -> dict:
    """
    Call the Analysis Service and validate its JSON answer.
    """
    service = _analysis_service(config)
    logger.info(f"Requesting analysis for document {state['document_id']}")

    try:
        analysis = await service.analyze_document(
            state["document_text"],
            state["document_type"],
            state["document_title"],
        )
    except SecondLightError as e:
        logger.error(f"Analysis failed for document {state['document_id']}: {e}")
        return {"error": str(e), "error_status": 500}
    except Exception as e:
        logger.exception(f"Unexpected analysis failure for document {state['document_id']}")
        return {"error": f"Unexpected analysis failure: {e}", "error_status": 500}

    logger.info(
        f"Analysis for document {state['document_id']} returned "
        f"{len(analysis['key_findings'])} key findings"
    )
    return {"analysis": analysis, "used_fallback": False}


# ============ NODE 6: FALLBACK FINDINGS ============

async def fallback_findings(state: DocumentAnalysisState, config: RunnableConfig) -> dict:
    """
    Ask once more for just the findings when the main answer had none.
    Failure leaves the findings empty without failing the document.
    """
    service = _analysis_service(config)
    logger.info(f"No key findings for document {state['document_id']}, trying findings fallback")

    try:
        findings = await service.extract_findings(state["document_text"])
    except Exception as e:
        logger.warning(f"Findings fallback failed for document {state['document_id']}: {e}")
        findings = []

    if not findings:
        return {"used_fallback": True}

    analysis = dict(state["analysis"])
    analysis["key_findings"] = findings
    return {"analysis": analysis, "used_fallback": True}


# ============ NODE 7: PERSIST RESULTS ============

async def _persist_children(document_id: str, analysis: dict) -> PersistOutcome:
    """Write findings and recommendations; failures are collected, not raised."""
    outcome = PersistOutcome()

    findings = [
        KeyFinding(document_id=document_id, **finding)
        for finding in analysis.get("key_findings", [])
    ]
    if findings:
        try:
            await KeyFinding.insert_many(findings)
        except Exception as e:
            logger.error(f"Error inserting key findings for document {document_id}: {e}")
            outcome.failed_tables.append(KeyFinding.Settings.name)

    recommendations = [
        Recommendation(document_id=document_id, content=content)
        for content in analysis.get("recommendations", [])
    ]
    if recommendations:
        try:
            await Recommendation.insert_many(recommendations)
        except Exception as e:
            logger.error(f"Error inserting recommendations for document {document_id}: {e}")
            outcome.failed_tables.append(Recommendation.Settings.name)

    return outcome


async def persist_results(state: DocumentAnalysisState) -> dict:
    """
    Save findings, recommendations and the completed document, then close the
    processing log.
    """
    document_id = state["document_id"]
    analysis = state["analysis"]

    outcome = await _persist_children(document_id, analysis)
    if not outcome.is_complete:
        logger.warning(
            f"Partial persistence for document {document_id}: failed {outcome.failed_tables}"
        )
        if settings.FAIL_ON_PARTIAL_PERSIST:
            error = PersistenceError(
                f"Failed to save {', '.join(outcome.failed_tables)}",
                failed_tables=outcome.failed_tables,
            )
            return {"error": str(error), "error_status": 500, "failed_tables": outcome.failed_tables}

    try:
        document = await _get_document(document_id)
        document.summary = analysis["summary"]
        document.critical_values = analysis.get("critical_values", [])
        document.patient_info = analysis.get("metadata", {}).get("patient_info", {})
        document.transition_to(DocumentState.COMPLETED)
        await document.save()
    except Exception as e:
        logger.error(f"Error updating document {document_id} with analysis results: {e}")
        return {
            "error": "Failed to update document with analysis results",
            "error_status": 500,
            "failed_tables": outcome.failed_tables + [MedicalDocument.Settings.name],
        }

    processing_time = _elapsed(state)

    if state.get("log_id"):
        try:
            processing_log = await ProcessingLog.get(state["log_id"])
            processing_log.response_payload = analysis
            processing_log.status = "completed"
            processing_log.failed_tables = outcome.failed_tables
            if not outcome.is_complete:
                processing_log.error_message = f"Partial save, failed: {', '.join(outcome.failed_tables)}"
            processing_log.processing_time = processing_time
            processing_log.completed_at = utcnow()
            await processing_log.save()
        except Exception as e:
            logger.error(f"Error updating processing log for document {document_id}: {e}")

    logger.info(f"Document {document_id} analyzed in {processing_time}s")
    return {
        "processing_status": DocumentState.COMPLETED.value,
        "summary": analysis["summary"],
        "processing_time": processing_time,
        "failed_tables": outcome.failed_tables,
    }


# ============ NODE 8: RECORD FAILURE ============

async def record_failure(state: DocumentAnalysisState) -> dict:
    """
    Put the document into the error state and close the latest processing log.
    """
    document_id = state["document_id"]
    message = state.get("error") or "Unknown error occurred"
    processing_time = _elapsed(state)

    try:
        document = await _get_document(document_id)
        if document is not None and not document.is_terminal:
            document.transition_to(DocumentState.ERROR, error_message=f"Processing failed: {message}")
            await document.save()
    except Exception as e:
        logger.error(f"Error marking document {document_id} as failed: {e}")

    # Results of a failed attempt must not be shown
    try:
        await KeyFinding.find(KeyFinding.document_id == document_id).delete()
        await Recommendation.find(Recommendation.document_id == document_id).delete()
    except Exception as e:
        logger.error(f"Error removing partial results for document {document_id}: {e}")

    try:
        processing_log = await ProcessingLog.find(
            ProcessingLog.document_id == document_id
        ).sort(-ProcessingLog.created_at).first_or_none()
        if processing_log is not None:
            processing_log.status = "error"
            processing_log.error_message = message
            processing_log.processing_time = processing_time
            processing_log.completed_at = utcnow()
            await processing_log.save()
    except Exception as e:
        logger.error(f"Error updating processing log for document {document_id}: {e}")

    logger.info(f"Document {document_id} failed after {processing_time}s: {message}")
    return {
        "processing_status": DocumentState.ERROR.value,
        "processing_time": processing_time,
    }


# ============ ROUTING FUNCTIONS ============

def route_after_load(
    state: DocumentAnalysisState,
) -> Literal["mark_processing", "record_failure", "end"]:
    """Unknown or finished documents stop without any write; a failed lookup is recorded."""
    if state.get("error"):
        if state.get("error_status") == 500:
            return "record_failure"
        return "end"
    return "mark_processing"


def route_after_mark(state: DocumentAnalysisState) -> Literal["log_request", "record_failure"]:
    if state.get("error"):
        return "record_failure"
    return "log_request"


def route_after_check(state: DocumentAnalysisState) -> Literal["request_analysis", "record_failure"]:
    if state.get("error"):
        return "record_failure"
    return "request_analysis"


def route_after_analysis(
    state: DocumentAnalysisState,
) -> Literal["fallback_findings", "persist_results", "record_failure"]:
    """Empty findings get one fallback attempt."""
    if state.get("error"):
        return "record_failure"
    if not state["analysis"].get("key_findings"):
        return "fallback_findings"
    return "persist_results"


def route_after_persist(state: DocumentAnalysisState) -> Literal["record_failure", "end"]:
    if state.get("error"):
        return "record_failure"
    return "end"
