"""LangGraph workflow definition for document analysis."""

import time
from typing import Optional

from langgraph.graph import StateGraph, START, END

from app.graphs.document_analysis.state import DocumentAnalysisState
from app.graphs.document_analysis.nodes import (
    load_document,
    mark_processing,
    log_request,
    check_text,
    request_analysis,
    fallback_findings,
    persist_results,
    record_failure,
    route_after_load,
    route_after_mark,
    route_after_check,
    route_after_analysis,
    route_after_persist,
)
from app.services.analysis_service import AnalysisService


def build_document_analysis_graph() -> StateGraph:
    """Build the document analysis workflow graph."""

    graph = StateGraph(DocumentAnalysisState)

    # Add all nodes
    graph.add_node("load_document", load_document)
    graph.add_node("mark_processing", mark_processing)
    graph.add_node("log_request", log_request)
    graph.add_node("check_text", check_text)
    graph.add_node("request_analysis", request_analysis)
    graph.add_node("fallback_findings", fallback_findings)
    graph.add_node("persist_results", persist_results)
    graph.add_node("record_failure", record_failure)

    # Start -> Load Document -> (Mark Processing | Record Failure | End)
    graph.add_edge(START, "load_document")
    graph.add_conditional_edges(
        "load_document",
        route_after_load,
        {
            "mark_processing": "mark_processing",
            "record_failure": "record_failure",
            "end": END,
        }
    )

    # Mark Processing -> (Log Request | Record Failure)
    graph.add_conditional_edges(
        "mark_processing",
        route_after_mark,
        {
            "log_request": "log_request",
            "record_failure": "record_failure",
        }
    )

    # Log Request -> Check Text -> (Request Analysis | Record Failure)
    graph.add_edge("log_request", "check_text")
    graph.add_conditional_edges(
        "check_text",
        route_after_check,
        {
            "request_analysis": "request_analysis",
            "record_failure": "record_failure",
        }
    )

    # Request Analysis -> (Fallback Findings | Persist Results | Record Failure)
    graph.add_conditional_edges(
        "request_analysis",
        route_after_analysis,
        {
            "fallback_findings": "fallback_findings",
            "persist_results": "persist_results",
            "record_failure": "record_failure",
        }
    )

    # Fallback never fails the document
    graph.add_edge("fallback_findings", "persist_results")

    # Persist Results -> (Record Failure | End)
    graph.add_conditional_edges(
        "persist_results",
        route_after_persist,
        {
            "record_failure": "record_failure",
            "end": END,
        }
    )

    graph.add_edge("record_failure", END)

    return graph


document_analysis_graph = build_document_analysis_graph().compile()


async def run_document_analysis(
    document_id: str,
    document_text: str,
    document_type: str,
    document_title: str,
    analysis_service: Optional[AnalysisService] = None,
) -> DocumentAnalysisState:
    """
    Run one analysis attempt for a document and return the final state.

    The workflow never raises for analysis failures; they are reported
    through ``error`` and ``error_status`` in the returned state.
    """
    initial_state: DocumentAnalysisState = {
        "document_id": document_id,
        "document_text": document_text,
        "document_type": document_type,
        "document_title": document_title,
        "started_at": time.perf_counter(),
        "log_id": None,
        "analysis": {},
        "used_fallback": False,
        "failed_tables": [],
        "processing_status": "",
        "summary": "",
        "processing_time": 0.0,
        "error": None,
        "error_status": 200,
    }
    config = {"configurable": {"analysis_service": analysis_service or AnalysisService()}}
    return await document_analysis_graph.ainvoke(initial_state, config)
