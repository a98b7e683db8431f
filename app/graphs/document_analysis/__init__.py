"""Document analysis workflow."""

from app.graphs.document_analysis.graph import document_analysis_graph, run_document_analysis
from app.graphs.document_analysis.state import DocumentAnalysisState

__all__ = ["document_analysis_graph", "run_document_analysis", "DocumentAnalysisState"]
