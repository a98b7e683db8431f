"""
Shared dependencies across the application.

Tests replace these through ``app.dependency_overrides``.
"""

from app.core.security import get_current_user_id
from app.services.analysis_service import AnalysisService


def get_analysis_service() -> AnalysisService:
    """Analysis Service client used by the analysis workflow."""
    return AnalysisService()


__all__ = ["get_current_user_id", "get_analysis_service"]
