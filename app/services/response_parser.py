"""Parsing and validation of Analysis Service responses."""

import json
import re
from typing import Any, Dict, List, Optional

from app.core.logging import logger
from app.models.finding import FindingCategory
from app.shared.errors import DocumentRejectedError, MalformedAnalysisError

# Words that mark a rejected document as a probable lab report
LAB_REPORT_KEYWORDS = ("blood", "test", "laboratory", "specimen")

NOT_SPECIFIED = "Not specified"

_FENCE_PATTERNS = [
    r'```json\s*([\s\S]*?)\s*```',
    r'```\s*([\s\S]*?)\s*```',
]


def extract_json_from_text(text: str) -> Optional[Any]:
    """
    Extract a JSON value from text that may contain markdown or other content.
    Uses multiple strategies to find valid JSON.
    """
    if not text:
        return None

    # Strategy 1: Try parsing the text directly
    try:
        return json.loads(text.strip())
    except json.JSONDecodeError:
        pass

    # Strategy 2: Remove markdown code fences
    for pattern in _FENCE_PATTERNS:
        match = re.search(pattern, text, re.IGNORECASE)
        if match:
            try:
                return json.loads(match.group(1).strip())
            except json.JSONDecodeError:
                continue

    # Strategy 3: Take the outermost balanced {...} or [...], whichever opens first
    candidates = sorted(
        (text.find(opener), opener, closer)
        for opener, closer in (("{", "}"), ("[", "]"))
        if text.find(opener) != -1
    )
    for start_idx, opener, closer in candidates:
        depth = 0
        for i, char in enumerate(text[start_idx:], start_idx):
            if char == opener:
                depth += 1
            elif char == closer:
                depth -= 1
                if depth == 0:
                    try:
                        return json.loads(text[start_idx:i + 1])
                    except json.JSONDecodeError:
                        break

    return None


def looks_like_lab_report(text: str) -> bool:
    """Keyword heuristic used to second-guess a non-medical rejection."""
    lowered = (text or "").lower()
    return any(keyword in lowered for keyword in LAB_REPORT_KEYWORDS)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    return str(value).strip()


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [text for text in (_as_text(item) for item in value) if text]


def normalize_finding(raw: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Normalize one finding; returns None when it has no marker.

    ``value`` and ``explanation`` are filled from each other because the model
    uses them interchangeably.
    """
    if not isinstance(raw, dict):
        return None

    marker = _as_text(raw.get("marker"))
    if not marker:
        return None

    value = _as_text(raw.get("value")) or _as_text(raw.get("explanation")) or NOT_SPECIFIED
    explanation = _as_text(raw.get("explanation")) or value

    return {
        "marker": marker,
        "value": value,
        "reference_range": _as_text(raw.get("reference_range")) or None,
        "interpretation": _as_text(raw.get("interpretation")) or None,
        "category": FindingCategory.normalize(raw.get("category")).value,
        "explanation": explanation,
    }


def normalize_findings(raw_findings: Any) -> List[Dict[str, Any]]:
    """Keep only well-formed findings from a list returned by the model."""
    if not isinstance(raw_findings, list):
        return []

    findings = []
    for raw in raw_findings:
        finding = normalize_finding(raw)
        if finding is None:
            logger.warning(f"Dropping malformed key finding: {raw!r}")
            continue
        findings.append(finding)
    return findings


def parse_analysis(content: str, document_text: str) -> Dict[str, Any]:
    """
    Parse and validate the main analysis response.

    Returns a dict with summary, key_findings, recommendations,
    critical_values and metadata. Raises MalformedAnalysisError or
    DocumentRejectedError.
    """
    parsed = extract_json_from_text(content)
    if parsed is None:
        raise MalformedAnalysisError("Analysis Service returned a response that is not valid JSON")

    if not isinstance(parsed, dict):
        raise MalformedAnalysisError("Analysis Service response is not a JSON object")

    if parsed.get("error"):
        reason = _as_text(parsed.get("error")) or "unspecified"
        raise DocumentRejectedError(reason, looks_like_lab_report=looks_like_lab_report(document_text))

    summary = _as_text(parsed.get("summary"))
    if not summary:
        raise MalformedAnalysisError("Analysis is missing a summary")

    raw_findings = parsed.get("key_findings")
    if not isinstance(raw_findings, list):
        raise MalformedAnalysisError("Analysis is missing the key_findings list")

    findings = []
    for raw in raw_findings:
        finding = normalize_finding(raw)
        if finding is None:
            raise MalformedAnalysisError(f"Key finding without a marker: {raw!r}")
        findings.append(finding)

    metadata = parsed.get("metadata") if isinstance(parsed.get("metadata"), dict) else {}
    patient_info = metadata.get("patient_info") if isinstance(metadata.get("patient_info"), dict) else {}

    return {
        "summary": summary,
        "key_findings": findings,
        "recommendations": _string_list(parsed.get("recommendations")),
        "critical_values": _string_list(parsed.get("critical_values")),
        "metadata": {
            "patient_info": {
                key: _as_text(patient_info.get(key))
                for key in ("date", "provider", "facility")
                if _as_text(patient_info.get(key))
            }
        },
    }


def parse_findings_array(content: str) -> List[Dict[str, Any]]:
    """
    Parse the findings-only fallback response.

    Accepts a bare array, an object with a ``key_findings`` array or a single
    finding object. Anything else yields an empty list.
    """
    parsed = extract_json_from_text(content)
    if isinstance(parsed, dict):
        parsed = parsed["key_findings"] if "key_findings" in parsed else [parsed]
    return normalize_findings(parsed)
