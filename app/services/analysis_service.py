"""OpenAI chat-completion client for medical document analysis."""

import time
from typing import Any, Dict, List, Optional

import openai
from openai import AsyncOpenAI

from app.config import settings
from app.core.logging import logger
from app.services.response_parser import parse_analysis, parse_findings_array
from app.shared.errors import AnalysisServiceError


ANALYSIS_SYSTEM_PROMPT = """You are a medical document analyzer. You receive the text of a medical document (lab results, clinical notes, discharge summaries, prescriptions, imaging reports).

If the text is not in English, translate it to English silently and answer in English. Do not mention the translation.

Return a single JSON object with this structure:
{
  "summary": "A concise plain-language summary of the key points",
  "key_findings": [
    {
      "marker": "Test, measurement, diagnosis or item name",
      "value": "Actual value or description",
      "reference_range": "Normal range if available",
      "interpretation": "High/Low/Normal or a short clinical interpretation",
      "category": "One of: Diagnosis, Symptom, Medication, Allergy, Lab Result, History, Other"
    }
  ],
  "recommendations": ["List of follow-up recommendations"],
  "critical_values": ["List of any critical or abnormal values"],
  "metadata": {
    "patient_info": {
      "date": "Document date if found",
      "provider": "Provider name if found",
      "facility": "Facility name if found"
    }
  }
}

Important:
- Extract EVERY test result or clinical finding you can see as a key finding
- Every key finding must have a non-empty marker and value
- Focus on accuracy and keep medical terminology
- Return ONLY valid JSON, no markdown code blocks or explanation
- If the text is not a medical document, return {"error": "<short reason>"} and nothing else"""

IMAGE_PREAMBLE = """The following text was extracted from an image (possibly a photo or scan of a medical report). The text may be noisy or unstructured. If you detect tabular or list-like data (such as lab results), do your best to reconstruct the table and extract each row as a key finding. If the image is a narrative report, extract diagnoses, medications, symptoms, and other findings as usual.

"""

FINDINGS_SYSTEM_PROMPT = """You extract key findings from medical documents.

Return ONLY a JSON array. Each element must be an object:
{"marker": "name", "value": "value", "reference_range": "range or null", "interpretation": "High/Low/Normal or null", "category": "Diagnosis, Symptom, Medication, Allergy, Lab Result, History or Other"}

Every element must have a non-empty marker and value. If nothing can be extracted return []."""


class AnalysisService:
    """Service for analyzing document text with the OpenAI chat API."""

    def __init__(self, client: Optional[AsyncOpenAI] = None):
        # Bounded retry with backoff is handled by the SDK for timeouts, 429 and 5xx
        self.client = client or AsyncOpenAI(
            api_key=settings.OPENAI_API_KEY,
            timeout=settings.ANALYSIS_TIMEOUT_SECONDS,
            max_retries=settings.ANALYSIS_MAX_RETRIES,
        )

    @staticmethod
    def build_analysis_messages(
        document_text: str,
        document_type: str,
        document_title: str,
    ) -> List[Dict[str, str]]:
        """Build the chat messages for the main analysis call."""
        system_prompt = ANALYSIS_SYSTEM_PROMPT
        if document_type and "image" in document_type.lower():
            system_prompt = IMAGE_PREAMBLE + system_prompt

        return [
            {"role": "system", "content": system_prompt},
            {
                "role": "user",
                "content": f"Document title: {document_title}\nDocument type: {document_type}\n\n{document_text}",
            },
        ]

    async def complete(self, messages: List[Dict[str, str]]) -> str:
        """
        Send one chat completion request and return the text content.
        Any transport or API failure is raised as AnalysisServiceError.
        """
        started = time.perf_counter()
        try:
            response = await self.client.chat.completions.create(
                model=settings.OPENAI_MODEL,
                messages=messages,
                temperature=settings.ANALYSIS_TEMPERATURE,
                max_tokens=settings.ANALYSIS_MAX_TOKENS,
            )
        except openai.APITimeoutError as e:
            raise AnalysisServiceError(
                f"Analysis Service timed out after {settings.ANALYSIS_TIMEOUT_SECONDS}s"
            ) from e
        except openai.APIError as e:
            raise AnalysisServiceError(f"Analysis Service request failed: {e}") from e

        elapsed = time.perf_counter() - started
        content = response.choices[0].message.content if response.choices else None
        logger.info(f"Analysis Service responded in {elapsed:.2f}s")

        if not content or not content.strip():
            raise AnalysisServiceError("Empty response from Analysis Service")

        logger.debug(f"Analysis Service raw response: {content[:500]}...")
        return content

    async def analyze_document(
        self,
        document_text: str,
        document_type: str,
        document_title: str,
    ) -> Dict[str, Any]:
        """Run the main analysis and return the validated result."""
        messages = self.build_analysis_messages(document_text, document_type, document_title)
        content = await self.complete(messages)
        return parse_analysis(content, document_text)

    async def extract_findings(self, document_text: str) -> List[Dict[str, Any]]:
        """
        Narrow fallback asking only for the findings array.
        Never raises; failures produce an empty list.
        """
        messages = [
            {"role": "system", "content": FINDINGS_SYSTEM_PROMPT},
            {"role": "user", "content": document_text},
        ]
        try:
            content = await self.complete(messages)
        except AnalysisServiceError as e:
            logger.warning(f"Findings fallback request failed: {e}")
            return []

        findings = parse_findings_array(content)
        logger.info(f"Findings fallback returned {len(findings)} findings")
        return findings
