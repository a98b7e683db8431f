"""Domain errors raised by services and the analysis workflow.

These are kept free of HTTP concerns; routers translate them into the
exceptions defined in ``app.shared.exceptions``.
"""

from typing import List, Optional


class SecondLightError(Exception):
    """Base class for all domain errors."""


# ============ ANALYSIS REQUEST ERRORS ============

class RequestValidationError(SecondLightError):
    """A required field of the analysis request is missing."""


class InsufficientTextError(SecondLightError):
    """Extracted text is too short to be worth analyzing."""

    def __init__(self, message: str = (
        "Could not extract text from the uploaded document. "
        "Please upload a valid medical report PDF or image."
    )):
        super().__init__(message)


class AnalysisServiceError(SecondLightError):
    """The Analysis Service could not be reached or returned nothing usable."""


class MalformedAnalysisError(SecondLightError):
    """The Analysis Service response is not JSON or fails validation."""


class DocumentRejectedError(SecondLightError):
    """The Analysis Service declared the input is not a medical document."""

    def __init__(self, reason: str, looks_like_lab_report: bool = False):
        self.reason = reason
        self.looks_like_lab_report = looks_like_lab_report
        if looks_like_lab_report:
            message = (
                f"The document was rejected as non-medical ({reason}) but appears "
                "to be a laboratory report. Please re-upload to retry the analysis."
            )
        else:
            message = f"Not a medical document: {reason}"
        super().__init__(message)


class PersistenceError(SecondLightError):
    """Writing analysis results to the store failed."""

    def __init__(self, message: str, failed_tables: Optional[List[str]] = None):
        super().__init__(message)
        self.failed_tables = failed_tables or []


class InvalidStateTransition(SecondLightError):
    """A document was asked to move to a state it cannot reach."""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot transition document from '{current}' to '{target}'")


# ============ TEXT EXTRACTION ERRORS ============

class TextExtractionError(SecondLightError):
    """Base class for file decoding failures."""


class PasswordRequiredError(TextExtractionError):
    """The PDF is encrypted and no password was supplied."""

    def __init__(self, message: str = "PDF password required"):
        super().__init__(message)


class IncorrectPasswordError(TextExtractionError):
    """The supplied PDF password did not authenticate."""

    def __init__(self, message: str = "Incorrect password. Please try again."):
        super().__init__(message)


class UnreadableFileError(TextExtractionError):
    """The file could not be decoded."""


class UnsupportedFileTypeError(TextExtractionError):
    """The file extension is not one we can extract text from."""


# ============ STORAGE ERRORS ============

class StorageError(SecondLightError):
    """The storage gateway rejected an upload or lookup."""
