"""Turn an uploaded file into the plain text submitted for analysis."""

from pathlib import Path
from typing import Iterable, Optional

from app.models.document import DocumentType
from app.services.ocr_service import OCRService
from app.services.pdf_service import PDFService
from app.shared.errors import UnsupportedFileTypeError

# Supported file extensions
SUPPORTED_IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp", ".gif", ".tif", ".tiff", ".bmp"}
SUPPORTED_PDF_EXTENSIONS = {".pdf"}
ALL_SUPPORTED_EXTENSIONS = SUPPORTED_IMAGE_EXTENSIONS | SUPPORTED_PDF_EXTENSIONS


def get_file_extension(filename: str) -> str:
    """Get lowercase file extension."""
    return Path(filename or "").suffix.lower()


def is_image_file(filename: str) -> bool:
    """Check if file is an image."""
    return get_file_extension(filename) in SUPPORTED_IMAGE_EXTENSIONS


def is_pdf_file(filename: str) -> bool:
    """Check if file is a PDF."""
    return get_file_extension(filename) in SUPPORTED_PDF_EXTENSIONS


def infer_document_type(filenames: Iterable[str]) -> str:
    """Pick the document type label for a batch of uploaded files."""
    names = list(filenames)
    images = sum(1 for name in names if is_image_file(name))
    pdfs = sum(1 for name in names if is_pdf_file(name))

    if images and pdfs:
        return DocumentType.MIXED.value
    if images > 1:
        return DocumentType.MULTIPLE_IMAGES.value
    if images == 1:
        return DocumentType.IMAGE.value
    return DocumentType.PDF.value


def extract_text(filename: str, data: bytes, password: Optional[str] = None) -> str:
    """
    Extract plain text from a PDF (text layer) or image (OCR).

    PDF password problems surface as PasswordRequiredError or
    IncorrectPasswordError so the caller can prompt again.
    """
    if is_pdf_file(filename):
        return PDFService.extract_text(data, password)
    if is_image_file(filename):
        return OCRService.extract_text(data)

    raise UnsupportedFileTypeError(
        "Unsupported file type. Accepted formats: PDF, PNG, JPG, JPEG, WEBP, GIF, TIFF, BMP"
    )
