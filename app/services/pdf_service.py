"""PDF text-layer extraction using PyMuPDF."""

from typing import Optional

import fitz  # PyMuPDF

from app.core.logging import logger
from app.shared.errors import (
    IncorrectPasswordError,
    PasswordRequiredError,
    UnreadableFileError,
)


class PDFService:
    """Service for reading text out of (possibly encrypted) PDFs."""

    @staticmethod
    def open_document(data: bytes, password: Optional[str] = None) -> "fitz.Document":
        """
        Open a PDF from bytes, authenticating when it is encrypted.

        Raises PasswordRequiredError when a password is needed but missing,
        IncorrectPasswordError when it does not authenticate, and
        UnreadableFileError when the bytes are not a PDF.
        """
        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except Exception as e:
            logger.error(f"Error opening PDF: {e}")
            raise UnreadableFileError("Could not read file. Please select a valid PDF.") from e

        if doc.needs_pass:
            if not password:
                doc.close()
                raise PasswordRequiredError()
            if not doc.authenticate(password):
                doc.close()
                raise IncorrectPasswordError()

        return doc

    @classmethod
    def extract_text(cls, data: bytes, password: Optional[str] = None) -> str:
        """
        Extract text from every page.
        Words on a page are joined with a space, pages with a blank line.
        """
        doc = cls.open_document(data, password)
        try:
            pages = []
            for page in doc:
                words = page.get_text("words")
                pages.append(" ".join(word[4] for word in words))
        finally:
            doc.close()

        text = "\n\n".join(pages)
        logger.info(f"Extracted {len(text)} chars from {len(pages)} PDF pages")
        return text.strip()
