"""Optical character recognition for image uploads."""

import io

import pytesseract
from PIL import Image, UnidentifiedImageError

from app.core.logging import logger
from app.shared.errors import UnreadableFileError


class OCRService:
    """Service for recognizing text in images with Tesseract."""

    @staticmethod
    def extract_text(data: bytes) -> str:
        """Run OCR on raw image bytes and return the recognized text."""
        try:
            image = Image.open(io.BytesIO(data))
            image.load()
        except (UnidentifiedImageError, OSError) as e:
            logger.error(f"Error decoding image for OCR: {e}")
            raise UnreadableFileError("Could not read file. Please select a valid image.") from e

        # Tesseract copes poorly with palette and alpha images
        if image.mode not in ("RGB", "L"):
            image = image.convert("RGB")

        try:
            text = pytesseract.image_to_string(image)
        except pytesseract.TesseractNotFoundError as e:
            logger.error("Tesseract binary is not installed")
            raise UnreadableFileError("Text recognition is unavailable on this server") from e
        except pytesseract.TesseractError as e:
            logger.error(f"Tesseract OCR failed: {e}")
            raise UnreadableFileError("Could not recognize text in the image") from e

        logger.info(f"OCR recognized {len(text)} chars")
        return text.strip()
