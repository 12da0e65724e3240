"""OCRService: Tesseract-backed text extraction for receipt images."""

import io

import pytesseract
from PIL import Image, UnidentifiedImageError

from receipt_processor.core.exceptions import OCRError
from receipt_processor.core.settings import Settings
from receipt_processor.core.utils import get_logger

logger = get_logger("receipt-processor.ocr")


class OCRService:
    """Run Tesseract on in-memory image bytes.

    Usage:
        ocr = OCRService(language="eng")
        text = ocr.extract_text(image_bytes)
    """

    def __init__(self, language: str = "eng", tesseract_cmd: str | None = None) -> None:
        """Initialize the OCR service with a Tesseract language and optional binary path."""
        self.language = language
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

    @classmethod
    def from_settings(cls, settings: Settings) -> "OCRService":
        """Build an OCRService from application settings."""
        return cls(language=settings.ocr_language, tesseract_cmd=settings.tesseract_cmd)

    def extract_text(self, data: bytes) -> str:
        """Return the text Tesseract reads from the image, raising OCRError on bad data or engine failure."""
        try:
            with Image.open(io.BytesIO(data)) as img:
                image = img.convert("RGB")
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
            msg = f"Failed to set image: {exc}"
            raise OCRError(msg) from exc
        try:
            text = pytesseract.image_to_string(image, lang=self.language)
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError, RuntimeError) as exc:
            msg = f"Failed to extract text: {exc}"
            raise OCRError(msg) from exc
        logger.info(f"OCR read {len(text)} characters")
        return text
